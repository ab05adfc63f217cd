# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Integration tests package for aispec.

This package contains end-to-end tests that load assistant documents from
disk and drive whole workflows against a scripted model service.
"""
