# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""CLI module for aispec."""

from aispec.cli.app import app

__all__ = ["app"]
