"""Pytest configuration and shared fixtures for aispec tests.

This module contains fixtures used across multiple test modules.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from aispec.providers.callback import CallbackModelService


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def movie_assistant_path(fixtures_dir: Path) -> Path:
    """Return the path to the movie-builder assistant document."""
    return fixtures_dir / "movie" / "assistant.yaml"


@pytest.fixture
def character_responses() -> dict[str, Any]:
    """Return scripted model answers for the character-building workflow."""
    return {
        "Produce 2 surnames that sound good with the name: John": {
            "surnames": ["Doe", "Smith"]
        },
        "Given the name: John select one of the surnames: Doe,Smith": {"surname": "Doe"},
        "Generate a character with the name: John and the surname: Doe": {
            "character": "John Doe"
        },
    }


@pytest.fixture
def character_service(character_responses: dict[str, Any]) -> CallbackModelService:
    """Return a model service answering the character-building prompts."""
    return CallbackModelService.from_responses(character_responses)


@pytest.fixture
def sample_assistant_yaml() -> str:
    """Return a minimal valid assistant YAML for testing."""
    return """\
assistant:
  id: greeter
  name: Greeter
  model: claude-sonnet-4-5
  workflows:
    - id: greet
      steps:
        - id: hello
          prompt: "Say hello to ${name}"
          output:
            schema:
              type: object
              properties:
                greeting:
                  type: string
              required: [greeting]
"""


@pytest.fixture
def tmp_assistant_file(tmp_path: Path, sample_assistant_yaml: str) -> Path:
    """Create a temporary assistant YAML file."""
    assistant_file = tmp_path / "assistant.yaml"
    assistant_file.write_text(sample_assistant_yaml)
    return assistant_file
