"""Tests for the run command and input parsing.

This module tests:
- Input flag parsing (--input name=value)
- Type coercion for input values
- Driving a runner, with and without step confirmation
- Run command execution with a scripted model service
- Dry-run execution plans
"""

from __future__ import annotations

from io import StringIO
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
import typer
from rich.console import Console
from typer.testing import CliRunner

from aispec.cli.app import app
from aispec.cli.run import (
    build_dry_run_plan,
    coerce_value,
    display_execution_plan,
    drive_runner,
    parse_input_flags,
    run_workflow_async,
)
from aispec.entities import Assistant
from aispec.exceptions import ModelInvocationError, WorkflowNotFoundError
from aispec.providers.callback import CallbackModelService

runner = CliRunner()

CHARACTER_ARGS = ["character-building", "-i", "name=John", "-i", "surnamesLength=2"]


class TestCoerceValue:
    """Tests for the coerce_value function."""

    def test_coerce_booleans(self) -> None:
        assert coerce_value("true") is True
        assert coerce_value("FALSE") is False

    def test_coerce_null(self) -> None:
        assert coerce_value("null") is None

    def test_coerce_numbers(self) -> None:
        """Test coercing integer and float strings."""
        assert coerce_value("42") == 42
        assert coerce_value("-10") == -10
        assert coerce_value("3.14") == 3.14

    def test_coerce_json(self) -> None:
        assert coerce_value("[1, 2, 3]") == [1, 2, 3]
        assert coerce_value('{"name": "John"}') == {"name": "John"}

    def test_coerce_invalid_json_returns_string(self) -> None:
        assert coerce_value("[not valid json") == "[not valid json"

    def test_coerce_string(self) -> None:
        assert coerce_value("a heist") == "a heist"
        assert coerce_value("") == ""


class TestParseInputFlags:
    """Tests for the parse_input_flags function."""

    def test_parse_multiple_inputs(self) -> None:
        result = parse_input_flags(["name=John", "surnamesLength=2", "tags=[\"a\"]"])
        assert result == {"name": "John", "surnamesLength": 2, "tags": ["a"]}

    def test_value_may_contain_equals(self) -> None:
        assert parse_input_flags(["equation=a=b"]) == {"equation": "a=b"}

    def test_whitespace_is_stripped(self) -> None:
        assert parse_input_flags(["  name = John "]) == {"name": "John"}

    def test_missing_equals(self) -> None:
        with pytest.raises(typer.BadParameter, match="Invalid input format"):
            parse_input_flags(["name"])

    def test_empty_name(self) -> None:
        with pytest.raises(typer.BadParameter, match="Empty input name"):
            parse_input_flags(["=John"])


class TestDriveRunner:
    """Tests for driving a runner from the CLI."""

    @pytest.mark.asyncio
    async def test_runs_to_completion(
        self, movie_assistant_path: Path, character_service: CallbackModelService
    ) -> None:
        workflow_runner = Assistant.from_file(movie_assistant_path).load_workflow(
            "character-building", character_service
        )

        result = await drive_runner(workflow_runner, {"name": "John", "surnamesLength": 2})

        assert workflow_runner.finished
        assert result["character"] == "John Doe"

    @pytest.mark.asyncio
    async def test_step_mode_stops_when_declined(
        self, movie_assistant_path: Path, character_service: CallbackModelService
    ) -> None:
        workflow_runner = Assistant.from_file(movie_assistant_path).load_workflow(
            "character-building", character_service
        )
        questions: list[str] = []

        def decline(text: str, default: bool = False) -> bool:
            questions.append(text)
            return False

        with patch("aispec.cli.run.typer.confirm", side_effect=decline):
            result = await drive_runner(
                workflow_runner, {"name": "John", "surnamesLength": 2}, step_mode=True
            )

        assert questions == ["Run step 'surname'?"]
        assert result["surnames"] == ["Doe", "Smith"]
        assert "surname" not in result
        assert not workflow_runner.finished

    @pytest.mark.asyncio
    async def test_step_mode_asks_before_each_further_step(
        self, movie_assistant_path: Path, character_service: CallbackModelService
    ) -> None:
        workflow_runner = Assistant.from_file(movie_assistant_path).load_workflow(
            "character-building", character_service
        )

        with patch("aispec.cli.run.typer.confirm", return_value=True) as mock_confirm:
            await drive_runner(workflow_runner, {"name": "John", "surnamesLength": 2}, True)

        assert mock_confirm.call_count == 2
        assert workflow_runner.finished


class TestRunWorkflowAsync:
    """Tests for run_workflow_async."""

    @pytest.mark.asyncio
    async def test_closes_service(
        self, movie_assistant_path: Path, character_service: CallbackModelService
    ) -> None:
        character_service.close = AsyncMock()  # type: ignore[method-assign]

        with patch(
            "aispec.cli.run.create_model_service", new=AsyncMock(return_value=character_service)
        ) as mock_factory:
            result = await run_workflow_async(
                movie_assistant_path,
                "character-building",
                {"name": "John", "surnamesLength": 2},
                provider="callback",
                model="claude-haiku-4-5",
            )

        mock_factory.assert_awaited_once_with("callback", default_model="claude-haiku-4-5")
        character_service.close.assert_awaited_once()
        assert result["character"] == "John Doe"

    @pytest.mark.asyncio
    async def test_closes_service_on_failure(self, movie_assistant_path: Path) -> None:
        service = CallbackModelService.from_responses({})
        service.close = AsyncMock()  # type: ignore[method-assign]

        with (
            patch("aispec.cli.run.create_model_service", new=AsyncMock(return_value=service)),
            pytest.raises(ModelInvocationError),
        ):
            await run_workflow_async(
                movie_assistant_path,
                "character-building",
                {"name": "John", "surnamesLength": 2},
            )

        service.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_workflow(self, movie_assistant_path: Path) -> None:
        service = CallbackModelService(lambda *args: None)

        with (
            patch("aispec.cli.run.create_model_service", new=AsyncMock(return_value=service)),
            pytest.raises(WorkflowNotFoundError),
        ):
            await run_workflow_async(movie_assistant_path, "ghost", {})


class TestDryRun:
    """Tests for execution plans."""

    def test_character_building_plan(self, movie_assistant_path: Path) -> None:
        plan = build_dry_run_plan(movie_assistant_path, "character-building")

        assert plan.workflow_id == "character-building"
        assert plan.workflow_name == "Character building"
        assert plan.skill_id == "characters"
        assert [step.step_id for step in plan.steps] == ["surnames", "surname", "character"]
        assert plan.steps[0].variables == ["surnamesLength", "name"]
        assert plan.steps[1].output_keys == ["surname"]
        assert all(step.model == "claude-sonnet-4-5" for step in plan.steps)

    def test_loop_step_plan(self, movie_assistant_path: Path) -> None:
        plan = build_dry_run_plan(movie_assistant_path, "scene-writing")
        lines = plan.steps[1]

        assert lines.loop == "beats"
        assert lines.as_name == "beat"
        assert lines.push == "lines"
        assert lines.output_keys == ["line"]
        assert lines.model == "claude-haiku-4-5"

    def test_display_execution_plan(self, movie_assistant_path: Path) -> None:
        buffer = StringIO()
        plan = build_dry_run_plan(movie_assistant_path, "scene-writing")

        display_execution_plan(plan, Console(file=buffer, width=200))

        output = buffer.getvalue()
        assert "Execution Plan (Dry Run)" in output
        assert "(loop beats as beat)" in output
        assert "→ lines (push)" in output
        assert "Loop steps: 1" in output


class TestRunCommand:
    """Tests for the run CLI command."""

    def test_run_command_help(self) -> None:
        result = runner.invoke(app, ["run", "--help"])
        assert result.exit_code == 0
        assert "--input" in result.output
        assert "--dry-run" in result.output

    def test_run_prints_final_context(
        self, movie_assistant_path: Path, character_service: CallbackModelService
    ) -> None:
        with patch(
            "aispec.cli.run.create_model_service", new=AsyncMock(return_value=character_service)
        ) as mock_factory:
            result = runner.invoke(app, ["run", str(movie_assistant_path), *CHARACTER_ARGS])

        assert result.exit_code == 0, result.output
        assert '"character": "John Doe"' in result.output
        assert mock_factory.await_args.args[0] == "claude"

    def test_run_passes_provider_and_model(
        self, movie_assistant_path: Path, character_service: CallbackModelService
    ) -> None:
        args = ["--provider", "callback", "--model", "claude-haiku-4-5"]
        with patch(
            "aispec.cli.run.create_model_service", new=AsyncMock(return_value=character_service)
        ) as mock_factory:
            result = runner.invoke(
                app, ["run", str(movie_assistant_path), *CHARACTER_ARGS, *args]
            )

        assert result.exit_code == 0, result.output
        mock_factory.assert_awaited_once_with("callback", default_model="claude-haiku-4-5")

    def test_run_step_mode_declined(
        self, movie_assistant_path: Path, character_service: CallbackModelService
    ) -> None:
        with patch(
            "aispec.cli.run.create_model_service", new=AsyncMock(return_value=character_service)
        ):
            result = runner.invoke(
                app, ["run", str(movie_assistant_path), *CHARACTER_ARGS, "--step"], input="n\n"
            )

        assert result.exit_code == 0, result.output
        assert "Run step 'surname'?" in result.output
        assert '"surnames": [' in result.output
        assert '"character":' not in result.output
        assert len(character_service.call_history) == 1

    def test_run_model_failure(self, movie_assistant_path: Path) -> None:
        service = CallbackModelService.from_responses({})
        with patch("aispec.cli.run.create_model_service", new=AsyncMock(return_value=service)):
            result = runner.invoke(app, ["run", str(movie_assistant_path), *CHARACTER_ARGS])

        assert result.exit_code == 1
        assert "ModelInvocationError" in result.output

    def test_run_unknown_workflow(self, movie_assistant_path: Path) -> None:
        service = CallbackModelService(lambda *args: None)
        with patch("aispec.cli.run.create_model_service", new=AsyncMock(return_value=service)):
            result = runner.invoke(app, ["run", str(movie_assistant_path), "ghost"])

        assert result.exit_code == 1
        assert "WorkflowNotFoundError" in result.output

    def test_run_invalid_input_flag(self, movie_assistant_path: Path) -> None:
        result = runner.invoke(
            app, ["run", str(movie_assistant_path), "character-building", "-i", "name"]
        )
        assert result.exit_code == 2

    def test_run_nonexistent_document(self) -> None:
        result = runner.invoke(app, ["run", "nonexistent.yaml", "character-building"])
        assert result.exit_code == 2

    def test_dry_run_does_not_create_service(self, movie_assistant_path: Path) -> None:
        with patch("aispec.cli.run.create_model_service", new=AsyncMock()) as mock_factory:
            result = runner.invoke(
                app, ["run", str(movie_assistant_path), "scene-writing", "--dry-run"]
            )

        assert result.exit_code == 0, result.output
        assert "Execution Plan (Dry Run)" in result.output
        mock_factory.assert_not_awaited()

    def test_dry_run_unknown_workflow(self, movie_assistant_path: Path) -> None:
        result = runner.invoke(app, ["run", str(movie_assistant_path), "ghost", "--dry-run"])

        assert result.exit_code == 1
        assert "WorkflowNotFoundError" in result.output
