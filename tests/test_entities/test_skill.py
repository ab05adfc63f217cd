"""Tests for the Skill entity."""

from __future__ import annotations

import pytest

from aispec.entities import Assistant, Skill
from aispec.exceptions import MalformedDocumentError


def _diamond() -> Assistant:
    return Assistant.from_node(
        {
            "skills": [
                {"id": "a", "dependencies": ["b", "c"]},
                {"id": "b", "dependencies": ["d"]},
                {"id": "c", "dependencies": ["d"]},
                {"id": "d"},
            ]
        }
    )


class TestDependencies:
    """Tests for dependency linking and traversal."""

    def test_id_dependencies_are_linked(self) -> None:
        assistant = _diamond()
        a, b, c, _ = assistant.skills

        assert a.dependencies == [b, c]

    def test_all_dependencies_is_dependency_first_and_unique(self) -> None:
        """Test that a shared dependency is listed once, before its dependents."""
        a = _diamond().skills[0]

        assert [skill.id for skill in a.all_dependencies()] == ["d", "b", "c"]

    def test_skill_without_dependencies(self) -> None:
        d = _diamond().skills[3]
        assert d.all_dependencies() == []

    def test_inline_dependency_is_built(self) -> None:
        skill = Skill.from_node(
            {"id": "outer", "dependencies": [{"id": "inner", "description": "Inline"}]}
        )

        assert isinstance(skill.dependencies[0], Skill)
        assert skill.dependencies[0].description == "Inline"

    def test_inline_dependency_may_reference_assistant_skill(self) -> None:
        assistant = Assistant.from_node(
            {
                "skills": [
                    {"id": "outer", "dependencies": [{"id": "inner", "dependencies": ["base"]}]},
                    {"id": "base"},
                ]
            }
        )
        outer, base = assistant.skills

        assert [skill.id for skill in outer.all_dependencies()] == ["base", "inner"]
        assert outer.dependencies[0].dependencies == [base]

    def test_unlinked_id_is_skipped_by_traversal(self) -> None:
        skill = Skill.from_node({"id": "a", "dependencies": ["b"]})

        assert skill.dependencies == ["b"]
        assert skill.all_dependencies() == []

    def test_link_unknown_id_raises(self) -> None:
        skill = Skill.from_node({"id": "a", "dependencies": ["ghost"]})

        with pytest.raises(MalformedDocumentError, match="unknown skill 'ghost'"):
            skill.link({})


class TestSkillHelpers:
    """Tests for lookup, summaries and serialization."""

    def test_find_workflow(self) -> None:
        skill = Skill.from_node({"id": "s", "workflows": [{"id": "w1"}, {"id": "w2"}]})

        assert skill.find_workflow("w2").id == "w2"
        assert skill.find_workflow("w3") is None

    def test_summary_node(self) -> None:
        skill = Skill.from_node(
            {"id": "s", "name": "S", "description": "Does things", "workflows": [{"id": "w"}]}
        )

        assert skill.summary_node() == {"id": "s", "name": "S", "description": "Does things"}

    def test_summary_node_omits_missing_fields(self) -> None:
        assert Skill.from_node({"id": "s"}).summary_node() == {"id": "s"}

    def test_id_dependencies_serialize_as_ids(self) -> None:
        a = _diamond().skills[0]

        assert a.to_node()["dependencies"] == ["b", "c"]

    def test_inline_dependencies_serialize_in_full(self) -> None:
        skill = Skill.from_node({"id": "outer", "dependencies": [{"id": "inner", "name": "In"}]})

        assert skill.to_node()["dependencies"] == [{"id": "inner", "name": "In"}]
