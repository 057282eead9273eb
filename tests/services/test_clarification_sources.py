"""Tests for the clarifying-answer sources."""

from __future__ import annotations

from pathlib import Path

import pytest

from deep_research.domain.context import ResearchContext
from deep_research.domain.exceptions import ClarificationError
from deep_research.services.clarification import (
    EditorAnswerSource,
    FileAnswerSource,
    StaticAnswerSource,
    answer_source_for,
    resolve_editor,
)

QUESTIONS = "1. Which repository?\n2. Which time frame?\n"


class TestStaticAndFileSources:

    def test_static_text(self) -> None:
        assert StaticAnswerSource("fixed").collect(QUESTIONS) == "fixed"

    def test_static_callable(self) -> None:
        source = StaticAnswerSource(lambda questions: questions + "A: all of them")
        assert source.collect(QUESTIONS).endswith("A: all of them")

    def test_file_source(self, tmp_path: Path) -> None:
        path = tmp_path / "qa.md"
        path.write_text("Q: repo?\nA: acme/widgets\n", encoding="utf-8")
        assert FileAnswerSource(path).collect(QUESTIONS) == "Q: repo?\nA: acme/widgets\n"

    def test_missing_file(self, tmp_path: Path) -> None:
        path = tmp_path / "missing.md"
        with pytest.raises(ClarificationError) as info:
            FileAnswerSource(path).collect(QUESTIONS)
        assert info.value.path == str(path)

    def test_answer_source_for(self, context: ResearchContext, tmp_path: Path) -> None:
        assert isinstance(answer_source_for(context), EditorAnswerSource)
        context.clarifying_qa = str(tmp_path / "qa.md")
        source = answer_source_for(context)
        assert isinstance(source, FileAnswerSource)
        assert source.path == tmp_path / "qa.md"


class TestEditorSource:

    def test_resolve_editor_prefers_git_editor(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GIT_EDITOR", "vim -f")
        assert resolve_editor() == "vim -f"

    def test_editor_edits_given_file(self, tmp_path: Path) -> None:
        path = tmp_path / "answers.md"
        source = EditorAnswerSource(
            file_path=str(path), editor="sh -c 'echo \"A: acme/widgets\" >> \"$0\"'"
        )
        answered = source.collect(QUESTIONS)
        assert answered == QUESTIONS + "A: acme/widgets\n"
        assert path.read_text(encoding="utf-8") == answered

    def test_temporary_file_is_removed(self, tmp_path: Path) -> None:
        record = tmp_path / "seen.txt"
        source = EditorAnswerSource(editor=f"sh -c 'echo \"$0\" > {record}'")
        assert source.collect(QUESTIONS) == QUESTIONS
        edited = Path(record.read_text(encoding="utf-8").strip())
        assert edited.name.startswith("research_edit_")
        assert not edited.exists()

    def test_editor_failure(self) -> None:
        with pytest.raises(ClarificationError, match="exit 1"):
            EditorAnswerSource(editor="false").collect(QUESTIONS)

    def test_missing_editor_command(self) -> None:
        with pytest.raises(ClarificationError, match="Editor command failed"):
            EditorAnswerSource(editor="no-such-editor-binary-xyz").collect(QUESTIONS)
