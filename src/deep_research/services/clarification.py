"""Sources of answers to the clarifying questions.

Answers come back as free text (the questions with the user's inline
answers).  Three sources are provided: a pre-written Q&A file, an
interactive editor session, and a static/programmatic answer.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from deep_research.domain.context import ResearchContext
from deep_research.domain.exceptions import ClarificationError

logger = logging.getLogger(__name__)

DEFAULT_EDITOR = "nano"


class AnswerSource(Protocol):
    """Anything that turns clarifying questions into answered Q&A text."""

    def collect(self, questions: str) -> str: ...


class StaticAnswerSource:
    """Return fixed text, or the result of calling a function on the questions."""

    def __init__(self, answers: str | Callable[[str], str]) -> None:
        self._answers = answers

    def collect(self, questions: str) -> str:
        if callable(self._answers):
            return self._answers(questions)
        return self._answers


class FileAnswerSource:
    """Read pre-written clarifying Q&A from a file."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def collect(self, questions: str) -> str:
        if not self.path.exists():
            raise ClarificationError(
                f"Clarifying Q&A file not found: {self.path}", path=str(self.path)
            )
        logger.info("Using pre-written clarifying Q&A from %s", self.path)
        return self.path.read_text(encoding="utf-8")


def resolve_editor() -> str:
    """Resolve the editor command the way git does.

    ``GIT_EDITOR``, then ``git config core.editor``, then ``VISUAL``, then
    ``EDITOR``, then ``nano``.
    """
    git_editor = os.environ.get("GIT_EDITOR", "").strip()
    if git_editor:
        return git_editor

    try:
        configured = subprocess.run(
            ["git", "config", "--get", "core.editor"],
            capture_output=True,
            text=True,
            check=False,
        ).stdout.strip()
    except OSError:
        configured = ""
    if configured:
        return configured

    for var in ("VISUAL", "EDITOR"):
        value = os.environ.get(var, "").strip()
        if value:
            return value
    return DEFAULT_EDITOR


class EditorAnswerSource:
    """Open the questions in the user's editor and read back the answers.

    Parameters
    ----------
    file_path:
        Edit this file instead of a temporary one (it is kept afterwards).
    editor:
        Editor command; resolved with :func:`resolve_editor` when omitted.
    """

    def __init__(self, file_path: str | None = None, editor: str | None = None) -> None:
        self.file_path = file_path
        self.editor = editor

    def collect(self, questions: str) -> str:
        editor = self.editor or resolve_editor()
        if self.file_path:
            path = Path(self.file_path)
            path.write_text(questions, encoding="utf-8")
            temporary = False
        else:
            handle = tempfile.NamedTemporaryFile(
                mode="w", suffix=".md", prefix="research_edit_", delete=False, encoding="utf-8"
            )
            with handle:
                handle.write(questions)
            path = Path(handle.name)
            temporary = True

        try:
            logger.info("Opening clarifying questions in %s", editor)
            try:
                result = subprocess.run([*shlex.split(editor), str(path)], check=False)
            except OSError as exc:
                raise ClarificationError(
                    f"Editor command failed: {editor}: {exc}", path=str(path)
                ) from exc
            if result.returncode != 0:
                raise ClarificationError(
                    f"Editor command failed: {editor} (exit {result.returncode})",
                    path=str(path),
                )
            return path.read_text(encoding="utf-8")
        finally:
            if temporary:
                path.unlink(missing_ok=True)


def answer_source_for(context: ResearchContext) -> AnswerSource:
    """File source when a Q&A file is configured, editor session otherwise."""
    if context.clarifying_qa:
        return FileAnswerSource(context.clarifying_qa)
    return EditorAnswerSource()
