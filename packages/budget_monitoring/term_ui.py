"""Terminal prompts for the interactive import flow (prompt_toolkit-based).

Kept apart from the import driver so the prompts can be tested on their own
with a pipe input and ``DummyOutput``.
"""

from __future__ import annotations

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.validation import ValidationError, Validator

from .ingest.shapes import TEMPLATES
from .models import WorkflowStage

_YES = {"y", "yes"}
_NO = {"n", "no"}


def _session_with(kb: KeyBindings, session: PromptSession | None) -> PromptSession:
    if session is None:
        return PromptSession(key_bindings=kb)
    return PromptSession(
        input=getattr(session, "input", None),
        output=getattr(session, "output", None),
        key_bindings=kb,
    )


def _cancel_bindings() -> KeyBindings:
    kb = KeyBindings()

    @kb.add("escape")
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        event.app.exit(result=None)

    @kb.add("c-c", eager=True)
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        event.app.exit(result=None)

    return kb


def select_shape(
    default: WorkflowStage | str,
    *,
    session: PromptSession | None = None,
    message: str = "Spreadsheet type (Enter to accept, Tab for choices): ",
) -> WorkflowStage | None:
    """Confirm the detected shape or pick another one.

    The detected shape is pre-filled. Shape names and labels are both accepted
    (case-insensitive). Returns ``None`` when canceled via Esc or Ctrl+C.
    """

    kb = _cancel_bindings()
    words = [t.name.value for t in TEMPLATES]
    canonical: dict[str, WorkflowStage] = {}
    for t in TEMPLATES:
        canonical[t.name.value] = t.name
        canonical[t.label.lower()] = t.name
    completer = WordCompleter(
        words,
        ignore_case=True,
        match_middle=True,
        meta_dict={t.name.value: t.label for t in TEMPLATES},
    )

    class _ShapeValidator(Validator):
        def validate(self, document) -> None:
            if document.text.strip().lower() not in canonical:
                raise ValidationError(message="Choose one of: " + ", ".join(words))

    sess = _session_with(kb, session)
    value = sess.prompt(
        message,
        default=WorkflowStage(default).value,
        completer=completer,
        validator=_ShapeValidator(),
        validate_while_typing=False,
    )
    if value is None:
        return None
    return canonical[value.strip().lower()]


def confirm(
    message: str,
    *,
    default: bool = False,
    session: PromptSession | None = None,
) -> bool:
    """Yes/no question; Enter takes ``default``, Esc or Ctrl+C answer no."""

    kb = _cancel_bindings()

    class _YesNo(Validator):
        def validate(self, document) -> None:
            text = document.text.strip().lower()
            if text and text not in _YES | _NO:
                raise ValidationError(message="Answer y or n")

    suffix = " [Y/n] " if default else " [y/N] "
    sess = _session_with(kb, session)
    value = sess.prompt(message + suffix, validator=_YesNo(), validate_while_typing=False)
    if value is None:
        return False
    text = value.strip().lower()
    if not text:
        return default
    return text in _YES


__all__ = ["confirm", "select_shape"]
