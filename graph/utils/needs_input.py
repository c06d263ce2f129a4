from __future__ import annotations

from typing import Any

from graph.state import IntentState


def set_needs_input(
    state: IntentState,
    *,
    questions: list[str] | None = None,
    missing: list[str] | None = None,
    operation: dict[str, Any] | None = None,
    choices: list[str] | None = None,
) -> None:
    state.artifacts["needs_input"] = {
        "questions": list(questions or []),
        "missing": list(missing or []),
        "operation": dict(operation or {}),
        "choices": list(choices or []),
    }


def clear_needs_input(state: IntentState) -> None:
    state.artifacts.pop("needs_input", None)
