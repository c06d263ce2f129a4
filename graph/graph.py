from __future__ import annotations

from typing import Any, Callable, Iterable

from langgraph.graph import END, START, StateGraph

from graph.nodes import (
    clarify_node,
    classify_node,
    dispatch_node,
    extract_node,
    finalize_node,
    plan_node,
    record_node,
)
from graph.state import IntentState
from graph.utils.routing import route_post_step


def build_graph() -> StateGraph:
    """
    CLASSIFY -> EXTRACT -> (PLAN) -> DISPATCH -> RECORD -> FINALIZE -> END

    Greetings and off-topic input jump to FINALIZE. Missing slots go through
    CLARIFY. A turn resuming a parked operation enters at DISPATCH.
    """
    graph = StateGraph(IntentState)

    graph.add_node("CLASSIFY", classify_node)
    graph.add_node("EXTRACT", extract_node)
    graph.add_node("PLAN", plan_node)
    graph.add_node("DISPATCH", dispatch_node)
    graph.add_node("RECORD", record_node)
    graph.add_node("CLARIFY", clarify_node)
    graph.add_node("FINALIZE", finalize_node)

    def route_entry(state: IntentState) -> str:
        return "DISPATCH" if state.artifacts.get("entries") else "CLASSIFY"

    graph.add_conditional_edges(
        START,
        route_entry,
        {
            "CLASSIFY": "CLASSIFY",
            "DISPATCH": "DISPATCH",
        },
    )
    graph.add_conditional_edges(
        "CLASSIFY",
        lambda state: route_post_step(state, default_next="EXTRACT"),
        {
            "CLARIFY": "CLARIFY",
            "FINALIZE": "FINALIZE",
            "EXTRACT": "EXTRACT",
        },
    )

    def route_after_extract(state: IntentState) -> str:
        routed = route_post_step(state, default_next="PLAN")
        if routed == "PLAN" and state.artifacts.get("entries"):
            return "DISPATCH"
        return routed

    graph.add_conditional_edges(
        "EXTRACT",
        route_after_extract,
        {
            "CLARIFY": "CLARIFY",
            "FINALIZE": "FINALIZE",
            "PLAN": "PLAN",
            "DISPATCH": "DISPATCH",
        },
    )

    def route_after_plan(state: IntentState) -> str:
        routed = route_post_step(state, default_next="DISPATCH")
        if routed != "DISPATCH":
            return routed
        entries = state.artifacts.get("entries") or []
        if not any("operation" in e for e in entries):
            return "FINALIZE"
        return "DISPATCH"

    graph.add_conditional_edges(
        "PLAN",
        route_after_plan,
        {
            "CLARIFY": "CLARIFY",
            "FINALIZE": "FINALIZE",
            "DISPATCH": "DISPATCH",
        },
    )
    graph.add_edge("DISPATCH", "RECORD")
    graph.add_edge("RECORD", "FINALIZE")
    graph.add_edge("CLARIFY", "FINALIZE")
    graph.add_edge("FINALIZE", END)

    return graph


def run_graph(
    state: IntentState,
    *,
    integration: Any,
    recorder: Callable[[dict[str, Any]], Any] | None = None,
    plan_providers: Iterable[Any] | None = None,
    is_verified: Callable[[str], bool] | None = None,
) -> IntentState:
    app = build_graph().compile()

    config: dict[str, Any] = {
        "configurable": {
            "integration": integration,
            "recorder": recorder,
            "plan_providers": list(plan_providers) if plan_providers is not None else None,
            "is_verified": is_verified,
        },
        "tags": ["intentfi", "langgraph"],
        "metadata": {"conversation_id": state.conversation_id},
    }

    result = app.invoke(state.model_dump(), config=config)
    return IntentState.model_validate(result)
