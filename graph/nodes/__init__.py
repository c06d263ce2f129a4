from graph.nodes.classify import classify_node
from graph.nodes.extract import extract_node
from graph.nodes.plan import plan_node
from graph.nodes.dispatch import dispatch_node
from graph.nodes.record import record_node
from graph.nodes.clarify import clarify_node
from graph.nodes.finalize import finalize_node

__all__ = [
    "classify_node",
    "extract_node",
    "plan_node",
    "dispatch_node",
    "record_node",
    "clarify_node",
    "finalize_node",
]
