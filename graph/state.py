from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

from app.domain.turn_status import TurnStatus


class IntentState(BaseModel):
    """
    IntentState is the ONLY object that flows through LangGraph.

    Rules:
    - Serializable (JSON-safe)
    - No DB sessions, integrations or clients (those travel in config["configurable"])
    - One instance per conversation turn
    """

    model_config = ConfigDict(extra="allow")

    intent: str
    chain_id: int
    user_address: str | None = None
    conversation_id: str | None = None
    status: TurnStatus = TurnStatus.IDLE

    # Free-form container for node outputs / intermediate artifacts
    artifacts: Dict[str, Any] = Field(default_factory=dict)
