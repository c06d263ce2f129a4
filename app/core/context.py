from __future__ import annotations

from contextvars import ContextVar
from typing import Optional

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
conversation_id_ctx: ContextVar[Optional[str]] = ContextVar("conversation_id", default=None)


def set_request_id(request_id: Optional[str]) -> None:
    request_id_ctx.set(request_id)


def get_request_id() -> Optional[str]:
    return request_id_ctx.get()


def set_conversation_id(conversation_id: Optional[str]) -> None:
    conversation_id_ctx.set(conversation_id)


def get_conversation_id() -> Optional[str]:
    return conversation_id_ctx.get()
