from __future__ import annotations

import threading

from app.intent import conversation


def test_messages_are_capped():
    for i in range(conversation.MAX_MESSAGES + 5):
        conversation.append_message("c1", "user", f"m{i}")

    messages = conversation.get("c1")["messages"]
    assert len(messages) == conversation.MAX_MESSAGES
    assert messages[-1]["content"] == f"m{conversation.MAX_MESSAGES + 4}"


def test_pending_operation_is_popped_once():
    conversation.park_operation("c2", {"operation": "deposit"}, ["amount"])

    assert conversation.pop_pending("c2") == {"operation": {"operation": "deposit"}, "missing": ["amount"]}
    assert conversation.pop_pending("c2") is None


def test_expired_conversation_is_dropped(monkeypatch):
    conversation.set("c3", {"status": "DONE"}, ttl_seconds=10)
    now = conversation._now()
    monkeypatch.setattr(conversation, "_now", lambda: now + 11)

    assert conversation.get("c3") is None
    assert "c3" not in conversation._STORE


def test_parked_operation_is_consumed_once_across_threads():
    conversation.park_operation("c4", {"operation": "deposit"}, ["amount"])
    barrier = threading.Barrier(8)
    results = []

    def answer():
        barrier.wait()
        results.append(conversation.pop_pending("c4"))

    threads = [threading.Thread(target=answer) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len([r for r in results if r is not None]) == 1
    assert results.count(None) == 7


def test_writing_evicts_other_expired_conversations(monkeypatch):
    conversation.set("c5", {"status": "DONE"}, ttl_seconds=10)
    now = conversation._now()
    monkeypatch.setattr(conversation, "_now", lambda: now + 11)

    conversation.set("c6", {"status": "IDLE"})

    assert "c5" not in conversation._STORE
    assert "c6" in conversation._STORE
