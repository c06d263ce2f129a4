from __future__ import annotations

import enum


class TurnStatus(str, enum.Enum):
    IDLE = "IDLE"
    CLASSIFYING = "CLASSIFYING"
    EXTRACTING = "EXTRACTING"
    PLANNING = "PLANNING"
    DISPATCHING = "DISPATCHING"
    AWAITING_WALLET_SIGNATURE = "AWAITING_WALLET_SIGNATURE"
    DONE = "DONE"
    FAILED = "FAILED"


TERMINAL = {
    TurnStatus.DONE,
    TurnStatus.FAILED,
}

ALLOWED = {
    TurnStatus.IDLE: {TurnStatus.CLASSIFYING, TurnStatus.DISPATCHING},
    TurnStatus.CLASSIFYING: {TurnStatus.EXTRACTING, TurnStatus.DONE, TurnStatus.FAILED},
    TurnStatus.EXTRACTING: {
        TurnStatus.PLANNING,
        TurnStatus.DISPATCHING,
        TurnStatus.DONE,
        TurnStatus.FAILED,
    },
    TurnStatus.PLANNING: {TurnStatus.DISPATCHING, TurnStatus.DONE, TurnStatus.FAILED},
    TurnStatus.DISPATCHING: {
        TurnStatus.AWAITING_WALLET_SIGNATURE,
        TurnStatus.DONE,
        TurnStatus.FAILED,
    },
    TurnStatus.AWAITING_WALLET_SIGNATURE: {TurnStatus.DONE, TurnStatus.FAILED},
    TurnStatus.DONE: set(),
    TurnStatus.FAILED: set(),
}


def assert_valid_transition(frm: TurnStatus, to: TurnStatus) -> None:
    if frm in TERMINAL:
        raise ValueError(f"Cannot transition from terminal status: {frm.value}")

    if to not in ALLOWED.get(frm, set()):
        raise ValueError(f"Invalid status transition: {frm.value} -> {to.value}")
