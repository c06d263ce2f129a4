"""Error taxonomy for the intent pipeline.

Validation and classification outcomes are terminal for a turn. Dispatch and
wallet errors are converted into failed steps before they reach the UI, and
storage errors are logged and absorbed.
"""

from __future__ import annotations


class IntentError(Exception):
    """Base class for pipeline errors."""


class IntentValidationError(IntentError):
    """Malformed or missing request fields. Never retried."""


class ClassificationShortCircuit(IntentError):
    """Deliberate early exit for greetings and off-topic questions."""

    def __init__(self, kind: str, reply: str):
        super().__init__(reply)
        self.kind = kind
        self.reply = reply


class PlanGenerationError(IntentError):
    """Every plan provider failed."""


class DispatchError(IntentError):
    """The blockchain-integration call failed."""

    def __init__(self, message: str, *, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class StorageError(IntentError):
    """Persistence failure."""


class WalletError(IntentError):
    code = "WALLET_ERROR"
    next_step = "Please try again."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message())

    @classmethod
    def default_message(cls) -> str:
        return "The wallet operation failed."

    @property
    def message(self) -> str:
        return str(self)

    def user_message(self) -> str:
        return f"{self.message} {self.next_step}"


class MissingRecipient(WalletError):
    code = "MISSING_RECIPIENT"
    next_step = "Tell me the address or ENS name you want to send to."

    @classmethod
    def default_message(cls) -> str:
        return "No recipient was provided for this transfer."


class InvalidAddress(WalletError):
    code = "INVALID_ADDRESS"
    next_step = "Check the address and send it again."


class UnresolvableName(WalletError):
    code = "UNRESOLVABLE_NAME"
    next_step = "Make sure the name is registered, or use a 0x address instead."


class InsufficientFunds(WalletError):
    code = "INSUFFICIENT_FUNDS"
    next_step = "Top up your wallet or try a smaller amount."


class UserRejected(WalletError):
    code = "USER_REJECTED"
    next_step = "Submit the transfer again when you are ready to sign."

    @classmethod
    def default_message(cls) -> str:
        return "The transaction was rejected in the wallet."


class NonceConflict(WalletError):
    code = "NONCE_CONFLICT"
    next_step = "Wait for your pending transactions to confirm, then retry."


class ConfirmationTimeout(WalletError):
    code = "CONFIRMATION_TIMEOUT"
    next_step = "The transaction may still confirm. Check the explorer before retrying."


class TransactionReverted(WalletError):
    code = "TRANSACTION_REVERTED"
    next_step = "Check your balance and allowance, then retry."


class WalletRPCFailure(WalletError):
    code = "RPC_UNAVAILABLE"
    next_step = "Retry in a moment, or switch the wallet to another RPC endpoint."
