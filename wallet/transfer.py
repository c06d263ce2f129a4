"""Direct-to-wallet transfers.

Phases: IDLE -> ADDRESS_RESOLVING -> BALANCE_CHECKING -> SIGNING -> SUBMITTED
-> CONFIRMED | FAILED. Every failure ends in FAILED with a WalletError code.
A confirmation timeout is FAILED too, but is reported as still awaiting
confirmation and keeps the provisional hash.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable

from eth_abi import encode
from web3 import Web3

from app.intent.contracts import IntentStep, StepStatus
from app.intent.errors import (
    ConfirmationTimeout,
    InsufficientFunds,
    InvalidAddress,
    MissingRecipient,
    NonceConflict,
    TransactionReverted,
    UnresolvableName,
    UserRejected,
    WalletError,
    WalletRPCFailure,
)
from chain.networks import chain_display_name
from wallet.provider import WalletProvider

logger = logging.getLogger(__name__)

NATIVE_GAS_LIMIT = 100_000
ERC20_GAS_LIMIT = 150_000
NATIVE_GAS_MARGIN = Decimal("0.005")

MAX_NONCE_RETRIES = 2
NONCE_RETRY_DELAY_S = 2.0
CONFIRMATION_TIMEOUT_S = 60.0
RECEIPT_POLL_INTERVAL_S = 1.0

_NONCE_MARKERS = ("nonce", "already mined", "replacement transaction underpriced")
_REJECTION_MARKERS = ("user rejected", "user denied", "rejected by user")

_BALANCE_OF_SELECTOR = bytes.fromhex("70a08231")
_TRANSFER_SELECTOR = bytes.fromhex("a9059cbb")


class TransferPhase(str, enum.Enum):
    IDLE = "IDLE"
    ADDRESS_RESOLVING = "ADDRESS_RESOLVING"
    BALANCE_CHECKING = "BALANCE_CHECKING"
    SIGNING = "SIGNING"
    SUBMITTED = "SUBMITTED"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"


_ALLOWED = {
    TransferPhase.IDLE: {TransferPhase.ADDRESS_RESOLVING},
    TransferPhase.ADDRESS_RESOLVING: {TransferPhase.BALANCE_CHECKING, TransferPhase.FAILED},
    TransferPhase.BALANCE_CHECKING: {TransferPhase.SIGNING, TransferPhase.FAILED},
    TransferPhase.SIGNING: {TransferPhase.SUBMITTED, TransferPhase.FAILED},
    TransferPhase.SUBMITTED: {TransferPhase.CONFIRMED, TransferPhase.FAILED},
    TransferPhase.CONFIRMED: set(),
    TransferPhase.FAILED: set(),
}


class SubmissionFailed(WalletError):
    code = "SUBMISSION_FAILED"
    next_step = "Check your wallet and try again."


@dataclass(frozen=True)
class TransferRequest:
    chain_id: int
    from_address: str
    recipient: str
    amount: str
    token_symbol: str | None = None
    # None means a native-currency transfer
    token_address: str | None = None
    decimals: int = 18

    @property
    def is_native(self) -> bool:
        return self.token_address is None


@dataclass
class TransferOutcome:
    phase: TransferPhase
    tx_hash: str | None = None
    provisional_hash: str | None = None
    error_code: str | None = None
    message: str = ""
    attempts: int = 0
    phases: list[TransferPhase] = field(default_factory=list)

    @property
    def confirmed(self) -> bool:
        return self.phase == TransferPhase.CONFIRMED

    @property
    def awaiting_confirmation(self) -> bool:
        """Submitted, but no receipt within the timeout; it may still confirm."""
        return self.error_code == ConfirmationTimeout.code and self.provisional_hash is not None

    def to_step(self, request: TransferRequest) -> IntentStep:
        chain = chain_display_name(request.chain_id)
        if self.confirmed:
            return IntentStep(
                description=self.message,
                chain=chain,
                transaction_hash=self.tx_hash,
                status=StepStatus.COMPLETE,
            )
        if self.awaiting_confirmation:
            return IntentStep(description=self.message, chain=chain, status=StepStatus.PROCESSING)
        return IntentStep(description=self.message, chain=chain, status=StepStatus.FAILED)

    def public_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "phase": self.phase.value,
            "message": self.message,
            "attempts": self.attempts,
            "phases": [p.value for p in self.phases],
        }
        if self.tx_hash:
            data["transactionHash"] = self.tx_hash
        if self.provisional_hash and not self.confirmed:
            data["provisionalHash"] = self.provisional_hash
        if self.error_code:
            data["errorCode"] = self.error_code
        return data


def _to_base_units(amount: str, decimals: int) -> int:
    return int(Decimal(str(amount)) * (Decimal(10) ** decimals))


def _hex_to_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    return int(value)


def _is_nonce_error(message: str) -> bool:
    text = message.lower()
    return any(marker in text for marker in _NONCE_MARKERS)


def _is_rejection(exc: Exception) -> bool:
    if getattr(exc, "code", None) == 4001:
        return True
    text = str(exc).lower()
    return any(marker in text for marker in _REJECTION_MARKERS)


class TransferExecutor:
    def __init__(
        self,
        provider: WalletProvider,
        *,
        resolve_name: Callable[[str], str | None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        max_retries: int = MAX_NONCE_RETRIES,
        retry_delay_s: float = NONCE_RETRY_DELAY_S,
        confirmation_timeout_s: float = CONFIRMATION_TIMEOUT_S,
        poll_interval_s: float = RECEIPT_POLL_INTERVAL_S,
    ) -> None:
        self.provider = provider
        self.resolve_name = resolve_name
        self.sleep = sleep
        self.clock = clock
        self.max_retries = max_retries
        self.retry_delay_s = retry_delay_s
        self.confirmation_timeout_s = confirmation_timeout_s
        self.poll_interval_s = poll_interval_s

    # ---------------------------
    # Phases
    # ---------------------------

    def resolve_recipient(self, recipient: str | None) -> str:
        value = (recipient or "").strip()
        if not value or value.upper() == "N/A":
            raise MissingRecipient()

        if value.lower().startswith("0x"):
            if len(value) != 42 or not Web3.is_address(value):
                raise InvalidAddress(f"'{value}' is not a valid address.")
            return Web3.to_checksum_address(value)

        if "." in value:
            try:
                resolved = self.resolve_name(value) if self.resolve_name else None
            except Exception as e:
                raise WalletRPCFailure(f"Name lookup for '{value}' failed: {e}") from e
            if not resolved:
                raise UnresolvableName(f"Could not resolve '{value}' to an address.")
            return Web3.to_checksum_address(resolved)

        raise InvalidAddress(f"'{value}' is neither an address nor a resolvable name.")

    def _read(self, method: str, params: list[Any]) -> Any:
        try:
            return self.provider.request(method, params)
        except Exception as e:
            raise WalletRPCFailure(f"Wallet RPC {method} failed: {e}") from e

    def check_balance(self, req: TransferRequest) -> int:
        """Returns the amount in base units when funds cover it."""
        amount = _to_base_units(req.amount, req.decimals)
        native = _hex_to_int(self._read("eth_getBalance", [req.from_address, "latest"]))

        if req.is_native:
            margin = _to_base_units(str(NATIVE_GAS_MARGIN), 18)
            if native < amount + margin:
                raise InsufficientFunds(
                    f"Balance is too low to send {req.amount} plus {NATIVE_GAS_MARGIN} for gas."
                )
            return amount

        data = _BALANCE_OF_SELECTOR + encode(["address"], [Web3.to_checksum_address(req.from_address)])
        token_balance = _hex_to_int(
            self._read(
                "eth_call",
                [{"to": req.token_address, "data": Web3.to_hex(data)}, "latest"],
            )
        )
        if token_balance < amount:
            raise InsufficientFunds(f"Token balance is too low to send {req.amount} {req.token_symbol or ''}".rstrip() + ".")

        gas_price = _hex_to_int(self._read("eth_gasPrice", []))
        if native < gas_price * ERC20_GAS_LIMIT:
            raise InsufficientFunds("Not enough native currency to pay for gas.")
        return amount

    def _build_tx(self, req: TransferRequest, recipient: str, amount: int) -> dict[str, Any]:
        if req.is_native:
            return {
                "from": req.from_address,
                "to": recipient,
                "value": hex(amount),
                "gas": hex(NATIVE_GAS_LIMIT),
            }
        data = _TRANSFER_SELECTOR + encode(["address", "uint256"], [recipient, amount])
        return {
            "from": req.from_address,
            "to": req.token_address,
            "value": "0x0",
            "data": Web3.to_hex(data),
            "gas": hex(ERC20_GAS_LIMIT),
        }

    def submit(self, req: TransferRequest, recipient: str, amount: int, outcome: TransferOutcome) -> str:
        """
        Nonce conflicts are retried with a fresh transaction object; anything
        else, including user rejection, is raised immediately.
        """
        for attempt in range(1, self.max_retries + 2):
            outcome.attempts = attempt
            tx = self._build_tx(req, recipient, amount)
            try:
                return str(self.provider.request("eth_sendTransaction", [tx]))
            except Exception as e:
                if _is_rejection(e):
                    raise UserRejected() from e
                if not _is_nonce_error(str(e)):
                    raise SubmissionFailed(f"Transaction submission failed: {e}") from e
                if attempt > self.max_retries:
                    raise NonceConflict(
                        f"Transaction nonce conflict persisted after {self.max_retries} retries."
                    ) from e
                logger.warning("nonce conflict attempt=%s error=%s; retrying", attempt, e)
                self.sleep(self.retry_delay_s)
        raise NonceConflict("Transaction nonce conflict.")

    def wait_for_receipt(self, tx_hash: str) -> dict[str, Any]:
        deadline = self.clock() + self.confirmation_timeout_s
        while self.clock() < deadline:
            try:
                receipt = self.provider.request("eth_getTransactionReceipt", [tx_hash])
            except Exception as e:
                # already broadcast, so the outcome is unknown rather than failed
                raise ConfirmationTimeout(
                    f"Transaction {tx_hash} was submitted but its receipt could not be fetched: {e}"
                ) from e
            if receipt:
                if _hex_to_int(receipt.get("status", 1)) == 0:
                    raise TransactionReverted(f"Transaction {tx_hash} reverted on-chain.")
                return receipt
            self.sleep(self.poll_interval_s)
        raise ConfirmationTimeout(
            f"Transaction {tx_hash} was submitted but not confirmed within "
            f"{int(self.confirmation_timeout_s)} seconds."
        )

    # ---------------------------
    # Orchestration
    # ---------------------------

    def execute(self, req: TransferRequest) -> TransferOutcome:
        outcome = TransferOutcome(phase=TransferPhase.IDLE, phases=[TransferPhase.IDLE])

        def advance(to: TransferPhase) -> None:
            if to not in _ALLOWED[outcome.phase]:
                raise ValueError(f"Invalid transfer phase transition: {outcome.phase.value} -> {to.value}")
            outcome.phase = to
            outcome.phases.append(to)

        label = f"{req.amount} {req.token_symbol or 'native'}"
        try:
            advance(TransferPhase.ADDRESS_RESOLVING)
            recipient = self.resolve_recipient(req.recipient)

            advance(TransferPhase.BALANCE_CHECKING)
            amount = self.check_balance(req)

            advance(TransferPhase.SIGNING)
            tx_hash = self.submit(req, recipient, amount, outcome)

            advance(TransferPhase.SUBMITTED)
            outcome.provisional_hash = tx_hash
            receipt = self.wait_for_receipt(tx_hash)

            advance(TransferPhase.CONFIRMED)
            outcome.tx_hash = str(receipt.get("transactionHash") or tx_hash)
            outcome.message = (
                f"Sent {label} to {recipient} on {chain_display_name(req.chain_id)}."
            )
            logger.info("transfer confirmed chain_id=%s hash=%s", req.chain_id, outcome.tx_hash)
        except ConfirmationTimeout as e:
            advance(TransferPhase.FAILED)
            outcome.error_code = e.code
            outcome.message = f"Transfer of {label} is awaiting confirmation. {e.user_message()}"
            logger.warning("transfer unconfirmed hash=%s error=%s", outcome.provisional_hash, e)
        except WalletError as e:
            advance(TransferPhase.FAILED)
            outcome.error_code = e.code
            outcome.message = f"Transfer of {label} failed. {e.user_message()}"
            logger.warning("transfer failed code=%s error=%s", e.code, e)
        return outcome
