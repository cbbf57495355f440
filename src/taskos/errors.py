# src/taskos/errors.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

Json = Dict[str, Any]


@dataclass
class TaskosError(Exception):
    """Canonical error type for operation-level failures."""

    code: str
    reason: str
    details: Optional[Json] = None

    def __str__(self) -> str:
        if not self.details:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"

    def to_json(self) -> Json:
        return {"code": self.code, "message": self.reason, "details": dict(self.details or {})}


class ConfigurationError(TaskosError):
    """A required identifier is missing. Raised before any network call."""


class NotFoundError(TaskosError):
    """A referenced object, listing or blob does not exist."""


class ValidationError(TaskosError):
    """A local precondition failed before submission."""


class LedgerRpcError(TaskosError):
    """Transport or JSON-RPC failure talking to the ledger fullnode."""


class StorageError(TaskosError):
    """Transport failure talking to the blob storage network."""


class TxFailureKind(str, Enum):
    USER_REJECTED = "user_rejected"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    NETWORK = "network"
    UNKNOWN = "unknown"


@dataclass
class TransactionError(TaskosError):
    kind: TxFailureKind = TxFailureKind.UNKNOWN

    @property
    def retryable(self) -> bool:
        return self.kind is TxFailureKind.NETWORK

    @property
    def informational(self) -> bool:
        """User-declined signing is not an error condition for the caller's UI."""
        return self.kind is TxFailureKind.USER_REJECTED

    def to_json(self) -> Json:
        out = super().to_json()
        out["kind"] = self.kind.value
        return out


_USER_REJECTED_MARKERS = ("user rejected", "rejected the request", "user declined")
_INSUFFICIENT_MARKERS = ("insufficient",)
_NETWORK_MARKERS = ("network", "timeout", "timed out", "connection")


def classify_tx_error(err: BaseException, *, action: str = "transaction") -> TransactionError:
    """Map a signer/submission failure onto a TransactionError kind.

    The raw message is always attached under details["raw"] for diagnostics.
    """
    if isinstance(err, TransactionError):
        return err

    msg = str(err) or type(err).__name__
    low = msg.lower()

    if any(m in low for m in _USER_REJECTED_MARKERS):
        kind = TxFailureKind.USER_REJECTED
        reason = "transaction cancelled by user"
    elif any(m in low for m in _INSUFFICIENT_MARKERS):
        kind = TxFailureKind.INSUFFICIENT_BALANCE
        reason = "insufficient balance to complete the transaction"
    elif isinstance(err, (TimeoutError, ConnectionError, LedgerRpcError)) or any(m in low for m in _NETWORK_MARKERS):
        kind = TxFailureKind.NETWORK
        reason = "network error; check the connection and try again"
    else:
        kind = TxFailureKind.UNKNOWN
        reason = f"{action} failed"

    return TransactionError(
        code=f"tx_{kind.value}",
        reason=reason,
        details={"raw": msg[:500], "action": action},
        kind=kind,
    )
