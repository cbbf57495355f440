# src/taskos/ledger/tx.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from taskos.config import TaskosConfig
from taskos.errors import (
    ConfigurationError,
    NotFoundError,
    ValidationError,
    classify_tx_error,
)
from taskos.ledger.client import LedgerReadClient, TransactionSigner
from taskos.util.log_events import log_event

log = logging.getLogger("taskos.tx")

Json = Dict[str, Any]

U64_MAX = (1 << 64) - 1
U8_MAX = (1 << 8) - 1

# Shared system Clock object.
CLOCK_ID = "0x6"


# ----------------------------
# Transaction description
# ----------------------------


@dataclass(frozen=True, slots=True)
class TxArg:
    """One argument of a programmable transaction command.

    kind:
      - "gas":    the fee-paying coin
      - "object": an object reference by id
      - "pure":   a BCS pure value with its Move type (u8/u64/address/option<string>)
      - "result": output `index` of an earlier command
    """

    kind: str
    value: Any = None
    move_type: str = ""
    index: int = 0

    def to_json(self) -> Json:
        if self.kind == "gas":
            return {"kind": "gas"}
        if self.kind == "object":
            return {"kind": "object", "id": self.value}
        if self.kind == "pure":
            return {"kind": "pure", "type": self.move_type, "value": self.value}
        return {"kind": "result", "index": self.index}


def gas() -> TxArg:
    return TxArg("gas")


def obj(object_id: str) -> TxArg:
    return TxArg("object", value=str(object_id))


def pure(move_type: str, value: int) -> TxArg:
    return TxArg("pure", value=int(value), move_type=move_type)


def pure_address(address: str) -> TxArg:
    return TxArg("pure", value=str(address), move_type="address")


def pure_option_string(value: Optional[str]) -> TxArg:
    return TxArg("pure", value=value, move_type="option<string>")


def result(index: int) -> TxArg:
    return TxArg("result", index=int(index))


@dataclass(frozen=True, slots=True)
class SplitCoins:
    coin: TxArg
    amounts: Tuple[TxArg, ...]

    def to_json(self) -> Json:
        return {"SplitCoins": {"coin": self.coin.to_json(), "amounts": [a.to_json() for a in self.amounts]}}


@dataclass(frozen=True, slots=True)
class MoveCall:
    target: str
    arguments: Tuple[TxArg, ...]

    def to_json(self) -> Json:
        return {"MoveCall": {"target": self.target, "arguments": [a.to_json() for a in self.arguments]}}


Command = Union[SplitCoins, MoveCall]


@dataclass
class Transaction:
    """Ordered list of commands; the signer owns serialization and gas."""

    commands: List[Command] = field(default_factory=list)

    def add(self, cmd: Command) -> TxArg:
        self.commands.append(cmd)
        return result(len(self.commands) - 1)

    def to_json(self) -> Json:
        return {"commands": [c.to_json() for c in self.commands]}


# ----------------------------
# Local validation
# ----------------------------


def require_uint(name: str, v: Any, *, minimum: int, maximum: int = U64_MAX) -> int:
    if isinstance(v, bool) or not isinstance(v, int):
        raise ValidationError("invalid_" + name, f"{name} must be an integer", {name: repr(v)})
    if v < minimum or v > maximum:
        raise ValidationError("invalid_" + name, f"{name} must be in [{minimum}, {maximum}]", {name: v})
    return v


def require_id(name: str, v: Any) -> str:
    s = str(v or "").strip()
    if not s:
        raise ValidationError("missing_" + name, f"{name} must be non-empty", {})
    return s


# ----------------------------
# Submission
# ----------------------------


class TxSubmitter:
    """Shared plumbing for builders: package lookup and one-shot submission.

    Submissions are NOT retried here: a retry after a failed submission can
    double-spend. Callers keep at most one submission in flight per action.
    """

    def __init__(self, client: LedgerReadClient, signer: TransactionSigner, config: TaskosConfig) -> None:
        self.client = client
        self.signer = signer
        self.config = config

    def _package_id(self) -> str:
        pkg = (self.config.package_id or "").strip()
        if not pkg:
            raise ConfigurationError("package_id_missing", "TASKOS_PACKAGE_ID is not configured", {})
        return pkg

    def _submit(self, tx: Transaction, *, action: str, **fields: Any) -> str:
        try:
            res = self.signer.sign_and_submit(tx)
        except (ConfigurationError, ValidationError, NotFoundError):
            raise
        except Exception as e:
            # Signers surface wallet/RPC failures as arbitrary exceptions.
            err = classify_tx_error(e, action=action)
            log_event(log, "tx_failed", level=logging.WARNING, action=action, kind=err.kind.value, **fields)
            raise err from e

        digest = str(getattr(res, "digest", "") or "")
        if not digest:
            raise classify_tx_error(RuntimeError("signer returned no digest"), action=action)
        log_event(log, "tx_submitted", action=action, digest=digest, **fields)
        return digest
