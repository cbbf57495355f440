# src/taskos/ledger/task_tx.py
from __future__ import annotations

"""Task-side writes that follow a content upload.

A blob stored by crypto.envelope.encrypt_and_store is only reachable once the
task points at it (`add_content`), and a collaborator only sees it once a
role row exists in the task's access table (`add_user_with_role`). Both are
task_manage entry functions taking (version, task, ..., clock).
"""

import re

from taskos.errors import ConfigurationError, ValidationError
from taskos.ledger.tx import (
    CLOCK_ID,
    U8_MAX,
    MoveCall,
    Transaction,
    TxSubmitter,
    obj,
    pure,
    pure_address,
    pure_option_string,
    require_id,
    require_uint,
)
from taskos.util.blob_id import validate_blob_id

TASK_MODULE = "task_manage"

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{1,64}$")


def require_address(name: str, v: str) -> str:
    s = str(v or "").strip()
    if not _ADDRESS_RE.match(s):
        raise ValidationError("invalid_" + name, f"{name} must be a 0x-prefixed hex address", {name: s[:80]})
    return s


class TaskTxBuilder(TxSubmitter):
    def _version_id(self) -> str:
        vid = (self.config.version_id or "").strip()
        if not vid:
            raise ConfigurationError("version_id_missing", "TASKOS_VERSION_ID is not configured", {})
        return vid

    def _target(self, function: str) -> str:
        return f"{self._package_id()}::{TASK_MODULE}::{function}"

    def build_add_content(self, task_id: str, blob_id: str) -> Transaction:
        target = self._target("add_content")
        version = self._version_id()
        tid = require_id("task_id", task_id)
        v = validate_blob_id(blob_id)
        if not v.ok:
            raise ValidationError(v.reason, "invalid blob id", {"blob_id": v.blob_id[:140]})
        tx = Transaction()
        tx.add(MoveCall(target=target, arguments=(obj(version), obj(tid), pure_option_string(v.blob_id), obj(CLOCK_ID))))
        return tx

    def build_add_user_with_role(self, task_id: str, address: str, role: int) -> Transaction:
        target = self._target("add_user_with_role")
        version = self._version_id()
        tid = require_id("task_id", task_id)
        addr = require_address("address", address)
        role_v = require_uint("role", role, minimum=0, maximum=U8_MAX)
        tx = Transaction()
        tx.add(MoveCall(target=target, arguments=(obj(version), obj(tid), pure_address(addr), pure("u8", role_v), obj(CLOCK_ID))))
        return tx

    def add_content(self, task_id: str, blob_id: str) -> str:
        """Point the task's content_blob_id at an uploaded blob. Returns the digest."""
        tx = self.build_add_content(task_id, blob_id)
        return self._submit(tx, action="add_content", task_id=str(task_id).strip(), blob_id=str(blob_id).strip())

    def add_user_with_role(self, task_id: str, address: str, role: int) -> str:
        """Grant `address` a role on the task; read back by read_role_table."""
        tx = self.build_add_user_with_role(task_id, address, role)
        return self._submit(tx, action="add_user_with_role", task_id=str(task_id).strip(), address=str(address).strip(), role=role)
