# src/taskos/ledger/registry.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from taskos.config import TaskosConfig
from taskos.errors import TaskosError
from taskos.ledger.client import LedgerReadClient
from taskos.ledger.dynamic_fields import flatten_bucketed_ids, read_role_table
from taskos.ledger.projector import project_task, registry_bucket_table_id
from taskos.ledger.types import RoleGrant, TaskEntity
from taskos.util.log_events import log_event, warn_event

log = logging.getLogger("taskos.ledger")

Json = Dict[str, object]

# Collaborator failures that end a phase: typed errors plus transport-level
# OSErrors (timeouts, resets) raised by the read client.
READ_FAILURES = (TaskosError, OSError)


def _reason(e: BaseException) -> str:
    if isinstance(e, TaskosError):
        return e.reason
    return str(e) or type(e).__name__


def _cause(e: BaseException) -> str:
    if isinstance(e, TaskosError):
        return e.code
    return type(e).__name__


class ResolverPhase(str, Enum):
    IDLE = "idle"
    FETCHING_REGISTRY = "fetching_registry"
    RESOLVING_BUCKETS = "resolving_buckets"
    FETCHING_ENTITIES = "fetching_entities"
    RESOLVING_ROLES = "resolving_roles"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class RegistrySnapshot:
    """Result of one registry resolution. Built once, never mutated."""

    phase: ResolverPhase
    registry_id: str = ""
    tasks: Tuple[TaskEntity, ...] = ()
    roles_by_task: Dict[str, Tuple[RoleGrant, ...]] = field(default_factory=dict)
    error: Optional[TaskosError] = None

    @property
    def ok(self) -> bool:
        return self.phase is ResolverPhase.READY

    def task(self, task_id: str) -> Optional[TaskEntity]:
        for t in self.tasks:
            if t.task_id == task_id:
                return t
        return None

    def roles(self, task_id: str) -> Tuple[RoleGrant, ...]:
        return self.roles_by_task.get(task_id, ())

    def assigned_to(self, address: str) -> List[TaskEntity]:
        a = (address or "").strip().lower()
        if not a:
            return []
        return [t for t in self.tasks if (t.assignee or "").lower() == a]

    def shared_with(self, address: str) -> List[Tuple[TaskEntity, RoleGrant]]:
        """Tasks on which `address` holds a role grant, with that grant."""
        a = (address or "").strip().lower()
        out: List[Tuple[TaskEntity, RoleGrant]] = []
        if not a:
            return out
        for t in self.tasks:
            for g in self.roles(t.task_id):
                if g.address.lower() == a:
                    out.append((t, g))
                    break
        return out

    def to_json(self) -> Json:
        return {
            "ok": self.ok,
            "phase": self.phase.value,
            "registry_id": self.registry_id,
            "tasks": [t.to_json() for t in self.tasks],
            "roles_by_task": {tid: [g.to_json() for g in gs] for tid, gs in self.roles_by_task.items()},
            "error": self.error.to_json() if self.error is not None else None,
        }


class RegistryResolver:
    """registry -> bucket table -> task ids -> task objects -> role tables.

    Every call re-reads the ledger; nothing is cached between calls, so two
    calls against the same ledger state yield the same snapshot.
    """

    def __init__(self, client: LedgerReadClient, config: Optional[TaskosConfig] = None) -> None:
        self.client = client
        self.config = config
        self.phase = ResolverPhase.IDLE

    def _enter(self, phase: ResolverPhase, registry_id: str) -> None:
        self.phase = phase
        log.debug("registry %s -> %s", registry_id, phase.value)

    def _failed(self, registry_id: str, err: TaskosError) -> RegistrySnapshot:
        self.phase = ResolverPhase.FAILED
        log_event(log, "registry_resolve_failed", level=logging.ERROR, registry_id=registry_id, code=err.code, reason=err.reason)
        return RegistrySnapshot(phase=ResolverPhase.FAILED, registry_id=registry_id, error=err)

    def _ready(self, registry_id: str, tasks: Tuple[TaskEntity, ...] = (), roles: Optional[Dict[str, Tuple[RoleGrant, ...]]] = None) -> RegistrySnapshot:
        self.phase = ResolverPhase.READY
        log_event(log, "registry_resolved", registry_id=registry_id, tasks=len(tasks), role_tables=len(roles or {}))
        return RegistrySnapshot(phase=ResolverPhase.READY, registry_id=registry_id, tasks=tasks, roles_by_task=dict(roles or {}))

    def resolve(self, registry_id: Optional[str] = None) -> RegistrySnapshot:
        rid = (registry_id if registry_id is not None else (self.config.registry_id if self.config else "")).strip()
        self.phase = ResolverPhase.IDLE
        if not rid:
            # Not configured yet: empty, not an error.
            return self._ready("")

        # FETCHING_REGISTRY
        self._enter(ResolverPhase.FETCHING_REGISTRY, rid)
        try:
            registry = self.client.get_object(rid, need_content=True)
        except READ_FAILURES as e:
            return self._failed(rid, TaskosError("registry_unreachable", _reason(e), {"cause": _cause(e)}))
        if not registry.exists:
            return self._failed(rid, TaskosError("registry_not_found", "registry object does not exist", {"error": registry.error}))
        if not registry.is_move_object:
            return self._failed(rid, TaskosError("registry_malformed", "registry content is not a move object", {"data_type": registry.data_type}))
        table_id = registry_bucket_table_id(registry)
        if not table_id:
            return self._failed(rid, TaskosError("registry_malformed", "registry has no tasks_by_status table", {}))

        # RESOLVING_BUCKETS
        self._enter(ResolverPhase.RESOLVING_BUCKETS, rid)
        try:
            task_ids = flatten_bucketed_ids(self.client, table_id)
        except READ_FAILURES as e:
            return self._failed(rid, TaskosError("bucket_table_unreadable", _reason(e), {"table_id": table_id, "cause": _cause(e)}))
        if not task_ids:
            return self._ready(rid)

        # FETCHING_ENTITIES
        self._enter(ResolverPhase.FETCHING_ENTITIES, rid)
        try:
            objects = self.client.multi_get_objects(task_ids, need_content=True, need_owner=True)
        except READ_FAILURES as e:
            return self._failed(rid, TaskosError("task_fetch_failed", _reason(e), {"count": len(task_ids), "cause": _cause(e)}))
        tasks = tuple(t for t in (project_task(o) for o in objects) if t is not None)
        if len(tasks) != len(task_ids):
            warn_event(log, "tasks_dropped", registry_id=rid, requested=len(task_ids), projected=len(tasks))

        # RESOLVING_ROLES
        self._enter(ResolverPhase.RESOLVING_ROLES, rid)
        roles = self._resolve_roles(tasks)

        return self._ready(rid, tasks, roles)

    def _resolve_roles(self, tasks: Tuple[TaskEntity, ...]) -> Dict[str, Tuple[RoleGrant, ...]]:
        out: Dict[str, Tuple[RoleGrant, ...]] = {}
        for t in tasks:
            if not t.access_control_table_id:
                continue
            try:
                out[t.task_id] = tuple(read_role_table(self.client, t.access_control_table_id))
            except READ_FAILURES as e:
                warn_event(log, "role_table_unreadable", task_id=t.task_id, table_id=t.access_control_table_id, error=str(e) or type(e).__name__)
        return out
