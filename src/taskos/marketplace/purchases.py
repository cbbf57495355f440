# src/taskos/marketplace/purchases.py
from __future__ import annotations

import logging
from typing import List

from taskos.config import TaskosConfig
from taskos.errors import ConfigurationError, TaskosError, ValidationError
from taskos.ledger.client import LedgerReadClient
from taskos.ledger.option_value import safe_str
from taskos.ledger.projector import project_purchase
from taskos.ledger.types import PurchaseRecord
from taskos.util.log_events import log_event, warn_event

log = logging.getLogger("taskos.marketplace")

PURCHASE_STRUCT = "Purchase"


def fetch_purchases(client: LedgerReadClient, config: TaskosConfig, owner: str) -> List[PurchaseRecord]:
    """Purchase objects owned by `owner`, each joined with its experience."""
    pkg = (config.package_id or "").strip()
    if not pkg:
        raise ConfigurationError("package_id_missing", "TASKOS_PACKAGE_ID is not configured", {})
    wallet = (owner or "").strip()
    if not wallet:
        raise ValidationError("missing_owner", "owner must be non-empty", {})

    owned = client.get_owned_objects(wallet, struct_type=config.move_target("marketplace", PURCHASE_STRUCT))

    out: List[PurchaseRecord] = []
    for purchase in owned:
        experience_id = safe_str(purchase.fields.get("experience_id"))
        if not experience_id:
            warn_event(log, "purchase_skipped", purchase_id=purchase.object_id, reason="missing_experience_id")
            continue
        try:
            experience = client.get_object(experience_id, need_content=True, need_owner=True, need_display=True)
        except (TaskosError, OSError) as e:
            warn_event(log, "purchase_skipped", purchase_id=purchase.object_id, reason="fetch_failed", error=str(e))
            continue
        rec = project_purchase(purchase, experience, owner=wallet)
        if rec is not None:
            out.append(rec)

    log_event(log, "purchases_fetched", owner=wallet, owned=len(owned), purchases=len(out))
    return out
