# src/taskos/marketplace/events.py
from __future__ import annotations

import logging
from typing import List, Optional

from taskos.config import TaskosConfig
from taskos.errors import ConfigurationError, TaskosError
from taskos.ledger.client import LedgerReadClient
from taskos.ledger.option_value import safe_str
from taskos.ledger.projector import project_listing
from taskos.ledger.raw import LedgerEvent, RawObject
from taskos.ledger.types import ListingRecord
from taskos.util.log_events import log_event, warn_event

log = logging.getLogger("taskos.marketplace")

LISTED_EVENT = "ExperienceListed"


class MarketplaceEventReader:
    """ExperienceListed events -> ListingRecords.

    The event index lags the object store, so a listing may already be sold
    out or delisted by the time it is read. Events whose objects cannot be
    resolved are skipped.
    """

    def __init__(self, client: LedgerReadClient, config: TaskosConfig) -> None:
        self.client = client
        self.config = config

    def event_type(self) -> str:
        pkg = (self.config.package_id or "").strip()
        if not pkg:
            raise ConfigurationError("package_id_missing", "TASKOS_PACKAGE_ID is not configured", {})
        return self.config.move_target("marketplace", LISTED_EVENT)

    def fetch_listings(self, limit: int = 50, *, descending: bool = True) -> List[ListingRecord]:
        event_type = self.event_type()
        events = self.client.query_events(event_type, limit=max(1, int(limit)), descending=descending)

        out: List[ListingRecord] = []
        for ev in events:
            rec = self._resolve(ev)
            if rec is not None:
                out.append(rec)
        log_event(log, "listings_fetched", events=len(events), listings=len(out))
        return out

    def _get(self, object_id: str, *, need_display: bool = False) -> Optional[RawObject]:
        if not object_id:
            return None
        return self.client.get_object(object_id, need_content=True, need_owner=True, need_display=need_display)

    def _resolve(self, ev: LedgerEvent) -> Optional[ListingRecord]:
        data = ev.parsed_json
        experience_id = safe_str(data.get("experience_id"))
        listing_id = safe_str(data.get("listing_id"))
        if not experience_id:
            warn_event(log, "listing_event_skipped", tx_digest=ev.tx_digest, reason="missing_experience_id")
            return None
        try:
            experience = self._get(experience_id, need_display=True)
            listing = self._get(listing_id)
        except (TaskosError, OSError) as e:
            warn_event(log, "listing_event_skipped", tx_digest=ev.tx_digest, experience_id=experience_id, reason="fetch_failed", error=str(e))
            return None
        return project_listing(ev, listing, experience)
