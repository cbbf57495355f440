# src/taskos/api/routes_public_parts/marketplace.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request

from taskos.api.routes_public_parts.common import _client, _config, _int_param
from taskos.marketplace.events import MarketplaceEventReader
from taskos.marketplace.purchases import fetch_purchases

router = APIRouter()

MAX_LISTINGS = 200


@router.get("/marketplace/listings")
def listings(request: Request, limit: Optional[str] = None):
    n = _int_param(limit, 50, lo=1, hi=MAX_LISTINGS)
    recs = MarketplaceEventReader(_client(request), _config(request)).fetch_listings(n)
    return {"ok": True, "count": len(recs), "listings": [r.to_json() for r in recs]}


@router.get("/purchases/{owner}")
def purchases(owner: str, request: Request):
    recs = fetch_purchases(_client(request), _config(request), owner)
    return {"ok": True, "owner": owner, "count": len(recs), "purchases": [r.to_json() for r in recs]}
