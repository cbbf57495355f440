# src/taskos/marketplace/tx_builder.py
from __future__ import annotations

from typing import Union

from taskos.errors import NotFoundError, ValidationError
from taskos.ledger.tx import (
    MoveCall,
    SplitCoins,
    Transaction,
    TxSubmitter,
    gas,
    obj,
    pure,
    require_id,
    require_uint,
)
from taskos.ledger.types import LicenseType

MARKETPLACE_MODULE = "marketplace"

__all__ = [
    "MARKETPLACE_MODULE",
    "MarketplaceTxBuilder",
    "MoveCall",
    "SplitCoins",
    "Transaction",
    "parse_license_type",
]


def parse_license_type(v: Union[str, LicenseType]) -> LicenseType:
    """Closed mapping; an unknown symbol never reaches the network."""
    if isinstance(v, LicenseType):
        return v
    try:
        return LicenseType(str(v).strip().lower())
    except ValueError:
        raise ValidationError(
            "invalid_license_type",
            f"unknown license type {v!r}",
            {"allowed": [lic.value for lic in LicenseType]},
        ) from None


class MarketplaceTxBuilder(TxSubmitter):
    """Builds, submits and reports marketplace transactions."""

    def _target(self, function: str) -> str:
        return f"{self._package_id()}::{MARKETPLACE_MODULE}::{function}"

    def build_purchase(self, listing_id: str, payment_amount: int) -> Transaction:
        target = self._target("purchase_experience")
        amount = require_uint("payment_amount", payment_amount, minimum=1)
        tx = Transaction()
        coin = tx.add(SplitCoins(coin=gas(), amounts=(pure("u64", amount),)))
        tx.add(MoveCall(target=target, arguments=(obj(listing_id), coin)))
        return tx

    def build_listing(self, experience_id: str, price: int, license_type: Union[str, LicenseType], copies: int) -> Transaction:
        target = self._target("list_experience")
        if isinstance(copies, bool) or not isinstance(copies, int) or copies <= 0:
            raise ValidationError("invalid_copies", "Copies must be greater than zero", {"copies": copies})
        copies_v = require_uint("copies", copies, minimum=1)
        price_v = require_uint("price", price, minimum=0)
        lic = parse_license_type(license_type)
        tx = Transaction()
        tx.add(
            MoveCall(
                target=target,
                arguments=(obj(experience_id), pure("u64", price_v), pure("u8", lic.code), pure("u64", copies_v)),
            )
        )
        return tx

    def purchase_experience(self, listing_id: str, payment_amount: int) -> str:
        """Buy a listing. Returns the transaction digest."""
        self._package_id()
        lid = require_id("listing_id", listing_id)
        require_uint("payment_amount", payment_amount, minimum=1)

        listing = self.client.get_object(lid, need_content=True)
        if not listing.exists:
            raise NotFoundError("listing_not_found", "Listing not found", {"listing_id": lid, "error": listing.error})

        tx = self.build_purchase(lid, payment_amount)
        return self._submit(tx, action="purchase_experience", listing_id=lid, amount=int(payment_amount))

    def list_experience(
        self,
        experience_id: str,
        price: int,
        license_type: Union[str, LicenseType],
        copies: int,
    ) -> str:
        """List an owned experience. All validation happens before any I/O."""
        eid = require_id("experience_id", experience_id)
        tx = self.build_listing(eid, price, license_type, copies)
        return self._submit(tx, action="list_experience", experience_id=eid, price=int(price), copies=int(copies))
