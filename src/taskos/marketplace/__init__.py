# src/taskos/marketplace/__init__.py
"""
Marketplace reads and writes.

- tx_builder: purchase/list transactions (validated locally, then signed by an
  injected signer). Not idempotent; callers must not auto-retry.
- events: ExperienceListed events resolved into ListingRecords.
- purchases: Purchase objects owned by a wallet, joined with their experiences.
"""
