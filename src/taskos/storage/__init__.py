# src/taskos/storage/__init__.py
"""Content-addressed blob storage (Walrus aggregator/publisher)."""
