"""Entity store package."""

from src.store.entity_store import EntityStore

__all__ = ["EntityStore"]
