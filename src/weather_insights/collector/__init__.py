"""Collection scheduler package."""

from .scheduler import CollectionScheduler, CollectorRunState, is_cycle_due

__all__ = ["CollectionScheduler", "CollectorRunState", "is_cycle_due"]
