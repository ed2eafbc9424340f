"""Background machinery behind a cache: event dispatch and the refresh timer."""

from querycache.pipeline.event_notifier import EventNotifier
from querycache.pipeline.refresh_scheduler import RefreshScheduler, jittered_interval

__all__ = ["EventNotifier", "RefreshScheduler", "jittered_interval"]
