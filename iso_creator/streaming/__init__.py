"""Job status streaming."""

from iso_creator.streaming.broadcaster import StatusBroadcaster, StatusMessage

__all__ = ["StatusBroadcaster", "StatusMessage"]
