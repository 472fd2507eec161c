"""
Append-only audit logging.
"""

from assessment_engine.kernel.events.event_store import EventStore

__all__ = ["EventStore"]
