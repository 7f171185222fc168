"""
Services Package for the Printy Admin Assistant
===============================================

Host-side services the admin flows depend on:

- **records**: Reads orders/tickets/services and provides the mutator and
  refresh callbacks a FlowContext is built with
- **session**: Session-keyed store of live conversations with TTL and LRU
  eviction

Usage:
------
    from printy_admin.services.records import RecordService, build_context
    from printy_admin.services.session import conversation_store
"""

from . import records
from . import session

__all__ = ["records", "session"]
