"""
Persistence Transactions - Deferred Relation Work

Relation operations queued under a session key and replayed around the
owning record's save.
"""

from .deferred_binding import DeferredBindingLedger, DeferredBinding, BindingOperation, type_name

__all__ = ["DeferredBindingLedger", "DeferredBinding", "BindingOperation", "type_name"]
