"""Application interfaces (ports): storage protocol.

Define contracts for infrastructure implementations.
No runtime imports from recordcache.infrastructure.
"""

from recordcache.application.interfaces.storage import StorageAdapter

__all__ = ["StorageAdapter"]
