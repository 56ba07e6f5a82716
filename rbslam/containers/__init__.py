"""
Persistent containers used to share per-particle state.
"""

from .persistent_map import PersistentMap

__all__ = [
    "PersistentMap",
]
