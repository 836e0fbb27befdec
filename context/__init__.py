"""
Context package: per-session topic memory and its TTL cache.
"""

from context.cache import InMemoryTTLCache
from context.context_tracker import ContextTracker, SessionContext

__all__ = ["ContextTracker", "InMemoryTTLCache", "SessionContext"]
