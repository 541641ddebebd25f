"""
Composite Engine Cache
Keeps one composite builder per atlas so repeated requests skip the rebuild
"""
import logging
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional

from config.settings import COMPOSITE_ENGINE_CACHE_SIZE

logger = logging.getLogger(__name__)


class EngineCache:
    """
    Atlas id -> engine instance, least recently used evicted first.

    The engine itself holds no global state; callers hand this cache around
    (or use ``get_engine_cache``) and decide when to evict.
    """

    def __init__(self, max_size: Optional[int] = None):
        """
        Initialize the engine cache

        Args:
            max_size: Maximum engines kept; 0 or None means unbounded
        """
        self.max_size = COMPOSITE_ENGINE_CACHE_SIZE if max_size is None else max_size
        self._engines: "OrderedDict[str, Any]" = OrderedDict()
        self.cache_stats = {
            "hits": 0,
            "misses": 0,
            "evictions": 0,
        }

    def get(self, atlas_id: str) -> Optional[Any]:
        engine = self._engines.get(atlas_id)
        if engine is None:
            self.cache_stats["misses"] += 1
            return None
        self._engines.move_to_end(atlas_id)
        self.cache_stats["hits"] += 1
        return engine

    def create(self, atlas_id: str, factory: Callable[[], Any]) -> Any:
        """
        Build an engine with ``factory`` and store it, replacing any existing one

        Args:
            atlas_id: Atlas the engine belongs to
            factory: Zero-argument callable returning the engine

        Returns:
            The new engine
        """
        engine = factory()
        self._engines[atlas_id] = engine
        self._engines.move_to_end(atlas_id)
        logger.info(f"🗺️ Cached composite engine for {atlas_id}")
        self._enforce_limit()
        return engine

    def get_or_create(self, atlas_id: str, factory: Callable[[], Any]) -> Any:
        engine = self.get(atlas_id)
        if engine is not None:
            logger.debug(f"💾 Engine cache hit for {atlas_id}")
            return engine
        return self.create(atlas_id, factory)

    def evict(self, atlas_id: str) -> bool:
        removed = self._engines.pop(atlas_id, None) is not None
        if removed:
            logger.info(f"🧹 Evicted composite engine for {atlas_id}")
        return removed

    def clear(self) -> None:
        count = len(self._engines)
        self._engines.clear()
        logger.info(f"🧹 Cleared {count} cached composite engines")

    def stats(self) -> Dict[str, Any]:
        return {
            **self.cache_stats,
            "size": len(self._engines),
            "max_size": self.max_size,
            "atlases": list(self._engines.keys()),
        }

    def __contains__(self, atlas_id: str) -> bool:
        return atlas_id in self._engines

    def __len__(self) -> int:
        return len(self._engines)

    def _enforce_limit(self) -> None:
        if not self.max_size:
            return
        while len(self._engines) > self.max_size:
            atlas_id, _ = self._engines.popitem(last=False)
            self.cache_stats["evictions"] += 1
            logger.info(f"🧹 Engine cache full, evicted {atlas_id}")


_engine_cache: Optional[EngineCache] = None


def get_engine_cache() -> EngineCache:
    """Process-wide cache used by the API layer."""
    global _engine_cache
    if _engine_cache is None:
        _engine_cache = EngineCache()
    return _engine_cache
