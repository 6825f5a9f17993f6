"""
Lesson Cache

Per-version lesson lists, populated lazily from the catalog service. Once a
version is loaded it is served from memory and never re-fetched unless it is
explicitly invalidated. A failed fetch stores nothing, so the next request
for that version simply tries again.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from release_tour.errors import CatalogFetchError
from release_tour.models import Lesson

logger = logging.getLogger(__name__)


class LessonCache:
    """
    Maps version -> ordered list of lessons.

    Concurrent ensure_loaded() calls for the same uncached version share one
    in-flight fetch.
    """

    def __init__(self, catalog):
        """
        Initialize LessonCache.

        Args:
            catalog: Object with `async fetch_lessons(version) -> List[Lesson]`
        """
        self.catalog = catalog
        self._lessons: Dict[str, List[Lesson]] = {}
        self._index: Dict[str, Dict[int, Lesson]] = {}
        self._inflight: Dict[str, asyncio.Task] = {}

    def is_loaded(self, version: str) -> bool:
        return version in self._lessons

    def lessons(self, version: str) -> List[Lesson]:
        """Cached lessons for a version, or an empty list when not loaded."""
        return list(self._lessons.get(version, ()))

    def get(self, version: str, lesson_id: int) -> Optional[Lesson]:
        """Pure lookup; None when the version is not loaded or has no such lesson."""
        return self._index.get(version, {}).get(lesson_id)

    def invalidate(self, version: str) -> None:
        """
        Forget a version so the next ensure_loaded() fetches it again.

        A fetch still running for the version is detached: its callers get its
        result, but it no longer populates the cache.
        """
        self._lessons.pop(version, None)
        self._index.pop(version, None)
        self._inflight.pop(version, None)
        logger.info(f"🔄 [LessonCache] Invalidated version {version}")

    def _store(self, version: str, lessons: List[Lesson]) -> None:
        # Both maps are replaced in the same turn so lookups never see half a version
        self._lessons[version] = list(lessons)
        self._index[version] = {lesson.id: lesson for lesson in lessons}

    async def _fetch(self, version: str) -> List[Lesson]:
        this_fetch = asyncio.current_task()
        try:
            lessons = await self.catalog.fetch_lessons(version)
        except CatalogFetchError:
            logger.warning(f"⚠️ [LessonCache] Catalog fetch failed for version {version}")
            raise
        except Exception as e:
            logger.warning(f"⚠️ [LessonCache] Catalog fetch failed for version {version}: {e}")
            raise CatalogFetchError(version, e) from e
        finally:
            current = self._inflight.get(version) is this_fetch
            if current:
                del self._inflight[version]

        if not current:
            logger.info(f"[LessonCache] Dropping result of detached fetch for version {version}")
            return list(lessons)

        self._store(version, lessons)
        logger.info(f"✅ [LessonCache] Cached {len(lessons)} lessons for version {version}")
        return self.lessons(version)

    async def ensure_loaded(self, version: str) -> List[Lesson]:
        """
        Return the lessons of a version, fetching them once if needed.

        Args:
            version: Catalog version, e.g. "1.24"

        Returns:
            Ordered lesson list (a copy; the cache itself is not exposed)

        Raises:
            CatalogFetchError: If the catalog could not be fetched. The cache
                is left unchanged so a later call retries.
        """
        if version in self._lessons:
            return self.lessons(version)

        task = self._inflight.get(version)
        if task is None:
            task = asyncio.ensure_future(self._fetch(version))
            self._inflight[version] = task
        else:
            logger.debug(f"[LessonCache] Joining in-flight fetch for version {version}")

        return await asyncio.shield(task)
