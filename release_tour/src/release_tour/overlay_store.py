"""
Code Overlay Store

User edits of lesson code, layered over the canonical lesson sample and
persisted in a key/value store. This is the only place that decides saved
code wins over the lesson default.
"""

import logging
from typing import Optional

from release_tour.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

THEME_KEY = "code-editor-theme"
ENV_VARS_KEY = "lesson-env-vars"
DEFAULT_THEME = "monokai"


def overlay_key(version: str, lesson_id: int) -> str:
    """Storage key of the saved code for one lesson."""
    return f"lesson-{version}-{lesson_id}-code"


class OverlayStore:
    """Maps (version, lesson_id) to saved code."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def save(self, version: str, lesson_id: int, code: str) -> None:
        """Upsert the saved code for a lesson. Latest write wins."""
        self.store.set(overlay_key(version, lesson_id), code)

    def load(self, version: str, lesson_id: int) -> Optional[str]:
        """Saved code for a lesson, or None when the user never edited it."""
        return self.store.get(overlay_key(version, lesson_id))

    def resolve(self, version: str, lesson_id: int, canonical_code: str) -> str:
        """
        Code to show for a lesson.

        Args:
            version: Lesson version
            lesson_id: Lesson id within the version
            canonical_code: The lesson's own sample code

        Returns:
            The saved overlay if one exists, else canonical_code
        """
        saved = self.load(version, lesson_id)
        if saved is None:
            return canonical_code
        return saved

    def discard(self, version: str, lesson_id: int) -> None:
        """Drop the overlay so the lesson falls back to its canonical code."""
        self.store.delete(overlay_key(version, lesson_id))
        logger.info(f"🗑️ [OverlayStore] Discarded saved code for {version}/{lesson_id}")


class PreferenceStore:
    """UI preferences kept next to the overlays (editor theme, env vars)."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def get_theme(self) -> str:
        return self.store.get(THEME_KEY) or DEFAULT_THEME

    def set_theme(self, theme: str) -> None:
        self.store.set(THEME_KEY, theme)

    def get_env_vars(self) -> str:
        return self.store.get(ENV_VARS_KEY) or ""

    def set_env_vars(self, env_vars: str) -> None:
        if env_vars:
            self.store.set(ENV_VARS_KEY, env_vars)
        else:
            self.store.delete(ENV_VARS_KEY)
