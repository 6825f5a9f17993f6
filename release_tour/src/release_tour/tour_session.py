"""
Tour Session State Machine

Owns the session state, the lesson cache, the code overlays and the
execution dispatcher, and is driven through a single entry point,
`handle(action)`. Every call returns a RenderSnapshot for the rendering
layer.

Screens:
- Welcome: no version selected, nothing in the editor
- Browsing(version): lesson list of a version (loading, loaded or failed)
- Viewing(version, lesson_id): one lesson with its effective code

Navigation actions bump a generation counter. A catalog load that finishes
after a newer navigation sees a different generation and is dropped, so a
slow response for an old version can never overwrite the current screen.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from release_tour.actions import (
    ApplyEnvPreset,
    EditCode,
    ReloadLessons,
    ResetCode,
    ReturnToCatalog,
    RunCode,
    SelectLesson,
    SetTheme,
    StartVersion,
    SwitchVersion,
)
from release_tour.api_client import CatalogClient, ExecutionClient
from release_tour.config import TourConfig
from release_tour.errors import CatalogFetchError, ReleaseTourError, ValidationError
from release_tour.execution_dispatcher import ExecutionDispatcher
from release_tour.kv_store import KeyValueStore, build_store
from release_tour.lesson_cache import LessonCache
from release_tour.lesson_links import LessonLinks, extract_links
from release_tour.models import (
    ExecutionFailure,
    ExecutionResult,
    FailureKind,
    Lesson,
    render_stars,
)
from release_tour.overlay_store import OverlayStore, PreferenceStore
from release_tour.session_state import SessionState
from release_tour.version_resolver import VersionResolver

logger = logging.getLogger(__name__)


def result_to_dict(result: Optional[ExecutionResult]) -> Optional[Dict[str, Any]]:
    if result is None:
        return None
    if result.ok:
        return {
            "ok": True,
            "output": result.output,
            "used_version": result.used_version,
            "detected_version": result.detected_version,
            "execution_time": result.execution_time,
        }
    return {
        "ok": False,
        "kind": result.kind.value,
        "error_message": result.error_message,
        "partial_output": result.partial_output,
    }


@dataclass(frozen=True)
class RenderSnapshot:
    """Read-only view of the session handed to the rendering layer."""
    state: SessionState
    selector_version: str
    version_options: Tuple[Dict[str, str], ...]
    lessons: Tuple[Lesson, ...] = ()
    lesson: Optional[Lesson] = None
    effective_code: str = ""
    links: Optional[LessonLinks] = None
    execution_result: Optional[ExecutionResult] = None
    error_banner: Optional[str] = None
    is_loading: bool = False
    is_running: bool = False
    theme: str = ""
    env_vars: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.to_dict(),
            "selector_version": self.selector_version,
            "version_options": list(self.version_options),
            "lessons": [
                {
                    "id": lesson.id,
                    "version": lesson.version,
                    "title": lesson.title,
                    "description": lesson.description,
                    "stars": lesson.stars,
                    "stars_display": render_stars(lesson.stars),
                    "active": self.lesson is not None and lesson.key == self.lesson.key,
                }
                for lesson in self.lessons
            ],
            "lesson": None if self.lesson is None else {
                "id": self.lesson.id,
                "version": self.lesson.version,
                "title": self.lesson.title,
                "description": self.lesson.description,
                "stars": self.lesson.stars,
                "stars_display": render_stars(self.lesson.stars),
                "filename": self.lesson.filename,
                "env_presets": [
                    {"name": p.name, "value": p.value, "description": p.description}
                    for p in self.lesson.env_presets
                ],
            },
            "effective_code": self.effective_code,
            "links": self.links.to_dict() if self.links else None,
            "execution_result": result_to_dict(self.execution_result),
            "error_banner": self.error_banner,
            "is_loading": self.is_loading,
            "is_running": self.is_running,
            "theme": self.theme,
            "env_vars": self.env_vars,
        }


class TourSession:
    """
    Session controller.

    Single-threaded by construction: every mutation happens between awaits
    of one handle() call, so the cache, the overlays and the state are never
    observed half-updated.
    """

    def __init__(
        self,
        cache: LessonCache,
        overlays: OverlayStore,
        dispatcher: ExecutionDispatcher,
        preferences: PreferenceStore,
        config: Optional[TourConfig] = None,
    ):
        self.config = config or TourConfig()
        self.cache = cache
        self.overlays = overlays
        self.dispatcher = dispatcher
        self.preferences = preferences

        self.state = SessionState.welcome()
        self.selector_version = self.config.default_version
        self.editor_code = ""
        self.execution_result: Optional[ExecutionResult] = None
        self.error_banner: Optional[str] = None
        self.is_loading = False
        self.is_running = False
        self.theme = preferences.get_theme()
        self.env_vars = preferences.get_env_vars()

        self._generation = 0
        self._owned_clients: List[Any] = []
        self._handlers = {
            StartVersion: self._on_start_version,
            SwitchVersion: self._on_switch_version,
            ReloadLessons: self._on_reload_lessons,
            SelectLesson: self._on_select_lesson,
            EditCode: self._on_edit_code,
            RunCode: self._on_run_code,
            ResetCode: self._on_reset_code,
            ReturnToCatalog: self._on_return_to_catalog,
            ApplyEnvPreset: self._on_apply_env_preset,
            SetTheme: self._on_set_theme,
        }

    @classmethod
    def from_config(
        cls,
        config: TourConfig,
        store: Optional[KeyValueStore] = None,
        catalog=None,
        executor=None,
        supabase_client=None,
    ) -> "TourSession":
        """
        Wire a session from configuration.

        Args:
            config: Tour configuration
            store: Key/value store (built from config when omitted)
            catalog: Catalog service client (HTTP client when omitted)
            executor: Execution service client (HTTP client when omitted)
            supabase_client: Passed to build_store for Supabase storage

        Returns:
            TourSession in the Welcome state
        """
        if store is None:
            store = build_store(config, supabase_client=supabase_client)
        owned = []
        if catalog is None:
            catalog = CatalogClient.from_config(config)
            owned.append(catalog)
        if executor is None:
            executor = ExecutionClient.from_config(config)
            owned.append(executor)
        resolver = VersionResolver(config.default_version, language=config.language)
        session = cls(
            cache=LessonCache(catalog),
            overlays=OverlayStore(store),
            dispatcher=ExecutionDispatcher(executor, resolver),
            preferences=PreferenceStore(store),
            config=config,
        )
        session._owned_clients = owned
        return session

    def close(self) -> None:
        """Close the HTTP clients created by from_config()."""
        for client in self._owned_clients:
            client.close()
        self._owned_clients = []

    # ==================== Entry point ====================

    async def handle(self, action) -> RenderSnapshot:
        """
        Apply one user action and return the resulting snapshot.

        Component failures are turned into an error banner; the session
        always ends in a well-defined state.
        """
        handler = self._handlers.get(type(action))
        if handler is None:
            raise TypeError(f"Unsupported action: {action!r}")

        logger.debug(f"[TourSession] {action!r} in {self.state}")
        try:
            await handler(action)
        except ReleaseTourError as e:
            logger.warning(f"⚠️ [TourSession] {type(action).__name__} failed: {e}")
            self.error_banner = str(e)
        except Exception as e:
            logger.error(f"❌ [TourSession] Unexpected error handling {type(action).__name__}: {e}", exc_info=True)
            self.error_banner = f"Unexpected error: {e}"
        return self.refresh()

    # ==================== Navigation ====================

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _enter_lesson(self, lesson: Lesson) -> None:
        self.state = SessionState.viewing(lesson.version, lesson.id)
        self.editor_code = self.overlays.resolve(lesson.version, lesson.id, lesson.editor_code)
        self.execution_result = None
        logger.info(f"📖 [TourSession] Viewing {lesson.version}/{lesson.id}: {lesson.title}")

    async def _load_version(self, version: str) -> None:
        version = version.strip() if version else ""
        if not version:
            raise ValidationError("Please choose a version")

        generation = self._next_generation()
        self.state = SessionState.browsing(version)
        self.selector_version = version
        self.editor_code = ""
        self.execution_result = None
        self.error_banner = None
        self.is_loading = not self.cache.is_loaded(version)

        try:
            lessons = await self.cache.ensure_loaded(version)
        except CatalogFetchError as e:
            if generation != self._generation:
                logger.info(f"[TourSession] Dropping stale catalog failure for version {version}")
                return
            self.is_loading = False
            self.error_banner = str(e)
            return

        if generation != self._generation:
            logger.info(f"[TourSession] Dropping stale catalog response for version {version}")
            return

        self.is_loading = False
        if lessons:
            self._enter_lesson(lessons[0])
        else:
            logger.info(f"[TourSession] Version {version} has no lessons")

    async def _on_start_version(self, action: StartVersion) -> None:
        await self._load_version(action.version)

    async def _on_switch_version(self, action: SwitchVersion) -> None:
        await self._load_version(action.version)

    async def _on_reload_lessons(self, action: ReloadLessons) -> None:
        self.cache.invalidate(action.version)
        await self._load_version(action.version)

    async def _on_select_lesson(self, action: SelectLesson) -> None:
        if self.state == SessionState.viewing(action.version, action.lesson_id):
            return

        lesson = self.cache.get(action.version, action.lesson_id)
        if lesson is None:
            raise ValidationError(
                f"Lesson {action.lesson_id} is not available for version {action.version}"
            )

        self._next_generation()
        self.is_loading = False
        self.error_banner = None
        self.selector_version = action.version
        self._enter_lesson(lesson)

    async def _on_return_to_catalog(self, action: ReturnToCatalog) -> None:
        self._next_generation()
        self.state = SessionState.welcome()
        self.editor_code = ""
        self.execution_result = None
        self.error_banner = None
        self.is_loading = False
        self.selector_version = self.config.default_version

    # ==================== Editing and running ====================

    def _viewed_lesson(self) -> Optional[Lesson]:
        """Lesson behind the Viewing state, or None."""
        if not self.state.is_viewing():
            return None
        return self.cache.get(self.state.version, self.state.lesson_id)

    def _settle(self) -> None:
        """Fall back to Browsing when the viewed lesson has left the cache."""
        if self.state.is_viewing() and self._viewed_lesson() is None:
            logger.warning(
                f"⚠️ [TourSession] Lesson {self.state.version}/{self.state.lesson_id} "
                f"no longer cached, returning to lesson list"
            )
            self.state = SessionState.browsing(self.state.version)
            self.editor_code = ""
            self.execution_result = None

    def _require_lesson(self) -> Lesson:
        self._settle()
        lesson = self._viewed_lesson()
        if lesson is None:
            raise ValidationError("Open a lesson first")
        return lesson

    async def _on_edit_code(self, action: EditCode) -> None:
        lesson = self._require_lesson()
        self.editor_code = action.code
        self.overlays.save(lesson.version, lesson.id, action.code)

    async def _on_reset_code(self, action: ResetCode) -> None:
        lesson = self._require_lesson()
        self.overlays.discard(lesson.version, lesson.id)
        self.editor_code = lesson.editor_code

    async def _on_run_code(self, action: RunCode) -> None:
        lesson = self._require_lesson()
        if self.is_running:
            logger.info("[TourSession] Run already in progress, ignoring")
            return

        started_in = self.state
        self.is_running = True
        try:
            result = await self.dispatcher.submit(
                self.editor_code,
                selector_version=self.selector_version,
                lesson_file_path=lesson.file_path,
                env_vars=self.env_vars,
            )
        except ValidationError as e:
            result = ExecutionFailure(error_message=str(e), partial_output="", kind=FailureKind.VALIDATION)
        finally:
            self.is_running = False

        if self.state != started_in:
            logger.info(f"[TourSession] Discarding run result for {started_in.version}/{started_in.lesson_id}")
            return
        self.execution_result = result

    # ==================== Preferences ====================

    async def _on_apply_env_preset(self, action: ApplyEnvPreset) -> None:
        self.env_vars = action.value.strip()
        self.preferences.set_env_vars(self.env_vars)

    async def _on_set_theme(self, action: SetTheme) -> None:
        theme = action.theme.strip()
        if not theme:
            raise ValidationError("Theme name must not be empty")
        self.theme = theme
        self.preferences.set_theme(theme)

    # ==================== Snapshot ====================

    def refresh(self) -> RenderSnapshot:
        """Snapshot of the current session after re-checking the viewed lesson."""
        self._settle()
        return self.snapshot()

    def snapshot(self) -> RenderSnapshot:
        """Read-only; never changes the session."""
        lesson = self._viewed_lesson()
        lessons: List[Lesson] = []
        if self.state.version is not None and not self.is_loading:
            lessons = self.cache.lessons(self.state.version)

        return RenderSnapshot(
            state=self.state,
            selector_version=self.selector_version,
            version_options=tuple(self.config.version_options()),
            lessons=tuple(lessons),
            lesson=lesson,
            effective_code=self.editor_code if lesson else "",
            links=extract_links(lesson, self.config.language) if lesson else None,
            execution_result=self.execution_result if lesson else None,
            error_banner=self.error_banner,
            is_loading=self.is_loading,
            is_running=self.is_running,
            theme=self.theme,
            env_vars=self.env_vars,
        )
