"""
Shared fixtures: fake catalog and execution services plus a wired session.
"""

import asyncio
import os
import sys
from typing import Dict, List, Optional

import pytest

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.join(project_root, "release_tour", "src"))

from release_tour.api_client import normalize_run_response
from release_tour.config import TourConfig
from release_tour.errors import CatalogFetchError, TransportError
from release_tour.execution_dispatcher import ExecutionDispatcher
from release_tour.kv_store import InMemoryKeyValueStore
from release_tour.lesson_cache import LessonCache
from release_tour.models import lessons_from_payload
from release_tour.overlay_store import OverlayStore, PreferenceStore
from release_tour.tour_session import TourSession
from release_tour.version_resolver import VersionResolver


def lesson_record(
    lesson_id: int,
    version: str = "1.24",
    title: Optional[str] = None,
    code: Optional[str] = None,
    file_path: Optional[str] = None,
    stars: int = 3,
) -> dict:
    """Catalog-shaped lesson record."""
    return {
        "id": lesson_id,
        "version": version,
        "title": title or f"Lesson {lesson_id}",
        "description": f"Description of lesson {lesson_id}",
        "stars": stars,
        "code": code if code is not None else f"package main\n\n// lesson {lesson_id}\nfunc main() {{}}\n",
        "filename": f"{lesson_id:02d}_lesson.go",
        "file_path": file_path or f"releases/v/{version}/{lesson_id:02d}_lesson.go",
    }


class FakeCatalog:
    """In-process catalog service. Versions can be held open or made to fail."""

    def __init__(self, catalogs: Optional[Dict[str, List[dict]]] = None):
        self.catalogs = catalogs or {}
        self.calls: List[str] = []
        self.gates: Dict[str, asyncio.Event] = {}
        self.fail_next: Dict[str, Exception] = {}

    def hold(self, version: str) -> asyncio.Event:
        """Block fetches of a version until the returned event is set."""
        gate = asyncio.Event()
        self.gates[version] = gate
        return gate

    async def fetch_lessons(self, version: str):
        self.calls.append(version)
        gate = self.gates.pop(version, None)
        if gate is not None:
            await gate.wait()
        if version in self.fail_next:
            raise self.fail_next.pop(version)
        if version not in self.catalogs:
            raise CatalogFetchError(version, TransportError("HTTP 404", 404))
        return lessons_from_payload(self.catalogs[version], version)


class FakeExecutor:
    """In-process execution service recording every payload."""

    def __init__(self, response: Optional[dict] = None):
        self.response = response if response is not None else {"output": "hello\n"}
        self.error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.payloads = []

    async def run(self, payload):
        self.payloads.append(payload)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return normalize_run_response(self.response)


@pytest.fixture
def config():
    return TourConfig(default_version="1.25", versions=("1.25", "1.24", "1.23"))


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def catalog():
    return FakeCatalog({
        "1.24": [lesson_record(1, "1.24"), lesson_record(2, "1.24"), lesson_record(3, "1.24")],
        "1.23": [lesson_record(1, "1.23"), lesson_record(2, "1.23")],
        "1.22": [],
    })


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def session(config, store, catalog, executor):
    resolver = VersionResolver(config.default_version, language=config.language)
    return TourSession(
        cache=LessonCache(catalog),
        overlays=OverlayStore(store),
        dispatcher=ExecutionDispatcher(executor, resolver),
        preferences=PreferenceStore(store),
        config=config,
    )
