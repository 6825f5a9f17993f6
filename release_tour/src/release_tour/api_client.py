"""
Service Clients

HTTP clients for the lesson catalog service and the code execution service.
Requests are made with `requests` and pushed to a worker thread so the event
loop is never blocked. Response shapes are normalized here, at the service
boundary, before anything else in the core sees them.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import requests

from release_tour.config import TourConfig
from release_tour.errors import CatalogFetchError, TransportError
from release_tour.models import Lesson, SubmissionPayload, lessons_from_payload

logger = logging.getLogger(__name__)


def normalize_run_response(data: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """
    Collapse the execution service's response into canonical fields.

    `go_version` and `used_version` name the same thing; `go_version` wins
    when both are present. Empty strings are treated as absent.

    Args:
        data: Decoded JSON body

    Returns:
        Dict with keys output, error, used_version, detected_version, execution_time
    """
    def text(key: str) -> Optional[str]:
        value = data.get(key)
        if value is None or value == "":
            return None
        return str(value)

    return {
        "output": text("output"),
        "error": text("error"),
        "used_version": text("go_version") or text("used_version"),
        "detected_version": text("detected_version"),
        "execution_time": text("execution_time"),
    }


class _ServiceClient:
    """Shared session handling for both services."""

    def __init__(self, base_url: str, timeout: float, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def close(self) -> None:
        self.session.close()


class CatalogClient(_ServiceClient):
    """Client for `GET /api/lessons?version=V`."""

    @classmethod
    def from_config(cls, config: TourConfig, session: Optional[requests.Session] = None) -> "CatalogClient":
        return cls(config.api_url, config.catalog_timeout, session=session)

    def _fetch(self, version: str) -> List[Lesson]:
        url = f"{self.base_url}/api/lessons"
        try:
            response = self.session.get(url, params={"version": version}, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise CatalogFetchError(version, e) from e

        if not response.ok:
            raise CatalogFetchError(version, TransportError(f"HTTP {response.status_code}", response.status_code))

        try:
            payload = response.json()
        except ValueError as e:
            raise CatalogFetchError(version, e) from e

        try:
            lessons = lessons_from_payload(payload, version)
        except ValueError as e:
            raise CatalogFetchError(version, e) from e

        logger.info(f"📚 [CatalogClient] Loaded {len(lessons)} lessons for version {version}")
        return lessons

    async def fetch_lessons(self, version: str) -> List[Lesson]:
        """
        Fetch the ordered lesson list for a version.

        Raises:
            CatalogFetchError: On network failure, non-2xx status or malformed body
        """
        return await asyncio.to_thread(self._fetch, version)


class ExecutionClient(_ServiceClient):
    """Client for `POST /api/run`."""

    @classmethod
    def from_config(cls, config: TourConfig, session: Optional[requests.Session] = None) -> "ExecutionClient":
        return cls(config.api_url, config.run_timeout, session=session)

    def _run(self, payload: SubmissionPayload) -> Dict[str, Optional[str]]:
        url = f"{self.base_url}/api/run"
        try:
            response = self.session.post(url, json=payload.to_dict(), timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise TransportError(str(e)) from e

        if not response.ok:
            raise TransportError(f"HTTP {response.status_code}", response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON from execution service: {e}") from e

        if not isinstance(data, dict):
            raise TransportError(f"Unexpected execution response type: {type(data).__name__}")

        return normalize_run_response(data)

    async def run(self, payload: SubmissionPayload) -> Dict[str, Optional[str]]:
        """
        Send code to the execution service.

        Returns:
            Normalized response fields (see normalize_run_response)

        Raises:
            TransportError: On network failure, non-2xx status or undecodable body
        """
        return await asyncio.to_thread(self._run, payload)
