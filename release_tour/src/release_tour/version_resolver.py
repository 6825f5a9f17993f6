"""
Version Resolver

Picks the version a code submission runs under. Fallback chain, first match
wins:
1. explicit selector value
2. "<Language> X.Y" mentioned in the code
3. "/v/X.Y/" segment in the lesson's file path
4. default (latest) version
"""

import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

_PATH_VERSION_PATTERN = re.compile(r"/v/(\d+\.\d+)/")


class VersionResolver:
    """Deterministic version selection for submissions."""

    def __init__(self, default_version: str, language: str = "Go"):
        """
        Initialize VersionResolver.

        Args:
            default_version: Version used when nothing else matches
            language: Language name that precedes version numbers in code
        """
        if not default_version or not default_version.strip():
            raise ValueError("default_version must not be empty")
        self.default_version = default_version.strip()
        self.language = language
        self._code_pattern = re.compile(rf"\b{re.escape(language)}[ \t]+(\d+\.\d+)")

    def from_code(self, code: Optional[str]) -> Optional[str]:
        """First "<Language> X.Y" in document order, if any."""
        if not code:
            return None
        match = self._code_pattern.search(code)
        return match.group(1) if match else None

    @staticmethod
    def from_path(file_path: Optional[str]) -> Optional[str]:
        """First "/v/X.Y/" path segment, if any."""
        if not file_path:
            return None
        match = _PATH_VERSION_PATTERN.search(file_path.replace("\\", "/"))
        return match.group(1) if match else None

    def resolve(
        self,
        selector_version: Optional[str],
        code: str,
        lesson_file_path: Optional[str] = None,
    ) -> str:
        """
        Resolve the version for a submission.

        Args:
            selector_version: Version chosen in the UI selector (may be None or blank)
            code: Code about to be submitted
            lesson_file_path: File path of the lesson the code came from

        Returns:
            Non-empty version string
        """
        if selector_version and selector_version.strip():
            version = selector_version.strip()
            logger.debug(f"[VersionResolver] Using selector version {version}")
            return version

        version = self.from_code(code)
        if version:
            logger.debug(f"[VersionResolver] Detected version {version} in code")
            return version

        version = self.from_path(lesson_file_path)
        if version:
            logger.debug(f"[VersionResolver] Detected version {version} from path {lesson_file_path}")
            return version

        logger.debug(f"[VersionResolver] Falling back to default version {self.default_version}")
        return self.default_version
