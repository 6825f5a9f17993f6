"""
Release Tour Data Models

Lessons as returned by the catalog service, the submission payload sent to
the execution service, and the execution result variants shown to the user.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

MAX_STARS = 5
NO_OUTPUT_SENTINEL = "Execution finished (no output)"

_BUILD_IGNORE_PATTERNS = (
    re.compile(r"//go:build ignore\n"),
    re.compile(r"// \+build ignore\n"),
)


@dataclass(frozen=True)
class EnvPreset:
    """Environment variable preset offered by a lesson (e.g. GOEXPERIMENT=jsonv2)."""
    name: str
    value: str
    description: str = ""


@dataclass(frozen=True)
class Lesson:
    """A single tutorial unit bound to one version. Immutable once fetched."""
    id: int
    version: str
    title: str
    description: str = ""
    stars: int = 0
    code: str = ""
    filename: str = ""
    file_path: Optional[str] = None
    env_presets: Tuple[EnvPreset, ...] = field(default_factory=tuple)

    @property
    def key(self) -> Tuple[str, int]:
        """Identity of the lesson: (version, id)."""
        return (self.version, self.id)

    @property
    def editor_code(self) -> str:
        """Canonical code prepared for the editor (build-ignore directives removed)."""
        code = self.code
        for pattern in _BUILD_IGNORE_PATTERNS:
            code = pattern.sub("", code)
        return code


def render_stars(count: int) -> str:
    """Render a difficulty rating as filled/empty stars."""
    count = max(0, min(MAX_STARS, count))
    return "★" * count + "☆" * (MAX_STARS - count)


def _require_str(data: Dict[str, Any], key: str, default: Optional[str] = None) -> str:
    value = data.get(key, default)
    if value is None:
        value = default
    if not isinstance(value, str):
        raise ValueError(f"lesson field '{key}' must be a string, got {type(value).__name__}")
    return value


def _require_int(data: Dict[str, Any], key: str, default: Optional[int] = None) -> int:
    value = data.get(key, default)
    # bool is an int subclass; a JSON true/false is not a valid id or rating
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"lesson field '{key}' must be an integer, got {value!r}")
    return value


def env_preset_from_dict(data: Dict[str, Any]) -> EnvPreset:
    """Parse one env preset record."""
    if not isinstance(data, dict):
        raise ValueError(f"env preset must be an object, got {type(data).__name__}")
    return EnvPreset(
        name=_require_str(data, "name"),
        value=_require_str(data, "value"),
        description=_require_str(data, "description", ""),
    )


def lesson_from_dict(data: Dict[str, Any], version: str) -> Lesson:
    """
    Build a Lesson from a catalog record.

    Args:
        data: JSON object from the catalog service
        version: Version the catalog was requested for (used when the
            record does not carry its own version)

    Returns:
        Parsed Lesson

    Raises:
        ValueError: If the record is malformed
    """
    if not isinstance(data, dict):
        raise ValueError(f"lesson record must be an object, got {type(data).__name__}")

    record_version = _require_str(data, "version", version)
    if record_version != version:
        raise ValueError(
            f"lesson {data.get('id')!r} belongs to version {record_version}, expected {version}"
        )

    stars = _require_int(data, "stars", 0)
    if not 0 <= stars <= MAX_STARS:
        raise ValueError(f"lesson stars must be between 0 and {MAX_STARS}, got {stars}")

    file_path = data.get("file_path")
    if file_path is not None and not isinstance(file_path, str):
        raise ValueError("lesson field 'file_path' must be a string or null")

    presets = data.get("env_presets") or []
    if not isinstance(presets, list):
        raise ValueError("lesson field 'env_presets' must be a list")

    return Lesson(
        id=_require_int(data, "id"),
        version=record_version,
        title=_require_str(data, "title"),
        description=_require_str(data, "description", ""),
        stars=stars,
        code=_require_str(data, "code", ""),
        filename=_require_str(data, "filename", ""),
        file_path=file_path or None,
        env_presets=tuple(env_preset_from_dict(p) for p in presets),
    )


def lessons_from_payload(payload: Any, version: str) -> List[Lesson]:
    """
    Parse a catalog response body into an ordered lesson list.

    Raises:
        ValueError: If the body is not a list of well-formed, uniquely
            identified lesson records
    """
    if not isinstance(payload, list):
        raise ValueError(f"catalog response must be a list, got {type(payload).__name__}")

    lessons = [lesson_from_dict(item, version) for item in payload]
    seen = set()
    for lesson in lessons:
        if lesson.id in seen:
            raise ValueError(f"duplicate lesson id {lesson.id} in version {version}")
        seen.add(lesson.id)
    return lessons


@dataclass(frozen=True)
class SubmissionPayload:
    """Request body for the execution service. Built per request, never persisted."""
    code: str
    version: str
    env_vars: Optional[str] = None

    def __post_init__(self):
        if not self.code.strip():
            raise ValueError("submission code must not be empty")
        if not self.version or not self.version.strip():
            raise ValueError("submission version must not be empty")

    def to_dict(self) -> Dict[str, str]:
        body = {"code": self.code, "version": self.version}
        if self.env_vars:
            body["env_vars"] = self.env_vars
        return body


class FailureKind(Enum):
    """Where an execution failure originated."""
    VALIDATION = "validation"  # Rejected locally, no request sent
    TRANSPORT = "transport"    # Network error or non-2xx status
    EXECUTION = "execution"    # Service reported a compile/runtime error


@dataclass(frozen=True)
class ExecutionSuccess:
    """Code ran; output plus whatever version metadata the service supplied."""
    output: str
    used_version: Optional[str] = None
    detected_version: Optional[str] = None
    execution_time: Optional[str] = None

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class ExecutionFailure:
    """Code did not run cleanly. error_message and partial_output always travel together."""
    error_message: str
    partial_output: str = ""
    kind: FailureKind = FailureKind.EXECUTION

    @property
    def ok(self) -> bool:
        return False


ExecutionResult = Union[ExecutionSuccess, ExecutionFailure]
