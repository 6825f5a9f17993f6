"""
User actions accepted by TourSession.handle().

UI event bindings translate clicks and key presses into these values; the
session never sees the UI itself.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class StartVersion:
    """Start-learning button of a welcome-screen version card."""
    version: str


@dataclass(frozen=True)
class SwitchVersion:
    """Version selector changed while browsing or viewing."""
    version: str


@dataclass(frozen=True)
class ReloadLessons:
    """Drop the cached catalog of a version and load it again."""
    version: str


@dataclass(frozen=True)
class SelectLesson:
    version: str
    lesson_id: int


@dataclass(frozen=True)
class EditCode:
    code: str


@dataclass(frozen=True)
class RunCode:
    pass


@dataclass(frozen=True)
class ResetCode:
    """Discard saved edits of the current lesson."""
    pass


@dataclass(frozen=True)
class ReturnToCatalog:
    pass


@dataclass(frozen=True)
class ApplyEnvPreset:
    """Set the environment string sent with runs; empty clears it."""
    value: str


@dataclass(frozen=True)
class SetTheme:
    theme: str
