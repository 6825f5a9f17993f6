"""
Session State

Tagged state of the tour session: Welcome, Browsing(version) or
Viewing(version, lesson_id). Exactly one is active at a time.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Screen(Enum):
    """Screens of the tour."""
    WELCOME = "welcome"
    BROWSING = "browsing"
    VIEWING = "viewing"


@dataclass(frozen=True)
class SessionState:
    """
    Immutable session state value.

    Built through the constructors below so that the version / lesson_id
    fields always match the screen:
    - welcome(): no version, no lesson
    - browsing(v): version only
    - viewing(v, id): version and lesson
    """
    screen: Screen = Screen.WELCOME
    version: Optional[str] = None
    lesson_id: Optional[int] = None

    @classmethod
    def welcome(cls) -> "SessionState":
        return cls(Screen.WELCOME)

    @classmethod
    def browsing(cls, version: str) -> "SessionState":
        return cls(Screen.BROWSING, version=version)

    @classmethod
    def viewing(cls, version: str, lesson_id: int) -> "SessionState":
        return cls(Screen.VIEWING, version=version, lesson_id=lesson_id)

    def is_viewing(self) -> bool:
        return self.screen == Screen.VIEWING

    def to_dict(self) -> dict:
        return {
            "screen": self.screen.value,
            "version": self.version,
            "lesson_id": self.lesson_id,
        }
