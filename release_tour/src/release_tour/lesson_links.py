"""
Reference links embedded in lesson code comments.
"""

import re
from dataclasses import dataclass
from typing import Dict, Optional

from release_tour.models import Lesson

_URL = re.compile(r"https://\S+")
_PKG_URL = re.compile(r"https://pkg\.go\.dev/\S+")


@dataclass(frozen=True)
class LessonLinks:
    release_notes: str
    package_docs: Optional[str] = None
    proposal: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "release_notes": self.release_notes,
            "package_docs": self.package_docs,
            "proposal": self.proposal,
        }


def default_release_notes(version: str) -> str:
    return f"https://go.dev/doc/go{version}"


def extract_links(lesson: Lesson, language: str = "Go") -> LessonLinks:
    """Scan the lesson code line by line; later matches overwrite earlier ones."""
    release_notes = None
    package_docs = None
    proposal = None

    for line in lesson.code.splitlines():
        if f"{language} 1." in line and "Release Notes:" in line:
            match = _URL.search(line)
            if match:
                release_notes = match.group(0)
        elif "Package:" in line or "Documentation:" in line:
            match = _PKG_URL.search(line)
            if match:
                package_docs = match.group(0)
        elif "Proposal:" in line:
            match = _URL.search(line)
            if match:
                proposal = match.group(0)

    return LessonLinks(
        release_notes=release_notes or default_release_notes(lesson.version),
        package_docs=package_docs,
        proposal=proposal,
    )
