"""
Configuration

Settings for the tour client, read from environment variables (a local
.env file is loaded first).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv

DEFAULT_API_URL = "http://localhost:8080"
DEFAULT_VERSION = "1.25"
DEFAULT_VERSIONS = ("1.25", "1.24", "1.23", "1.22", "1.21", "1.20", "1.19", "1.18")
DEFAULT_LANGUAGE = "Go"
DEFAULT_STORAGE_PATH = str(Path.home() / ".release_tour" / "storage.json")

# Extra selector tags for versions with a headline feature
VERSION_TAGS: Dict[str, str] = {
    "1.18": "Generics",
}


@dataclass
class TourConfig:
    """Runtime configuration of the tour client."""
    api_url: str = DEFAULT_API_URL
    catalog_timeout: float = 10.0
    run_timeout: float = 30.0
    default_version: str = DEFAULT_VERSION
    versions: Tuple[str, ...] = DEFAULT_VERSIONS
    language: str = DEFAULT_LANGUAGE
    storage: str = "memory"  # memory, file, supabase
    storage_path: str = DEFAULT_STORAGE_PATH
    kv_table: str = "kv_store"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        if not self.default_version or not self.default_version.strip():
            raise ValueError("default_version must not be empty")
        if self.storage not in ("memory", "file", "supabase"):
            raise ValueError(f"Unknown storage backend: {self.storage}")

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "TourConfig":
        """
        Build configuration from the environment.

        Args:
            env_file: Optional path to a .env file (defaults to dotenv's lookup)

        Returns:
            TourConfig
        """
        load_dotenv(env_file)

        versions_raw = os.getenv("RELEASE_TOUR_VERSIONS")
        versions = (
            tuple(v.strip() for v in versions_raw.split(",") if v.strip())
            if versions_raw
            else DEFAULT_VERSIONS
        )

        return cls(
            api_url=os.getenv("RELEASE_TOUR_API_URL", DEFAULT_API_URL).rstrip("/"),
            catalog_timeout=float(os.getenv("RELEASE_TOUR_CATALOG_TIMEOUT", "10")),
            run_timeout=float(os.getenv("RELEASE_TOUR_RUN_TIMEOUT", "30")),
            default_version=os.getenv("RELEASE_TOUR_DEFAULT_VERSION", DEFAULT_VERSION),
            versions=versions,
            language=os.getenv("RELEASE_TOUR_LANGUAGE", DEFAULT_LANGUAGE),
            storage=os.getenv("RELEASE_TOUR_STORAGE", "memory").lower(),
            storage_path=os.getenv("RELEASE_TOUR_STORAGE_PATH", DEFAULT_STORAGE_PATH),
            kv_table=os.getenv("RELEASE_TOUR_KV_TABLE", "kv_store"),
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_key=os.getenv("SUPABASE_KEY"),
        )

    def version_options(self) -> List[Dict[str, str]]:
        """Selector entries, newest first; the first configured version is tagged latest."""
        options = []
        for index, version in enumerate(self.versions):
            label = f"{self.language} {version}"
            tag = "latest" if index == 0 else VERSION_TAGS.get(version)
            if tag:
                label += f" ({tag})"
            options.append({"value": version, "label": label})
        return options
