"""Read-only station id -> display name lookup.

Loaded once per process from a stations map file, then shared. The file maps
canonical station names to their upstream id and reachable destinations:

    {"ANKARA GAR, Ankara": {"id": "98", "destinations": [{"id": "1325", "text": "..."}]}}
"""

import json
import threading
from collections.abc import Mapping
from importlib import resources
from pathlib import Path
from types import MappingProxyType

import structlog

from seatalert.core.config import settings
from seatalert.helpers.formatting import format_station_display_name

logger = structlog.get_logger(__name__)

_directory: "StationDirectory | None" = None
_directory_lock = threading.Lock()


class StationDirectory:
    """Immutable mapping from upstream station id to canonical station name."""

    def __init__(self, names_by_id: Mapping[str, str]) -> None:
        self._names_by_id = MappingProxyType(dict(names_by_id))

    @classmethod
    def from_stations_map(cls, stations_map: Mapping[str, Mapping[str, object]]) -> "StationDirectory":
        """
        Build a directory from the stations map format.

        When two names share an id the first one wins, matching a linear scan
        over the map.
        """
        names_by_id: dict[str, str] = {}
        for name, data in stations_map.items():
            station_id = data.get("id")
            if station_id is None:
                continue
            names_by_id.setdefault(str(station_id), name)
        return cls(names_by_id)

    def __len__(self) -> int:
        return len(self._names_by_id)

    def get_name(self, station_id: str) -> str:
        """Canonical name for a station id, or the id itself if unknown."""
        return self._names_by_id.get(station_id, station_id)

    def display_name(self, station_id: str) -> str:
        """Notification form of a station name (qualifier dropped, capitalised)."""
        return format_station_display_name(self.get_name(station_id))


def load_station_directory(path: Path | None = None) -> StationDirectory:
    """
    Load the station directory from a JSON stations map.

    Args:
        path: File to read; defaults to the stations_map.json shipped with the package

    Raises:
        OSError: If the file cannot be read
        ValueError: If the file is not valid JSON
    """
    if path is None:
        raw = resources.files("seatalert.data").joinpath("stations_map.json").read_text(encoding="utf-8")
        source = "package:stations_map.json"
    else:
        raw = path.read_text(encoding="utf-8")
        source = str(path)

    directory = StationDirectory.from_stations_map(json.loads(raw))
    logger.info("station_directory_loaded", source=source, station_count=len(directory))
    return directory


def get_station_directory() -> StationDirectory:
    """Get the process-wide station directory, loading it on first use."""
    global _directory  # noqa: PLW0603
    if _directory is None:
        with _directory_lock:
            if _directory is None:
                path = Path(settings.STATIONS_FILE) if settings.STATIONS_FILE else None
                _directory = load_station_directory(path)
    return _directory
