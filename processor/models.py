"""Data models for timeline event processing."""
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Optional, Tuple


class CertaintyLevel(IntEnum):
    """Confidence tier attached to an event."""
    FACT = 1
    ASSUMED = 2
    GUESS = 3
    UNKNOWN = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()


DEFAULT_CERTAINTY = CertaintyLevel.ASSUMED
DEFAULT_CATEGORY = 'Uncategorized'


@dataclass(frozen=True)
class Coordinates:
    """Geographic point in degrees."""
    lat: float
    lon: float


LocationTable = Dict[str, Coordinates]


@dataclass(frozen=True)
class Event:
    """Normalized timeline event for one person."""
    event_id: str
    person: str
    location: str
    event_text: str
    year: int
    display_year: str
    category: str
    certainty: int
    references: Tuple[str, ...]
    reference: str
    lat: float
    lon: float
    end_year: Optional[int] = None

    @property
    def is_dated(self) -> bool:
        return self.year != 0

    @property
    def certainty_label(self) -> str:
        try:
            return CertaintyLevel(self.certainty).label
        except ValueError:
            return CertaintyLevel.UNKNOWN.label


@dataclass(frozen=True)
class Cluster:
    """Events whose projected positions fall within the merge radius."""
    center_lat: float
    center_lon: float
    center_point: Tuple[float, float]
    events: Tuple[Event, ...]

    @property
    def count(self) -> int:
        return len(self.events)

    @property
    def is_collapsed(self) -> bool:
        """Clusters of more than one event render as a count bubble."""
        return self.count > 1


@dataclass(frozen=True)
class MarkerPosition:
    """Display position of one event after fan-out."""
    event: Event
    lat: float
    lon: float


@dataclass
class LoadResult:
    """Result of a dataset load."""
    events: List[Event]
    raw_row_count: int
    dropped_rows: int
    unresolved_locations: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.errors
