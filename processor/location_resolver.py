"""Static location lookup for timeline events."""
import logging
import math
from typing import Any, Iterable, Optional, Set

from processor.models import Coordinates, LocationTable

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_NAME = 'Jerusalem'
DEFAULT_FALLBACK_COORDINATES = Coordinates(lat=31.7683, lon=35.2137)


class LocationTableError(ValueError):
    """Raised when location table records are malformed."""


def to_float(value: Any) -> Optional[float]:
    """
    Convert a cell value to a finite float.

    Args:
        value: Raw value (string, number or None)

    Returns:
        Float value, or None if the value is blank or not numeric
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def build_location_table(records: Iterable[Any]) -> LocationTable:
    """
    Build a name -> coordinates lookup from location records.

    Args:
        records: Sequence of mappings with 'name', 'lat' and 'lon' keys

    Returns:
        LocationTable keyed by place name

    Raises:
        LocationTableError: If the payload or any record is malformed
    """
    if not isinstance(records, list):
        raise LocationTableError(
            f"Location table must be a list of records, got {type(records).__name__}"
        )

    table: LocationTable = {}
    for position, record in enumerate(records):
        if not isinstance(record, dict):
            raise LocationTableError(f"Location record {position} is not an object")

        name = record.get('name')
        if not isinstance(name, str) or not name.strip():
            raise LocationTableError(f"Location record {position} is missing a name")

        lat = to_float(record.get('lat'))
        lon = to_float(record.get('lon'))
        if lat is None or lon is None:
            raise LocationTableError(
                f"Location record '{name}' has invalid coordinates"
            )

        table[name.strip()] = Coordinates(lat=lat, lon=lon)

    logger.info(f"Built location table with {len(table)} entries")
    return table


class LocationResolver:
    """Resolver mapping place names to coordinates via a static table."""

    def __init__(
        self,
        table: LocationTable,
        fallback_name: str = DEFAULT_FALLBACK_NAME,
        fallback: Coordinates = DEFAULT_FALLBACK_COORDINATES
    ):
        """
        Initialize the resolver.

        Args:
            table: Static name -> coordinates lookup
            fallback_name: Table entry used for unresolved locations
            fallback: Coordinates used when the fallback entry is absent
        """
        self.table = table
        self.fallback_name = fallback_name
        self.fallback = fallback
        self.unresolved: Set[str] = set()

    @property
    def fallback_coordinates(self) -> Coordinates:
        return self.table.get(self.fallback_name, self.fallback)

    def resolve(
        self,
        raw_location_name: str,
        explicit_lat: Any = None,
        explicit_lon: Any = None,
        person: Optional[str] = None
    ) -> Coordinates:
        """
        Resolve coordinates for an event location.

        Explicit coordinates win when both are numeric, then the lookup
        table, then the fallback location. Never raises.

        Args:
            raw_location_name: Free-text place name
            explicit_lat: Optional latitude override
            explicit_lon: Optional longitude override
            person: Person name, used only for the diagnostic message

        Returns:
            Coordinates for the event
        """
        lat = to_float(explicit_lat)
        lon = to_float(explicit_lon)
        if lat is not None and lon is not None:
            return Coordinates(lat=lat, lon=lon)

        name = (raw_location_name or '').strip()
        if name in self.table:
            return self.table[name]

        suffix = f" for {person}" if person else ''
        logger.warning(
            f"Location not found: '{name}'{suffix}. "
            f"Defaulting to {self.fallback_name}."
        )
        self.unresolved.add(name)
        return self.fallback_coordinates
