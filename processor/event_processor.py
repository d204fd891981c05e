"""Event processor turning raw timeline rows into bounded events."""
import logging
from typing import Any, List, Mapping, Sequence

from processor.interval_deriver import DEFAULT_SPAN, derive_intervals
from processor.location_resolver import (
    DEFAULT_FALLBACK_COORDINATES,
    DEFAULT_FALLBACK_NAME,
    LocationResolver,
)
from processor.models import Coordinates, Event, LoadResult, LocationTable
from processor.row_parser import RowParser

logger = logging.getLogger(__name__)


class EventProcessor:
    """Processor for normalizing timeline rows and deriving intervals."""

    def __init__(
        self,
        default_span: int = DEFAULT_SPAN,
        fallback_name: str = DEFAULT_FALLBACK_NAME,
        fallback: Coordinates = DEFAULT_FALLBACK_COORDINATES
    ):
        """
        Initialize the processor.

        Args:
            default_span: Duration in years of each person's last event
            fallback_name: Location used when a place cannot be resolved
            fallback: Coordinates used when the fallback name is not in the table
        """
        self.default_span = default_span
        self.fallback_name = fallback_name
        self.fallback = fallback

    def process(
        self,
        raw_rows: Sequence[Mapping[str, Any]],
        location_table: LocationTable
    ) -> List[Event]:
        """
        Process raw rows into the final event collection.

        Args:
            raw_rows: Records keyed by column name
            location_table: Static name -> coordinates lookup

        Returns:
            List of events with end years, grouped by person
        """
        return self.process_with_report(raw_rows, location_table).events

    def process_with_report(
        self,
        raw_rows: Sequence[Mapping[str, Any]],
        location_table: LocationTable
    ) -> LoadResult:
        """
        Process raw rows and report what was dropped or defaulted.

        Args:
            raw_rows: Records keyed by column name
            location_table: Static name -> coordinates lookup

        Returns:
            LoadResult with events and processing statistics
        """
        resolver = LocationResolver(
            location_table,
            fallback_name=self.fallback_name,
            fallback=self.fallback
        )
        parser = RowParser(resolver)

        parsed_events = []
        for index, row in enumerate(raw_rows):
            event = parser.parse_row(row, index)
            if event:
                parsed_events.append(event)

        events = derive_intervals(parsed_events, default_span=self.default_span)
        dropped = len(raw_rows) - len(parsed_events)

        logger.info(
            f"Processed {len(events)} valid events out of "
            f"{len(raw_rows)} total rows ({dropped} dropped)"
        )
        if resolver.unresolved:
            logger.warning(
                f"{len(resolver.unresolved)} locations fell back to "
                f"{self.fallback_name}"
            )

        return LoadResult(
            events=events,
            raw_row_count=len(raw_rows),
            dropped_rows=dropped,
            unresolved_locations=sorted(resolver.unresolved)
        )


def process(
    raw_rows: Sequence[Mapping[str, Any]],
    location_table: LocationTable
) -> List[Event]:
    """Process raw rows with the default settings."""
    return EventProcessor().process(raw_rows, location_table)
