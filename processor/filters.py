"""Year and facet filters over processed events."""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from processor.models import Event

YEAR_PADDING = 5


@dataclass(frozen=True)
class Facets:
    """Distinct values offered as filter choices."""
    categories: List[str]
    locations: List[str]
    people: List[str]


def _end_year(event: Event) -> int:
    return event.end_year if event.end_year is not None else event.year + 1


def active_in_year(events: Iterable[Event], year: int) -> List[Event]:
    """Return events whose interval contains the given year."""
    return [event for event in events if event.year <= year < _end_year(event)]


def active_in_range(events: Iterable[Event], start: int, end: int) -> List[Event]:
    """
    Return events whose interval overlaps the inclusive range [start, end].

    Raises:
        ValueError: If start is after end
    """
    if start > end:
        raise ValueError(f"Invalid year range: {start} > {end}")
    return [
        event for event in events
        if event.year <= end and _end_year(event) > start
    ]


def filter_events(
    events: Iterable[Event],
    *,
    year: Optional[int] = None,
    year_range: Optional[Tuple[int, int]] = None,
    categories: Optional[Iterable[str]] = None,
    locations: Optional[Iterable[str]] = None,
    people: Optional[Iterable[str]] = None,
    include_undated: bool = True
) -> List[Event]:
    """
    Apply the time and facet filters used by the map view.

    A facet selection of None means "all values"; an empty selection
    matches nothing. year_range takes precedence over year. Undated events
    skip the time filter when include_undated is set and are removed
    otherwise.

    Args:
        events: Processed events
        year: Point-in-time year
        year_range: Inclusive (start, end) range
        categories: Selected categories
        locations: Selected locations
        people: Selected people
        include_undated: Whether events with year 0 are kept

    Returns:
        Events passing every filter, in input order
    """
    selected = list(events)

    dated = [event for event in selected if event.is_dated]
    undated = [event for event in selected if not event.is_dated]

    if year_range is not None:
        dated = active_in_range(dated, year_range[0], year_range[1])
    elif year is not None:
        dated = active_in_year(dated, year)

    kept_ids = {event.event_id for event in dated}
    if include_undated:
        kept_ids.update(event.event_id for event in undated)
    selected = [event for event in selected if event.event_id in kept_ids]

    if categories is not None:
        category_set = set(categories)
        selected = [event for event in selected if event.category in category_set]
    if locations is not None:
        location_set = set(locations)
        selected = [event for event in selected if event.location in location_set]
    if people is not None:
        person_set = set(people)
        selected = [event for event in selected if event.person in person_set]

    return selected


def extract_facets(events: Iterable[Event]) -> Facets:
    """Collect sorted distinct categories, locations and people."""
    events = list(events)
    return Facets(
        categories=sorted({event.category for event in events}),
        locations=sorted({event.location for event in events if event.location}),
        people=sorted({event.person for event in events})
    )


def year_bounds(
    events: Iterable[Event],
    padding: int = YEAR_PADDING
) -> Optional[Tuple[int, int]]:
    """
    Compute the slider range over dated events.

    Returns:
        (min year - padding, max year + padding), or None without dated events
    """
    years = [event.year for event in events if event.is_dated]
    if not years:
        return None
    return min(years) - padding, max(years) + padding


def format_event_line(event: Event) -> str:
    """Format an event as a single line of plain text."""
    line = (
        f"[{event.display_year}] {event.person}: {event.event_text} "
        f"({event.location or 'Unknown Location'}) | "
        f"Certainty: {event.certainty_label}"
    )
    if event.references:
        line += f" | Refs: {', '.join(event.references)}"
    return line


def format_events(events: Iterable[Event]) -> str:
    return '\n'.join(format_event_line(event) for event in events)
