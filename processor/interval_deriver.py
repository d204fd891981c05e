"""Derive per-person event intervals."""
import logging
from dataclasses import replace
from typing import Dict, Iterable, List

from processor.models import Event

logger = logging.getLogger(__name__)

DEFAULT_SPAN = 5


def group_by_person(events: Iterable[Event]) -> Dict[str, List[Event]]:
    """
    Group events by person, keyed in order of first appearance.

    Args:
        events: Events in ingestion order

    Returns:
        Dictionary mapping person to that person's events
    """
    groups: Dict[str, List[Event]] = {}
    for event in events:
        groups.setdefault(event.person, []).append(event)
    return groups


def _bound_group(group: List[Event], default_span: int) -> List[Event]:
    ordered = sorted(group, key=lambda event: event.year)
    bounded = []
    for position, event in enumerate(ordered):
        if position < len(ordered) - 1:
            # Same-year successors still leave the event one year long
            end_year = max(ordered[position + 1].year, event.year + 1)
        else:
            end_year = event.year + default_span
        bounded.append(replace(event, end_year=end_year))
    return bounded


def derive_intervals(events: Iterable[Event], default_span: int = DEFAULT_SPAN) -> List[Event]:
    """
    Assign each event an end year bounded by the person's next event.

    An event lasts until the next chronological event for the same person;
    the last (or only) event lasts default_span years. Persons are emitted
    in order of first appearance, each sorted by year (stable).

    Args:
        events: Parsed events without end years
        default_span: Duration in years of each person's final event

    Returns:
        New list of events with end_year populated

    Raises:
        ValueError: If default_span is less than 1
    """
    if default_span < 1:
        raise ValueError(f"default_span must be at least 1, got {default_span}")

    groups = group_by_person(events)
    derived: List[Event] = []
    for group in groups.values():
        derived.extend(_bound_group(group, default_span))

    logger.info(
        f"Derived intervals for {len(derived)} events across {len(groups)} people"
    )
    return derived
