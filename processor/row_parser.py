"""Row parser converting raw tabular records into Event objects."""
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence

from processor.location_resolver import LocationResolver
from processor.models import (
    DEFAULT_CATEGORY,
    DEFAULT_CERTAINTY,
    CertaintyLevel,
    Event,
)

logger = logging.getLogger(__name__)

# Accepted column names per logical field, in priority order
FIELD_ALIASES: Dict[str, Sequence[str]] = {
    'person': ('Person',),
    'location': ('Location',),
    'date': ('Date', 'Year'),
    'event': ('Event', 'Activity/Event'),
    'category': ('Category',),
    'certainty': ('Certainty',),
    'reference': ('Reference',),
    'latitude': ('Latitude',),
    'longitude': ('Longitude',),
}

URL_SCHEMES = ('http://', 'https://')

_YEAR_PATTERN = re.compile(r'-?\d+')
_LEADING_INT_PATTERN = re.compile(r'^\s*[+-]?\d+')
_LEADING_DASH_PATTERN = re.compile(r'^[-\s]+')


def get_row_value(row: Mapping[str, Any], aliases: Sequence[str], strip: bool = True) -> str:
    """
    Return the first non-empty value among the given column aliases.

    Args:
        row: Raw record keyed by column name
        aliases: Accepted column names in priority order
        strip: Whether to strip surrounding whitespace from the value

    Returns:
        First non-blank value, or '' if no alias holds a value
    """
    for alias in aliases:
        value = row.get(alias)
        if value is None:
            continue
        text = str(value)
        if text.strip():
            return text.strip() if strip else text
    return ''


def extract_year(date_str: str) -> int:
    """
    Extract the first signed integer from a free-text date.

    Returns 0 when the string holds no digits or the number is too long
    to convert.
    """
    match = _YEAR_PATTERN.search(date_str or '')
    if not match:
        return 0
    try:
        return int(match.group(0))
    except ValueError:
        logger.warning(f"Unparseable year in date '{date_str[:40]}'; treating as undated")
        return 0


def parse_certainty(value: Any) -> int:
    """Parse a certainty level, defaulting to the Assumed tier."""
    # Leading integer, so "3.0" and "3 - Guess" read as 3
    match = _LEADING_INT_PATTERN.match('' if value is None else str(value))
    if not match:
        return int(DEFAULT_CERTAINTY)
    try:
        certainty = int(match.group(0))
    except ValueError:
        return int(DEFAULT_CERTAINTY)

    if certainty < CertaintyLevel.FACT or certainty > CertaintyLevel.UNKNOWN:
        return int(DEFAULT_CERTAINTY)
    return certainty


def parse_references(text: str) -> List[str]:
    """
    Split a semicolon-separated reference field into URLs.

    Args:
        text: Raw reference text (e.g. "example.com/a; - http://b.com")

    Returns:
        List of cleaned references in input order
    """
    references = []
    for piece in (text or '').split(';'):
        clean = _LEADING_DASH_PATTERN.sub('', piece.strip())
        if not clean:
            continue
        if '.' in clean and not clean.lower().startswith(URL_SCHEMES):
            clean = 'https://' + clean
        references.append(clean)
    return references


class RowParser:
    """Parser for raw timeline rows."""

    def __init__(self, resolver: LocationResolver):
        """
        Initialize the row parser.

        Args:
            resolver: Location resolver used for coordinates
        """
        self.resolver = resolver

    def parse_row(self, row: Mapping[str, Any], index: int) -> Optional[Event]:
        """
        Convert one raw row into an Event.

        Args:
            row: Raw record keyed by column name
            index: Position of the row in the input, used for the event id

        Returns:
            Event object, or None if the row has no person
        """
        person = get_row_value(row, FIELD_ALIASES['person'])
        if not person:
            logger.debug(f"Dropping row {index}: missing person")
            return None

        location = get_row_value(row, FIELD_ALIASES['location'])
        date_str = get_row_value(row, FIELD_ALIASES['date'], strip=False)
        reference = get_row_value(row, FIELD_ALIASES['reference'])

        coordinates = self.resolver.resolve(
            location,
            explicit_lat=get_row_value(row, FIELD_ALIASES['latitude']),
            explicit_lon=get_row_value(row, FIELD_ALIASES['longitude']),
            person=person
        )

        return Event(
            event_id=f"evt-{index}",
            person=person,
            location=location,
            event_text=get_row_value(row, FIELD_ALIASES['event']),
            year=extract_year(date_str),
            display_year=date_str,
            category=get_row_value(row, FIELD_ALIASES['category']) or DEFAULT_CATEGORY,
            certainty=parse_certainty(get_row_value(row, FIELD_ALIASES['certainty'])),
            references=tuple(parse_references(reference)),
            reference=reference,
            lat=coordinates.lat,
            lon=coordinates.lon
        )
