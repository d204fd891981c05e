"""Unit tests for event filters and facets."""
import pytest

from processor.filters import (
    active_in_range,
    active_in_year,
    extract_facets,
    filter_events,
    format_event_line,
    year_bounds,
)
from processor.models import Event


def make_event(event_id, person, year, end_year, location='Rome', category='Travel', **kwargs):
    """Create an Event with an interval for filter tests."""
    fields = dict(
        event_id=event_id,
        person=person,
        location=location,
        event_text='',
        year=year,
        display_year=str(year),
        category=category,
        certainty=2,
        references=(),
        reference='',
        lat=0.0,
        lon=0.0,
        end_year=end_year
    )
    fields.update(kwargs)
    return Event(**fields)


@pytest.fixture
def events():
    """Create a small processed dataset."""
    return [
        make_event('e0', 'Paul', 10, 40, location='Tarsus', category='Life'),
        make_event('e1', 'Paul', 40, 45, location='Rome'),
        make_event('e2', 'Peter', 20, 25, location='Rome'),
        make_event('e3', 'Mark', 0, 5, location=''),
    ]


def ids(events):
    return [event.event_id for event in events]


class TestTimeFilters:
    """Test cases for year and range filters."""

    def test_active_in_year_half_open(self, events):
        """Test that the end year is exclusive."""
        assert ids(active_in_year(events, 40)) == ['e1']
        assert ids(active_in_year(events, 39)) == ['e0']

    def test_active_in_range_overlap(self, events):
        """Test intervals overlapping an inclusive range."""
        assert ids(active_in_range(events, 22, 30)) == ['e0', 'e2']
        assert ids(active_in_range(events, 45, 50)) == []

    def test_invalid_range(self, events):
        """Test that a reversed range is rejected."""
        with pytest.raises(ValueError):
            active_in_range(events, 30, 20)


class TestFilterEvents:
    """Test cases for filter_events."""

    def test_no_filters_keeps_everything(self, events):
        """Test that no selection keeps all events."""
        assert ids(filter_events(events)) == ['e0', 'e1', 'e2', 'e3']

    def test_year_keeps_undated_by_default(self, events):
        """Test that undated events bypass the year filter."""
        assert ids(filter_events(events, year=21)) == ['e0', 'e2', 'e3']

    def test_hide_undated(self, events):
        """Test removing undated events."""
        assert ids(filter_events(events, year=21, include_undated=False)) == ['e0', 'e2']

    def test_range_takes_precedence(self, events):
        """Test that year_range wins over year."""
        result = filter_events(events, year=12, year_range=(41, 44), include_undated=False)
        assert ids(result) == ['e1']

    def test_facet_selection(self, events):
        """Test category, location and person selections."""
        assert ids(filter_events(events, people=['Paul'])) == ['e0', 'e1']
        assert ids(filter_events(events, locations=['Rome'])) == ['e1', 'e2']
        assert ids(filter_events(events, categories=['Life'])) == ['e0']

    def test_empty_selection_matches_nothing(self, events):
        """Test that an empty facet selection hides everything."""
        assert filter_events(events, people=[]) == []


class TestFacetsAndBounds:
    """Test cases for facets, year bounds and text export."""

    def test_extract_facets(self, events):
        """Test sorted distinct facet values."""
        facets = extract_facets(events)

        assert facets.categories == ['Life', 'Travel']
        assert facets.locations == ['Rome', 'Tarsus']
        assert facets.people == ['Mark', 'Paul', 'Peter']

    def test_year_bounds_pads_dated_years(self, events):
        """Test slider bounds ignore undated events."""
        assert year_bounds(events) == (5, 45)

    def test_year_bounds_without_dated_events(self):
        """Test that no dated events gives no bounds."""
        assert year_bounds([make_event('e0', 'A', 0, 5)]) is None

    def test_format_event_line(self):
        """Test the plain text line format."""
        event = make_event(
            'e0', 'Paul', 62, 67,
            location='Rome',
            event_text='Imprisoned',
            display_year='ca. 62',
            certainty=1,
            references=('https://a.org', 'https://b.org')
        )

        line = format_event_line(event)

        assert line == (
            "[ca. 62] Paul: Imprisoned (Rome) | Certainty: Fact "
            "| Refs: https://a.org, https://b.org"
        )

    def test_format_event_line_unknown_location(self):
        """Test the placeholder for events without a location."""
        line = format_event_line(make_event('e0', 'Mark', 0, 5, location='', certainty=4))
        assert '(Unknown Location) | Certainty: Unknown' in line
        assert 'Refs' not in line
