"""Unit tests for spatial clustering and projection."""
import math

import pytest

from clustering.projection import WebMercatorProjection
from clustering.spatial_clustering import (
    cluster_events,
    layout_markers,
    orbit_positions,
    pixel_distance,
)
from processor.models import Cluster, Event, MarkerPosition


def make_event(event_id, lat, lon):
    """Create an Event at the given coordinates."""
    return Event(
        event_id=event_id,
        person=event_id,
        location='',
        event_text='',
        year=10,
        display_year='10',
        category='Uncategorized',
        certainty=2,
        references=(),
        reference='',
        lat=lat,
        lon=lon,
        end_year=15
    )


def project(lat, lon):
    """Flat test projection: one degree is one pixel, y grows downward."""
    return lon, -lat


def unproject(x, y):
    return -y, x


def member_ids(cluster):
    return [event.event_id for event in cluster.events]


class TestClusterEvents:
    """Test cases for cluster_events."""

    def test_nearby_events_merge(self):
        """Test that events inside the radius share a cluster."""
        events = [
            make_event('a', 0, 0),
            make_event('b', 0, 30),
            make_event('c', 0, 200),
        ]

        clusters = cluster_events(events, project, radius_px=50)

        assert [member_ids(c) for c in clusters] == [['a', 'b'], ['c']]

    def test_center_anchored_to_first_member(self):
        """Test that joining members never move the anchor."""
        events = [
            make_event('a', 0, 0),
            make_event('b', 0, 40),
            make_event('c', 0, 80),
        ]

        clusters = cluster_events(events, project, radius_px=50)

        assert [member_ids(c) for c in clusters] == [['a', 'b'], ['c']]
        assert clusters[0].center_point == (0, 0)
        assert (clusters[0].center_lat, clusters[0].center_lon) == (0, 0)
        assert clusters[1].center_point == (80, 0)

    def test_radius_is_strict(self):
        """Test that a distance equal to the radius starts a new cluster."""
        events = [make_event('a', 0, 0), make_event('b', 0, 50)]
        assert len(cluster_events(events, project, radius_px=50)) == 2

    def test_joins_first_matching_cluster(self):
        """Test that ties go to the earliest cluster."""
        events = [
            make_event('a', 0, 0),
            make_event('b', 0, 60),
            make_event('c', 0, 30),
        ]

        clusters = cluster_events(events, project, radius_px=50)

        assert [member_ids(c) for c in clusters] == [['a', 'c'], ['b']]

    def test_order_sensitive(self):
        """Test that input order changes the grouping."""
        a, b, c = make_event('a', 0, 0), make_event('b', 0, 40), make_event('c', 0, 80)

        forward = cluster_events([a, b, c], project, radius_px=50)
        middle_first = cluster_events([b, a, c], project, radius_px=50)

        assert len(forward) == 2
        assert [member_ids(cl) for cl in middle_first] == [['b', 'a', 'c']]

    def test_radius_law(self):
        """Test that every member lies within the radius of its anchor."""
        events = [make_event(str(i), (i * 7) % 23, (i * 13) % 97) for i in range(40)]

        clusters = cluster_events(events, project, radius_px=20)

        for cluster in clusters:
            for event in cluster.events:
                assert pixel_distance(cluster.center_point, project(event.lat, event.lon)) < 20
        anchors = [c.center_point for c in clusters]
        for i, anchor in enumerate(anchors):
            for earlier in anchors[:i]:
                assert pixel_distance(earlier, anchor) >= 20

    def test_idempotent(self):
        """Test that repeated calls give identical clusters."""
        events = [make_event(str(i), i % 5, i * 11) for i in range(20)]

        assert cluster_events(events, project, 30) == cluster_events(events, project, 30)

    def test_empty_input(self):
        """Test clustering no events."""
        assert cluster_events([], project) == []

    def test_invalid_radius(self):
        """Test that a non-positive radius is rejected."""
        with pytest.raises(ValueError):
            cluster_events([make_event('a', 0, 0)], project, radius_px=0)


class TestOrbitPositions:
    """Test cases for orbit_positions and layout_markers."""

    def test_single_member_stays_at_center(self):
        """Test that a lone event is not offset."""
        cluster = cluster_events([make_event('a', 5, 5)], project)[0]

        positions = orbit_positions(cluster, project, unproject)

        assert positions == [MarkerPosition(event=cluster.events[0], lat=5, lon=5)]

    def test_members_spread_on_circle(self):
        """Test angle (i / n) * 2*pi at the orbit radius."""
        events = [make_event('a', 0, 0), make_event('b', 0, 1), make_event('c', 0, 2), make_event('d', 1, 0)]
        cluster = cluster_events(events, project, radius_px=50)[0]

        positions = orbit_positions(cluster, project, unproject, pixel_radius=45)

        expected = [(45, 0), (0, 45), (-45, 0), (0, -45)]
        for position, (dx, dy) in zip(positions, expected):
            x, y = project(position.lat, position.lon)
            assert x == pytest.approx(dx, abs=1e-9)
            assert y == pytest.approx(dy, abs=1e-9)
        assert [p.event.event_id for p in positions] == ['a', 'b', 'c', 'd']

    def test_orbit_distance_with_mercator(self):
        """Test the orbit radius holds in Web Mercator pixel space."""
        projection = WebMercatorProjection(zoom=8)
        events = [make_event('a', 31.77, 35.21), make_event('b', 31.78, 35.22)]
        cluster = cluster_events(events, projection.project)[0]

        positions = orbit_positions(cluster, projection.project, projection.unproject)

        center = projection.project(cluster.center_lat, cluster.center_lon)
        for position in positions:
            point = projection.project(position.lat, position.lon)
            assert pixel_distance(center, point) == pytest.approx(45.0, rel=1e-6)

    def test_layout_collapses_clusters(self):
        """Test that multi-member clusters stay collapsed unless spread."""
        events = [make_event('a', 0, 0), make_event('b', 0, 10), make_event('c', 0, 300)]

        collapsed = layout_markers(events, project, unproject)
        spread = layout_markers(events, project, unproject, spread=True)

        assert isinstance(collapsed[0], Cluster) and collapsed[0].count == 2
        assert isinstance(collapsed[1], MarkerPosition)
        assert len(spread) == 3
        assert all(isinstance(marker, MarkerPosition) for marker in spread)

    def test_events_not_mutated(self):
        """Test that clustering and orbiting leave events unchanged."""
        events = [make_event('a', 0, 0), make_event('b', 0, 10)]
        before = list(events)

        layout_markers(events, project, unproject, spread=True)

        assert events == before


class TestWebMercatorProjection:
    """Test cases for WebMercatorProjection."""

    def test_origin_maps_to_world_center(self):
        """Test that (0, 0) lands in the middle of the world."""
        projection = WebMercatorProjection(zoom=0)
        x, y = projection.project(0, 0)
        assert (x, y) == pytest.approx((128.0, 128.0))

    def test_zoom_doubles_pixel_distances(self):
        """Test that each zoom level doubles pixel distance."""
        low, high = WebMercatorProjection(zoom=5), WebMercatorProjection(zoom=6)
        d_low = pixel_distance(low.project(31, 35), low.project(32, 36))
        d_high = pixel_distance(high.project(31, 35), high.project(32, 36))
        assert d_high == pytest.approx(2 * d_low)

    def test_round_trip(self):
        """Test that unproject inverts project."""
        projection = WebMercatorProjection(zoom=6)
        lat, lon = projection.unproject(*projection.project(41.9028, 12.4964))
        assert lat == pytest.approx(41.9028)
        assert lon == pytest.approx(12.4964)

    def test_latitude_clamped(self):
        """Test that polar latitudes are clamped."""
        projection = WebMercatorProjection(zoom=0)
        _, y = projection.project(90, 0)
        assert math.isfinite(y)
        assert y == pytest.approx(0.0, abs=1e-6)
