"""Greedy screen-space clustering of visible timeline events."""
import logging
import math
from typing import Callable, Iterable, List, Tuple, Union

from processor.models import Cluster, Event, MarkerPosition

logger = logging.getLogger(__name__)

Point = Tuple[float, float]
ProjectFn = Callable[[float, float], Point]
UnprojectFn = Callable[[float, float], Tuple[float, float]]

DEFAULT_RADIUS_PX = 50.0
DEFAULT_ORBIT_RADIUS_PX = 45.0


def pixel_distance(a: Point, b: Point) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def cluster_events(
    events: Iterable[Event],
    project: ProjectFn,
    radius_px: float = DEFAULT_RADIUS_PX
) -> List[Cluster]:
    """
    Group events whose projected positions lie within radius_px.

    Single greedy pass in input order: each event joins the first existing
    cluster whose anchor is closer than radius_px, otherwise it anchors a
    new cluster. Anchors are the first member's projected point and do not
    move as members join, so results depend on input order.

    Args:
        events: Currently visible events
        project: Maps (lat, lon) to screen pixel (x, y)
        radius_px: Merge radius in pixels

    Returns:
        Clusters in creation order

    Raises:
        ValueError: If radius_px is not positive
    """
    if radius_px <= 0:
        raise ValueError(f"radius_px must be positive, got {radius_px}")

    # Each entry: (anchor point, anchor event, members)
    accumulator: List[Tuple[Point, Event, List[Event]]] = []
    for event in events:
        point = project(event.lat, event.lon)
        for anchor, _, members in accumulator:
            if pixel_distance(anchor, point) < radius_px:
                members.append(event)
                break
        else:
            accumulator.append((point, event, [event]))

    clusters = [
        Cluster(
            center_lat=anchor_event.lat,
            center_lon=anchor_event.lon,
            center_point=anchor,
            events=tuple(members)
        )
        for anchor, anchor_event, members in accumulator
    ]
    logger.debug(f"Clustered events into {len(clusters)} groups")
    return clusters


def orbit_positions(
    cluster: Cluster,
    project: ProjectFn,
    unproject: UnprojectFn,
    pixel_radius: float = DEFAULT_ORBIT_RADIUS_PX
) -> List[MarkerPosition]:
    """
    Fan cluster members out on a circle around the cluster center.

    Member i of n sits at angle (i / n) * 2*pi, pixel_radius pixels from
    the center, converted back to geographic coordinates. Positions depend
    on zoom and must be recomputed when it changes.

    Args:
        cluster: Cluster to spread
        project: Maps (lat, lon) to screen pixel (x, y)
        unproject: Maps screen pixel (x, y) back to (lat, lon)
        pixel_radius: Orbit radius in pixels

    Returns:
        One MarkerPosition per member, in member order
    """
    count = cluster.count
    if count <= 1:
        return [
            MarkerPosition(event=event, lat=cluster.center_lat, lon=cluster.center_lon)
            for event in cluster.events
        ]

    center_x, center_y = project(cluster.center_lat, cluster.center_lon)
    positions = []
    for index, event in enumerate(cluster.events):
        angle = (index / count) * 2 * math.pi
        lat, lon = unproject(
            center_x + pixel_radius * math.cos(angle),
            center_y + pixel_radius * math.sin(angle)
        )
        positions.append(MarkerPosition(event=event, lat=lat, lon=lon))
    return positions


def layout_markers(
    events: Iterable[Event],
    project: ProjectFn,
    unproject: UnprojectFn,
    radius_px: float = DEFAULT_RADIUS_PX,
    pixel_radius: float = DEFAULT_ORBIT_RADIUS_PX,
    spread: bool = False
) -> List[Union[Cluster, MarkerPosition]]:
    """
    Produce renderable markers for the visible events.

    Collapsed clusters are returned as-is (drawn as count bubbles) unless
    spread is set, in which case every member gets an orbit position.
    Single-event clusters always yield their one MarkerPosition.
    """
    markers: List[Union[Cluster, MarkerPosition]] = []
    for cluster in cluster_events(events, project, radius_px):
        if cluster.is_collapsed and not spread:
            markers.append(cluster)
        else:
            markers.extend(orbit_positions(cluster, project, unproject, pixel_radius))
    return markers
