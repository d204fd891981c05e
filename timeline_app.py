"""Timeline map data loader: entry point and CLI."""
import argparse
import json
import logging
import os
import sys
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

from clustering.projection import WebMercatorProjection
from clustering.spatial_clustering import cluster_events, orbit_positions
from processor.event_processor import EventProcessor
from processor.filters import extract_facets, filter_events, format_events, year_bounds
from processor.models import Cluster, Event
from sources.dataset_loader import DatasetLoader


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


@dataclass
class TimelineConfig:
    """Runtime settings, read from environment variables."""
    log_level: str = 'INFO'
    timeout_seconds: int = 30
    default_span: int = 5
    fallback_location: str = 'Jerusalem'
    cluster_radius_px: float = 50.0
    orbit_radius_px: float = 45.0
    map_zoom: float = 6.0

    @classmethod
    def from_env(cls) -> 'TimelineConfig':
        return cls(
            log_level=os.environ.get('LOG_LEVEL', 'INFO'),
            timeout_seconds=int(os.environ.get('TIMEOUT_SECONDS', '30')),
            default_span=int(os.environ.get('DEFAULT_SPAN', '5')),
            fallback_location=os.environ.get('FALLBACK_LOCATION', 'Jerusalem'),
            cluster_radius_px=float(os.environ.get('CLUSTER_RADIUS_PX', '50')),
            orbit_radius_px=float(os.environ.get('ORBIT_RADIUS_PX', '45')),
            map_zoom=float(os.environ.get('MAP_ZOOM', '6'))
        )


def event_to_dict(event: Event) -> Dict[str, Any]:
    return {
        'id': event.event_id,
        'person': event.person,
        'location': event.location,
        'event': event.event_text,
        'year': event.year,
        'display_year': event.display_year,
        'end_year': event.end_year,
        'category': event.category,
        'certainty': event.certainty,
        'certainty_label': event.certainty_label,
        'references': list(event.references),
        'lat': event.lat,
        'lon': event.lon
    }


def cluster_to_dict(
    cluster: Cluster,
    projection: WebMercatorProjection,
    orbit_radius_px: float
) -> Dict[str, Any]:
    positions = orbit_positions(
        cluster, projection.project, projection.unproject, orbit_radius_px
    )
    return {
        'center_lat': cluster.center_lat,
        'center_lon': cluster.center_lon,
        'count': cluster.count,
        'collapsed': cluster.is_collapsed,
        'members': [
            {'id': position.event.event_id, 'lat': position.lat, 'lon': position.lon}
            for position in positions
        ]
    }


def _error_response(message: str, error: Exception, duration: float) -> Dict[str, Any]:
    return {
        'statusCode': 500,
        'body': json.dumps({
            'message': message,
            'error': str(error),
            'error_type': type(error).__name__,
            'events': [],
            'duration_seconds': round(duration, 2)
        })
    }


def load_timeline(
    data_source: str,
    locations_source: Optional[str] = None,
    year: Optional[int] = None,
    year_range: Optional[Tuple[int, int]] = None,
    categories: Optional[Iterable[str]] = None,
    locations: Optional[Iterable[str]] = None,
    people: Optional[Iterable[str]] = None,
    include_undated: bool = True,
    config: Optional[TimelineConfig] = None
) -> Dict[str, Any]:
    """
    Load a timeline dataset, filter it and cluster the visible events.

    Args:
        data_source: Timeline CSV (path, URL or s3:// URI)
        locations_source: Location table JSON (path, URL or s3:// URI)
        year: Point-in-time filter year
        year_range: Inclusive (start, end) filter range
        categories: Selected categories (None for all)
        locations: Selected locations (None for all)
        people: Selected people (None for all)
        include_undated: Whether to keep events without a year
        config: Runtime settings (default: read from environment)

    Returns:
        Response dict with statusCode and a JSON body
    """
    config = config or TimelineConfig.from_env()
    logger = logging.getLogger(__name__)
    start_time = time.time()

    logger.info(
        "Timeline load started",
        extra={'data_source': data_source, 'locations_source': locations_source}
    )

    loader = DatasetLoader(timeout=config.timeout_seconds)
    processor = EventProcessor(
        default_span=config.default_span,
        fallback_name=config.fallback_location
    )

    # Acquire the dataset; any failure here is structural
    try:
        if locations_source:
            location_table = loader.load_location_table(locations_source)
        else:
            logger.warning("No location table configured; all locations use the fallback")
            location_table = {}
        raw_rows = loader.load_rows(data_source)
    except Exception as e:
        logger.error(
            f"Failed to load timeline data: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _error_response('Failed to load timeline data', e, time.time() - start_time)

    try:
        result = processor.process_with_report(raw_rows, location_table)
        events = result.events

        visible = filter_events(
            events,
            year=year,
            year_range=year_range,
            categories=categories,
            locations=locations,
            people=people,
            include_undated=include_undated
        )

        projection = WebMercatorProjection(zoom=config.map_zoom)
        clusters = cluster_events(
            visible,
            projection.project,
            radius_px=config.cluster_radius_px
        )
    except Exception as e:
        logger.error(
            f"Timeline processing failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _error_response('Timeline processing failed', e, time.time() - start_time)

    duration = time.time() - start_time
    facets = extract_facets(events)

    logger.info(
        "Timeline load completed successfully",
        extra={
            'duration_seconds': round(duration, 2),
            'events': len(events),
            'visible_events': len(visible),
            'clusters': len(clusters)
        }
    )

    return {
        'statusCode': 200,
        'body': json.dumps({
            'message': 'Timeline loaded successfully',
            'statistics': {
                'raw_rows': result.raw_row_count,
                'dropped_rows': result.dropped_rows,
                'events': len(events),
                'visible_events': len(visible),
                'clusters': len(clusters),
                'duration_seconds': round(duration, 2)
            },
            'year_bounds': year_bounds(events),
            'facets': {
                'categories': facets.categories,
                'locations': facets.locations,
                'people': facets.people
            },
            'unresolved_locations': result.unresolved_locations,
            'events': [event_to_dict(event) for event in visible],
            'text': format_events(visible),
            'clusters': [
                cluster_to_dict(cluster, projection, config.orbit_radius_px)
                for cluster in clusters
            ]
        })
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Load a timeline CSV and print the visible events as JSON.'
    )
    parser.add_argument('data', help='Timeline CSV: path, http(s) URL or s3:// URI')
    parser.add_argument('--locations', help='Location table JSON: path, URL or s3:// URI')
    time_group = parser.add_mutually_exclusive_group()
    time_group.add_argument('--year', type=int, help='Show events active in this year')
    time_group.add_argument(
        '--range', nargs=2, type=int, metavar=('START', 'END'),
        help='Show events overlapping this inclusive year range'
    )
    parser.add_argument('--category', action='append', help='Category filter (repeatable)')
    parser.add_argument('--location', action='append', help='Location filter (repeatable)')
    parser.add_argument('--person', action='append', help='Person filter (repeatable)')
    parser.add_argument('--hide-undated', action='store_true', help='Drop events without a year')
    parser.add_argument('--zoom', type=float, help='Map zoom used for clustering')
    parser.add_argument('--text', action='store_true', help='Print plain text lines instead of JSON')
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.range and args.range[0] > args.range[1]:
        parser.error(f"--range start {args.range[0]} is after end {args.range[1]}")

    config = TimelineConfig.from_env()
    if args.zoom is not None:
        config.map_zoom = args.zoom
    setup_logging(config.log_level)

    response = load_timeline(
        args.data,
        locations_source=args.locations,
        year=args.year,
        year_range=tuple(args.range) if args.range else None,
        categories=args.category,
        locations=args.location,
        people=args.person,
        include_undated=not args.hide_undated,
        config=config
    )

    body = json.loads(response['body'])
    if args.text and response['statusCode'] == 200:
        print(body['text'])
    else:
        print(json.dumps(body, indent=2))
    return 0 if response['statusCode'] == 200 else 1


if __name__ == '__main__':
    sys.exit(main())
