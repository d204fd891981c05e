"""Web Mercator viewport projection (EPSG:3857 pixel space)."""
import math
from typing import Tuple

MAX_LATITUDE = 85.0511287798
TILE_SIZE = 256


class WebMercatorProjection:
    """Projects coordinates to global pixel positions at a zoom level."""

    def __init__(self, zoom: float, tile_size: int = TILE_SIZE):
        """
        Initialize the projection.

        Args:
            zoom: Map zoom level
            tile_size: Tile edge length in pixels (default: 256)
        """
        self.zoom = zoom
        self.tile_size = tile_size

    @property
    def scale(self) -> float:
        """World width in pixels at this zoom."""
        return self.tile_size * (2 ** self.zoom)

    def project(self, lat: float, lon: float) -> Tuple[float, float]:
        """Convert (lat, lon) in degrees to pixel (x, y)."""
        lat = max(-MAX_LATITUDE, min(MAX_LATITUDE, lat))
        x = (lon + 180.0) / 360.0 * self.scale
        merc_y = math.log(math.tan(math.pi / 4.0 + math.radians(lat) / 2.0))
        y = (1.0 - merc_y / math.pi) / 2.0 * self.scale
        return x, y

    def unproject(self, x: float, y: float) -> Tuple[float, float]:
        """Convert pixel (x, y) back to (lat, lon) in degrees."""
        lon = x / self.scale * 360.0 - 180.0
        merc_y = math.pi * (1.0 - 2.0 * y / self.scale)
        lat = math.degrees(math.atan(math.sinh(merc_y)))
        return lat, lon
