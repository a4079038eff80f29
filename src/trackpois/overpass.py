from typing import Any, Dict, List, Sequence
import logging

import requests

from .candidate import Candidate
from .config import DEFAULT_API_TIMEOUT, TrackPoisConfig
from .errors import InvalidGeometryError
from .geometry import BoundingBox, GeoPoint

OVERPASS_API_URL = "https://overpass-api.de/api/interpreter"

# POI families counted around a single point
AROUND_POI_KEYS = ["amenity", "shop", "tourism", "leisure"]

logger = logging.getLogger(__name__)


def build_poi_query(
    bbox: BoundingBox,
    filters: Sequence[str],
    timeout: int = DEFAULT_API_TIMEOUT,
) -> str:
    """Build the Overpass QL query for POIs inside a bounding box."""
    south, west, north, east = bbox.as_south_west_north_east()
    statements = "".join(f"  {poi_filter};\n" for poi_filter in filters)

    return (
        f"[out:json][timeout:{timeout}][bbox:{south},{west},{north},{east}];\n"
        f"(\n"
        f"{statements}"
        f");\n"
        f"out center;\n"
    )


def build_around_count_query(
    point: GeoPoint, radius: float, timeout: int = DEFAULT_API_TIMEOUT
) -> str:
    """Build the Overpass QL query counting POIs within radius meters of a point."""
    around = f"(around:{radius},{point.latitude},{point.longitude})"
    statements = "".join(f'  node["{key}"]{around};\n' for key in AROUND_POI_KEYS)

    return f"[out:json][timeout:{timeout}];\n(\n{statements});\nout count;\n"


def _post_query(query: str, timeout: int) -> List[Dict[str, Any]]:
    """Send a query to the Overpass API and return its elements.

    Raises:
        requests.exceptions.RequestException: On network or HTTP errors
    """
    logger.debug(f"Overpass query:\n{query}")
    response = requests.post(OVERPASS_API_URL, data=query.strip(), timeout=timeout)
    response.raise_for_status()
    return response.json().get("elements", [])


def query_overpass_pois(bbox: BoundingBox, config: TrackPoisConfig) -> List[Candidate]:
    """Query Overpass API for points of interest within a bounding box.

    A single request is made; failures are not retried.

    Returns:
        List of candidates in the order Overpass returned them

    Raises:
        requests.exceptions.RequestException: On network or HTTP errors
    """
    query = build_poi_query(bbox, config.poi_filters, config.timeout)
    elements = _post_query(query, config.timeout)
    candidates = parse_poi_elements(elements)
    logger.debug(f"Overpass query returned {len(elements)} elements, {len(candidates)} usable")
    return candidates


def query_overpass_poi_count(
    point: GeoPoint, radius: float, config: TrackPoisConfig
) -> int:
    """Count amenity, shop, tourism and leisure nodes within radius meters of a point.

    Raises:
        requests.exceptions.RequestException: On network or HTTP errors
    """
    query = build_around_count_query(point, radius, config.timeout)
    elements = _post_query(query, config.timeout)

    for element in elements:
        if element.get("type") == "count":
            return int(element.get("tags", {}).get("total", 0))

    # Servers that ignore "out count" return the elements themselves
    return len(elements)


def _element_position(element: Dict[str, Any]) -> GeoPoint:
    """Position of a node, or the center of a way/relation returned with "out center"."""
    source = element if "lat" in element else element.get("center", {})
    try:
        return GeoPoint(latitude=float(source["lat"]), longitude=float(source["lon"]))
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidGeometryError(f"element has no usable position: {e}") from e


def parse_poi_elements(elements: List[Dict[str, Any]]) -> List[Candidate]:
    """Convert raw Overpass elements into candidates.

    Elements without a usable position are skipped with a warning.

    Args:
        elements: Raw elements from Overpass response

    Returns:
        List of candidates, in element order
    """
    candidates = []

    for element in elements:
        if element.get("type") == "count":
            continue
        try:
            external_id = int(element["id"])
            position = _element_position(element)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping {element.get('type')} {element.get('id')}: {e!r}")
            continue

        tags = {str(k): str(v) for k, v in (element.get("tags") or {}).items()}
        candidates.append(
            Candidate(
                external_id=external_id,
                kind=str(element.get("type", "node")),
                position=position,
                tags=tags,
                name=tags.get("name"),
            )
        )

    return candidates
