#!/usr/bin/env python3
"""
Track and POI visualization using folium maps.
"""

from typing import List
import logging
import folium
from folium.template import Template

from .config import TrackPoisConfig
from .geometry import GeoPoint, LineStringGeometry, PointGeometry, PolygonGeometry
from .proximity import SelectedCandidate, SelectionResult
from .tracks import Track

logger = logging.getLogger(__name__)

TRACK_COLOR = "#2E86AB"
POI_COLOR = "#D23C4C"


class PoiLegend(folium.MacroElement):
    """Custom legend for the track map with the selection counts."""

    def __init__(self, selection: SelectionResult):
        super().__init__()
        self.selected_count = len(selection)
        self.candidate_count = selection.total_candidates

        self._template = Template(
            """
        {% macro html(this, kwargs) %}
        <div id="poi-legend" style="
            position: fixed;
            bottom: 50px;
            left: 50px;
            width: 230px;
            min-height: 70px;
            background-color: white;
            border: 2px solid grey;
            z-index: 9999;
            font-size: 13px;
            padding: 12px;
            font-family: Arial, sans-serif;
            border-radius: 5px;
            box-shadow: 0 2px 5px rgba(0,0,0,0.2);
            box-sizing: border-box;
        ">
            <b>Legend</b><br>
            <div style="margin: 4px 0; line-height: 1.3;">
                <span style="color: #2E86AB; font-weight: normal; font-size: 18px;">—</span>
                Track
            </div>
            <div style="margin: 4px 0; line-height: 1.3;">
                <span style="color: #D23C4C; font-weight: bold; font-size: 18px;">●</span>
                Selected POIs ({{ this.selected_count }} of {{ this.candidate_count }})
            </div>
        </div>
        {% endmacro %}
        """
        )


def poi_to_html(entry: SelectedCandidate, order: int) -> str:
    """
    Format a selected POI into HTML for popup display.

    Args:
        entry: The selected candidate and its projection
        order: 1-based position in travel order

    Returns:
        HTML-formatted string
    """
    candidate = entry.candidate
    html_parts = [f"<b>{order}. {candidate.get_display_name()}</b>"]
    html_parts.append(f"<br><b>OSM ID:</b> {candidate.kind}/{candidate.external_id}")

    if entry.projection is not None:
        html_parts.append(
            f"<br><b>Along track:</b> {entry.projection.cumulative_distance / 1000:.2f} km"
        )
        html_parts.append(
            f"<br><b>Off track:</b> {entry.projection.perpendicular_distance:.0f} m"
        )

    remaining_tags = {k: v for k, v in candidate.tags.items() if k != "name"}
    if remaining_tags:
        html_parts.append("<br><b>Tags:</b>")
        for key, value in sorted(remaining_tags.items()):
            html_parts.append(f"<br>&nbsp;&nbsp;<i>{key}:</i> {value}")

    return "".join(html_parts)


def _track_lines(track: Track) -> List[List[List[float]]]:
    """Coordinate lists in folium's [lat, lon] order for each drawable part."""

    def to_latlon(points: List[GeoPoint]) -> List[List[float]]:
        return [[point.latitude, point.longitude] for point in points]

    geometry = track.geometry
    if isinstance(geometry, LineStringGeometry):
        return [to_latlon(list(geometry.points))] if geometry.points else []
    if isinstance(geometry, PolygonGeometry):
        return [to_latlon(list(ring)) for ring in geometry.rings if ring]
    if isinstance(geometry, PointGeometry):
        return []
    raise TypeError(f"Unsupported geometry: {type(geometry).__name__}")


def create_track_map(
    track: Track,
    selection: SelectionResult,
    output_filename: str,
    config: TrackPoisConfig,
) -> None:
    """
    Create an interactive map showing the track and its selected POIs, save as HTML.

    Args:
        track: Track to draw
        selection: POIs selected for the track, in travel order
        output_filename: Path where HTML map file should be saved
        config: Configuration providing the bounding box buffer

    Raises:
        ValueError: If the track has no coordinates
    """
    bbox = track.get_bbox(config.bbox_buffer)
    if bbox is None:
        raise ValueError(f"Cannot create map for track {track.track_id} without coordinates")

    south, west, north, east = bbox.as_south_west_north_east()
    center = bbox.center()
    logger.debug(f"Creating map centered at ({center.latitude:.4f}, {center.longitude:.4f})")

    track_map = folium.Map(
        location=[center.latitude, center.longitude],
        tiles=None,
    )

    folium.TileLayer(
        tiles="CartoDB positron",
        attr=(
            "&copy; <a href='https://www.openstreetmap.org/copyright'>OpenStreetMap</a> "
            "contributors &copy; <a href='https://carto.com/attributions'>CARTO</a>"
        ),
        name="Standard",
        control=True,
        show=True,
    ).add_to(track_map)

    folium.TileLayer(
        tiles="https://server.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}",
        attr=(
            "Tiles &copy; Esri &mdash; Source: Esri, i-cubed, USDA, USGS, AEX, GeoEye, "
            "Getmapping, Aerogrid, IGN, IGP, UPR-EGP, and the GIS User Community"
        ),
        name="Satellite",
        control=True,
        show=False,
    ).add_to(track_map)

    folium.LayerControl().add_to(track_map)

    for coordinates in _track_lines(track):
        folium.PolyLine(
            coordinates,
            color=TRACK_COLOR,
            weight=3,
            opacity=0.7,
            popup=f"Track {track.track_id}",
            z_index=1,
        ).add_to(track_map)

    path = track.path
    if path:
        folium.Marker(
            [path[0].latitude, path[0].longitude],
            popup="Start",
            icon=folium.Icon(color="green", icon="play"),
        ).add_to(track_map)
        folium.Marker(
            [path[-1].latitude, path[-1].longitude],
            popup="End",
            icon=folium.Icon(color="red", icon="stop"),
        ).add_to(track_map)

    for order, entry in enumerate(selection.entries, start=1):
        position = entry.candidate.position
        folium.CircleMarker(
            [position.latitude, position.longitude],
            radius=7,
            color=POI_COLOR,
            fill=True,
            fill_opacity=0.9,
            tooltip=f"{order}. {entry.candidate.get_display_name()}",
            popup=folium.Popup(poi_to_html(entry, order), max_width=400),
        ).add_to(track_map)

    track_map.add_child(PoiLegend(selection))

    track_map.fit_bounds([[south, west], [north, east]])
    track_map.save(output_filename)

    logger.debug(
        f"Map saved to {output_filename} with {len(selection)} of "
        f"{selection.total_candidates} POIs"
    )
