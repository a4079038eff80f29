#!/usr/bin/env python3
"""
Track POI selection tool.
This script reads track definitions, queries OpenStreetMap for points of
interest around each track, keeps the ones close to the track in the order
they are met, and optionally stores the results and draws them on a map.
"""

from typing import List, Optional, Tuple
import argparse
import json
import logging
import os
import sqlite3
import sys
import webbrowser

import requests
from gpxpy import gpx

from . import __version__
from .config import DEFAULT_API_TIMEOUT, TrackPoisConfig
from .errors import InvalidGeometryError
from .geometry import GeoPoint
from .file_utils import generate_output_filename
from .metrics import collect_metrics, log_metrics
from .overpass import query_overpass_poi_count, query_overpass_pois
from .proximity import (
    DEFAULT_DUPLICATE_RADIUS,
    DEFAULT_MAX_DISTANCE,
    DEFAULT_MAX_RESULTS,
    ProximityFilter,
    SelectionResult,
    select,
)
from .storage import StoredTrack, TrackStore
from .tracks import Track, load_tracks
from . import visualization

logger = logging.getLogger("trackpois")

DEFAULT_COUNT_RADIUS = 1000.0


def parse_lat_lon(text: str) -> GeoPoint:
    """argparse type for a "LAT,LON" position."""
    try:
        lat_text, lon_text = text.split(",")
        return GeoPoint(latitude=float(lat_text), longitude=float(lon_text))
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid LAT,LON position {text!r}: {e}")


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the command-line argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        description="Find points of interest along tracks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "filename",
        type=str,
        nargs="?",
        help="Track file to process (.csv with id,GeoJSON lines, .geojson, or .gpx)",
    )
    parser.add_argument(
        "--max-distance",
        type=float,
        default=DEFAULT_MAX_DISTANCE,
        help=f"Maximum distance from the track in meters (default: {DEFAULT_MAX_DISTANCE:g})",
    )
    parser.add_argument(
        "--max-results",
        type=int,
        default=DEFAULT_MAX_RESULTS,
        help=f"Maximum number of POIs per track (default: {DEFAULT_MAX_RESULTS})",
    )
    parser.add_argument(
        "--duplicate-radius",
        type=float,
        default=DEFAULT_DUPLICATE_RADIUS,
        help=f"POIs closer than this to an earlier one are dropped, in meters (default: {DEFAULT_DUPLICATE_RADIUS:g})",
    )
    parser.add_argument(
        "--bbox-buffer",
        type=float,
        default=None,
        help="Search buffer around the track in meters (default: same as --max-distance)",
    )
    parser.add_argument(
        "--poi-filter",
        action="append",
        default=None,
        metavar="STATEMENT",
        help='Overpass statement selecting POIs, e.g. \'node["amenity"="drinking_water"]\' (repeatable)',
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=DEFAULT_API_TIMEOUT,
        help=f"Overpass API timeout in seconds (default: {DEFAULT_API_TIMEOUT})",
    )
    parser.add_argument(
        "--max-tracks",
        type=int,
        default=None,
        help="Only process the first N tracks of the file",
    )
    parser.add_argument(
        "--database",
        type=str,
        default=None,
        help="SQLite database to store tracks and their POIs in",
    )
    parser.add_argument(
        "--show-stored",
        action="store_true",
        help="List the tracks saved in --database with their POIs instead of reading a track file",
    )
    parser.add_argument(
        "--track-id",
        type=str,
        default=None,
        help="With --show-stored, only show the first stored row for this track id",
    )
    parser.add_argument(
        "--row-id",
        type=int,
        default=None,
        help="With --show-stored, only show the stored row with this database id",
    )
    parser.add_argument(
        "--count-around",
        type=parse_lat_lon,
        default=None,
        metavar="LAT,LON",
        help="Count amenity, shop, tourism and leisure nodes around a position and exit",
    )
    parser.add_argument(
        "--count-radius",
        type=float,
        default=DEFAULT_COUNT_RADIUS,
        help=f"Radius in meters for --count-around (default: {DEFAULT_COUNT_RADIUS:g})",
    )
    parser.add_argument(
        "--map",
        action="store_true",
        help="Write an HTML map for each track next to the input file",
    )
    parser.add_argument(
        "--open",
        action="store_true",
        help="Open written maps in the default browser",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set logging level (default: WARNING)",
    )
    parser.add_argument(
        "--metrics",
        action="store_true",
        help="Output structured metrics after processing",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"trackpois {__version__}",
    )
    return parser


def setup_logging(args: argparse.Namespace) -> None:
    """Setup logging configuration."""
    level = getattr(logging, args.log_level)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%H:%M:%S"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    # Configure the root logger so all modules inherit the configuration
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    # Suppress overly verbose third-party logging
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)


def open_file_in_browser(filename: str) -> None:
    """
    Open the specified file in the default browser.

    Args:
        filename: Path to the file to open
    """
    abs_path = os.path.abspath(filename)
    try:
        webbrowser.open(f"file://{abs_path}")
        logger.debug(f"Opening {abs_path} in your default browser...")
    except webbrowser.Error as e:
        logger.warning(f"Could not automatically open browser: {e}")
        logger.warning(f"Please manually open {abs_path}")


def find_track_pois(
    track: Track, proximity_filter: ProximityFilter, config: TrackPoisConfig
) -> Optional[SelectionResult]:
    """
    Query the POIs around a track and select the ones along it.

    Returns:
        SelectionResult, or None if the track has no coordinates or the
        Overpass query failed
    """
    bbox = track.get_bbox(config.bbox_buffer)
    if bbox is None:
        logger.warning(f"Track {track.track_id} has no coordinates, skipping")
        return None

    try:
        candidates = query_overpass_pois(bbox, config)
    except requests.exceptions.RequestException as e:
        logger.error(f"Overpass query failed for track {track.track_id}: {e}")
        return None

    logger.info(f"Found {len(candidates)} candidate POIs around track {track.track_id}")
    return proximity_filter.select(track.geometry, candidates)


def print_selection(track: Track, selection: SelectionResult) -> None:
    """
    Print the POIs selected for a track, in the order they are met along it.

    Args:
        track: The processed track
        selection: Its selected POIs
    """
    if not selection.entries:
        print(f"Track {track.track_id}: no points of interest along the track")
        return

    if selection.passthrough:
        print(
            f"Track {track.track_id}: {len(selection)} of {selection.total_candidates} "
            f"points of interest (not an open path, unordered):"
        )
    else:
        print(
            f"Track {track.track_id}: {len(selection)} of {selection.total_candidates} "
            f"points of interest along the track:"
        )

    for entry in selection.entries:
        candidate = entry.candidate
        position = (
            f"({candidate.position.latitude:.6f}, {candidate.position.longitude:.6f})"
        )
        if entry.projection is None:
            print(f"  - {candidate.get_short_description()} {position}")
        else:
            print(
                f"  - {candidate.get_short_description()} {position} "
                f"at {entry.projection.cumulative_distance / 1000:.2f} km, "
                f"{entry.projection.perpendicular_distance:.0f} m off track"
            )


def write_track_map(
    input_filename: str,
    track: Track,
    selection: SelectionResult,
    config: TrackPoisConfig,
) -> Optional[str]:
    """Write the map for one track; returns its filename or None on failure."""
    try:
        output_filename = generate_output_filename(input_filename, track.track_id)
        visualization.create_track_map(track, selection, output_filename, config)
    except (RuntimeError, ValueError, OSError) as e:
        logger.error(f"Failed to create map for track {track.track_id}: {e}")
        return None
    logger.info(f"Map for track {track.track_id} written to {output_filename}")
    return output_filename


def print_poi_count(point: GeoPoint, radius: float, config: TrackPoisConfig) -> None:
    """Print the number of POIs around a position; exits with status 1 if Overpass fails."""
    try:
        count = query_overpass_poi_count(point, radius, config)
    except requests.exceptions.RequestException as e:
        logger.error(f"Overpass count query failed: {e}")
        sys.exit(1)
    print(
        f"{count} points of interest within {radius:g} m of "
        f"({point.latitude:.6f}, {point.longitude:.6f})"
    )


def restore_selection(stored: StoredTrack) -> Tuple[Track, SelectionResult]:
    """
    Rebuild a track and its selection from a database row.

    The stored POIs already passed the thresholds, so they are only projected
    again to recover their positions along the track.
    """
    track = stored.get_track()
    pois = stored.get_pois()
    selection = select(
        track.geometry,
        pois,
        max_distance=float("inf"),
        duplicate_radius=0.0,
        max_results=len(pois),
    )
    return track, selection


def load_stored_tracks(
    database: str, row_id: Optional[int] = None, track_id: Optional[str] = None
) -> List[StoredTrack]:
    """
    Read stored rows: one row by database id, the first row of a track id, or all rows.

    Raises:
        FileNotFoundError: If the database does not exist.
        sqlite3.Error: If the database cannot be read.
    """
    if not os.path.exists(database):
        raise FileNotFoundError(database)

    with TrackStore(database) as store:
        if row_id is not None:
            stored = store.get_track(row_id)
        elif track_id is not None:
            stored = store.get_track_by_feature_id(track_id)
        else:
            return store.get_all_tracks()
    return [stored] if stored is not None else []


def show_stored_tracks(args: argparse.Namespace, config: TrackPoisConfig) -> List[str]:
    """
    Print the stored tracks with their POIs in travel order, mapping them if requested.

    Returns:
        Filenames of the maps written
    """
    if not config.database:
        logger.error("--show-stored needs --database")
        sys.exit(1)

    try:
        stored_tracks = load_stored_tracks(config.database, args.row_id, args.track_id)
    except FileNotFoundError:
        logger.error(f"Database not found: {config.database}")
        sys.exit(1)
    except sqlite3.Error as e:
        logger.error(f"Cannot read database {config.database}: {e}")
        sys.exit(1)

    if config.max_tracks is not None:
        stored_tracks = stored_tracks[: config.max_tracks]
    print(f"{len(stored_tracks)} stored tracks in {config.database}")

    map_files = []
    for stored in stored_tracks:
        try:
            track, selection = restore_selection(stored)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping stored row {stored.id}: {e}")
            continue

        print(f"Row {stored.id}:")
        print_selection(track, selection)

        if args.map:
            map_file = write_track_map(config.database, track, selection, config)
            if map_file is not None:
                map_files.append(map_file)

    return map_files


def main(argv: Optional[List[str]] = None) -> None:
    """
    Parses command-line arguments, loads the tracks, selects the POIs along
    each one and reports, stores and maps the results. --show-stored reads
    saved tracks back from the database instead, and --count-around only
    counts the POIs around one position.
    """
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not (args.filename or args.show_stored or args.count_around):
        parser.print_help()
        sys.exit(1)

    setup_logging(args)
    config = TrackPoisConfig.from_args(args)

    if args.count_around is not None:
        print_poi_count(args.count_around, args.count_radius, config)
        return

    if args.show_stored:
        map_files = show_stored_tracks(args, config)
        if args.open:
            for map_file in map_files:
                open_file_in_browser(map_file)
        return

    try:
        tracks = load_tracks(args.filename)
    except FileNotFoundError:
        logger.error(f"Track file not found: {args.filename}")
        sys.exit(1)
    except PermissionError:
        logger.error(f"Cannot read track file (permission denied): {args.filename}")
        sys.exit(1)
    except (gpx.GPXException, json.JSONDecodeError, InvalidGeometryError) as e:
        logger.error(f"Invalid track file: {e}")
        sys.exit(1)

    if config.max_tracks is not None:
        tracks = tracks[: config.max_tracks]
    logger.info(f"Loaded {len(tracks)} tracks from {args.filename}")

    store = None
    if config.database:
        try:
            store = TrackStore(config.database)
        except sqlite3.Error as e:
            logger.error(f"Cannot open database {config.database}: {e}")
            sys.exit(1)

    proximity_filter = ProximityFilter(
        max_distance=config.max_distance,
        duplicate_radius=config.duplicate_radius,
        max_results=config.max_results,
    )

    results = []
    map_files = []
    try:
        for track in tracks:
            selection = find_track_pois(track, proximity_filter, config)
            if selection is None:
                continue
            results.append(selection)
            print_selection(track, selection)

            if store is not None:
                try:
                    row_id = store.save_track(track, selection)
                except sqlite3.Error as e:
                    logger.error(f"Failed to save track {track.track_id}: {e}")
                    sys.exit(1)
                logger.info(f"Saved track {track.track_id} to database with id {row_id}")

            if args.map:
                map_file = write_track_map(args.filename, track, selection, config)
                if map_file is not None:
                    map_files.append(map_file)
    finally:
        if store is not None:
            store.close()

    metrics = collect_metrics(results)
    log_metrics(metrics, config)

    if args.open:
        for map_file in map_files:
            open_file_in_browser(map_file)


if __name__ == "__main__":
    main()
