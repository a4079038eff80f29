#!/usr/bin/env python3
"""
Filename utilities for generating output filenames.
"""

import logging
import os
import re

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 180

INPUT_FILE_EXTENSIONS = (".gpx", ".csv", ".geojson", ".json", ".db", ".sqlite", ".sqlite3")


def _reserve(candidate: str) -> bool:
    """Create candidate exclusively; False if it already exists."""
    try:
        with open(candidate, "x"):
            pass
        return True
    except FileExistsError:
        return False
    except OSError as e:
        logger.error(f"Cannot create file {candidate}: {e}")
        raise ValueError(f"Cannot create file: {e}")


def generate_output_filename(input_filename: str, track_id: str) -> str:
    """
    Generates an output HTML filename for one track and reserves it by creating an empty file.

    Strategy:
    1. Drop a known track file or database extension from the input name
    2. Append " <track id> map.html", with unsafe characters in the id replaced by "_"
    3. If file exists, try " (1).html", " (2).html", etc.
    4. Stop after 180 numbered attempts

    Args:
        input_filename: Path to the input track file or database
        track_id: Id of the track being mapped

    Returns:
        Filename that has been created as an empty file to reserve its name

    Raises:
        RuntimeError: If no available filename found after 180 attempts
        ValueError: If a filename cannot be created
    """
    input_dir = os.path.dirname(input_filename)
    base_name, extension = os.path.splitext(os.path.basename(input_filename))
    if extension.lower() not in INPUT_FILE_EXTENSIONS:
        base_name += extension

    safe_id = re.sub(r"[^A-Za-z0-9._-]+", "_", str(track_id)).strip("_") or "track"
    base_output = f"{base_name} {safe_id} map"

    candidate = os.path.join(input_dir, base_output + ".html")
    if _reserve(candidate):
        return candidate

    for i in range(1, MAX_ATTEMPTS + 1):
        candidate = os.path.join(input_dir, f"{base_output} ({i}).html")
        if _reserve(candidate):
            return candidate

    logger.error(
        f"Could not find an available filename after {MAX_ATTEMPTS} attempts. "
        f"Please clean up your output directory."
    )
    raise RuntimeError(f"No available filename found after {MAX_ATTEMPTS} attempts")
