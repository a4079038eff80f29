#!/usr/bin/env python3
"""
SQLite persistence of tracks and the points of interest selected for them.
"""

from dataclasses import dataclass
from typing import List, Optional
import json
import logging
import sqlite3

from .candidate import Candidate
from .proximity import SelectionResult
from .tracks import Track

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredTrack:
    """One row of the tracks table."""

    id: int
    feature_id: str
    input_geojson: str
    filtered_pois: str

    def get_track(self) -> Track:
        """Decode the stored GeoJSON back into a Track."""
        return Track.from_geojson(self.feature_id, json.loads(self.input_geojson))

    def get_pois(self) -> List[Candidate]:
        """Decode the stored POI list, in travel order."""
        return [Candidate.from_dict(item) for item in json.loads(self.filtered_pois)]


class TrackStore:
    """Stores tracks with their selected POIs in a SQLite database."""

    def __init__(self, db_path: str):
        """Opens (and if needed creates) the database.

        Args:
            db_path: Path to the SQLite database file, or ":memory:".

        Raises:
            sqlite3.Error: If the database cannot be opened.
        """
        self.db_path = db_path
        self.conn = sqlite3.connect(db_path)
        self.conn.row_factory = sqlite3.Row
        self._create_tables()
        logger.debug(f"Opened track database {db_path}")

    def _create_tables(self) -> None:
        self.conn.execute(
            """
        CREATE TABLE IF NOT EXISTS tracks (
            id             INTEGER PRIMARY KEY AUTOINCREMENT,
            feature_id     TEXT NOT NULL,   -- track id from the input file
            input_geojson  TEXT NOT NULL,   -- track as a GeoJSON Feature
            filtered_pois  TEXT NOT NULL    -- JSON list of selected POIs
        );
        """
        )
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_tracks_feature_id ON tracks(feature_id);"
        )
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "TrackStore":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    @staticmethod
    def _row_to_track(row: sqlite3.Row) -> StoredTrack:
        return StoredTrack(
            id=row["id"],
            feature_id=row["feature_id"],
            input_geojson=row["input_geojson"],
            filtered_pois=row["filtered_pois"],
        )

    def save_track(self, track: Track, selection: SelectionResult) -> int:
        """Save a track with its selected POIs.

        Returns:
            The id of the new row
        """
        cursor = self.conn.execute(
            "INSERT INTO tracks (feature_id, input_geojson, filtered_pois) VALUES (?, ?, ?)",
            (
                track.track_id,
                json.dumps(track.to_geojson()),
                json.dumps([candidate.to_dict() for candidate in selection.candidates]),
            ),
        )
        self.conn.commit()
        logger.debug(f"Saved track {track.track_id} as row {cursor.lastrowid}")
        return int(cursor.lastrowid)

    def get_track(self, track_id: int) -> Optional[StoredTrack]:
        row = self.conn.execute("SELECT * FROM tracks WHERE id = ?", (track_id,)).fetchone()
        return self._row_to_track(row) if row is not None else None

    def get_all_tracks(self) -> List[StoredTrack]:
        rows = self.conn.execute("SELECT * FROM tracks ORDER BY id").fetchall()
        return [self._row_to_track(row) for row in rows]

    def get_track_by_feature_id(self, feature_id: str) -> Optional[StoredTrack]:
        """Return the first stored row for a track id, or None."""
        row = self.conn.execute(
            "SELECT * FROM tracks WHERE feature_id = ? ORDER BY id LIMIT 1",
            (feature_id,),
        ).fetchone()
        return self._row_to_track(row) if row is not None else None
