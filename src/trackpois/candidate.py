"""Data structure for externally supplied points of interest."""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .geometry import GeoPoint


@dataclass(frozen=True)
class Candidate:
    """A single point of interest from OpenStreetMap.

    Tags are passed through untouched; only the position and identity are
    used for selection.
    """

    external_id: int
    kind: str
    position: GeoPoint
    tags: Mapping[str, str] = field(default_factory=dict, hash=False)
    name: Optional[str] = None

    def get_display_name(self) -> str:
        """Return the name, or "<OSM {kind} {id}>" for unnamed POIs."""
        if self.name:
            return self.name
        return f"<OSM {self.kind} {self.external_id}>"

    def get_short_description(self) -> str:
        """Return the display name followed by the first tag, e.g. "Spring [natural=spring]"."""
        first_tag = next(iter(self.tags.items()), None)
        tag_text = f"{first_tag[0]}={first_tag[1]}" if first_tag else "Unknown type"
        return f"{self.get_display_name()} [{tag_text}]"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.external_id,
            "type": self.kind,
            "tags": dict(self.tags),
            "lat": self.position.latitude,
            "lon": self.position.longitude,
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Candidate":
        return cls(
            external_id=int(data["id"]),
            kind=str(data.get("type", "node")),
            position=GeoPoint(latitude=float(data["lat"]), longitude=float(data["lon"])),
            tags=dict(data.get("tags") or {}),
            name=data.get("name"),
        )
