"""
Route objects as held in a routing registry.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..core.utils import format_timestamp, parse_timestamp, utc_now


@dataclass
class RouteObject:
    """
    A route/route6 object.

    Attributes:
        route: IP prefix (e.g. '192.0.2.0/24')
        origin: Origin ASN (e.g. 'AS64496')
        descr: Free-text description lines
        mnt_by: Maintainers allowed to change the object
        source: Registry the object belongs to (e.g. 'RADB')
        created: When the registry first saw the object
        last_modified: When the registry last changed the object
        remarks: Free-text remark lines
        member_of: route-set memberships
        holes: Sub-prefixes not announced by the origin
        raw_attributes: Unparsed RPSL attributes, kept for round-tripping
    """
    route: str
    origin: str
    descr: List[str] = field(default_factory=list)
    mnt_by: List[str] = field(default_factory=list)
    source: str = ""
    created: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    remarks: List[str] = field(default_factory=list)
    member_of: List[str] = field(default_factory=list)
    holes: List[str] = field(default_factory=list)
    raw_attributes: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def id(self) -> str:
        """Identity key: prefix and origin joined by '-'."""
        return f"{self.route}-{self.origin}"

    def validate(self) -> List[str]:
        """
        Check the object against registry rules.

        Returns:
            List of problems; empty when the object is valid
        """
        errors = []
        if not self.route:
            errors.append("route prefix is required")
        if not self.origin:
            errors.append("origin ASN is required")
        elif not self.origin.startswith("AS"):
            errors.append("origin must start with 'AS'")
        if not self.mnt_by:
            errors.append("at least one mnt-by is required")
        if not self.source:
            errors.append("source is required")
        return errors

    def to_rpsl(self) -> str:
        """Render the object as RPSL text."""
        object_class = "route6" if ":" in self.route else "route"
        lines = [f"{object_class}: {self.route}", f"origin: {self.origin}"]
        lines.extend(f"descr: {d}" for d in self.descr)
        lines.extend(f"mnt-by: {m}" for m in self.mnt_by)
        lines.extend(f"remarks: {r}" for r in self.remarks)
        lines.extend(f"member-of: {m}" for m in self.member_of)
        lines.extend(f"holes: {h}" for h in self.holes)
        lines.append(f"source: {self.source}")
        return "\n".join(lines) + "\n"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: Dict[str, Any] = {
            "route": self.route,
            "origin": self.origin,
        }
        if self.descr:
            data["descr"] = list(self.descr)
        data["mnt_by"] = list(self.mnt_by)
        data["source"] = self.source
        if self.created is not None:
            data["created"] = format_timestamp(self.created)
        if self.last_modified is not None:
            data["last_modified"] = format_timestamp(self.last_modified)
        if self.remarks:
            data["remarks"] = list(self.remarks)
        if self.member_of:
            data["member_of"] = list(self.member_of)
        if self.holes:
            data["holes"] = list(self.holes)
        if self.raw_attributes:
            data["raw_attributes"] = {k: list(v) for k, v in self.raw_attributes.items()}
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RouteObject":
        """Create from dictionary."""
        return cls(
            route=data["route"],
            origin=data["origin"],
            descr=list(data.get("descr") or []),
            mnt_by=list(data.get("mnt_by") or []),
            source=data.get("source", ""),
            created=parse_timestamp(data.get("created")),
            last_modified=parse_timestamp(data.get("last_modified")),
            remarks=list(data.get("remarks") or []),
            member_of=list(data.get("member_of") or []),
            holes=list(data.get("holes") or []),
            raw_attributes={
                k: list(v) for k, v in (data.get("raw_attributes") or {}).items()
            },
        )


@dataclass
class RouteList:
    """
    A captured collection of route objects.

    Attributes:
        routes: The route objects
        timestamp: When the collection was captured
        count: Number of routes (kept in sync with the list)
    """
    routes: List[RouteObject] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utc_now)
    count: int = -1

    def __post_init__(self):
        if self.count < 0:
            self.count = len(self.routes)

    def by_id(self) -> Dict[str, RouteObject]:
        """Index the routes by identity key."""
        return {route.id: route for route in self.routes}

    def __len__(self) -> int:
        return len(self.routes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "routes": [route.to_dict() for route in self.routes],
            "timestamp": format_timestamp(self.timestamp),
            "count": self.count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RouteList":
        routes = [RouteObject.from_dict(r) for r in data.get("routes") or []]
        return cls(
            routes=routes,
            timestamp=parse_timestamp(data.get("timestamp")) or utc_now(),
            count=data.get("count", len(routes)),
        )
