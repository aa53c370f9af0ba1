"""
Shared test fixtures and configuration for pytest.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import pytest

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from radb_state.core.source import SnapshotSource  # noqa: E402
from radb_state.models import (  # noqa: E402
    Contact,
    ContactList,
    RouteList,
    RouteObject,
    Snapshot,
    SnapshotType,
)


logger = logging.getLogger(__name__)


# ============================================================================
# Pytest hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "slow: Tests that take a long time to run")


# ============================================================================
# Builders
# ============================================================================

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_route(
    prefix: str = "192.0.2.0/24",
    origin: str = "AS64496",
    descr: Optional[List[str]] = None,
    mnt_by: Optional[List[str]] = None,
    **kwargs,
) -> RouteObject:
    """Build a registry-valid route object."""
    return RouteObject(
        route=prefix,
        origin=origin,
        descr=descr if descr is not None else ["Example network"],
        mnt_by=mnt_by if mnt_by is not None else ["MAINT-EXAMPLE"],
        source=kwargs.pop("source", "RADB"),
        **kwargs,
    )


def make_contact(contact_id: str = "EX1-RADB", **kwargs) -> Contact:
    """Build a registry-valid contact."""
    defaults = {
        "name": "Example NOC",
        "email": "noc@example.net",
        "role": "tech",
    }
    defaults.update(kwargs)
    return Contact(id=contact_id, **defaults)


def make_route_snapshot(
    routes: List[RouteObject],
    taken_at: datetime = T0,
    note: str = "",
) -> Snapshot:
    return Snapshot.create(
        SnapshotType.ROUTE,
        note=note,
        routes=RouteList(routes=routes, timestamp=taken_at),
        taken_at=taken_at,
    )


def make_contact_snapshot(contacts: List[Contact], taken_at: datetime = T0) -> Snapshot:
    return Snapshot.create(
        SnapshotType.CONTACT,
        contacts=ContactList(contacts=contacts, timestamp=taken_at),
        taken_at=taken_at,
    )


class StaticSource(SnapshotSource):
    """In-memory data source returning fixed collections."""

    def __init__(self, routes=None, contacts=None, name: str = "static"):
        self.routes = routes or []
        self.contacts = contacts or []
        self.name = name
        self.route_calls = 0
        self.contact_calls = 0

    def fetch_routes(self) -> RouteList:
        self.route_calls += 1
        return RouteList(routes=list(self.routes))

    def fetch_contacts(self) -> ContactList:
        self.contact_calls += 1
        return ContactList(contacts=list(self.contacts))

    def get_name(self) -> str:
        return self.name


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def state_dir(tmp_path: Path) -> Path:
    """Fresh, empty state directory."""
    path = tmp_path / "state"
    path.mkdir()
    return path


@pytest.fixture
def store(state_dir: Path):
    """SnapshotStore with a short lock timeout."""
    from radb_state.snapshot import SnapshotStore

    return SnapshotStore(state_dir, lock_timeout=0.5, lock_poll_interval=0.02)


@pytest.fixture
def sample_routes() -> List[RouteObject]:
    return [
        make_route("192.0.2.0/24", "AS64496", descr=["Example A"]),
        make_route("198.51.100.0/24", "AS64497", descr=["Example B"]),
    ]


@pytest.fixture
def sample_contacts() -> List[Contact]:
    return [
        make_contact("EX1-RADB", name="Example NOC", role="tech"),
        make_contact("EX2-RADB", name="Example Abuse", email="abuse@example.net", role="abuse"),
    ]


@pytest.fixture
def static_source(sample_routes, sample_contacts) -> StaticSource:
    return StaticSource(routes=sample_routes, contacts=sample_contacts)

