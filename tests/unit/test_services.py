"""
Unit tests for StateServices wiring, end to end across the components.
"""

from datetime import timedelta

import pytest

from conftest import (
    T0,
    StaticSource,
    make_contact,
    make_contact_snapshot,
    make_route,
    make_route_snapshot,
)
from radb_state import StateConfig, StateServices
from radb_state.config.config_loader import ENV_LOCK_TIMEOUT, ENV_LOG_LEVEL, ENV_STATE_DIR
from radb_state.core.exceptions import ConfigError
from radb_state.models import SnapshotType


@pytest.fixture
def write_config(tmp_path, monkeypatch):
    """Return a factory building a StateConfig from YAML text."""
    for name in (ENV_LOCK_TIMEOUT, ENV_LOG_LEVEL):
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)
    monkeypatch.setenv(ENV_STATE_DIR, str(tmp_path / "state"))

    def factory(text):
        path = tmp_path / "radb.yaml"
        path.write_text(text, encoding="utf-8")
        return StateConfig(path, load_env=False)

    return factory


@pytest.fixture
def config(write_config):
    return write_config(
        "state:\n  lock_timeout_seconds: 0.5\nretention:\n  keep_by_type:\n    route: 2\n"
    )


class TestStateServices:
    """Tests for StateServices."""

    def test_from_config(self, config, tmp_path):
        services = StateServices.from_config(config, setup_logging=False)

        assert services.store.state_dir == tmp_path / "state"
        assert services.store.lock.timeout == 0.5
        assert services.changelog.lock is services.store.lock
        assert services.changelog.path == tmp_path / "state" / "changelog.jsonl"
        assert services.retention.default_keep_by_type[SnapshotType.ROUTE] == 2

    def test_rejects_unsupported_format(self, tmp_path, monkeypatch):
        monkeypatch.setenv(ENV_STATE_DIR, str(tmp_path / "state"))
        path = tmp_path / "radb.yaml"
        path.write_text("state:\n  format_version: 9\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            StateServices.from_config(StateConfig(path, load_env=False), setup_logging=False)

    def test_independent_instances(self, config):
        first = StateServices.from_config(config, setup_logging=False)
        second = StateServices.from_config(config, setup_logging=False)
        assert first.store is not second.store

    def test_capture_diff_record_cleanup(self, config):
        """Test the full flow: capture, diff, record, prune."""
        services = StateServices.from_config(config, setup_logging=False)
        store = services.store

        baseline = make_route_snapshot([make_route(descr=["Example"])], taken_at=T0)
        store.save(baseline)
        source = StaticSource(routes=[
            make_route(descr=["Example, renamed"]),
            make_route("198.51.100.0/24", "AS64497"),
        ])
        current = store.capture(source, SnapshotType.ROUTE, note="nightly")

        change_set = services.record_changes(store.load(baseline.id), store.load(current.id))

        assert len(change_set) == 2
        entries = services.changelog.query()
        assert [(e.change_type.value, e.object_id) for e in entries] == [
            ("added", "198.51.100.0/24-AS64497"),
            ("modified", "192.0.2.0/24-AS64496"),
        ]
        assert all(e.snapshot_id == current.id for e in entries)
        assert entries[1].field_changes == ["descr"]

        store.save(make_route_snapshot([make_route()], taken_at=T0 - timedelta(days=1)))
        result = services.retention.auto_cleanup()

        assert result.deleted == 1
        assert len(services.changelog.query()) == 2

    def test_record_identical_is_noop(self, config):
        services = StateServices.from_config(config, setup_logging=False)
        snapshot = make_route_snapshot([make_route()])

        assert services.record_changes(snapshot, snapshot).is_empty()
        assert not services.changelog.path.exists()

    def test_auto_cleanup_falls_back_to_keep_count(self, write_config):
        """Test a type with no per-type limit uses retention.keep_count."""
        config = write_config(
            "retention:\n"
            "  keep_count: 2\n"
            "  keep_by_type:\n"
            "    route: 1\n"
            "    contact: null\n"
        )
        services = StateServices.from_config(config, setup_logging=False)
        store = services.store

        routes = [make_route_snapshot([make_route()], taken_at=T0 + timedelta(hours=i)) for i in range(3)]
        contacts = [
            make_contact_snapshot([make_contact()], taken_at=T0 + timedelta(hours=i, minutes=1))
            for i in range(4)
        ]
        for snapshot in routes + contacts:
            store.save(snapshot)

        result = services.retention.auto_cleanup()

        assert services.retention.default_keep_count == 2
        assert SnapshotType.CONTACT not in services.retention.default_keep_by_type
        assert result.deleted_ids == [
            routes[1].id,
            routes[0].id,
            contacts[1].id,
            contacts[0].id,
        ]
