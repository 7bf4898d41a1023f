"""Tests for the status bucket registry."""

from unittest.mock import MagicMock

from ticket_sync.models.status import StatusBucketConfig
from ticket_sync.services.bucket_registry import UNCONFIGURED_DEFAULT, StatusBucketRegistry


def test_prefix_match(proj_config):
    registry = StatusBucketRegistry([proj_config, StatusBucketConfig(name="OPS")])

    assert registry.config_for("PROJ-123") is proj_config
    assert registry.config_for("OPS-1").name == "OPS"


def test_longest_prefix_wins_regardless_of_order():
    short, longer = StatusBucketConfig(name="PROJ"), StatusBucketConfig(name="PROJEC")

    assert StatusBucketRegistry([short, longer]).config_for("PROJECT-1") is longer
    assert StatusBucketRegistry([longer, short]).config_for("PROJECT-1") is longer
    assert StatusBucketRegistry([longer, short]).config_for("PROJ-1") is short


def test_inactive_and_unnamed_configs_are_ignored():
    registry = StatusBucketRegistry([
        StatusBucketConfig(name="PROJ", is_active=False),
        StatusBucketConfig(name=""),
    ])

    assert len(registry) == 0
    assert registry.config_for("PROJ-1") is None


def test_resolve_falls_back_to_unconfigured_default(proj_config, caplog):
    registry = StatusBucketRegistry([proj_config])

    with caplog.at_level("WARNING"):
        config = registry.resolve("OTHER-9")

    assert config is UNCONFIGURED_DEFAULT
    assert config.mapped_statuses() == frozenset()
    assert "OTHER-9" in caplog.text


def test_load_reads_store_once(proj_config):
    store = MagicMock()
    store.load_active.return_value = [proj_config]

    registry = StatusBucketRegistry.load(store)
    registry.resolve("PROJ-1")
    registry.resolve("PROJ-2")

    store.load_active.assert_called_once_with()
    assert registry.configs == (proj_config,)


def test_config_accepts_camel_case_aliases():
    config = StatusBucketConfig.model_validate({
        "name": "PROJ",
        "inProgressStatuses": ["In Progress", " "],
        "ticketClosesStatuses": ["Done"],
        "isActive": True,
    })

    assert config.in_progress == ("In Progress",)
    assert config.is_closed("DONE")
