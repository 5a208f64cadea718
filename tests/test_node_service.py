"""
Unit tests for the NodeService.
Tests lifecycle management and wiring of storage and social services.
"""

# pylint: disable=redefined-outer-name

import pytest

from src.services.node import LocalNodeService
from src.services.social import SocialService


# Fixture to provide a fresh instance of the service for each test
@pytest.fixture
def node_service():
    """Fixture that provides a fresh LocalNodeService instance."""
    return LocalNodeService()


@pytest.mark.asyncio
async def test_initialize_success(node_service, tmp_path):
    """Test successful initialization flow."""
    db_path = str(tmp_path / "node.db")
    assert not node_service.is_initialized()
    assert node_service.social is None

    await node_service.initialize(db_path)

    assert node_service.is_initialized()
    assert isinstance(node_service.social, SocialService)
    assert node_service.storage.db_name == db_path
    assert node_service.social.storage is node_service.storage


@pytest.mark.asyncio
async def test_initialize_idempotency_and_conflict(node_service, tmp_path):
    """Test initialization guards (Idempotency and Conflict)."""
    db_path = str(tmp_path / "node.db")

    await node_service.initialize(db_path)
    social = node_service.social

    # Same database: nothing happens
    await node_service.initialize(db_path)
    assert node_service.social is social

    # Another database: refused
    with pytest.raises(ValueError, match="already initialized"):
        await node_service.initialize(str(tmp_path / "other.db"))


@pytest.mark.asyncio
async def test_initialize_default_db_from_settings(node_service, tmp_path, monkeypatch):
    """Without an explicit path the configured database is used."""
    db_path = str(tmp_path / "configured.db")
    monkeypatch.setattr("src.services.node.settings.db_name", db_path)

    await node_service.initialize()

    assert node_service.storage.db_name == db_path


@pytest.mark.asyncio
async def test_state_restored_after_restart(node_service, tmp_path):
    """A restarted node on the same database sees the previous accounts."""
    db_path = str(tmp_path / "node.db")

    await node_service.initialize(db_path)
    node_service.social.register("alice")
    await node_service.shutdown()

    assert not node_service.is_initialized()
    assert node_service.storage is None

    await node_service.initialize(db_path)
    assert node_service.social.is_registered("alice")
    assert node_service.social.count_accounts() == 1
