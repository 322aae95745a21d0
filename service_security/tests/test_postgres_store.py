"""
Unit tests for the PostgreSQL rule store with a mocked connection pool.
"""

import pytest
import asyncpg
from unittest.mock import AsyncMock, MagicMock, patch

from shared.errors import RuleStoreUnavailable, ValidationError
from service_security.app.persistence import PostgreSQLRuleStore, RuleStore
from service_security.app.rules.models import AuthorizationRule


class TestPostgreSQLRuleStore:
    """Test cases for PostgreSQLRuleStore."""

    @pytest.fixture
    def connection(self):
        """Create a mock connection."""
        return AsyncMock()

    @pytest.fixture
    def store(self, connection):
        """Create a store whose pool hands out the mock connection."""
        store = PostgreSQLRuleStore("postgres://test/access")
        pool = MagicMock()
        pool.acquire.return_value.__aenter__.return_value = connection
        pool.acquire.return_value.__aexit__.return_value = False
        pool.close = AsyncMock()
        store.pool = pool
        return store

    def test_implements_protocol(self, store):
        """Test the store satisfies the RuleStore protocol."""
        assert isinstance(store, RuleStore)

    @pytest.mark.asyncio
    async def test_resource_identifier_exists(self, store, connection):
        """Test the exact identifier is passed to the query."""
        connection.fetchval.return_value = True

        assert await store.resource_identifier_exists("/reports") is True
        assert connection.fetchval.await_args.args[1] == "/reports"

    @pytest.mark.asyncio
    async def test_claim_authorized_parameters(self, store, connection):
        """Test claim checks bind credentials, identifier and claim."""
        connection.fetchval.return_value = False

        allowed = await store.claim_authorized("/reports", "dept", "eng", "alice", "pw")

        assert allowed is False
        assert connection.fetchval.await_args.args[1:] == ("alice", "pw", "/reports", "dept", "eng")

    @pytest.mark.asyncio
    async def test_get_authorization_rules(self, store, connection):
        """Test rows are mapped to AuthorizationRule values."""
        connection.fetch.return_value = [
            {"group_id": 1, "resource_id": 2, "privilege_value_id": 3}
        ]

        assert await store.get_authorization_rules() == [AuthorizationRule(1, 2, 3)]

    @pytest.mark.asyncio
    async def test_driver_error_becomes_rule_store_unavailable(self, store, connection):
        """Test connection failures are raised, never returned as False."""
        connection.fetchval.side_effect = asyncpg.InterfaceError("connection is closed")

        with pytest.raises(RuleStoreUnavailable) as exc_info:
            await store.resource_identifier_exists("/reports")

        assert exc_info.value.details == {"operation": "resource_identifier_exists"}
        assert exc_info.value.message.startswith("rule_store:")

    @pytest.mark.asyncio
    async def test_os_error_becomes_rule_store_unavailable(self, store, connection):
        """Test socket errors are mapped as well."""
        connection.fetchval.side_effect = ConnectionRefusedError()

        with pytest.raises(RuleStoreUnavailable):
            await store.claim_authorized("/reports", "dept", "eng", "alice", "pw")

    @pytest.mark.asyncio
    async def test_constraint_violation_becomes_validation_error(self, store, connection):
        """Test duplicate users are rejected as invalid input."""
        connection.fetchval.side_effect = asyncpg.UniqueViolationError("duplicate key")

        with pytest.raises(ValidationError):
            await store.create_user("alice", "pw")

    @pytest.mark.asyncio
    async def test_not_started(self):
        """Test queries before start() fail loudly."""
        store = PostgreSQLRuleStore("postgres://test/access")

        with pytest.raises(RuleStoreUnavailable):
            await store.resource_identifier_exists("/reports")

    @pytest.mark.asyncio
    async def test_health_check(self, store, connection):
        """Test health reflects query success."""
        connection.fetchval.return_value = 1
        assert await store.health_check() is True

        connection.fetchval.side_effect = OSError("down")
        assert await store.health_check() is False

    @pytest.mark.asyncio
    async def test_start_failure(self):
        """Test pool creation failures are mapped."""
        store = PostgreSQLRuleStore("postgres://test/access")

        with patch("asyncpg.create_pool", AsyncMock(side_effect=OSError("refused"))):
            with pytest.raises(RuleStoreUnavailable):
                await store.start()

    @pytest.mark.asyncio
    async def test_start_creates_tables(self, connection):
        """Test start() creates the schema through the new pool."""
        pool = MagicMock()
        pool.acquire.return_value.__aenter__.return_value = connection
        pool.acquire.return_value.__aexit__.return_value = False
        store = PostgreSQLRuleStore("postgres://test/access", min_size=1, max_size=2)

        with patch("asyncpg.create_pool", AsyncMock(return_value=pool)) as create_pool:
            await store.start()

        create_pool.assert_awaited_once_with(
            "postgres://test/access", min_size=1, max_size=2, command_timeout=30
        )
        assert connection.execute.await_count == 7

    @pytest.mark.asyncio
    async def test_stop(self, store):
        """Test stop() closes the pool."""
        pool = store.pool

        await store.stop()

        pool.close.assert_awaited_once()
        assert store.pool is None
