"""
PostgreSQL persistence layer for the security service.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

import asyncpg
from shared.logging import get_logger
from shared.errors import RuleStoreUnavailable, ValidationError
from ..rules.models import AuthorizationRule


SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS security_groups (
        id BIGSERIAL PRIMARY KEY,
        description TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS security_privileges (
        id BIGSERIAL PRIMARY KEY,
        description TEXT NOT NULL UNIQUE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS security_privilege_values (
        id BIGSERIAL PRIMARY KEY,
        privilege_id BIGINT NOT NULL REFERENCES security_privileges(id),
        value TEXT NOT NULL,
        UNIQUE (privilege_id, value)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS security_resources (
        id BIGSERIAL PRIMARY KEY,
        identifier TEXT NOT NULL UNIQUE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS security_users (
        id BIGSERIAL PRIMARY KEY,
        user_name TEXT NOT NULL UNIQUE,
        password TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS security_group_users (
        group_id BIGINT NOT NULL REFERENCES security_groups(id),
        user_id BIGINT NOT NULL REFERENCES security_users(id),
        PRIMARY KEY (group_id, user_id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS security_authorization_rules (
        group_id BIGINT NOT NULL REFERENCES security_groups(id),
        resource_id BIGINT NOT NULL REFERENCES security_resources(id),
        privilege_value_id BIGINT NOT NULL REFERENCES security_privilege_values(id),
        PRIMARY KEY (group_id, resource_id, privilege_value_id)
    );
    """,
)

CLAIM_AUTHORIZED_QUERY = """
    SELECT EXISTS (
        SELECT 1
        FROM security_users u
        JOIN security_group_users gu ON gu.user_id = u.id
        JOIN security_authorization_rules r ON r.group_id = gu.group_id
        JOIN security_resources res ON res.id = r.resource_id
        JOIN security_privilege_values pv ON pv.id = r.privilege_value_id
        JOIN security_privileges p ON p.id = pv.privilege_id
        WHERE u.user_name = $1
          AND u.password = $2
          AND res.identifier = $3
          AND p.description = $4
          AND pv.value = $5
    )
"""


class PostgreSQLRuleStore:
    """PostgreSQL implementation of ``RuleStore``."""
    
    def __init__(
        self,
        dsn: str,
        min_size: int = 2,
        max_size: int = 10,
        command_timeout: float = 30
    ):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self.logger = get_logger("security.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None
    
    async def start(self):
        """Start the persistence layer."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=self.command_timeout
            )
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as e:
            self.logger.error("Failed to start PostgreSQL rule store", error=str(e))
            raise RuleStoreUnavailable(f"Failed to start: {e}") from e
        
        await self._create_tables()
        self.logger.info("PostgreSQL rule store started")
    
    async def stop(self):
        """Stop the persistence layer."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("PostgreSQL rule store stopped")
    
    @asynccontextmanager
    async def _connection(self, operation: str) -> AsyncIterator[asyncpg.Connection]:
        """Acquire a connection, mapping driver failures to service errors."""
        if self.pool is None:
            raise RuleStoreUnavailable("Rule store is not started", details={"operation": operation})
        try:
            async with self.pool.acquire() as conn:
                yield conn
        except asyncpg.IntegrityConstraintViolationError as e:
            self.logger.info("Rule store rejected write", operation=operation, error=str(e))
            raise ValidationError(str(e), details={"operation": operation}) from e
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as e:
            self.logger.error("Rule store operation failed", operation=operation, error=str(e))
            raise RuleStoreUnavailable(str(e), details={"operation": operation}) from e
    
    async def _create_tables(self):
        """Create database tables."""
        async with self._connection("create_tables") as conn:
            for statement in SCHEMA:
                await conn.execute(statement)
    
    async def resource_identifier_exists(self, identifier: str) -> bool:
        async with self._connection("resource_identifier_exists") as conn:
            return bool(await conn.fetchval(
                "SELECT EXISTS (SELECT 1 FROM security_resources WHERE identifier = $1)",
                identifier
            ))
    
    async def claim_authorized(
        self,
        identifier: str,
        claim_name: str,
        claim_value: str,
        user_name: str,
        password: str,
    ) -> bool:
        async with self._connection("claim_authorized") as conn:
            return bool(await conn.fetchval(
                CLAIM_AUTHORIZED_QUERY,
                user_name, password, identifier, claim_name, claim_value
            ))
    
    async def create_group(self, description: str) -> int:
        async with self._connection("create_group") as conn:
            return await conn.fetchval(
                "INSERT INTO security_groups (description) VALUES ($1) RETURNING id",
                description
            )
    
    async def create_privilege(self, description: str) -> int:
        async with self._connection("create_privilege") as conn:
            return await conn.fetchval("""
                INSERT INTO security_privileges (description) VALUES ($1)
                ON CONFLICT (description) DO UPDATE SET description = EXCLUDED.description
                RETURNING id
            """, description)
    
    async def create_privilege_value(self, privilege_id: int, value: str) -> int:
        async with self._connection("create_privilege_value") as conn:
            return await conn.fetchval("""
                INSERT INTO security_privilege_values (privilege_id, value) VALUES ($1, $2)
                ON CONFLICT (privilege_id, value) DO UPDATE SET value = EXCLUDED.value
                RETURNING id
            """, privilege_id, value)
    
    async def create_resource_identifier(self, identifier: str) -> int:
        async with self._connection("create_resource_identifier") as conn:
            return await conn.fetchval("""
                INSERT INTO security_resources (identifier) VALUES ($1)
                ON CONFLICT (identifier) DO UPDATE SET identifier = EXCLUDED.identifier
                RETURNING id
            """, identifier)
    
    async def create_user(self, user_name: str, password: str) -> int:
        async with self._connection("create_user") as conn:
            return await conn.fetchval(
                "INSERT INTO security_users (user_name, password) VALUES ($1, $2) RETURNING id",
                user_name, password
            )
    
    async def add_user_to_group(self, group_id: int, user_id: int) -> None:
        async with self._connection("add_user_to_group") as conn:
            await conn.execute("""
                INSERT INTO security_group_users (group_id, user_id) VALUES ($1, $2)
                ON CONFLICT DO NOTHING
            """, group_id, user_id)
    
    async def create_authorization_rule(
        self, group_id: int, resource_id: int, privilege_value_id: int
    ) -> AuthorizationRule:
        async with self._connection("create_authorization_rule") as conn:
            await conn.execute("""
                INSERT INTO security_authorization_rules (group_id, resource_id, privilege_value_id)
                VALUES ($1, $2, $3)
                ON CONFLICT DO NOTHING
            """, group_id, resource_id, privilege_value_id)
        return AuthorizationRule(group_id, resource_id, privilege_value_id)
    
    async def _exists(self, operation: str, table: str, row_id: int) -> bool:
        async with self._connection(operation) as conn:
            return bool(await conn.fetchval(
                f"SELECT EXISTS (SELECT 1 FROM {table} WHERE id = $1)", row_id
            ))
    
    async def group_exists(self, group_id: int) -> bool:
        return await self._exists("group_exists", "security_groups", group_id)
    
    async def privilege_exists(self, privilege_id: int) -> bool:
        return await self._exists("privilege_exists", "security_privileges", privilege_id)
    
    async def privilege_value_exists(self, privilege_value_id: int) -> bool:
        return await self._exists("privilege_value_exists", "security_privilege_values", privilege_value_id)
    
    async def resource_exists(self, resource_id: int) -> bool:
        return await self._exists("resource_exists", "security_resources", resource_id)
    
    async def user_exists(self, user_id: int) -> bool:
        return await self._exists("user_exists", "security_users", user_id)
    
    async def get_authorization_rules(self) -> List[AuthorizationRule]:
        async with self._connection("get_authorization_rules") as conn:
            rows = await conn.fetch("""
                SELECT group_id, resource_id, privilege_value_id
                FROM security_authorization_rules
                ORDER BY group_id, resource_id, privilege_value_id
            """)
        return [
            AuthorizationRule(row["group_id"], row["resource_id"], row["privilege_value_id"])
            for row in rows
        ]
    
    async def health_check(self) -> bool:
        """Check database health."""
        try:
            async with self._connection("health_check") as conn:
                await conn.fetchval("SELECT 1")
                return True
        except RuleStoreUnavailable:
            return False
