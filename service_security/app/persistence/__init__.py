"""
Rule store implementations.

- base: the ``RuleStore`` protocol consumed by the engine and manager.
- memory: dict-backed store for tests and single-process use.
- postgres: asyncpg-backed store.
"""

from shared.config import SecurityConfig
from shared.errors import ValidationError

from .base import RuleStore
from .memory import InMemoryRuleStore
from .postgres import PostgreSQLRuleStore


def create_rule_store(config: SecurityConfig) -> RuleStore:
    """Build the rule store selected by ``config.rule_store_backend``.

    A PostgreSQL store still has to be started by the caller.
    """
    if config.rule_store_backend == "memory":
        return InMemoryRuleStore()
    if config.rule_store_backend == "postgres":
        return PostgreSQLRuleStore(
            config.postgres_dsn,
            min_size=config.postgres_min_pool_size,
            max_size=config.postgres_max_pool_size,
            command_timeout=config.postgres_command_timeout
        )
    # SecurityConfig validates the backend; this guards configs built with model_construct.
    raise ValidationError(
        "Unknown rule store backend",
        details={"backend": config.rule_store_backend}
    )


__all__ = ["RuleStore", "InMemoryRuleStore", "PostgreSQLRuleStore", "create_rule_store"]
