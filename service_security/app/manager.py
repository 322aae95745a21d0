"""
Security manager: the public surface of the security service.

Wraps the permission engine and offers thin create/lookup helpers that
validate input, delegate to the rule store and log the outcome.
"""

from typing import List, Optional

from prometheus_client import CollectorRegistry

from shared.config import SecurityConfig, get_config
from shared.logging import configure_logging, get_logger, request_context
from shared.errors import ValidationError
from shared.metrics import MetricsCollector
from .persistence import create_rule_store
from .persistence.base import RuleStore
from .persistence.postgres import PostgreSQLRuleStore
from .rules.engine import PermissionEngine
from .rules.identifiers import ClaimSet, canonicalize
from .rules.models import (
    AuthorizationRule, Credentials, SecurityGroup, SecurityPrivilege, SecurityPrivilegeValue,
    SecurityResourceIdentifier, SecurityUser
)


def _require_text(name: str, value) -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError(f"{name} must be a non-empty string", details={"field": name})
    return value


class SecurityManager:
    """Permission checks and entity helpers over a ``RuleStore``.

    Lookups return ``None`` when the entity does not exist. Bad input raises
    ``ValidationError`` and store failures raise ``RuleStoreUnavailable``.
    """
    
    def __init__(self, store: RuleStore, metrics: Optional[MetricsCollector] = None):
        self.store = store
        self.engine = PermissionEngine(store, metrics=metrics)
        self.logger = get_logger("security.manager")
    
    async def check_permission(self, full_identifier: str, user_name: str, password: str) -> bool:
        """Check ``path?claim=value&...`` for the given credentials."""
        with request_context(user_name=user_name):
            return await self.engine.check_identifier(full_identifier, Credentials(user_name, password))
    
    async def check_permission_with_claims(
        self,
        resource_identifier: str,
        claims: ClaimSet,
        user_name: str,
        password: str
    ) -> bool:
        """Check explicit ``claims`` against ``resource_identifier``."""
        with request_context(user_name=user_name):
            return await self.engine.check_permission(
                resource_identifier, claims, Credentials(user_name, password)
            )
    
    async def create_authorization_rule(
        self,
        group: SecurityGroup,
        privilege_value_id: int,
        resource: SecurityResourceIdentifier
    ) -> Optional[AuthorizationRule]:
        if (await self.store.privilege_value_exists(privilege_value_id)
                and await self.store.group_exists(group.id)
                and await self.store.resource_exists(resource.id)):
            rule = await self.store.create_authorization_rule(group.id, resource.id, privilege_value_id)
            self.logger.info("Authorization rule created", rule=rule)
            return rule
        
        self.logger.info(
            "Can't create authorization rule",
            group_id=group.id,
            privilege_value_id=privilege_value_id,
            resource_id=resource.id
        )
        return None
    
    async def create_group(self, description: str) -> SecurityGroup:
        _require_text("description", description)
        group = SecurityGroup(await self.store.create_group(description))
        self.logger.info("Group created", group_id=group.id)
        return group
    
    async def create_privilege(self, description: str) -> SecurityPrivilege:
        _require_text("description", description)
        privilege = SecurityPrivilege(await self.store.create_privilege(description))
        self.logger.info("Privilege created", privilege_id=privilege.id, description=description)
        return privilege
    
    async def create_privilege_value(self, privilege: SecurityPrivilege, value: str) -> SecurityPrivilegeValue:
        _require_text("value", value)
        value_id = await self.store.create_privilege_value(privilege.id, value)
        privilege_value = SecurityPrivilegeValue(value_id, privilege.id)
        self.logger.info("Privilege value created", privilege_value_id=value_id, privilege_id=privilege.id)
        return privilege_value
    
    async def create_resource_identifier(self, resource_identifier: str) -> SecurityResourceIdentifier:
        """Register the canonical form of ``resource_identifier``."""
        identifier = canonicalize(resource_identifier)
        resource = SecurityResourceIdentifier(await self.store.create_resource_identifier(identifier))
        self.logger.info("Resource identifier created", resource_id=resource.id, identifier=identifier)
        return resource
    
    async def create_user(self, user_name: str, password: str) -> SecurityUser:
        _require_text("user_name", user_name)
        _require_text("password", password)
        user = SecurityUser(await self.store.create_user(user_name, password))
        self.logger.info("User created", user_id=user.id, user_name=user_name)
        return user
    
    async def add_user_to_group(self, group: SecurityGroup, user: SecurityUser) -> None:
        await self.store.add_user_to_group(group.id, user.id)
        self.logger.info("User added to group", group_id=group.id, user_id=user.id)
    
    async def get_group(self, group_id: int) -> Optional[SecurityGroup]:
        if await self.store.group_exists(group_id):
            return SecurityGroup(group_id)
        self.logger.info("Group doesn't exist", group_id=group_id)
        return None
    
    async def get_privilege(self, privilege_id: int) -> Optional[SecurityPrivilege]:
        if await self.store.privilege_exists(privilege_id):
            return SecurityPrivilege(privilege_id)
        self.logger.info("Privilege doesn't exist", privilege_id=privilege_id)
        return None
    
    async def get_resource_identifier(self, resource_id: int) -> Optional[SecurityResourceIdentifier]:
        if await self.store.resource_exists(resource_id):
            return SecurityResourceIdentifier(resource_id)
        self.logger.info("Resource identifier doesn't exist", resource_id=resource_id)
        return None
    
    async def get_user(self, user_id: int) -> Optional[SecurityUser]:
        if await self.store.user_exists(user_id):
            return SecurityUser(user_id)
        self.logger.info("User doesn't exist", user_id=user_id)
        return None
    
    async def get_authorization_rules(self) -> List[AuthorizationRule]:
        return await self.store.get_authorization_rules()


async def start_security_manager(
    config: Optional[SecurityConfig] = None,
    registry: Optional[CollectorRegistry] = None
) -> SecurityManager:
    """Configure logging, build and start the configured rule store, and wrap it."""
    config = config or get_config()
    configure_logging(config.service_name, config.log_level)
    
    store = create_rule_store(config)
    if isinstance(store, PostgreSQLRuleStore):
        await store.start()
    
    metrics = MetricsCollector(config.service_name, registry=registry) if config.enable_metrics else None
    get_logger("security.manager").info(
        "Security manager started",
        env=config.env,
        rule_store=config.rule_store_backend
    )
    return SecurityManager(store, metrics=metrics)
