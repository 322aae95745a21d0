"""
In-memory rule store.

Backs tests and single-process deployments. State lives in plain dicts and
is not shared between instances.
"""

import hmac
import itertools
from dataclasses import dataclass, field
from typing import Dict, List, Set, Tuple

from shared.errors import ValidationError
from shared.logging import get_logger
from ..rules.models import AuthorizationRule


@dataclass
class _User:
    user_name: str
    password: str = field(repr=False)
    groups: Set[int] = field(default_factory=set)


class InMemoryRuleStore:
    """Dict-backed implementation of ``RuleStore``."""
    
    def __init__(self):
        self.logger = get_logger("security.persistence.memory")
        self._ids = itertools.count(1)
        self.groups: Dict[int, str] = {}
        self.privileges: Dict[int, str] = {}
        self.privilege_values: Dict[int, Tuple[int, str]] = {}
        self.resources: Dict[int, str] = {}
        self.users: Dict[int, _User] = {}
        self.rules: List[AuthorizationRule] = []
    
    def _next_id(self) -> int:
        return next(self._ids)
    
    def _resource_id(self, identifier: str):
        for resource_id, registered in self.resources.items():
            if registered == identifier:
                return resource_id
        return None
    
    def _authenticate(self, user_name: str, password: str):
        for user in self.users.values():
            if user.user_name == user_name:
                if hmac.compare_digest(user.password.encode(), password.encode()):
                    return user
                return None
        return None
    
    async def resource_identifier_exists(self, identifier: str) -> bool:
        return self._resource_id(identifier) is not None
    
    async def claim_authorized(
        self,
        identifier: str,
        claim_name: str,
        claim_value: str,
        user_name: str,
        password: str,
    ) -> bool:
        """Check whether one of the caller's groups holds ``claim_name=claim_value`` at ``identifier``."""
        user = self._authenticate(user_name, password)
        if user is None or not user.groups:
            return False
        
        resource_id = self._resource_id(identifier)
        if resource_id is None:
            return False
        
        for rule in self.rules:
            if rule.resource_id != resource_id or rule.group_id not in user.groups:
                continue
            privilege_id, value = self.privilege_values[rule.privilege_value_id]
            if self.privileges[privilege_id] == claim_name and value == claim_value:
                return True
        return False
    
    async def create_group(self, description: str) -> int:
        group_id = self._next_id()
        self.groups[group_id] = description
        return group_id
    
    async def create_privilege(self, description: str) -> int:
        for privilege_id, existing in self.privileges.items():
            if existing == description:
                return privilege_id
        privilege_id = self._next_id()
        self.privileges[privilege_id] = description
        return privilege_id
    
    async def create_privilege_value(self, privilege_id: int, value: str) -> int:
        if privilege_id not in self.privileges:
            raise ValidationError("Unknown privilege", details={"privilege_id": privilege_id})
        for value_id, existing in self.privilege_values.items():
            if existing == (privilege_id, value):
                return value_id
        value_id = self._next_id()
        self.privilege_values[value_id] = (privilege_id, value)
        return value_id
    
    async def create_resource_identifier(self, identifier: str) -> int:
        resource_id = self._resource_id(identifier)
        if resource_id is None:
            resource_id = self._next_id()
            self.resources[resource_id] = identifier
        return resource_id
    
    async def create_user(self, user_name: str, password: str) -> int:
        if any(user.user_name == user_name for user in self.users.values()):
            raise ValidationError("User already exists", details={"user_name": user_name})
        user_id = self._next_id()
        self.users[user_id] = _User(user_name=user_name, password=password)
        return user_id
    
    async def add_user_to_group(self, group_id: int, user_id: int) -> None:
        if group_id not in self.groups or user_id not in self.users:
            raise ValidationError(
                "Unknown group or user",
                details={"group_id": group_id, "user_id": user_id}
            )
        self.users[user_id].groups.add(group_id)
    
    async def create_authorization_rule(
        self, group_id: int, resource_id: int, privilege_value_id: int
    ) -> AuthorizationRule:
        rule = AuthorizationRule(group_id, resource_id, privilege_value_id)
        if rule not in self.rules:
            self.rules.append(rule)
        return rule
    
    async def group_exists(self, group_id: int) -> bool:
        return group_id in self.groups
    
    async def privilege_exists(self, privilege_id: int) -> bool:
        return privilege_id in self.privileges
    
    async def privilege_value_exists(self, privilege_value_id: int) -> bool:
        return privilege_value_id in self.privilege_values
    
    async def resource_exists(self, resource_id: int) -> bool:
        return resource_id in self.resources
    
    async def user_exists(self, user_id: int) -> bool:
        return user_id in self.users
    
    async def get_authorization_rules(self) -> List[AuthorizationRule]:
        return list(self.rules)
    
    def clear(self):
        """Drop all stored entities."""
        self.groups.clear()
        self.privileges.clear()
        self.privilege_values.clear()
        self.resources.clear()
        self.users.clear()
        self.rules.clear()
        self.logger.info("In-memory rule store cleared")
