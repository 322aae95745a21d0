"""
Rule store interface consumed by the permission engine and the manager.
"""

from typing import List, Protocol, runtime_checkable

from ..rules.models import AuthorizationRule


@runtime_checkable
class RuleStore(Protocol):
    """Persistence for groups, privileges, users, resources and rules.

    Implementations raise ``RuleStoreUnavailable`` when they cannot answer;
    they never report a failure as ``False``.
    """

    # Decision queries

    async def resource_identifier_exists(self, identifier: str) -> bool: ...

    async def claim_authorized(
        self,
        identifier: str,
        claim_name: str,
        claim_value: str,
        user_name: str,
        password: str,
    ) -> bool: ...

    # Creation

    async def create_group(self, description: str) -> int: ...

    async def create_privilege(self, description: str) -> int: ...

    async def create_privilege_value(self, privilege_id: int, value: str) -> int: ...

    async def create_resource_identifier(self, identifier: str) -> int: ...

    async def create_user(self, user_name: str, password: str) -> int: ...

    async def add_user_to_group(self, group_id: int, user_id: int) -> None: ...

    async def create_authorization_rule(
        self, group_id: int, resource_id: int, privilege_value_id: int
    ) -> AuthorizationRule: ...

    # Existence by id

    async def group_exists(self, group_id: int) -> bool: ...

    async def privilege_exists(self, privilege_id: int) -> bool: ...

    async def privilege_value_exists(self, privilege_value_id: int) -> bool: ...

    async def resource_exists(self, resource_id: int) -> bool: ...

    async def user_exists(self, user_id: int) -> bool: ...

    async def get_authorization_rules(self) -> List[AuthorizationRule]: ...
