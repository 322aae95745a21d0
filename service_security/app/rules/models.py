"""
Value types and entity handles for the security service.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Credentials:
    """Caller credentials, forwarded to the rule store unchanged."""
    user_name: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class SecurityGroup:
    """Handle to a stored group."""
    id: int


@dataclass(frozen=True)
class SecurityPrivilege:
    """Handle to a stored privilege, e.g. ``dept``."""
    id: int


@dataclass(frozen=True)
class SecurityPrivilegeValue:
    """Handle to one allowed value of a privilege, e.g. ``dept=eng``."""
    id: int
    privilege_id: int


@dataclass(frozen=True)
class SecurityResourceIdentifier:
    """Handle to a registered resource identifier."""
    id: int


@dataclass(frozen=True)
class SecurityUser:
    """Handle to a stored user."""
    id: int


@dataclass(frozen=True)
class AuthorizationRule:
    """Grants a privilege value on a resource identifier to a group."""
    group_id: int
    resource_id: int
    privilege_value_id: int
