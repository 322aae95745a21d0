"""
Security service application package.

Decides whether a caller may access a resource identifier with a set of
privilege claims. It provides:

- app.manager: SecurityManager, the public surface.
- app.rules: Identifier parsing and the permission engine.
- app.persistence: The RuleStore protocol and its implementations.

Guidelines:
- The engine is stateless; all state lives in the rule store.
- Rule store failures propagate; they are never reported as a denial.
"""

from .manager import SecurityManager
from .rules.engine import PermissionEngine

__all__ = ["SecurityManager", "PermissionEngine"]
