"""
Permission evaluation engine for the security service.
"""

from typing import Awaitable, Callable, Optional

from shared.logging import get_logger
from shared.errors import AccessLayerException, RuleStoreUnavailable
from shared.metrics import MetricsCollector
from ..persistence.base import RuleStore
from .identifiers import ClaimSet, canonicalize, iter_scopes, split_identifier, validate_identifier
from .models import Credentials


class PermissionEngine:
    """Decides whether a caller holds every requested claim on a resource.

    The engine keeps no state between calls; everything it knows comes from
    the rule store it is given.
    """
    
    def __init__(self, store: RuleStore, metrics: Optional[MetricsCollector] = None):
        self.store = store
        self.metrics = metrics
        self.logger = get_logger("security.engine")
    
    async def check_identifier(self, full_identifier: str, credentials: Credentials) -> bool:
        """Check the claims embedded in ``path?name=value&...`` against that identifier."""
        validate_identifier(full_identifier)
        resource_identifier = canonicalize(full_identifier)
        _, claims = split_identifier(resource_identifier)
        return await self.check_permission(resource_identifier, claims, credentials)
    
    async def check_permission(
        self,
        resource_identifier: str,
        claims: ClaimSet,
        credentials: Credentials
    ) -> bool:
        """Evaluate ``claims`` at the most specific registered scope of ``resource_identifier``.

        Scopes are tried from the full identifier down to the bare base path.
        The first registered one decides: every claim must be authorized there.
        Unregistered identifiers and denied claims both yield ``False``.
        """
        validate_identifier(resource_identifier)
        
        depth = 0
        for scope in iter_scopes(resource_identifier):
            depth += 1
            if not await self._guard(
                "resource_identifier_exists", self.store.resource_identifier_exists, scope
            ):
                continue
            
            for claim_name, claim_value in claims.items():
                authorized = await self._guard(
                    "claim_authorized",
                    self.store.claim_authorized,
                    scope,
                    claim_name,
                    claim_value,
                    credentials.user_name,
                    credentials.password
                )
                if not authorized:
                    self.logger.debug(
                        "Permission denied",
                        scope=scope,
                        claim=claim_name,
                        depth=depth
                    )
                    self._record("denied", depth)
                    return False
            
            self.logger.debug("Permission granted", scope=scope, claims=len(claims), depth=depth)
            self._record("granted", depth)
            return True
        
        self.logger.debug("No registered scope", resource=resource_identifier, depth=depth)
        self._record("unregistered", depth)
        return False
    
    async def _guard(self, operation: str, query: Callable[..., Awaitable[bool]], *args) -> bool:
        """Run a store query, surfacing any failure as ``RuleStoreUnavailable``."""
        try:
            return await query(*args)
        except AccessLayerException:
            self._record_error(operation)
            raise
        except Exception as e:
            self._record_error(operation)
            self.logger.error("Rule store query failed", operation=operation, error=str(e))
            raise RuleStoreUnavailable(str(e), details={"operation": operation}) from e
    
    def _record(self, result: str, depth: int):
        if self.metrics:
            self.metrics.record_decision(result, depth)
    
    def _record_error(self, operation: str):
        if self.metrics:
            self.metrics.record_store_error(operation)
