"""
Shared metrics configuration for the security decision service.
"""

import threading
import weakref
from typing import Dict, Optional

from prometheus_client import Counter, Histogram, CollectorRegistry, REGISTRY

# Collectors can only be registered once per registry; later collectors reuse them.
_registered: "weakref.WeakKeyDictionary[CollectorRegistry, Dict[str, object]]" = weakref.WeakKeyDictionary()
_lock = threading.Lock()


def _decision_metrics(registry: CollectorRegistry) -> Dict[str, object]:
    """Return the decision metrics registered on ``registry``, creating them once."""
    with _lock:
        metrics = _registered.get(registry)
        if metrics is None:
            metrics = {
                "permission_checks_total": Counter(
                    "permission_checks_total",
                    "Total permission checks by outcome",
                    ["service", "result"],
                    registry=registry
                ),
                "hierarchy_walk_depth": Histogram(
                    "hierarchy_walk_depth",
                    "Identifiers tried before a decision was reached",
                    ["service"],
                    buckets=(1, 2, 3, 5, 8, 13, 21),
                    registry=registry
                ),
                "rule_store_errors_total": Counter(
                    "rule_store_errors_total",
                    "Total rule store failures seen by the engine",
                    ["service", "operation"],
                    registry=registry
                ),
            }
            _registered[registry] = metrics
        return metrics


class MetricsCollector:
    """Prometheus metrics for permission decisions."""
    
    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else REGISTRY
        self._setup_metrics()
    
    def _setup_metrics(self):
        """Bind the registry's decision metrics to this collector."""
        metrics = _decision_metrics(self.registry)
        self.permission_checks_total = metrics["permission_checks_total"]
        self.hierarchy_walk_depth = metrics["hierarchy_walk_depth"]
        self.rule_store_errors_total = metrics["rule_store_errors_total"]
    
    def record_decision(self, result: str, depth: int):
        """Record the outcome of one permission check."""
        self.permission_checks_total.labels(service=self.service_name, result=result).inc()
        self.hierarchy_walk_depth.labels(service=self.service_name).observe(depth)
    
    def record_store_error(self, operation: str):
        """Record a rule store failure that aborted a permission check."""
        self.permission_checks_total.labels(service=self.service_name, result="error").inc()
        self.rule_store_errors_total.labels(service=self.service_name, operation=operation).inc()
