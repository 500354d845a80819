"""
Domain models — Pydantic types for the service controller.

All models are re-exported here for convenient access:

    from hostcare.core.models import HealthSnapshot, RecoveryReport, DependencyReport
"""

from hostcare.core.models.dependency import (
    DependencyEdge,
    DependencyReport,
    EdgeKind,
    ServiceDependencies,
)
from hostcare.core.models.recovery import (
    AttemptOutcome,
    RecoveryOutcome,
    RecoveryReport,
    RestartAttempt,
    ServiceRecovery,
)
from hostcare.core.models.service import (
    HealthSnapshot,
    HealthStatus,
    InvalidServiceName,
    ServiceHealth,
    unique_names,
    validate_service_name,
)

__all__ = [
    # recovery.py
    "AttemptOutcome",
    # dependency.py
    "DependencyEdge",
    "DependencyReport",
    "EdgeKind",
    # service.py
    "HealthSnapshot",
    "HealthStatus",
    "InvalidServiceName",
    "RecoveryOutcome",
    "RecoveryReport",
    "RestartAttempt",
    "ServiceDependencies",
    "ServiceHealth",
    "ServiceRecovery",
    "unique_names",
    "validate_service_name",
]
