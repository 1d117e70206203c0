"""Account provisioning records and the step engine."""

from .engine import ProvisioningStepEngine
from .models import (
    AdvanceResult,
    CreationState,
    CreationStatus,
    HierarchyRoot,
    IdentityMapping,
    ProvisioningRequest,
)

__all__ = [
    'AdvanceResult',
    'CreationState',
    'CreationStatus',
    'HierarchyRoot',
    'IdentityMapping',
    'ProvisioningRequest',
    'ProvisioningStepEngine',
]
