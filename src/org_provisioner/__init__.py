"""Step-wise, idempotent account provisioning for AWS Organizations."""

from .main import create_app
from .provisioning.engine import ProvisioningStepEngine
from .settings import ProvisionerSettings

__all__ = ["ProvisionerSettings", "ProvisioningStepEngine", "create_app"]
