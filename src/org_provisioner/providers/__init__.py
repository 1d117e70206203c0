"""AWS Organizations access and account placement."""

from .organizations_client import AwsOrganizationsClient, build_organizations_client
from .placement import DEFAULT_ROOT_NAME, Placement

__all__ = [
    "AwsOrganizationsClient",
    "DEFAULT_ROOT_NAME",
    "Placement",
    "build_organizations_client",
]
