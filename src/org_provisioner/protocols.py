"""Store and remote-client protocol interfaces for dependency injection.

Concrete implementations: InMemory (local mode, tests) and boto3-backed
(DynamoDB tables, AWS Organizations). The step engine accepts anything that
matches these protocols.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .provisioning.models import (
        CreationStatus,
        HierarchyRoot,
        IdentityMapping,
        ProvisioningRequest,
    )


@runtime_checkable
class RequestStore(Protocol):
    """Pool of pending account-creation requests, one row per email."""

    async def scan_one_pending(self) -> ProvisioningRequest | None: ...
    async def put_request(self, request: ProvisioningRequest) -> bool: ...
    async def delete_request(self, identity_key: str) -> bool: ...


@runtime_checkable
class IdentityMappingStore(Protocol):
    """Primary account id -> GovCloud account id mapping."""

    async def put_mapping(self, mapping: IdentityMapping) -> bool: ...


@runtime_checkable
class OrganizationsClient(Protocol):
    """Remote control-plane calls, each already wrapped in throttling backoff."""

    async def create_account(
        self, *, name: str, email: str, role_name: str | None = None,
    ) -> CreationStatus: ...

    async def create_gov_cloud_account(
        self, *, name: str, email: str, role_name: str | None = None,
    ) -> CreationStatus: ...

    async def describe_creation_status(self, request_id: str) -> CreationStatus: ...

    async def list_roots(self) -> list[HierarchyRoot]: ...

    async def move_account(
        self, *, account_id: str, source_parent_id: str, destination_parent_id: str,
    ) -> int: ...
