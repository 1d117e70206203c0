"""In-memory store and Organizations implementations.

Used when ENVIRONMENT=local and by the test suite. They satisfy the protocol
interfaces but keep everything in dicts (no persistence across restarts).
"""

from __future__ import annotations

import uuid
from collections import deque
from typing import Any, Iterable

from .provisioning.models import (
    CreationState,
    CreationStatus,
    HierarchyRoot,
    IdentityMapping,
    ProvisioningRequest,
)


class InMemoryRequestStore:
    """Insertion-ordered request pool; ``scan_one_pending`` is FIFO."""

    def __init__(self, requests: Iterable[ProvisioningRequest] = ()) -> None:
        self._requests: dict[str, ProvisioningRequest] = {}
        self.fail_writes = False
        for request in requests:
            self._requests[request.identity_key] = request

    def __len__(self) -> int:
        return len(self._requests)

    def get(self, identity_key: str) -> ProvisioningRequest | None:
        return self._requests.get(identity_key)

    async def scan_one_pending(self) -> ProvisioningRequest | None:
        return next(iter(self._requests.values()), None)

    async def put_request(self, request: ProvisioningRequest) -> bool:
        if self.fail_writes:
            return False
        self._requests[request.identity_key] = request
        return True

    async def delete_request(self, identity_key: str) -> bool:
        if self.fail_writes:
            return False
        self._requests.pop(identity_key, None)
        return True


class InMemoryIdentityMappingStore:
    def __init__(self) -> None:
        self.mappings: dict[str, IdentityMapping] = {}
        self.put_count = 0

    async def put_mapping(self, mapping: IdentityMapping) -> bool:
        self.put_count += 1
        self.mappings[mapping.primary_id] = mapping
        return True


class InMemoryOrganizationsClient:
    """Scriptable Organizations fake that records every call.

    ``create_responses`` and ``describe_responses`` are consumed in order;
    when a queue is empty the fake answers with a synthetic success so that
    local mode can drain a seeded store end to end.
    """

    def __init__(
        self,
        *,
        create_responses: Iterable[CreationStatus] = (),
        describe_responses: Iterable[CreationStatus] = (),
        roots: Iterable[HierarchyRoot] | None = None,
        move_status: int = 200,
    ) -> None:
        self.create_responses: deque[CreationStatus] = deque(create_responses)
        self.describe_responses: deque[CreationStatus] = deque(describe_responses)
        self.roots = list(roots) if roots is not None else [
            HierarchyRoot(id='r-root', name='Root'),
        ]
        self.move_status = move_status
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.parents: dict[str, str] = {}

    def calls_to(self, operation: str) -> list[dict[str, Any]]:
        return [params for name, params in self.calls if name == operation]

    def _next_create(self, name: str) -> CreationStatus:
        if self.create_responses:
            return self.create_responses.popleft()
        account_id = str(uuid.uuid4().int)[:12]
        return CreationStatus(
            state=CreationState.SUCCEEDED.value,
            request_id=f'car-{uuid.uuid4().hex}',
            account_id=account_id,
            account_name=name,
        )

    async def create_account(
        self, *, name: str, email: str, role_name: str | None = None,
    ) -> CreationStatus:
        self.calls.append(('create_account', {'name': name, 'email': email, 'role_name': role_name}))
        return self._next_create(name)

    async def create_gov_cloud_account(
        self, *, name: str, email: str, role_name: str | None = None,
    ) -> CreationStatus:
        self.calls.append((
            'create_gov_cloud_account',
            {'name': name, 'email': email, 'role_name': role_name},
        ))
        return self._next_create(name)

    async def describe_creation_status(self, request_id: str) -> CreationStatus:
        self.calls.append(('describe_creation_status', {'request_id': request_id}))
        if self.describe_responses:
            return self.describe_responses.popleft()
        return CreationStatus(
            state=CreationState.SUCCEEDED.value,
            request_id=request_id,
            account_id=str(uuid.uuid4().int)[:12],
        )

    async def list_roots(self) -> list[HierarchyRoot]:
        self.calls.append(('list_roots', {}))
        return list(self.roots)

    async def move_account(
        self, *, account_id: str, source_parent_id: str, destination_parent_id: str,
    ) -> int:
        self.calls.append((
            'move_account',
            {
                'account_id': account_id,
                'source_parent_id': source_parent_id,
                'destination_parent_id': destination_parent_id,
            },
        ))
        if self.move_status == 200:
            self.parents[account_id] = destination_parent_id
        return self.move_status
