"""Provisioning step engine: advances one pending account request per call.

Each ``advance()`` call is a complete unit of work:

  1. Read at most one pending request from the request store.
     None left -> ``is_complete=True``.
  2. No ``creation_request_id`` yet -> submit CreateAccount (or
     CreateGovCloudAccount). IN_PROGRESS -> persist the request id and stop.
     SUCCEEDED -> finish in the same call. Anything else is fatal.
  3. Already submitted -> DescribeCreateAccountStatus. IN_PROGRESS -> stop.
     SUCCEEDED -> record the GovCloud mapping (if any), place the account,
     delete the request row. Anything else is fatal.

Nothing is held in memory between calls: every decision is re-derived from
the store, so an invocation can be replayed after a crash between any two
steps. The only non-idempotent call is CreateAccount, guarded by the stored
``creation_request_id``.

The engine assumes at most one concurrent ``advance()`` system-wide. If the
write that persists ``creation_request_id`` fails after CreateAccount was
accepted, the invocation raises ``StateSyncFailed`` and the remote account
may exist without a stored request id; an operator must reconcile it before
the request is retried.
"""

from __future__ import annotations

from typing import Awaitable, NoReturn

from ..errors import (
    ProvisioningFailed,
    RemoteUnavailable,
    StateSyncFailed,
    StoreError,
)
from ..observability.logging import bound_identity, get_logger
from ..protocols import IdentityMappingStore, OrganizationsClient, RequestStore
from ..providers.placement import Placement
from .models import AdvanceResult, CreationStatus, IdentityMapping, ProvisioningRequest

logger = get_logger(__name__)


class ProvisioningStepEngine:
    """Drives pending account requests to created, placed and retired."""

    def __init__(
        self,
        *,
        remote_client: OrganizationsClient,
        request_store: RequestStore,
        mapping_store: IdentityMappingStore,
        role_name: str | None = None,
        placement: Placement | None = None,
    ) -> None:
        self._remote = remote_client
        self._requests = request_store
        self._mappings = mapping_store
        self._role_name = role_name
        self._placement = placement or Placement(remote_client)

    async def advance(self) -> AdvanceResult:
        """Advance at most one pending request by exactly one step."""
        request = await self._requests.scan_one_pending()
        if request is None:
            logger.info('provisioning_complete')
            return AdvanceResult(is_complete=True)

        with bound_identity(request.identity_key):
            try:
                return await self._advance_request(request)
            except RemoteUnavailable as exc:
                if exc.identity_key is not None:
                    raise
                logger.error(
                    'remote_unavailable',
                    operation=exc.operation,
                    attempts=exc.attempts,
                )
                raise exc.for_request(request.identity_key) from exc

    async def _advance_request(self, request: ProvisioningRequest) -> AdvanceResult:
        if not request.submitted:
            status = await self._submit(request)
            if status.in_progress:
                await self._record_submission(request, status)
                return AdvanceResult(
                    is_complete=False,
                    identity_key=request.identity_key,
                    action='submitted',
                )
            if not status.succeeded:
                self._fail(request, status)
            logger.info('creation_succeeded', account_id=status.account_id, synchronous=True)
        else:
            status = await self._remote.describe_creation_status(
                request.creation_request_id,
            )
            if status.in_progress:
                logger.info(
                    'creation_in_progress',
                    create_request_id=request.creation_request_id,
                )
                return AdvanceResult(
                    is_complete=False,
                    identity_key=request.identity_key,
                    action='in_progress',
                )
            if not status.succeeded:
                self._fail(request, status)
            logger.info('creation_succeeded', account_id=status.account_id)

        await self._finish(request, status)
        return AdvanceResult(
            is_complete=False,
            identity_key=request.identity_key,
            action='provisioned',
        )

    async def _submit(self, request: ProvisioningRequest) -> CreationStatus:
        logger.info('creation_submitting', gov_cloud=request.variant_flag)
        if request.variant_flag:
            return await self._remote.create_gov_cloud_account(
                name=request.display_name,
                email=request.identity_key,
                role_name=self._role_name,
            )
        return await self._remote.create_account(
            name=request.display_name,
            email=request.identity_key,
            role_name=self._role_name,
        )

    async def _record_submission(
        self, request: ProvisioningRequest, status: CreationStatus,
    ) -> None:
        if not status.request_id:
            self._fail(request, status, reason='no create request id returned')
        updated = request.with_creation_request_id(status.request_id)
        await self._sync(
            request,
            'update the request with its create request id',
            self._requests.put_request(updated),
        )
        logger.info('creation_submitted', create_request_id=status.request_id)

    async def _finish(self, request: ProvisioningRequest, status: CreationStatus) -> None:
        if not status.account_id:
            self._fail(request, status, reason='no account id reported')

        if status.secondary_account_id:
            mapping = IdentityMapping(
                primary_id=status.account_id,
                secondary_id=status.secondary_account_id,
                display_name=status.account_name or request.display_name,
            )
            await self._sync(
                request,
                'record the GovCloud account mapping',
                self._mappings.put_mapping(mapping),
                store='identity mapping store',
            )
            logger.info(
                'secondary_identity_recorded',
                account_id=mapping.primary_id,
                gov_cloud_account_id=mapping.secondary_id,
            )

        await self._placement.place(
            identity_key=request.identity_key,
            account_id=status.account_id,
            target_group_id=request.target_group_id,
        )

        await self._sync(
            request,
            'delete the completed request',
            self._requests.delete_request(request.identity_key),
        )
        logger.info('request_retired', account_id=status.account_id)

    async def _sync(
        self,
        request: ProvisioningRequest,
        operation: str,
        write: Awaitable[bool],
        *,
        store: str = 'request store',
    ) -> None:
        try:
            confirmed = await write
        except (StoreError, RemoteUnavailable) as exc:
            logger.error('state_sync_failed', operation=operation, store=store, error=str(exc))
            raise StateSyncFailed(
                request.identity_key, operation=operation, store=store,
            ) from exc
        if not confirmed:
            logger.error('state_sync_failed', operation=operation, store=store)
            raise StateSyncFailed(request.identity_key, operation=operation, store=store)

    def _fail(
        self,
        request: ProvisioningRequest,
        status: CreationStatus,
        *,
        reason: str | None = None,
    ) -> NoReturn:
        failure_reason = reason or status.failure_reason
        logger.error(
            'creation_failed',
            state=status.state,
            failure_reason=failure_reason,
        )
        raise ProvisioningFailed(
            request.identity_key,
            state=status.state,
            failure_reason=failure_reason,
        )
