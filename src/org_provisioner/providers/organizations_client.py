"""AWS Organizations client used by the step engine and placement.

Wraps a boto3 ``organizations`` client. Every call goes through
:func:`~org_provisioner.backoff.call_with_backoff`, so throttling is retried
with jittered exponential backoff and surfaces as ``RemoteUnavailable`` once
the retry budget is spent. botocore's own retries are disabled.
"""

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.config import Config

from ..backoff import DEFAULT_RETRY_POLICY, RetryPolicy, call_with_backoff
from ..provisioning.models import CreationStatus, HierarchyRoot

logger = logging.getLogger(__name__)

# Organizations is a global service served from us-east-1.
DEFAULT_ORGANIZATIONS_REGION = 'us-east-1'


def build_organizations_client(region_name: str = DEFAULT_ORGANIZATIONS_REGION) -> Any:
    return boto3.client(
        'organizations',
        region_name=region_name,
        config=Config(retries={'max_attempts': 1, 'mode': 'standard'}),
    )


class AwsOrganizationsClient:
    """Backoff-wrapped AWS Organizations calls returning typed records."""

    def __init__(
        self,
        client: Any | None = None,
        *,
        region_name: str = DEFAULT_ORGANIZATIONS_REGION,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    ) -> None:
        self._client = client or build_organizations_client(region_name)
        self._policy = retry_policy

    async def _call(self, operation: str, **params: Any) -> dict[str, Any]:
        fn = getattr(self._client, operation)
        return await call_with_backoff(operation, fn, policy=self._policy, **params)

    @staticmethod
    def _create_params(name: str, email: str, role_name: str | None) -> dict[str, Any]:
        params: dict[str, Any] = {'AccountName': name, 'Email': email}
        if role_name:
            params['RoleName'] = role_name
        return params

    async def create_account(
        self, *, name: str, email: str, role_name: str | None = None,
    ) -> CreationStatus:
        response = await self._call(
            'create_account', **self._create_params(name, email, role_name),
        )
        status = CreationStatus.from_response(response)
        logger.info(
            'CreateAccount accepted: email=%s state=%s',
            email,
            status.state,
            extra={'identity_key': email, 'create_request_id': status.request_id},
        )
        return status

    async def create_gov_cloud_account(
        self, *, name: str, email: str, role_name: str | None = None,
    ) -> CreationStatus:
        response = await self._call(
            'create_gov_cloud_account', **self._create_params(name, email, role_name),
        )
        status = CreationStatus.from_response(response)
        logger.info(
            'CreateGovCloudAccount accepted: email=%s state=%s',
            email,
            status.state,
            extra={'identity_key': email, 'create_request_id': status.request_id},
        )
        return status

    async def describe_creation_status(self, request_id: str) -> CreationStatus:
        response = await self._call(
            'describe_create_account_status', CreateAccountRequestId=request_id,
        )
        return CreationStatus.from_response(response)

    async def list_roots(self) -> list[HierarchyRoot]:
        """List every root of the organization, following pagination."""
        roots: list[HierarchyRoot] = []
        params: dict[str, Any] = {}
        while True:
            response = await self._call('list_roots', **params)
            for item in response.get('Roots', []):
                roots.append(HierarchyRoot(id=item['Id'], name=item.get('Name', '')))
            next_token = response.get('NextToken')
            if not next_token:
                return roots
            params = {'NextToken': next_token}

    async def move_account(
        self, *, account_id: str, source_parent_id: str, destination_parent_id: str,
    ) -> int:
        """Move an account between parents and return the HTTP status code."""
        response = await self._call(
            'move_account',
            AccountId=account_id,
            SourceParentId=source_parent_id,
            DestinationParentId=destination_parent_id,
        )
        return int(response.get('ResponseMetadata', {}).get('HTTPStatusCode', 0))
