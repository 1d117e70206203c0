"""DynamoDB-backed request and identity-mapping stores.

The request table is keyed by ``accountEmail`` and holds the pending
request serialized as an ``accountConfig`` JSON string. The mapping table is
keyed by the created (commercial) account id.

All calls go through the throttling backoff. Non-throttling ``ClientError``s
are wrapped in :class:`~org_provisioner.errors.StoreError` so callers do not
depend on botocore.
"""

from __future__ import annotations

from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from ..backoff import DEFAULT_RETRY_POLICY, RetryPolicy, call_with_backoff
from ..errors import StoreError
from ..observability.logging import get_logger
from ..provisioning.models import IdentityMapping, ProvisioningRequest

logger = get_logger(__name__)


def build_dynamodb_resource(region_name: str | None = None) -> Any:
    return boto3.resource(
        'dynamodb',
        region_name=region_name,
        config=Config(retries={'max_attempts': 1, 'mode': 'standard'}),
    )


def _confirmed(response: dict[str, Any]) -> bool:
    return response.get('ResponseMetadata', {}).get('HTTPStatusCode') == 200


class _DynamoTable:
    def __init__(
        self,
        table_name: str,
        *,
        resource: Any | None = None,
        region_name: str | None = None,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    ) -> None:
        if not table_name:
            raise ValueError('table_name is required')
        self._table_name = table_name
        self._table = (resource or build_dynamodb_resource(region_name)).Table(table_name)
        self._policy = retry_policy

    @property
    def table_name(self) -> str:
        return self._table_name

    async def _call(self, operation: str, **params: Any) -> dict[str, Any]:
        fn = getattr(self._table, operation)
        try:
            return await call_with_backoff(
                f'{self._table_name}.{operation}', fn, policy=self._policy, **params,
            )
        except ClientError as exc:
            error = exc.response.get('Error', {})
            raise StoreError(
                self._table_name,
                operation,
                f"{error.get('Code', '')} {error.get('Message', '')}".strip(),
                response=exc.response,
            ) from exc

    async def _write(self, operation: str, **params: Any) -> bool:
        response = await self._call(operation, **params)
        if _confirmed(response):
            return True
        logger.warning(
            'store_write_unconfirmed',
            table=self._table_name,
            operation=operation,
            status_code=response.get('ResponseMetadata', {}).get('HTTPStatusCode'),
        )
        return False


class DynamoRequestStore(_DynamoTable):
    """Pending account requests table (``NewOrgAccountsTableName``)."""

    async def scan_one_pending(self) -> ProvisioningRequest | None:
        # Scan order is arbitrary; any single pending row will do.
        response = await self._call('scan', Limit=1)
        items = response.get('Items') or []
        if not items:
            return None
        return ProvisioningRequest.from_item(items[0])

    async def put_request(self, request: ProvisioningRequest) -> bool:
        return await self._write('put_item', Item=request.to_item())

    async def delete_request(self, identity_key: str) -> bool:
        return await self._write('delete_item', Key={'accountEmail': identity_key})


class DynamoIdentityMappingStore(_DynamoTable):
    """GovCloud account mapping table (``GovCloudAccountMappingTableName``)."""

    async def put_mapping(self, mapping: IdentityMapping) -> bool:
        return await self._write('put_item', Item=mapping.to_item())
