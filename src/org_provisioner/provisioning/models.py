"""Records exchanged between the step engine, the stores and the remote client."""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Mapping


class CreationState(str, Enum):
    """States reported by ``CreateAccountStatus.State``."""

    IN_PROGRESS = 'IN_PROGRESS'
    SUCCEEDED = 'SUCCEEDED'
    FAILED = 'FAILED'


def _parse_flag(value: Any) -> bool:
    # Upstream writes enableGovCloud as the string 'true'/'false'.
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == 'true'
    return False


@dataclass(frozen=True, slots=True)
class ProvisioningRequest:
    """One pending account creation, keyed by the account email."""

    identity_key: str
    display_name: str
    target_group_id: str
    target_group_path: str = ''
    description: str = ''
    variant_flag: bool = False
    creation_request_id: str | None = None

    @property
    def submitted(self) -> bool:
        return bool(self.creation_request_id)

    def with_creation_request_id(self, request_id: str) -> ProvisioningRequest:
        return replace(self, creation_request_id=request_id)

    @classmethod
    def from_account_config(cls, config: Mapping[str, Any]) -> ProvisioningRequest:
        """Build from the ``accountConfig`` document written by the enqueue step."""
        email = config.get('email')
        if not email:
            raise ValueError('accountConfig is missing email')
        return cls(
            identity_key=email,
            display_name=config.get('name', ''),
            description=config.get('description', ''),
            target_group_path=config.get('organizationalUnit', ''),
            target_group_id=config.get('organizationalUnitId', ''),
            variant_flag=_parse_flag(config.get('enableGovCloud')),
            creation_request_id=config.get('createRequestId') or None,
        )

    def to_account_config(self) -> dict[str, Any]:
        config: dict[str, Any] = {
            'name': self.display_name,
            'description': self.description,
            'email': self.identity_key,
            'enableGovCloud': 'true' if self.variant_flag else 'false',
            'organizationalUnit': self.target_group_path,
            'organizationalUnitId': self.target_group_id,
        }
        if self.creation_request_id:
            config['createRequestId'] = self.creation_request_id
        return config

    @classmethod
    def from_item(cls, item: Mapping[str, Any]) -> ProvisioningRequest:
        raw = item['accountConfig']
        config = json.loads(raw) if isinstance(raw, str) else raw
        return cls.from_account_config(config)

    def to_item(self) -> dict[str, Any]:
        return {
            'accountEmail': self.identity_key,
            'accountConfig': json.dumps(self.to_account_config()),
        }


@dataclass(frozen=True, slots=True)
class IdentityMapping:
    """A created account and the GovCloud account mirrored from it."""

    primary_id: str
    secondary_id: str
    display_name: str

    def to_item(self) -> dict[str, Any]:
        # Attribute names match the mapping table's existing key schema.
        return {
            'commericalAccountId': self.primary_id,
            'govCloudAccountId': self.secondary_id,
            'accountName': self.display_name,
        }

    @classmethod
    def from_item(cls, item: Mapping[str, Any]) -> IdentityMapping:
        return cls(
            primary_id=item['commericalAccountId'],
            secondary_id=item['govCloudAccountId'],
            display_name=item.get('accountName', ''),
        )


@dataclass(frozen=True, slots=True)
class CreationStatus:
    """Parsed ``CreateAccountStatus`` structure."""

    state: str | None
    request_id: str | None = None
    account_id: str | None = None
    account_name: str | None = None
    secondary_account_id: str | None = None
    failure_reason: str | None = None

    @property
    def in_progress(self) -> bool:
        return self.state == CreationState.IN_PROGRESS.value

    @property
    def succeeded(self) -> bool:
        return self.state == CreationState.SUCCEEDED.value

    @classmethod
    def from_response(cls, response: Mapping[str, Any]) -> CreationStatus:
        status = response.get('CreateAccountStatus') or {}
        return cls(
            state=status.get('State'),
            request_id=status.get('Id'),
            account_id=status.get('AccountId'),
            account_name=status.get('AccountName'),
            secondary_account_id=status.get('GovCloudAccountId'),
            failure_reason=status.get('FailureReason'),
        )


@dataclass(frozen=True, slots=True)
class HierarchyRoot:
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class AdvanceResult:
    """Outcome of one ``advance()`` call."""

    is_complete: bool
    identity_key: str | None = None
    action: str = 'none'
