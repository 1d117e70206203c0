"""Unit tests for AwsOrganizationsClient.

The boto3 client is a MagicMock; the tests check request parameters,
response parsing and that throttling goes through the backoff helper.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from org_provisioner.backoff import RetryPolicy
from org_provisioner.errors import RemoteUnavailable
from org_provisioner.provisioning.models import HierarchyRoot
from org_provisioner.providers.organizations_client import AwsOrganizationsClient


def _make_client(boto_client: MagicMock, **kwargs) -> AwsOrganizationsClient:
    return AwsOrganizationsClient(
        boto_client,
        retry_policy=RetryPolicy(max_attempts=3, base_delay=0.0),
        **kwargs,
    )


def _status(**fields) -> dict:
    return {"CreateAccountStatus": fields}


def _throttled(operation: str = "CreateAccount") -> ClientError:
    return ClientError(
        {"Error": {"Code": "TooManyRequestsException", "Message": "slow down"}},
        operation,
    )


# ── create_account / create_gov_cloud_account ────────────────────


@pytest.mark.asyncio
async def test_create_account_sends_name_email_and_role():
    boto = MagicMock()
    boto.create_account.return_value = _status(Id="car-1", State="IN_PROGRESS")

    status = await _make_client(boto).create_account(
        name="Audit", email="audit@example.com", role_name="OrganizationAccountAccessRole",
    )

    boto.create_account.assert_called_once_with(
        AccountName="Audit",
        Email="audit@example.com",
        RoleName="OrganizationAccountAccessRole",
    )
    assert status.in_progress
    assert status.request_id == "car-1"


@pytest.mark.asyncio
async def test_create_account_omits_role_when_not_configured():
    boto = MagicMock()
    boto.create_account.return_value = _status(Id="car-1", State="IN_PROGRESS")

    await _make_client(boto).create_account(name="Audit", email="audit@example.com")

    assert "RoleName" not in boto.create_account.call_args.kwargs


@pytest.mark.asyncio
async def test_create_gov_cloud_account_uses_variant_operation():
    boto = MagicMock()
    boto.create_gov_cloud_account.return_value = _status(
        Id="car-9",
        State="SUCCEEDED",
        AccountId="111111111111",
        GovCloudAccountId="222222222222",
        AccountName="Gov",
    )

    status = await _make_client(boto).create_gov_cloud_account(
        name="Gov", email="gov@example.com",
    )

    boto.create_gov_cloud_account.assert_called_once_with(
        AccountName="Gov", Email="gov@example.com",
    )
    boto.create_account.assert_not_called()
    assert status.succeeded
    assert status.account_id == "111111111111"
    assert status.secondary_account_id == "222222222222"
    assert status.account_name == "Gov"


# ── describe_creation_status ─────────────────────────────────────


@pytest.mark.asyncio
async def test_describe_creation_status_parses_failure_reason():
    boto = MagicMock()
    boto.describe_create_account_status.return_value = _status(
        Id="car-1", State="FAILED", FailureReason="EMAIL_ALREADY_EXISTS",
    )

    status = await _make_client(boto).describe_creation_status("car-1")

    boto.describe_create_account_status.assert_called_once_with(
        CreateAccountRequestId="car-1",
    )
    assert status.state == "FAILED"
    assert status.failure_reason == "EMAIL_ALREADY_EXISTS"
    assert not status.succeeded
    assert not status.in_progress


@pytest.mark.asyncio
async def test_describe_retries_when_throttled():
    boto = MagicMock()
    boto.describe_create_account_status.side_effect = [
        _throttled("DescribeCreateAccountStatus"),
        _status(Id="car-1", State="IN_PROGRESS"),
    ]

    with patch("org_provisioner.backoff.asyncio.sleep", new_callable=AsyncMock):
        status = await _make_client(boto).describe_creation_status("car-1")

    assert status.in_progress
    assert boto.describe_create_account_status.call_count == 2


@pytest.mark.asyncio
async def test_create_account_exhausts_retries():
    boto = MagicMock()
    boto.create_account.side_effect = _throttled()

    with patch("org_provisioner.backoff.asyncio.sleep", new_callable=AsyncMock):
        with pytest.raises(RemoteUnavailable) as exc_info:
            await _make_client(boto).create_account(name="A", email="a@example.com")

    assert boto.create_account.call_count == 3
    assert exc_info.value.operation == "create_account"


# ── list_roots / move_account ────────────────────────────────────


@pytest.mark.asyncio
async def test_list_roots_follows_pagination():
    boto = MagicMock()
    boto.list_roots.side_effect = [
        {"Roots": [{"Id": "r-aaaa", "Name": "Other"}], "NextToken": "tok"},
        {"Roots": [{"Id": "r-bbbb", "Name": "Root"}]},
    ]

    roots = await _make_client(boto).list_roots()

    assert roots == [
        HierarchyRoot(id="r-aaaa", name="Other"),
        HierarchyRoot(id="r-bbbb", name="Root"),
    ]
    assert boto.list_roots.call_args_list[0].kwargs == {}
    assert boto.list_roots.call_args_list[1].kwargs == {"NextToken": "tok"}


@pytest.mark.asyncio
async def test_move_account_returns_http_status():
    boto = MagicMock()
    boto.move_account.return_value = {"ResponseMetadata": {"HTTPStatusCode": 200}}

    status_code = await _make_client(boto).move_account(
        account_id="111", source_parent_id="r-1", destination_parent_id="ou-1",
    )

    assert status_code == 200
    boto.move_account.assert_called_once_with(
        AccountId="111", SourceParentId="r-1", DestinationParentId="ou-1",
    )


@pytest.mark.asyncio
async def test_move_account_without_metadata_reports_zero():
    boto = MagicMock()
    boto.move_account.return_value = {}

    status_code = await _make_client(boto).move_account(
        account_id="111", source_parent_id="r-1", destination_parent_id="ou-1",
    )

    assert status_code == 0


def test_default_client_targets_us_east_1():
    with patch("org_provisioner.providers.organizations_client.boto3.client") as mock_client:
        AwsOrganizationsClient()

    assert mock_client.call_args.args[0] == "organizations"
    assert mock_client.call_args.kwargs["region_name"] == "us-east-1"
