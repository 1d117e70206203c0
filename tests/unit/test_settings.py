"""Tests for ProvisionerSettings: env loading, aliases and validation."""

from __future__ import annotations

import dataclasses

import pytest

from org_provisioner.backoff import RetryPolicy
from org_provisioner.settings import ProvisionerSettings


class TestDefaults:

    def test_local_defaults_are_valid(self):
        settings = ProvisionerSettings()
        assert settings.is_local
        assert settings.validate() == []
        assert settings.organizations_region == "us-east-1"

    def test_frozen(self):
        settings = ProvisionerSettings()
        with pytest.raises(dataclasses.FrozenInstanceError):
            settings.environment = "production"  # type: ignore[misc]

    def test_retry_policy_from_fields(self):
        settings = ProvisionerSettings(
            retry_max_attempts=4, retry_base_delay=0.5, retry_max_delay=2.0,
        )
        assert settings.retry_policy == RetryPolicy(max_attempts=4, base_delay=0.5, max_delay=2.0)


class TestValidate:

    def test_non_local_requires_both_tables(self):
        errors = ProvisionerSettings(environment="production").validate()
        assert len(errors) == 2
        assert any("request_table_name" in e for e in errors)
        assert any("mapping_table_name" in e for e in errors)

    def test_non_local_with_tables_is_valid(self):
        settings = ProvisionerSettings(
            environment="staging",
            request_table_name="new-org-accounts",
            mapping_table_name="gov-mapping",
        )
        assert settings.validate() == []

    def test_bad_retry_settings(self):
        errors = ProvisionerSettings(retry_max_attempts=0, retry_max_delay=-1.0).validate()
        assert "retry_max_attempts must be >= 1" in errors
        assert "retry delays must be >= 0" in errors


class TestFromEnv:

    def test_empty_env_gives_local_defaults(self):
        settings = ProvisionerSettings.from_env({})
        assert settings == ProvisionerSettings()

    def test_deployment_variable_names(self):
        settings = ProvisionerSettings.from_env({
            "ENVIRONMENT": "production",
            "NewOrgAccountsTableName": "new-org-accounts",
            "GovCloudAccountMappingTableName": "gov-mapping",
            "AccountRoleName": "OrganizationAccountAccessRole",
            "AWS_REGION": "eu-west-1",
        })
        assert settings.environment == "production"
        assert settings.request_table_name == "new-org-accounts"
        assert settings.mapping_table_name == "gov-mapping"
        assert settings.account_role_name == "OrganizationAccountAccessRole"
        assert settings.dynamodb_region == "eu-west-1"
        assert settings.organizations_region == "us-east-1"
        assert settings.validate() == []

    def test_upper_case_aliases(self):
        settings = ProvisionerSettings.from_env({
            "NEW_ORG_ACCOUNTS_TABLE_NAME": "req",
            "GOVCLOUD_ACCOUNT_MAPPING_TABLE_NAME": "map",
            "ACCOUNT_ROLE_NAME": "Admin",
        })
        assert settings.request_table_name == "req"
        assert settings.mapping_table_name == "map"
        assert settings.account_role_name == "Admin"

    def test_deployment_name_wins_over_alias(self):
        settings = ProvisionerSettings.from_env({
            "NewOrgAccountsTableName": "primary",
            "NEW_ORG_ACCOUNTS_TABLE_NAME": "alias",
        })
        assert settings.request_table_name == "primary"

    def test_table_names_without_environment_select_production(self):
        settings = ProvisionerSettings.from_env({
            "NewOrgAccountsTableName": "new-org-accounts",
            "GovCloudAccountMappingTableName": "gov-mapping",
            "AccountRoleName": "OrganizationAccountAccessRole",
        })
        assert settings.environment == "production"
        assert not settings.is_local
        assert settings.validate() == []

    def test_explicit_environment_wins_over_inference(self):
        settings = ProvisionerSettings.from_env({
            "ENVIRONMENT": "staging",
            "NewOrgAccountsTableName": "req",
        })
        assert settings.environment == "staging"

    def test_blank_role_name_means_aws_default(self):
        settings = ProvisionerSettings.from_env({"AccountRoleName": ""})
        assert settings.account_role_name is None

    def test_throttle_overrides(self):
        settings = ProvisionerSettings.from_env({
            "THROTTLE_MAX_ATTEMPTS": "3",
            "THROTTLE_BASE_DELAY": "0.01",
            "THROTTLE_MAX_DELAY": "1",
            "ORGANIZATIONS_REGION": "us-gov-west-1",
        })
        assert settings.retry_max_attempts == 3
        assert settings.retry_base_delay == 0.01
        assert settings.retry_max_delay == 1.0
        assert settings.organizations_region == "us-gov-west-1"

    def test_reads_process_environment_by_default(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "dev")
        monkeypatch.setenv("NewOrgAccountsTableName", "from-os")
        assert ProvisionerSettings.from_env().request_table_name == "from-os"
