"""Provisioner configuration settings.

ProvisionerSettings is the configuration object accepted by
build_dependencies() and create_app(). Only from_env() reads os.environ.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .backoff import RetryPolicy
from .providers.organizations_client import DEFAULT_ORGANIZATIONS_REGION


def _first(env: dict[str, str], *names: str) -> str:
    for name in names:
        value = env.get(name)
        if value:
            return value
    return ""


@dataclass(frozen=True, slots=True)
class ProvisionerSettings:
    """Configuration for the provisioning step engine.

    All fields have defaults suitable for local development, where the
    stores and the Organizations client are in-memory fakes. Non-local
    environments must name both DynamoDB tables.
    """

    # ── Environment ────────────────────────────────────────────────
    environment: str = "local"
    """One of: local, dev, staging, production."""

    # ── Stores ─────────────────────────────────────────────────────
    request_table_name: str = ""
    """DynamoDB table holding pending account requests."""

    mapping_table_name: str = ""
    """DynamoDB table holding commercial -> GovCloud account mappings."""

    dynamodb_region: str | None = None
    """Region of both tables. None uses the boto3 default chain."""

    # ── Organizations ──────────────────────────────────────────────
    account_role_name: str | None = None
    """IAM role created in each new account. None lets AWS use its default."""

    organizations_region: str = DEFAULT_ORGANIZATIONS_REGION

    # ── Throttling backoff ─────────────────────────────────────────
    retry_max_attempts: int = 10
    retry_base_delay: float = 0.15
    retry_max_delay: float = 20.0

    @property
    def is_local(self) -> bool:
        return self.environment == "local"

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.retry_max_attempts,
            base_delay=self.retry_base_delay,
            max_delay=self.retry_max_delay,
        )

    def validate(self) -> list[str]:
        """Return a list of configuration errors. Empty means valid."""
        errors: list[str] = []
        if not self.is_local:
            if not self.request_table_name:
                errors.append(f"{self.environment}: request_table_name is required")
            if not self.mapping_table_name:
                errors.append(f"{self.environment}: mapping_table_name is required")
        if self.retry_max_attempts < 1:
            errors.append("retry_max_attempts must be >= 1")
        if self.retry_base_delay < 0 or self.retry_max_delay < 0:
            errors.append("retry delays must be >= 0")
        return errors

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> ProvisionerSettings:
        """Build settings from environment variables.

        Table and role names are read from the variable names the
        deployment injects (``NewOrgAccountsTableName`` etc.), with
        upper-case aliases for local shells.

        Without ``ENVIRONMENT``, a configured table name selects
        ``production``; only a bare environment falls back to ``local``.
        """
        if env is None:
            env = dict(os.environ)

        request_table_name = _first(
            env, "NewOrgAccountsTableName", "NEW_ORG_ACCOUNTS_TABLE_NAME",
        )
        mapping_table_name = _first(
            env, "GovCloudAccountMappingTableName", "GOVCLOUD_ACCOUNT_MAPPING_TABLE_NAME",
        )
        environment = env.get("ENVIRONMENT") or (
            "production" if request_table_name or mapping_table_name else "local"
        )

        return cls(
            environment=environment,
            request_table_name=request_table_name,
            mapping_table_name=mapping_table_name,
            dynamodb_region=env.get("AWS_REGION") or None,
            account_role_name=_first(env, "AccountRoleName", "ACCOUNT_ROLE_NAME") or None,
            organizations_region=env.get("ORGANIZATIONS_REGION") or DEFAULT_ORGANIZATIONS_REGION,
            retry_max_attempts=int(env.get("THROTTLE_MAX_ATTEMPTS", "10")),
            retry_base_delay=float(env.get("THROTTLE_BASE_DELAY", "0.15")),
            retry_max_delay=float(env.get("THROTTLE_MAX_DELAY", "20.0")),
        )
