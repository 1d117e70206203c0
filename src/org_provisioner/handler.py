"""AWS Lambda entry point for the provisioning step engine.

Intended as the ``isComplete`` handler of a polling custom resource: the
poller invokes it repeatedly and stops once it returns
``{"IsComplete": True}``. A raised error tells the poller to stop and fail
the deployment.
"""

from __future__ import annotations

import asyncio
from typing import Any

from .main import ProvisionerDependencies, build_dependencies, build_engine
from .observability.logging import configure_logging, get_logger
from .settings import ProvisionerSettings

logger = get_logger(__name__)

# Reused across warm invocations of the same Lambda container.
_deps: ProvisionerDependencies | None = None
_settings: ProvisionerSettings | None = None


def _get_dependencies() -> tuple[ProvisionerSettings, ProvisionerDependencies]:
    global _deps, _settings
    if _deps is None or _settings is None:
        configure_logging()
        _settings = ProvisionerSettings.from_env()
        if _settings.is_local:
            # In-memory stores would report an empty pool as complete.
            raise ValueError(
                "Lambda handler requires the DynamoDB tables: set "
                "NewOrgAccountsTableName and GovCloudAccountMappingTableName"
            )
        _deps = build_dependencies(_settings)
    return _settings, _deps


def _reset_dependencies_for_tests() -> None:
    global _deps, _settings
    _deps = None
    _settings = None


def handler(event: dict[str, Any], context: Any = None) -> dict[str, bool]:
    settings, deps = _get_dependencies()
    logger.info(
        "advance_invoked",
        request_type=(event or {}).get("RequestType"),
        aws_request_id=getattr(context, "aws_request_id", None),
    )
    result = asyncio.run(build_engine(settings, deps).advance())
    return {"IsComplete": result.is_complete}
