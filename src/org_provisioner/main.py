"""Provisioner FastAPI application factory and dependency wiring.

An external scheduler drives provisioning by calling
``POST /api/v1/provisioning/advance`` until it reports ``is_complete``. Calls
must be serialized: the engine assumes at most one concurrent advance.

Usage:
    # Local development (in-memory stores and Organizations fake)
    from org_provisioner.main import create_app
    app = create_app()

    # Non-local (DynamoDB tables, AWS Organizations)
    app = create_app(ProvisionerSettings.from_env())

    # Testing (full DI control)
    app = create_app(settings, request_store=store, remote_client=fake)
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.middleware.base import BaseHTTPMiddleware

from .errors import (
    PlacementFailed,
    ProvisioningError,
    ProvisioningFailed,
    RemoteUnavailable,
    StateSyncFailed,
    TopologyError,
)
from .observability.logging import get_logger, request_id_ctx
from .protocols import IdentityMappingStore, OrganizationsClient, RequestStore
from .provisioning.engine import ProvisioningStepEngine
from .settings import ProvisionerSettings

logger = get_logger(__name__)

_ERROR_STATUS: dict[type[ProvisioningError], int] = {
    PlacementFailed: 409,
    ProvisioningFailed: 409,
    RemoteUnavailable: 503,
    StateSyncFailed: 500,
    TopologyError: 500,
}


@dataclass(frozen=True)
class ProvisionerDependencies:
    """Container for the injected store and remote-client instances."""

    remote_client: OrganizationsClient
    request_store: RequestStore
    mapping_store: IdentityMappingStore


def _build_inmemory_deps() -> ProvisionerDependencies:
    from .inmemory import (
        InMemoryIdentityMappingStore,
        InMemoryOrganizationsClient,
        InMemoryRequestStore,
    )

    return ProvisionerDependencies(
        remote_client=InMemoryOrganizationsClient(),
        request_store=InMemoryRequestStore(),
        mapping_store=InMemoryIdentityMappingStore(),
    )


def _build_aws_deps(settings: ProvisionerSettings) -> ProvisionerDependencies:
    from .db.dynamodb_store import (
        DynamoIdentityMappingStore,
        DynamoRequestStore,
        build_dynamodb_resource,
    )
    from .providers.organizations_client import AwsOrganizationsClient

    policy = settings.retry_policy
    resource = build_dynamodb_resource(settings.dynamodb_region)
    return ProvisionerDependencies(
        remote_client=AwsOrganizationsClient(
            region_name=settings.organizations_region,
            retry_policy=policy,
        ),
        request_store=DynamoRequestStore(
            settings.request_table_name, resource=resource, retry_policy=policy,
        ),
        mapping_store=DynamoIdentityMappingStore(
            settings.mapping_table_name, resource=resource, retry_policy=policy,
        ),
    )


def build_dependencies(
    settings: ProvisionerSettings,
    *,
    remote_client: OrganizationsClient | None = None,
    request_store: RequestStore | None = None,
    mapping_store: IdentityMappingStore | None = None,
) -> ProvisionerDependencies:
    """Build dependencies for ``settings``, filling gaps with defaults.

    Raises:
        ValueError: If settings validation fails.
    """
    errors = settings.validate()
    if errors:
        raise ValueError(
            "Provisioner settings validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    overrides = (remote_client, request_store, mapping_store)
    if all(o is not None for o in overrides):
        return ProvisionerDependencies(
            remote_client=remote_client,  # type: ignore[arg-type]
            request_store=request_store,  # type: ignore[arg-type]
            mapping_store=mapping_store,  # type: ignore[arg-type]
        )

    defaults = _build_inmemory_deps() if settings.is_local else _build_aws_deps(settings)
    return ProvisionerDependencies(
        remote_client=remote_client if remote_client is not None else defaults.remote_client,
        request_store=request_store if request_store is not None else defaults.request_store,
        mapping_store=mapping_store if mapping_store is not None else defaults.mapping_store,
    )


def build_engine(
    settings: ProvisionerSettings, deps: ProvisionerDependencies,
) -> ProvisioningStepEngine:
    return ProvisioningStepEngine(
        remote_client=deps.remote_client,
        request_store=deps.request_store,
        mapping_store=deps.mapping_store,
        role_name=settings.account_role_name,
    )


# ── Middleware ──────────────────────────────────────────────────────


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Generate or propagate X-Request-ID and bind it to the log context."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_ctx.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response


# ── Routes ──────────────────────────────────────────────────────────


class AdvanceResponse(BaseModel):
    is_complete: bool
    identity_key: str | None = None
    action: str = "none"


def create_provisioning_router(engine: ProvisioningStepEngine) -> APIRouter:
    router = APIRouter(prefix="/api/v1/provisioning", tags=["provisioning"])

    @router.post("/advance", response_model=AdvanceResponse)
    async def advance() -> AdvanceResponse:
        """Advance at most one pending account request by one step."""
        result = await engine.advance()
        return AdvanceResponse(
            is_complete=result.is_complete,
            identity_key=result.identity_key,
            action=result.action,
        )

    return router


def _error_response(request: Request, exc: ProvisioningError) -> JSONResponse:
    status_code = next(
        (_ERROR_STATUS[t] for t in type(exc).__mro__ if t in _ERROR_STATUS),
        500,
    )
    return JSONResponse(
        status_code=status_code,
        content={
            "code": exc.code,
            "message": exc.message,
            "identity_key": exc.identity_key,
            "request_id": getattr(request.state, "request_id", None),
        },
    )


# ── Factory ─────────────────────────────────────────────────────────


def create_app(
    settings: ProvisionerSettings | None = None,
    *,
    remote_client: OrganizationsClient | None = None,
    request_store: RequestStore | None = None,
    mapping_store: IdentityMappingStore | None = None,
) -> FastAPI:
    """Create a configured provisioner FastAPI application.

    Args:
        settings: Provisioner settings. Defaults to local-dev settings.
        remote_client..mapping_store: Overrides. When None, local mode
            uses InMemory implementations and other environments use
            DynamoDB and AWS Organizations.

    Raises:
        ValueError: If settings validation fails.
    """
    if settings is None:
        settings = ProvisionerSettings()

    deps = build_dependencies(
        settings,
        remote_client=remote_client,
        request_store=request_store,
        mapping_store=mapping_store,
    )
    engine = build_engine(settings, deps)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("provisioner_startup", environment=settings.environment)
        yield
        logger.info("provisioner_shutdown")

    app = FastAPI(
        title="Org Provisioner",
        description="Step-wise account provisioning for AWS Organizations",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.deps = deps
    app.state.settings = settings
    app.state.engine = engine

    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(ProvisioningError)
    async def provisioning_error_handler(request: Request, exc: ProvisioningError):
        logger.error(
            "advance_failed",
            code=exc.code,
            identity_key=exc.identity_key,
            error=exc.message,
        )
        return _error_response(request, exc)

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "environment": settings.environment,
        }

    app.include_router(create_provisioning_router(engine))
    return app


# For uvicorn, use --factory flag:
#   uvicorn org_provisioner.main:create_app --factory
