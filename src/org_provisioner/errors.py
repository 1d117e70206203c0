"""Error hierarchy for account provisioning.

Every fatal error carries the ``identity_key`` (account email) of the request
being processed when it was raised, so the scheduler can report which request
needs operator attention.
"""

from __future__ import annotations

from typing import Any


class ProvisioningError(Exception):
    """Base class for fatal provisioning errors."""

    code = 'PROVISIONING_ERROR'

    def __init__(self, message: str, *, identity_key: str | None = None) -> None:
        self.message = message
        self.identity_key = identity_key
        super().__init__(message)

    def __str__(self) -> str:
        if self.identity_key:
            return f'{self.message} (identity_key={self.identity_key})'
        return self.message


class RemoteUnavailable(ProvisioningError):
    """A remote call kept being throttled until retries ran out."""

    code = 'REMOTE_UNAVAILABLE'

    def __init__(
        self,
        operation: str,
        *,
        attempts: int,
        last_error: BaseException | None = None,
        identity_key: str | None = None,
    ) -> None:
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f'{operation} still throttled after {attempts} attempts',
            identity_key=identity_key,
        )

    def for_request(self, identity_key: str) -> RemoteUnavailable:
        """Return a copy of this error attributed to ``identity_key``."""
        return RemoteUnavailable(
            self.operation,
            attempts=self.attempts,
            last_error=self.last_error,
            identity_key=identity_key,
        )


class ProvisioningFailed(ProvisioningError):
    """The remote system reported a terminal state other than success."""

    code = 'PROVISIONING_FAILED'

    def __init__(
        self,
        identity_key: str,
        *,
        state: str | None,
        failure_reason: str | None = None,
        message: str | None = None,
    ) -> None:
        self.state = state
        self.failure_reason = failure_reason
        super().__init__(
            message
            or (
                f'could not create account {identity_key}. '
                f'Response state: {state}. Failure reason: {failure_reason}'
            ),
            identity_key=identity_key,
        )


class PlacementFailed(ProvisioningFailed):
    """Moving a created account into its target group did not succeed."""

    code = 'PLACEMENT_FAILED'

    def __init__(
        self,
        identity_key: str,
        *,
        account_id: str,
        status_code: int | None,
    ) -> None:
        self.account_id = account_id
        self.status_code = status_code
        super().__init__(
            identity_key,
            state='MOVE_FAILED',
            message=(
                f'failed to move account {account_id} into its target group '
                f'(status={status_code})'
            ),
        )


class StateSyncFailed(ProvisioningError):
    """A store write did not confirm success."""

    code = 'STATE_SYNC_FAILED'

    def __init__(
        self, identity_key: str, *, operation: str, store: str = 'request store',
    ) -> None:
        self.operation = operation
        self.store = store
        super().__init__(
            f'unable to {operation} in the {store}',
            identity_key=identity_key,
        )


class TopologyError(ProvisioningError):
    """The organization hierarchy does not look the way placement expects."""

    code = 'TOPOLOGY_ERROR'

    def __init__(self, identity_key: str, *, root_name: str) -> None:
        self.root_name = root_name
        super().__init__(
            f'default root {root_name!r} not found in organization',
            identity_key=identity_key,
        )


class StoreError(Exception):
    """A store call failed for a reason other than throttling."""

    def __init__(
        self,
        table: str,
        operation: str,
        detail: str = '',
        *,
        response: dict[str, Any] | None = None,
    ) -> None:
        self.table = table
        self.operation = operation
        self.detail = detail
        self.response = response
        super().__init__(f'{operation} on {table!r} failed: {detail}'.rstrip(': '))
