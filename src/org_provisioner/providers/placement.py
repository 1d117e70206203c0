"""Placement step: move a newly created account out of the default root.

New accounts appear under the organization root. Placement resolves the
root's id by name and moves the account into its configured organizational
unit. A failed move raises, leaving the pending request in place so that the
next invocation retries placement.
"""

from __future__ import annotations

from botocore.exceptions import ClientError

from ..errors import PlacementFailed, TopologyError
from ..observability.logging import get_logger
from ..protocols import OrganizationsClient

logger = get_logger(__name__)

DEFAULT_ROOT_NAME = 'Root'

# Raised by MoveAccount when the account already sits in the destination.
_ALREADY_PLACED_CODE = 'DuplicateAccountException'


class Placement:
    def __init__(
        self,
        client: OrganizationsClient,
        *,
        root_name: str = DEFAULT_ROOT_NAME,
    ) -> None:
        self._client = client
        self._root_name = root_name

    async def resolve_root_id(self, identity_key: str) -> str:
        roots = await self._client.list_roots()
        for root in roots:
            if root.name == self._root_name:
                return root.id
        logger.error(
            'default_root_missing',
            identity_key=identity_key,
            root_name=self._root_name,
            roots=[r.name for r in roots],
        )
        raise TopologyError(identity_key, root_name=self._root_name)

    async def place(
        self,
        *,
        identity_key: str,
        account_id: str,
        target_group_id: str,
    ) -> None:
        """Move ``account_id`` from the default root into ``target_group_id``.

        Raises:
            TopologyError: The default root could not be found.
            PlacementFailed: The move call reported a non-200 status.
        """
        root_id = await self.resolve_root_id(identity_key)
        try:
            status_code = await self._client.move_account(
                account_id=account_id,
                source_parent_id=root_id,
                destination_parent_id=target_group_id,
            )
        except ClientError as exc:
            if exc.response.get('Error', {}).get('Code') != _ALREADY_PLACED_CODE:
                raise
            logger.info(
                'account_already_placed',
                identity_key=identity_key,
                account_id=account_id,
                target_group_id=target_group_id,
            )
            return

        if status_code != 200:
            logger.error(
                'account_move_failed',
                identity_key=identity_key,
                account_id=account_id,
                target_group_id=target_group_id,
                status_code=status_code,
            )
            raise PlacementFailed(
                identity_key, account_id=account_id, status_code=status_code,
            )

        logger.info(
            'account_moved',
            identity_key=identity_key,
            account_id=account_id,
            source_parent_id=root_id,
            target_group_id=target_group_id,
        )
