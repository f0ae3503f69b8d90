"""
Role directory client.

The directory is the remote service that knows which roles the signed-in
principal holds. It returns:

    {
        "globalRoles": ["Administrator", ...],
        "contactRoles": [
            {"id": ..., "contactId": ..., "roleId": ..., "roleName": ...,
             "roleData": ..., "accountId": ...},
        ],
    }

``roleData`` is the untyped team-or-league scope value (``scopeValue`` is
accepted as well).
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

import requests
from asgiref.sync import sync_to_async
from django.conf import settings

from apps.core.exceptions import RoleDirectoryError
from apps.roles.context import ContextualAssignment, GlobalAssignment

logger = logging.getLogger(__name__)


class RoleDirectory(ABC):
    """Source of the current principal's role assignments."""

    @abstractmethod
    async def retrieve_assignments(self, account_id: Optional[str] = None) -> dict:
        """
        Retrieve the principal's assignments.

        Raises:
            RoleDirectoryError: On transport, authorization or payload failure
        """


class HttpRoleDirectory(RoleDirectory):
    """Directory backed by the Draco REST API, keyed by a bearer credential."""

    ROLES_PATH = '/api/users/me/roles'

    def __init__(self, token: str, base_url: str = None, timeout: int = None):
        self.token = token
        self.base_url = (base_url or settings.ROLES_DIRECTORY_URL).rstrip('/')
        self.timeout = timeout or getattr(settings, 'ROLES_DIRECTORY_TIMEOUT', 10)

    def _get_headers(self) -> dict:
        return {
            'Authorization': f'Bearer {self.token}',
            'Accept': 'application/json',
        }

    async def retrieve_assignments(self, account_id: Optional[str] = None) -> dict:
        return await sync_to_async(self._get_roles)(account_id)

    def _get_roles(self, account_id: Optional[str]) -> dict:
        params = {'accountId': account_id} if account_id else None
        url = f"{self.base_url}{self.ROLES_PATH}"

        try:
            response = requests.get(
                url,
                params=params,
                headers=self._get_headers(),
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            logger.error(
                f"Role directory returned HTTP {status_code}",
                extra={'account_id': account_id, 'status_code': status_code}
            )
            raise RoleDirectoryError(
                f"Failed to fetch user roles: HTTP {status_code}",
                details={'status_code': status_code}
            ) from e
        except requests.exceptions.RequestException as e:
            logger.error(
                f"Role directory request failed: {str(e)}",
                extra={'account_id': account_id},
                exc_info=True
            )
            raise RoleDirectoryError(f"Failed to fetch user roles: {str(e)}") from e

        try:
            return response.json()
        except ValueError as e:
            raise RoleDirectoryError("Role directory returned a non-JSON body") from e


def parse_assignments(payload) -> Tuple[List[GlobalAssignment], List[ContextualAssignment]]:
    """
    Convert a directory payload into assignment objects.

    Missing lists are treated as empty.

    Raises:
        RoleDirectoryError: If the payload is malformed
    """
    if not isinstance(payload, dict):
        raise RoleDirectoryError(
            "Malformed role payload: expected an object",
            details={'type': type(payload).__name__}
        )

    global_roles = payload.get('globalRoles') or []
    contact_roles = payload.get('contactRoles') or []
    if not isinstance(global_roles, list) or not isinstance(contact_roles, list):
        raise RoleDirectoryError("Malformed role payload: roles must be lists")

    global_assignments = []
    for role in global_roles:
        if not isinstance(role, str) or not role:
            raise RoleDirectoryError(
                "Malformed role payload: global role must be a non-empty string",
                details={'value': repr(role)}
            )
        global_assignments.append(GlobalAssignment(role=role))

    contextual_assignments = []
    for entry in contact_roles:
        if not isinstance(entry, dict) or not entry.get('roleId'):
            raise RoleDirectoryError(
                "Malformed role payload: contact role requires roleId",
                details={'value': repr(entry)}
            )
        contextual_assignments.append(ContextualAssignment(
            role=str(entry['roleId']),
            account_id=entry.get('accountId'),
            scope_value=entry.get('roleData', entry.get('scopeValue')),
            id=entry.get('id'),
            contact_id=entry.get('contactId'),
            role_name=entry.get('roleName'),
        ))

    return global_assignments, contextual_assignments
