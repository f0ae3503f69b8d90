"""
Session role state and the store that owns it.

The store holds exactly one immutable SessionRoleState. ``fetch`` builds a
complete replacement before swapping it in, so evaluators reading
``store.state`` see either the old state or the new one, never a mix.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

from apps.core.exceptions import RoleDirectoryError
from apps.roles.context import ContextualAssignment, GlobalAssignment
from apps.roles.directory import RoleDirectory, parse_assignments

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionRoleState:
    """Role assignments of the current principal."""
    global_assignments: Tuple[GlobalAssignment, ...] = field(default_factory=tuple)
    contextual_assignments: Tuple[ContextualAssignment, ...] = field(default_factory=tuple)
    account_id: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.global_assignments and not self.contextual_assignments


EMPTY_STATE = SessionRoleState()


class RoleAssignmentStore:
    """
    Owner of the session's SessionRoleState.

    Populated by ``fetch`` when a principal signs in (or the caller narrows to
    an account) and reset by ``clear`` on sign-out. Evaluators only read
    ``state``.
    """

    def __init__(self, directory: Optional[RoleDirectory] = None,
                 state: SessionRoleState = EMPTY_STATE):
        self.directory = directory
        self._state = state
        self._in_flight = 0
        self._initialized = not state.is_empty
        self.last_error: Optional[str] = None

    @property
    def state(self) -> SessionRoleState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def fetch(self, account_id: Optional[str] = None) -> SessionRoleState:
        """
        Replace the state with freshly retrieved assignments.

        Args:
            account_id: Narrow the retrieval to one account (optional)

        Returns:
            The new SessionRoleState

        Raises:
            RoleDirectoryError: If retrieval fails for any reason; the previous
                state is kept
        """
        if self.directory is None:
            raise RoleDirectoryError("No role directory configured")

        account_id = str(account_id) if account_id is not None else None
        self._in_flight += 1
        self.last_error = None

        logger.debug(
            "Fetching role assignments",
            extra={'account_id': account_id}
        )

        try:
            payload = await self.directory.retrieve_assignments(account_id)
            global_assignments, contextual_assignments = parse_assignments(payload)
        except RoleDirectoryError as e:
            self.last_error = e.message
            logger.warning(
                f"Role assignment fetch failed: {e.message}",
                extra={'account_id': account_id, 'details': e.details}
            )
            raise
        except Exception as e:
            self.last_error = str(e) or e.__class__.__name__
            logger.error(
                f"Role directory raised {e.__class__.__name__}: {self.last_error}",
                extra={'account_id': account_id},
                exc_info=True
            )
            raise RoleDirectoryError(
                f"Failed to retrieve role assignments: {self.last_error}",
                details={'error_type': e.__class__.__name__}
            ) from e
        finally:
            self._in_flight -= 1
            self._initialized = True

        new_state = SessionRoleState(
            global_assignments=tuple(global_assignments),
            contextual_assignments=tuple(contextual_assignments),
            account_id=self._select_account(account_id, contextual_assignments),
        )
        self._state = new_state

        logger.info(
            "Role assignments refreshed",
            extra={
                'account_id': new_state.account_id,
                'global_count': len(new_state.global_assignments),
                'contextual_count': len(new_state.contextual_assignments),
            }
        )
        return new_state

    def clear(self):
        """Reset to the empty state."""
        self._state = EMPTY_STATE
        self.last_error = None
        self._initialized = True
        logger.debug("Role assignments cleared")

    def _select_account(self, requested: Optional[str], contextual_assignments) -> Optional[str]:
        """
        Pick the account the new state is focused on.

        With a requested account: the first assignment in that account, then
        the first assignment's account, then the requested id. Without one
        the current account is kept.
        """
        if requested is None:
            return self._state.account_id

        for assignment in contextual_assignments:
            if assignment.account_id == requested:
                return assignment.account_id
        if contextual_assignments and contextual_assignments[0].account_id:
            return contextual_assignments[0].account_id
        return requested
