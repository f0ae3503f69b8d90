"""
Role and permission evaluation.

Implements:
- RoleEvaluator: has_role with a context-aware direct-match pass and a
  hierarchy-fallback pass
- PermissionEvaluator: has_permission over each assigned role's own
  permission set
- RoleService: the per-session facade used by guards and views
"""
import logging
from typing import List, Optional

from django.conf import settings

from apps.core.logging import SecurityLogger
from apps.core.exceptions import PermissionDeniedError, RoleDirectoryError
from apps.roles.catalog import RoleCatalog, get_catalog
from apps.roles.context import ContextMatcher, QueryContext
from apps.roles.state import RoleAssignmentStore, SessionRoleState

logger = logging.getLogger(__name__)


class RoleEvaluator:
    """
    Decide whether the session holds a role.

    Two passes, in order:
    1. direct_match: an assignment of exactly the role, with contextual
       assignments filtered by the query context
    2. hierarchy_match: the role is implied by an assigned role. Global
       assignments contribute their full closure; contextual assignments
       contribute the roles they strictly imply, and the query context is
       NOT re-applied to them.
    """

    def __init__(self, catalog: RoleCatalog, matcher: ContextMatcher):
        self.catalog = catalog
        self.matcher = matcher

    def has_role(self, state: SessionRoleState, role: str,
                 context: Optional[QueryContext] = None) -> bool:
        target = self.catalog.normalize(role)
        if not target:
            return False
        return self.direct_match(state, target, context) or self.hierarchy_match(state, target)

    def direct_match(self, state: SessionRoleState, target: str,
                     context: Optional[QueryContext] = None) -> bool:
        for assignment in state.global_assignments:
            if self.catalog.normalize(assignment.role) == target:
                return True

        for assignment in state.contextual_assignments:
            if not self.matcher.matches(assignment, context):
                continue
            if self.catalog.normalize(assignment.role) == target:
                return True

        return False

    def hierarchy_match(self, state: SessionRoleState, target: str) -> bool:
        for assignment in state.global_assignments:
            if target in self.catalog.closure(self.catalog.normalize(assignment.role)):
                return True

        # Known gap: the query context is not applied here.
        # Strictly implied roles only: a TeamAdmin of team1 must not pass a
        # TeamAdmin check for team2 (test_team_admin_scenario).
        for assignment in state.contextual_assignments:
            if target in self.catalog.implied_roles(self.catalog.normalize(assignment.role)):
                return True

        return False


class PermissionEvaluator:
    """
    Decide whether the session holds a permission.

    Only the directly assigned role's own permission set is consulted; the
    hierarchy is never expanded for permissions.
    """

    def __init__(self, catalog: RoleCatalog, matcher: ContextMatcher):
        self.catalog = catalog
        self.matcher = matcher

    def has_permission(self, state: SessionRoleState, permission: str,
                       context: Optional[QueryContext] = None) -> bool:
        if not permission:
            return False

        for assignment in state.global_assignments:
            if self.catalog.grants(self.catalog.normalize(assignment.role), permission):
                return True

        for assignment in state.contextual_assignments:
            if not self.matcher.matches(assignment, context):
                continue
            if self.catalog.grants(self.catalog.normalize(assignment.role), permission):
                return True

        return False


class RoleService:
    """
    Role checks for one session.

    Wraps a RoleAssignmentStore and the two evaluators. All checks are
    synchronous reads of the store's current state and return False on an
    empty state; only ``fetch_assignments`` suspends.
    """

    def __init__(self, store: RoleAssignmentStore = None, catalog: RoleCatalog = None,
                 strict_scope: bool = None, user_id=None):
        self.catalog = catalog or get_catalog()
        self.store = store or RoleAssignmentStore()
        self.user_id = user_id
        if strict_scope is None:
            strict_scope = getattr(settings, 'ROLES_STRICT_SCOPE_MATCHING', False)
        self.matcher = ContextMatcher(self.catalog, strict_scope=strict_scope)
        self.role_evaluator = RoleEvaluator(self.catalog, self.matcher)
        self.permission_evaluator = PermissionEvaluator(self.catalog, self.matcher)

    @property
    def state(self) -> SessionRoleState:
        return self.store.state

    @property
    def is_loading(self) -> bool:
        return self.store.is_loading

    @property
    def last_error(self) -> Optional[str]:
        return self.store.last_error

    def has_role(self, role: str, context=None) -> bool:
        """
        Check if the principal holds a role, by name or identifier.

        Args:
            role: Role name (e.g. 'TeamAdmin') or identifier
            context: QueryContext or mapping with account/team/league/season ids
        """
        return self.role_evaluator.has_role(self.store.state, role, QueryContext.coerce(context))

    def has_permission(self, permission: str, context=None) -> bool:
        """
        Check if the principal holds a permission (e.g. 'team.manage').

        Args:
            permission: Permission string
            context: QueryContext or mapping with account/team/league/season ids
        """
        return self.permission_evaluator.has_permission(
            self.store.state, permission, QueryContext.coerce(context)
        )

    def require_role(self, role: str, context=None):
        """
        Raise unless the principal holds ``role`` in ``context``.

        Raises:
            PermissionDeniedError: If the check fails
        """
        if not self.has_role(role, context):
            self._deny('role', role, context)

    def require_permission(self, permission: str, context=None):
        """
        Raise unless the principal holds ``permission`` in ``context``.

        Raises:
            PermissionDeniedError: If the check fails
        """
        if not self.has_permission(permission, context):
            self._deny('permission', permission, context)

    def _deny(self, kind: str, required: str, context):
        context = QueryContext.coerce(context)
        context_data = context.as_dict() if context else {}
        SecurityLogger.log_permission_denied(
            user_id=self.user_id,
            required=required,
            kind=kind,
            context=context_data,
        )
        raise PermissionDeniedError(
            f"Missing {kind} '{required}'",
            details={kind: required, 'context': context_data}
        )

    def has_role_in_account(self, role: str, account_id) -> bool:
        return self.has_role(role, QueryContext(account_id=account_id))

    def has_role_in_team(self, role: str, team_id) -> bool:
        return self.has_role(role, QueryContext(team_id=team_id))

    def has_role_in_league(self, role: str, league_id) -> bool:
        return self.has_role(role, QueryContext(league_id=league_id))

    @property
    def is_administrator(self) -> bool:
        """Whether a global assignment is, or implies, the Administrator role."""
        administrator = self.catalog.id_for('Administrator')
        if not administrator:
            return False
        return any(
            administrator in self.catalog.closure(self.catalog.normalize(assignment.role))
            for assignment in self.store.state.global_assignments
        )

    @property
    def manageable_account_ids(self) -> List[str]:
        """Accounts in which a contextual assignment is, or implies, AccountAdmin."""
        account_admin = self.catalog.id_for('AccountAdmin')
        if not account_admin:
            return []

        account_ids = []
        for assignment in self.store.state.contextual_assignments:
            closure = self.catalog.closure(self.catalog.normalize(assignment.role))
            if account_admin in closure and assignment.account_id and assignment.account_id not in account_ids:
                account_ids.append(assignment.account_id)
        return account_ids

    @property
    def has_manageable_account(self) -> bool:
        """Global administrator, or any contextual assignment that is or implies AccountAdmin."""
        if self.is_administrator:
            return True
        account_admin = self.catalog.id_for('AccountAdmin')
        if not account_admin:
            return False
        return any(
            account_admin in self.catalog.closure(self.catalog.normalize(assignment.role))
            for assignment in self.store.state.contextual_assignments
        )

    async def fetch_assignments(self, account_id=None) -> SessionRoleState:
        """
        Refresh the session's assignments from the directory.

        Raises:
            RoleDirectoryError: If retrieval fails; current answers are unchanged
        """
        try:
            return await self.store.fetch(account_id)
        except RoleDirectoryError as e:
            SecurityLogger.log_role_refresh_failed(
                user_id=self.user_id,
                account_id=account_id,
                reason=e.message,
                status_code=e.details.get('status_code'),
            )
            raise

    def clear(self):
        self.store.clear()
