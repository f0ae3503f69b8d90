"""
DRF permission classes and decorators for contextual role enforcement.

This module provides:
- HasContextRole / HasContextPermission: DRF permission classes
- @requires_role / @requires_permission: declare requirements on views

The query context is read from the view's URL kwargs (``account_id``,
``team_id``, ``league_id``, ``season_id``).
"""
import logging
from rest_framework.permissions import BasePermission

from apps.core.logging import SecurityLogger
from apps.roles.context import QueryContext

logger = logging.getLogger(__name__)

CONTEXT_KWARGS = ('account_id', 'team_id', 'league_id', 'season_id')


def context_from_view(view) -> QueryContext:
    """Build a QueryContext from the URL kwargs of a view."""
    kwargs = getattr(view, 'kwargs', None) or {}
    return QueryContext(**{name: kwargs.get(name) for name in CONTEXT_KWARGS})


def _as_set(value):
    if not value:
        return set()
    if isinstance(value, str):
        return {value}
    return set(value)


class _ContextRequirementPermission(BasePermission):
    """
    Shared logic: read requirements from the view, evaluate any-of them
    against ``request.roles``, log denials.
    """

    requirement_attr = None
    kind = None

    def check(self, roles, requirement, context) -> bool:
        raise NotImplementedError

    def has_permission(self, request, view):
        required = _as_set(getattr(view, self.requirement_attr, None))

        # If nothing required, allow access
        if not required:
            return True

        roles = getattr(request, 'roles', None)
        context = context_from_view(view)

        if roles is not None and any(self.check(roles, item, context) for item in required):
            logger.debug(
                f"Access granted: {self.kind} requirement satisfied",
                extra={
                    'required': sorted(required),
                    'query_context': context.as_dict(),
                    'view': view.__class__.__name__,
                }
            )
            return True

        user_id = getattr(getattr(request, 'user', None), 'pk', None)
        logger.warning(
            f"Access denied: user {user_id} lacks {self.kind} {sorted(required)}",
            extra={
                'user_id': str(user_id) if user_id is not None else None,
                'required': sorted(required),
                'query_context': context.as_dict(),
                'view': view.__class__.__name__,
                'method': request.method,
                'path': request.path,
                'request_id': getattr(request, 'request_id', None),
            }
        )
        SecurityLogger.log_permission_denied(
            user_id=user_id,
            required=', '.join(sorted(required)),
            kind=self.kind,
            context=context.as_dict(),
            path=request.path,
        )
        return False


class HasContextRole(_ContextRequirementPermission):
    """
    DRF permission class that requires one of the view's ``required_roles``.

    Usage in views:
        class TeamRosterView(APIView):
            permission_classes = [HasContextRole]
            required_roles = ['TeamAdmin']

            def get(self, request, account_id, team_id):
                pass
    """

    requirement_attr = 'required_roles'
    kind = 'role'
    message = 'You do not hold the role required for this resource.'

    def check(self, roles, requirement, context) -> bool:
        return roles.has_role(requirement, context)


class HasContextPermission(_ContextRequirementPermission):
    """
    DRF permission class that requires one of the view's ``required_permissions``.
    """

    requirement_attr = 'required_permissions'
    kind = 'permission'
    message = 'You do not hold the permission required for this resource.'

    def check(self, roles, requirement, context) -> bool:
        return roles.has_permission(requirement, context)


def _requirement_decorator(attr, values):
    # DRF checks permissions in initial(), before the handler runs, so the
    # requirement has to live on the class.
    def decorator(view_class):
        if not isinstance(view_class, type):
            raise TypeError(f"Role requirements apply to view classes, got {view_class!r}")
        setattr(view_class, attr, set(values))
        return view_class

    return decorator


def requires_role(*roles):
    """
    Decorator to declare accepted roles on view classes.

    Usage:
        @requires_role('AccountAdmin', 'LeagueAdmin')
        class LeagueScheduleView(APIView):
            permission_classes = [HasContextRole]
    """
    return _requirement_decorator('required_roles', roles)


def requires_permission(*permissions):
    """
    Decorator to declare accepted permissions on view classes.

    Usage:
        @requires_permission('team.roster.manage')
        class TeamRosterView(APIView):
            permission_classes = [HasContextPermission]
    """
    return _requirement_decorator('required_permissions', permissions)
