"""
Role session middleware.

Attaches ``request.roles`` (a RoleService) to every request. For an
authenticated principal the session's role state is restored from cache, or
fetched from the role directory with the request's bearer credential and the
``account_id`` URL kwarg of the resolved view.
"""
import logging
from asgiref.sync import async_to_sync
from django.conf import settings
from django.utils.deprecation import MiddlewareMixin

from apps.core.cache import CacheKeys, CacheService, CacheTTL
from apps.core.exceptions import RoleDirectoryError
from apps.roles.directory import HttpRoleDirectory
from apps.roles.services import RoleService
from apps.roles.state import RoleAssignmentStore

logger = logging.getLogger(__name__)


def role_state_session_key(request):
    """Key the role state is stored under: the session key, else the user, else None."""
    session = getattr(request, 'session', None)
    session_key = getattr(session, 'session_key', None)
    if session_key:
        return session_key
    user = getattr(request, 'user', None)
    if user is None or not user.is_authenticated:
        return None
    return f"user-{user.pk}"


def role_state_cache_key(request):
    """Cache key for the session's role state, or None without a session."""
    session_key = role_state_session_key(request)
    if not session_key:
        return None
    return CacheKeys.format(CacheKeys.ROLE_STATE, session_key=session_key)


def bearer_token(request):
    header = request.headers.get('Authorization', '')
    if header.startswith('Bearer '):
        return header[len('Bearer '):].strip() or None
    return None


class RoleSessionMiddleware(MiddlewareMixin):
    """
    Resolve the principal's role assignments for each request.

    Anonymous requests get an empty RoleService. A failed retrieval keeps the
    cached state if there is one and is otherwise empty, so checks fail closed.
    """

    directory_class = HttpRoleDirectory

    def process_view(self, request, view_func, view_args, view_kwargs):
        user = getattr(request, 'user', None)
        user_id = user.pk if user is not None and user.is_authenticated else None
        request.roles = RoleService(user_id=user_id)

        if user_id is None:
            return None

        account_id = view_kwargs.get('account_id')
        account_id = str(account_id) if account_id is not None else None
        cache_key = role_state_cache_key(request)

        cached = CacheService.get(cache_key) if cache_key else None
        if cached is not None:
            cached_account_id, state = cached
            request.roles.store = RoleAssignmentStore(state=state)
            if account_id is None or account_id == cached_account_id:
                return None

        token = bearer_token(request)
        if not token or not getattr(settings, 'ROLES_DIRECTORY_URL', None):
            logger.debug(
                "No credential or directory configured; roles not refreshed",
                extra={'request_id': getattr(request, 'request_id', None)}
            )
            return None

        # A failed refresh keeps whatever state the store already holds
        request.roles.store.directory = self.directory_class(token)
        try:
            state = async_to_sync(request.roles.fetch_assignments)(account_id)
        except RoleDirectoryError as e:
            logger.warning(
                f"Could not resolve roles for user {user_id}: {e.message}",
                extra={
                    'request_id': getattr(request, 'request_id', None),
                    'account_id': account_id,
                }
            )
            return None

        if cache_key:
            ttl = getattr(settings, 'ROLES_STATE_CACHE_TTL', CacheTTL.ROLE_STATE)
            CacheService.set(cache_key, (account_id, state), ttl)

        return None
