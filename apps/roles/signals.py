"""
Role state lifecycle tied to Django authentication signals.

Sign-in drops any cached state so the next request fetches fresh
assignments; sign-out clears it.
"""
import logging
from django.contrib.auth.signals import user_logged_in, user_logged_out
from django.dispatch import receiver

from apps.core.cache import RoleCacheInvalidator
from apps.roles.middleware import role_state_session_key

logger = logging.getLogger(__name__)


def _drop_cached_state(request):
    if request is None:
        return
    session_key = role_state_session_key(request)
    if session_key:
        RoleCacheInvalidator.invalidate_session_roles(session_key)
    roles = getattr(request, 'roles', None)
    if roles is not None:
        roles.clear()


@receiver(user_logged_in)
def refresh_roles_on_login(sender, request, user, **kwargs):
    """Force a fresh role fetch on the principal's next request."""
    _drop_cached_state(request)
    logger.debug(f"Role state reset for user {user.pk} after login")


@receiver(user_logged_out)
def clear_roles_on_logout(sender, request, user, **kwargs):
    """Clear the session's role state on sign-out."""
    _drop_cached_state(request)
    logger.debug(
        f"Role state cleared for user {getattr(user, 'pk', None)} after logout"
    )
