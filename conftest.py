"""
Pytest configuration and fixtures.
"""
import pytest
from django.conf import settings
import django
from django.core.management import call_command


def pytest_configure(config):
    """Configure Django settings for tests."""
    settings.DATABASES['default'] = {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
        'ATOMIC_REQUESTS': False,
    }
    settings.CACHES['default'] = {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'draco-tests',
    }
    django.setup()


@pytest.fixture(scope='session')
def django_db_setup(django_db_setup, django_db_blocker):
    """Set up test database with migrations."""
    with django_db_blocker.unblock():
        call_command('migrate', '--run-syncdb', verbosity=0)


@pytest.fixture(autouse=True)
def clear_cache():
    """Clear cache before each test."""
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """Return DRF API client."""
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def catalog():
    """Catalog built from the compiled-in role tables."""
    from apps.roles.catalog import build_default_catalog
    return build_default_catalog()


@pytest.fixture
def role_ids():
    """Role name to identifier table."""
    from apps.roles.definitions import ROLE_IDS
    return ROLE_IDS


class FakeRoleDirectory:
    """
    In-memory role directory.

    Returns ``payload`` (or raises ``error``) and records each requested
    account id in ``calls``.
    """

    def __init__(self, payload=None, error=None):
        self.payload = payload if payload is not None else {'globalRoles': [], 'contactRoles': []}
        self.error = error
        self.calls = []

    async def retrieve_assignments(self, account_id=None):
        self.calls.append(account_id)
        if self.error is not None:
            raise self.error
        return self.payload


@pytest.fixture
def fake_directory():
    """Factory for FakeRoleDirectory instances."""
    from apps.roles.directory import RoleDirectory

    class _Directory(FakeRoleDirectory, RoleDirectory):
        pass

    def make(payload=None, error=None):
        return _Directory(payload=payload, error=error)

    return make


@pytest.fixture
def make_state(role_ids):
    """
    Build a SessionRoleState.

    Global roles and contextual role ids may be given by role name.
    Contextual entries are (role, account_id, scope_value) tuples.
    """
    from apps.roles.context import ContextualAssignment, GlobalAssignment
    from apps.roles.state import SessionRoleState

    def make(global_roles=(), contextual=(), account_id=None):
        return SessionRoleState(
            global_assignments=tuple(
                GlobalAssignment(role=role_ids.get(role, role)) for role in global_roles
            ),
            contextual_assignments=tuple(
                ContextualAssignment(role=role_ids.get(role, role), account_id=account, scope_value=scope)
                for role, account, scope in contextual
            ),
            account_id=account_id,
        )

    return make


@pytest.fixture
def make_service(catalog, make_state):
    """Build a RoleService over a fixed state."""
    from apps.roles.services import RoleService
    from apps.roles.state import RoleAssignmentStore

    def make(global_roles=(), contextual=(), strict_scope=False, directory=None):
        store = RoleAssignmentStore(directory=directory, state=make_state(global_roles, contextual))
        return RoleService(store=store, catalog=catalog, strict_scope=strict_scope)

    return make


@pytest.fixture
def user(db):
    """Create a test user."""
    from django.contrib.auth import get_user_model
    User = get_user_model()
    return User.objects.create_user(username='coach', password='testpass123')
