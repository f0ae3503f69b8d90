"""
Tests for role and permission evaluation.
"""
import asyncio
import pytest
from unittest.mock import patch
from hypothesis import given, strategies as st

from apps.core.exceptions import PermissionDeniedError, RoleDirectoryError
from apps.roles.catalog import build_default_catalog
from apps.roles.context import ContextualAssignment, GlobalAssignment, QueryContext
from apps.roles.definitions import ROLE_IDS
from apps.roles.services import RoleService
from apps.roles.state import RoleAssignmentStore, SessionRoleState

DEFAULT_CATALOG = build_default_catalog()
ROLE_NAMES = sorted(ROLE_IDS)
identifiers = st.text(alphabet='abc123', min_size=1, max_size=4)


def service_for(state, strict_scope=False):
    return RoleService(
        store=RoleAssignmentStore(state=state),
        catalog=DEFAULT_CATALOG,
        strict_scope=strict_scope,
    )


class TestEmptyState:
    """Checks against an empty state fail closed."""

    @given(role=st.sampled_from(ROLE_NAMES), account_id=st.one_of(st.none(), identifiers))
    def test_no_role_held(self, role, account_id):
        service = service_for(SessionRoleState())
        context = QueryContext(account_id=account_id) if account_id else None
        assert service.has_role(role, context) is False

    @given(permission=st.text(min_size=1, max_size=20))
    def test_no_permission_held(self, permission):
        assert service_for(SessionRoleState()).has_permission(permission) is False

    def test_unknown_role_is_false(self, make_service):
        assert make_service(global_roles=['TeamAdmin']).has_role('NoSuchRole') is False

    def test_empty_role_is_false(self, make_service):
        assert make_service(global_roles=['TeamAdmin']).has_role('') is False


class TestGlobalAssignments:
    """Global assignments hold regardless of context."""

    @given(
        role=st.sampled_from(ROLE_NAMES),
        account_id=identifiers, team_id=identifiers, league_id=identifiers,
    )
    def test_global_role_holds_in_any_context(self, role, account_id, team_id, league_id):
        service = service_for(SessionRoleState(global_assignments=(GlobalAssignment(ROLE_IDS[role]),)))
        context = QueryContext(account_id=account_id, team_id=team_id, league_id=league_id)
        assert service.has_role(role, context) is True

    @given(role=st.sampled_from(ROLE_NAMES), account_id=st.one_of(st.none(), identifiers))
    def test_administrator_holds_every_role(self, role, account_id):
        service = service_for(SessionRoleState(
            global_assignments=(GlobalAssignment(ROLE_IDS['Administrator']),)
        ))
        assert service.has_role(role, QueryContext(account_id=account_id)) is True

    @given(permission=st.text(min_size=1, max_size=30))
    def test_wildcard_grants_any_permission(self, permission):
        service = service_for(SessionRoleState(
            global_assignments=(GlobalAssignment(ROLE_IDS['Administrator']),)
        ))
        assert service.has_permission(permission, {'accountId': 'x'}) is True

    def test_global_role_by_name(self, catalog):
        state = SessionRoleState(global_assignments=(GlobalAssignment('TeamAdmin'),))
        service = RoleService(store=RoleAssignmentStore(state=state), catalog=catalog)
        assert service.has_role(ROLE_IDS['TeamAdmin']) is True
        assert service.has_permission('team.roster.manage') is True


class TestContextualAssignments:
    """Contextual assignments are filtered by the query context."""

    def test_team_admin_scenario(self, make_service):
        service = make_service(contextual=[('TeamAdmin', 'acc1', 'team1')])

        assert service.has_role('TeamAdmin', {'accountId': 'acc1', 'teamId': 'team1'}) is True
        assert service.has_role('TeamAdmin', {'accountId': 'acc1', 'teamId': 'team2'}) is False
        assert service.has_role('TeamAdmin', {'accountId': 'acc2'}) is False
        assert service.has_role('TeamAdmin') is True

    def test_name_and_identifier_agree(self, make_service):
        service = make_service(contextual=[('TeamAdmin', 'acc1', 'team1')])
        context = {'accountId': 'acc1', 'teamId': 'team1'}
        assert service.has_role('TeamAdmin', context) == service.has_role(ROLE_IDS['TeamAdmin'], context)
        assert service.has_role(ROLE_IDS['TeamAdmin'].lower(), context) is True

    def test_integer_identifiers_compare_as_strings(self, make_service):
        service = make_service(contextual=[('TeamAdmin', 101, 202)])
        assert service.has_role('TeamAdmin', {'accountId': '101', 'teamId': 202}) is True

    @given(
        role=st.sampled_from(ROLE_NAMES),
        account_id=identifiers, scope=identifiers, other_account=identifiers,
    )
    def test_leaf_role_fails_in_other_account(self, role, account_id, scope, other_account):
        # Roles that imply nothing have no hierarchy fallback
        if DEFAULT_CATALOG.implied_roles(ROLE_IDS[role]) or account_id == other_account:
            return
        state = SessionRoleState(contextual_assignments=(
            ContextualAssignment(ROLE_IDS[role], account_id=account_id, scope_value=scope),
        ))
        assert service_for(state).has_role(role, QueryContext(account_id=other_account)) is False

    def test_season_is_ignored(self, make_service):
        service = make_service(contextual=[('TeamAdmin', 'acc1', 'team1')])
        assert service.has_role('TeamAdmin', {'accountId': 'acc1', 'seasonId': 'any'}) is True

    def test_helpers(self, make_service):
        service = make_service(contextual=[
            ('TeamAdmin', 'acc1', 'team1'),
            ('LeagueAdmin', 'acc1', 'lg1'),
        ])
        assert service.has_role_in_account('TeamAdmin', 'acc1') is True
        assert service.has_role_in_team('TeamAdmin', 'team1') is True
        assert service.has_role_in_league('LeagueAdmin', 'lg1') is True
        assert service.has_role_in_league('LeagueAdmin', 'lg2') is False


class TestHierarchyFallback:
    """The hierarchy pass ignores the query context."""

    def test_league_admin_implies_team_admin(self, make_service):
        service = make_service(contextual=[('LeagueAdmin', 'acc1', 'lg1')])
        assert service.has_role('TeamAdmin', {'accountId': 'acc1', 'teamId': 'team9'}) is True

    def test_fallback_crosses_accounts(self, make_service):
        # Known gap: an AccountAdmin in acc1 satisfies TeamAdmin in any account
        service = make_service(contextual=[('AccountAdmin', 'acc1', None)])
        assert service.has_role('AccountAdmin', {'accountId': 'B'}) is False
        assert service.has_role('TeamAdmin', {'accountId': 'B'}) is True

    def test_contextual_role_does_not_fall_back_to_itself(self, make_service):
        service = make_service(contextual=[('LeagueAdmin', 'acc1', 'lg1')])
        assert service.has_role('LeagueAdmin', {'accountId': 'acc2'}) is False

    def test_implication_is_not_reversed(self, make_service):
        service = make_service(contextual=[('TeamAdmin', 'acc1', 'team1')])
        assert service.has_role('LeagueAdmin') is False
        assert service.has_role('AccountAdmin') is False

    @given(held=st.sampled_from(ROLE_NAMES), wanted=st.sampled_from(ROLE_NAMES))
    def test_global_closure_membership(self, held, wanted):
        service = service_for(SessionRoleState(global_assignments=(GlobalAssignment(ROLE_IDS[held]),)))
        expected = ROLE_IDS[wanted] in DEFAULT_CATALOG.closure(ROLE_IDS[held])
        assert service.has_role(wanted) is expected


class TestPermissionEvaluation:
    """Permissions come from each assigned role's own set."""

    def test_permission_in_matching_context(self, make_service):
        service = make_service(contextual=[('TeamAdmin', 'acc1', 'team1')])
        assert service.has_permission('team.roster.manage', {'accountId': 'acc1', 'teamId': 'team1'}) is True
        assert service.has_permission('team.roster.manage', {'accountId': 'acc1', 'teamId': 'team2'}) is False
        assert service.has_permission('team.roster.manage') is True

    def test_permissions_do_not_follow_hierarchy(self, make_service):
        service = make_service(contextual=[('AccountAdmin', 'acc1', None)])
        assert service.has_role('TeamPhotoAdmin') is True
        assert service.has_permission('team.photos.manage') is False
        assert service.has_permission('team.manage', {'accountId': 'acc1'}) is True

    def test_permission_has_no_cross_account_fallback(self, make_service):
        service = make_service(contextual=[('AccountAdmin', 'acc1', None)])
        assert service.has_permission('team.manage', {'accountId': 'B'}) is False

    def test_empty_permission(self, make_service):
        assert make_service(global_roles=['Administrator']).has_permission('') is False

    def test_unknown_assigned_role_grants_nothing(self, make_service):
        service = make_service(contextual=[('ghost-role', 'acc1', None)])
        assert service.has_permission('team.manage') is False
        assert service.has_role('ghost-role') is True


class TestStrictScope:
    """Tagged scope matching when enabled."""

    def test_untyped_default_allows_cross_kind_match(self, make_service):
        service = make_service(contextual=[('TeamAdmin', 'acc1', 'X')])
        assert service.has_role('TeamAdmin', {'leagueId': 'X'}) is True

    def test_strict_mode_rejects_cross_kind_match(self, make_service):
        service = make_service(contextual=[('TeamAdmin', 'acc1', 'X')], strict_scope=True)
        assert service.has_role('TeamAdmin', {'leagueId': 'X'}) is False
        assert service.has_role('TeamAdmin', {'teamId': 'X'}) is True

    def test_strict_scope_from_settings(self, catalog, settings):
        settings.ROLES_STRICT_SCOPE_MATCHING = True
        service = RoleService(catalog=catalog)
        assert service.matcher.strict_scope is True


class TestDerivedFlags:
    """Administrator and account-management flags."""

    def test_global_administrator(self, make_service):
        service = make_service(global_roles=['Administrator'])
        assert service.is_administrator is True
        assert service.has_manageable_account is True
        assert service.manageable_account_ids == []

    def test_contextual_administrator_is_not_global(self, make_service):
        service = make_service(contextual=[('Administrator', 'acc1', None)])
        assert service.is_administrator is False

    def test_manageable_accounts(self, make_service):
        service = make_service(contextual=[
            ('AccountAdmin', 'acc1', None),
            ('AccountAdmin', 'acc1', None),
            ('TeamAdmin', 'acc2', 'team1'),
            ('AccountAdmin', 'acc3', None),
        ])
        assert service.manageable_account_ids == ['acc1', 'acc3']
        assert service.has_manageable_account is True

    def test_account_admin_without_account_is_manageable(self, make_service):
        service = make_service(contextual=[('AccountAdmin', None, None)])
        assert service.manageable_account_ids == []
        assert service.has_manageable_account is True

    def test_no_manageable_account(self, make_service):
        service = make_service(contextual=[('LeagueAdmin', 'acc1', 'lg1')])
        assert service.is_administrator is False
        assert service.has_manageable_account is False


class TestFetchAssignments:
    """RoleService.fetch_assignments delegates to the store."""

    def test_fetch_replaces_answers(self, catalog, fake_directory):
        directory = fake_directory({
            'globalRoles': [],
            'contactRoles': [{'roleId': ROLE_IDS['TeamAdmin'], 'accountId': 'acc1', 'roleData': 'team1'}],
        })
        service = RoleService(store=RoleAssignmentStore(directory=directory), catalog=catalog)

        assert service.has_role('TeamAdmin') is False
        asyncio.run(service.fetch_assignments('acc1'))

        assert service.has_role('TeamAdmin', {'accountId': 'acc1', 'teamId': 'team1'}) is True
        assert directory.calls == ['acc1']

    def test_failed_fetch_logs_and_keeps_answers(self, catalog, fake_directory, make_state):
        directory = fake_directory(error=RoleDirectoryError('boom', details={'status_code': 401}))
        store = RoleAssignmentStore(directory=directory, state=make_state(global_roles=['TeamAdmin']))
        service = RoleService(store=store, catalog=catalog, user_id=7)

        with patch('apps.roles.services.SecurityLogger.log_role_refresh_failed') as mock_log:
            with pytest.raises(RoleDirectoryError):
                asyncio.run(service.fetch_assignments('acc1'))

        mock_log.assert_called_once_with(user_id=7, account_id='acc1', reason='boom', status_code=401)
        assert service.has_role('TeamAdmin') is True
        assert service.last_error == 'boom'

    def test_unexpected_directory_error_is_logged(self, catalog, fake_directory):
        store = RoleAssignmentStore(directory=fake_directory(error=ValueError('bad json')))
        service = RoleService(store=store, catalog=catalog, user_id=7)

        with patch('apps.roles.services.SecurityLogger.log_role_refresh_failed') as mock_log:
            with pytest.raises(RoleDirectoryError):
                asyncio.run(service.fetch_assignments('1'))

        mock_log.assert_called_once()
        assert mock_log.call_args.kwargs['account_id'] == '1'
        assert service.last_error == 'bad json'
        assert service.has_role('TeamAdmin') is False

    def test_clear(self, make_service):
        service = make_service(global_roles=['Administrator'])
        service.clear()
        assert service.has_role('Administrator') is False
        assert service.state.is_empty is True


class TestGuards:
    """require_role / require_permission raise on denial."""

    def test_require_role_passes(self, make_service):
        service = make_service(contextual=[('TeamAdmin', 'acc1', 'team1')])
        service.require_role('TeamAdmin', {'accountId': 'acc1', 'teamId': 'team1'})

    def test_require_role_raises(self, make_service):
        service = make_service(contextual=[('TeamAdmin', 'acc1', 'team1')])

        with patch('apps.roles.services.SecurityLogger.log_permission_denied') as mock_log:
            with pytest.raises(PermissionDeniedError) as exc_info:
                service.require_role('TeamAdmin', {'accountId': 'acc1', 'teamId': 'team2'})

        assert exc_info.value.status_code == 403
        assert exc_info.value.details == {
            'role': 'TeamAdmin',
            'context': {'account_id': 'acc1', 'team_id': 'team2'},
        }
        mock_log.assert_called_once()

    def test_require_permission_raises_without_context(self, make_service):
        with pytest.raises(PermissionDeniedError) as exc_info:
            make_service().require_permission('team.manage')
        assert exc_info.value.details == {'permission': 'team.manage', 'context': {}}
