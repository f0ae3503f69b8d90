"""
Tests for query contexts, assignments and context matching.
"""
import pytest

from apps.roles.context import (
    ContextMatcher, ContextualAssignment, GlobalAssignment, QueryContext
)
from apps.roles.definitions import ROLE_IDS


@pytest.fixture
def matcher(catalog):
    return ContextMatcher(catalog)


@pytest.fixture
def strict_matcher(catalog):
    return ContextMatcher(catalog, strict_scope=True)


def team_admin(account_id='acc1', scope_value='team1'):
    return ContextualAssignment(role=ROLE_IDS['TeamAdmin'], account_id=account_id, scope_value=scope_value)


def league_admin(account_id='acc1', scope_value='lg1'):
    return ContextualAssignment(role=ROLE_IDS['LeagueAdmin'], account_id=account_id, scope_value=scope_value)


class TestQueryContext:
    """Test QueryContext construction and coercion."""

    def test_identifiers_are_compared_as_strings(self):
        context = QueryContext(account_id=42, team_id=7)
        assert context.account_id == '42'
        assert context.team_id == '7'

    def test_empty_string_is_absent(self):
        assert QueryContext(account_id='').account_id is None

    def test_coerce_none_and_instance(self):
        context = QueryContext(account_id='a')
        assert QueryContext.coerce(None) is None
        assert QueryContext.coerce(context) is context

    def test_coerce_camel_case_mapping(self):
        context = QueryContext.coerce({'accountId': 'a', 'teamId': 't', 'seasonId': 's'})
        assert context == QueryContext(account_id='a', team_id='t', season_id='s')

    def test_coerce_snake_case_mapping(self):
        context = QueryContext.coerce({'account_id': 'a', 'league_id': 'l'})
        assert context == QueryContext(account_id='a', league_id='l')

    def test_coerce_empty_snake_case_key_falls_back_to_camel_case(self):
        context = QueryContext.coerce({'account_id': None, 'accountId': 'a', 'team_id': '', 'teamId': 0})
        assert context == QueryContext(account_id='a', team_id='0')

    def test_as_dict_omits_absent_dimensions(self):
        assert QueryContext(account_id='a').as_dict() == {'account_id': 'a'}


class TestAssignments:
    """Test assignment value types."""

    def test_contextual_identifiers_coerced(self):
        assignment = ContextualAssignment(role='r', account_id=1, scope_value=2, id=3, contact_id=4)
        assert assignment.account_id == '1'
        assert assignment.scope_value == '2'
        assert assignment.id == '3'
        assert assignment.contact_id == '4'

    def test_assignments_are_immutable(self):
        with pytest.raises(AttributeError):
            team_admin().account_id = 'other'


class TestContextMatcher:
    """Test untagged context matching."""

    def test_global_assignment_always_matches(self, matcher):
        assignment = GlobalAssignment(role=ROLE_IDS['Administrator'])
        assert matcher.matches(assignment, QueryContext(account_id='anything')) is True

    def test_no_context_matches(self, matcher):
        assert matcher.matches(team_admin(), None) is True

    def test_empty_context_matches(self, matcher):
        assert matcher.matches(team_admin(), QueryContext()) is True

    def test_account_must_match(self, matcher):
        assert matcher.matches(team_admin(), QueryContext(account_id='acc1')) is True
        assert matcher.matches(team_admin(), QueryContext(account_id='acc2')) is False

    def test_team_compared_with_scope_value(self, matcher):
        assert matcher.matches(team_admin(), QueryContext(account_id='acc1', team_id='team1')) is True
        assert matcher.matches(team_admin(), QueryContext(account_id='acc1', team_id='team2')) is False

    def test_dimensions_are_conjunctive(self, matcher):
        context = QueryContext(account_id='acc2', team_id='team1')
        assert matcher.matches(team_admin(), context) is False

    def test_league_compared_with_scope_value(self, matcher):
        assert matcher.matches(league_admin(), QueryContext(league_id='lg1')) is True
        assert matcher.matches(league_admin(), QueryContext(league_id='lg2')) is False

    def test_scope_is_untyped(self, matcher):
        # A league id equal to a team assignment's scope value matches
        assert matcher.matches(team_admin(scope_value='X'), QueryContext(league_id='X')) is True

    def test_season_is_ignored(self, matcher):
        assert matcher.matches(team_admin(), QueryContext(account_id='acc1', season_id='s9')) is True

    def test_assignment_without_scope_fails_team_query(self, matcher):
        assignment = team_admin(scope_value=None)
        assert matcher.matches(assignment, QueryContext(team_id='team1')) is False
        assert matcher.matches(assignment, QueryContext(account_id='acc1')) is True


class TestStrictScopeMatching:
    """Test tagged scope matching."""

    def test_team_role_matches_team_query(self, strict_matcher):
        assert strict_matcher.matches(team_admin(), QueryContext(team_id='team1')) is True

    def test_team_role_rejects_league_query(self, strict_matcher):
        assert strict_matcher.matches(team_admin(scope_value='X'), QueryContext(league_id='X')) is False

    def test_league_role_rejects_team_query(self, strict_matcher):
        assert strict_matcher.matches(league_admin(scope_value='X'), QueryContext(team_id='X')) is False

    def test_account_role_matches_account_only_query(self, strict_matcher):
        assignment = ContextualAssignment(role=ROLE_IDS['AccountAdmin'], account_id='acc1')
        assert strict_matcher.matches(assignment, QueryContext(account_id='acc1')) is True
        assert strict_matcher.matches(assignment, QueryContext(account_id='acc1', team_id='t')) is False

    def test_account_still_compared(self, strict_matcher):
        assert strict_matcher.matches(team_admin(), QueryContext(account_id='acc2', team_id='team1')) is False
