"""
Role assignments, query contexts and context matching.
"""
from dataclasses import dataclass, asdict
from typing import Optional, Union

from apps.roles.catalog import ContextKind, RoleCatalog

Identifier = Union[str, int]


def _as_id(value: Optional[Identifier]) -> Optional[str]:
    """Identifiers arrive as strings or integers; compare them as strings."""
    if value is None or value == '':
        return None
    return str(value)


def _lookup(mapping, *keys):
    """First key whose value is present; None and '' count as absent."""
    for key in keys:
        value = mapping.get(key)
        if value is not None and value != '':
            return value
    return None


@dataclass(frozen=True)
class QueryContext:
    """
    Dimensions a role or permission check is evaluated against.

    Every field is optional; callers supply only the dimensions relevant to
    the check.
    """
    account_id: Optional[str] = None
    team_id: Optional[str] = None
    league_id: Optional[str] = None
    season_id: Optional[str] = None

    def __post_init__(self):
        for name in ('account_id', 'team_id', 'league_id', 'season_id'):
            object.__setattr__(self, name, _as_id(getattr(self, name)))

    @classmethod
    def coerce(cls, context) -> Optional['QueryContext']:
        """Accept a QueryContext, a mapping with snake_case or camelCase keys, or None."""
        if context is None or isinstance(context, QueryContext):
            return context
        return cls(
            account_id=_lookup(context, 'account_id', 'accountId'),
            team_id=_lookup(context, 'team_id', 'teamId'),
            league_id=_lookup(context, 'league_id', 'leagueId'),
            season_id=_lookup(context, 'season_id', 'seasonId'),
        )

    def as_dict(self) -> dict:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass(frozen=True)
class GlobalAssignment:
    """A role held with no context restriction."""
    role: str


@dataclass(frozen=True)
class ContextualAssignment:
    """
    A role held within an account and an untyped secondary scope.

    ``scope_value`` holds a team id or a league id depending on the role; the
    assignment itself does not record which.
    """
    role: str
    account_id: Optional[str] = None
    scope_value: Optional[str] = None
    id: Optional[str] = None
    contact_id: Optional[str] = None
    role_name: Optional[str] = None

    def __post_init__(self):
        for name in ('account_id', 'scope_value', 'id', 'contact_id'):
            object.__setattr__(self, name, _as_id(getattr(self, name)))


class ContextMatcher:
    """
    Decide whether a contextual assignment satisfies a query context.

    Every supplied dimension must match (conjunction). ``team_id`` and
    ``league_id`` are both compared against the assignment's single
    ``scope_value``. ``season_id`` is accepted but never compared.

    With ``strict_scope=True`` the team and league dimensions are only
    compared for roles whose declared context kind matches; a query naming
    the other dimension does not match.
    """

    def __init__(self, catalog: RoleCatalog, strict_scope: bool = False):
        self.catalog = catalog
        self.strict_scope = strict_scope

    def matches(self, assignment, context: Optional[QueryContext]) -> bool:
        if isinstance(assignment, GlobalAssignment):
            return True
        if context is None:
            return True

        if context.account_id is not None and context.account_id != assignment.account_id:
            return False

        if self.strict_scope:
            return self._matches_tagged_scope(assignment, context)

        if context.team_id is not None and context.team_id != assignment.scope_value:
            return False
        if context.league_id is not None and context.league_id != assignment.scope_value:
            return False
        return True

    def _matches_tagged_scope(self, assignment: ContextualAssignment, context: QueryContext) -> bool:
        kind = self.catalog.context_for(self.catalog.normalize(assignment.role))

        if context.team_id is not None:
            if kind != ContextKind.TEAM or context.team_id != assignment.scope_value:
                return False
        if context.league_id is not None:
            if kind != ContextKind.LEAGUE or context.league_id != assignment.scope_value:
                return False
        return True
