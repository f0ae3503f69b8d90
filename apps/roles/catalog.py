"""
Static role catalog: name/identifier lookup, hierarchy closure and per-role
permission sets.

A RoleCatalog is built once from declarative tables (see
``apps.roles.definitions``), validated, and then shared read-only by every
evaluator. Alternate catalogs can be injected for tests or other deployments.
"""
import hashlib
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Dict, FrozenSet, Iterable, List, Optional

from django.conf import settings
from django.utils.module_loading import import_string

from apps.core.exceptions import RoleCatalogError
from apps.roles.definitions import DEFAULT_ROLES, ROLE_IDS, WILDCARD_PERMISSION

logger = logging.getLogger(__name__)


class ContextKind(str, Enum):
    """Kind of resource a role is granted in."""
    GLOBAL = 'global'
    ACCOUNT = 'account'
    LEAGUE = 'league'
    TEAM = 'team'


@dataclass(frozen=True)
class RoleDefinition:
    """One declared role."""
    role_id: str
    name: str
    display_name: str = ''
    context: ContextKind = ContextKind.ACCOUNT
    implies: FrozenSet[str] = field(default_factory=frozenset)
    permissions: FrozenSet[str] = field(default_factory=frozenset)


class RoleCatalog:
    """
    Immutable lookup tables for roles.

    Provides:
    - normalize(): role name or identifier -> canonical identifier
    - name_for(): identifier -> role name
    - closure(): roles implied by a role, including itself
    - permissions_for(): the role's own declared permissions
    """

    def __init__(self, definitions: Iterable[RoleDefinition]):
        self._by_id: Dict[str, RoleDefinition] = {}
        self._name_to_id: Dict[str, str] = {}
        self._lower_id_to_id: Dict[str, str] = {}

        for definition in definitions:
            lowered = definition.role_id.lower()
            if lowered in self._lower_id_to_id:
                raise RoleCatalogError(
                    f"Duplicate role identifier '{definition.role_id}'",
                    details={'role_id': definition.role_id}
                )
            if definition.name in self._name_to_id:
                raise RoleCatalogError(
                    f"Duplicate role name '{definition.name}'",
                    details={'name': definition.name}
                )
            self._by_id[definition.role_id] = definition
            self._name_to_id[definition.name] = definition.role_id
            self._lower_id_to_id[lowered] = definition.role_id

        self._closures: Dict[str, FrozenSet[str]] = {
            role_id: frozenset(definition.implies) | {role_id}
            for role_id, definition in self._by_id.items()
        }

        self.validate()

    @classmethod
    def from_tables(cls, roles: Dict[str, dict], role_ids: Dict[str, str]) -> 'RoleCatalog':
        """
        Build a catalog from the declarative table format used in
        ``apps.roles.definitions``.

        ``implies`` entries may reference roles by name or identifier.
        """
        definitions = []
        for name, config in roles.items():
            try:
                role_id = role_ids[name]
            except KeyError:
                raise RoleCatalogError(
                    f"Role '{name}' has no identifier",
                    details={'name': name}
                )
            implies = frozenset(role_ids.get(implied, implied) for implied in config.get('implies', []))
            definitions.append(RoleDefinition(
                role_id=role_id,
                name=name,
                display_name=config.get('display_name', name),
                context=ContextKind(config.get('context', ContextKind.ACCOUNT.value)),
                implies=implies,
                permissions=frozenset(config.get('permissions', [])),
            ))
        return cls(definitions)

    def validate(self):
        """
        Verify the hierarchy table.

        Every implied role must be declared, every closure must already be
        transitively flattened, and no two distinct roles may imply each
        other (which, on flattened closures, is exactly a cycle).

        Raises:
            RoleCatalogError: If the tables are inconsistent
        """
        for role_id, closure in self._closures.items():
            unknown = closure - set(self._by_id)
            if unknown:
                raise RoleCatalogError(
                    f"Role '{role_id}' implies undeclared roles: {sorted(unknown)}",
                    details={'role_id': role_id, 'unknown': sorted(unknown)}
                )

            for implied in closure:
                missing = self._closures[implied] - closure
                if missing:
                    raise RoleCatalogError(
                        f"Hierarchy for '{role_id}' is not flattened; "
                        f"'{implied}' also implies {sorted(missing)}",
                        details={'role_id': role_id, 'via': implied, 'missing': sorted(missing)}
                    )
                if implied != role_id and role_id in self._closures[implied]:
                    raise RoleCatalogError(
                        f"Hierarchy cycle between '{role_id}' and '{implied}'",
                        details={'roles': sorted([role_id, implied])}
                    )

    # Identifier normalization

    def normalize(self, token: Optional[str]) -> Optional[str]:
        """
        Resolve a role name to its identifier.

        Identifiers are returned in their declared casing; anything else is
        returned unchanged so that it simply never matches.
        """
        if not isinstance(token, str):
            return token
        if token in self._name_to_id:
            return self._name_to_id[token]
        return self._lower_id_to_id.get(token.lower(), token)

    def name_for(self, role_id: str) -> Optional[str]:
        """Return the declared name for an identifier, or None."""
        definition = self._by_id.get(self.normalize(role_id))
        return definition.name if definition else None

    def id_for(self, name: str) -> Optional[str]:
        """Return the identifier declared for a role name, or None."""
        return self._name_to_id.get(name)

    def is_known(self, token: str) -> bool:
        return self.normalize(token) in self._by_id

    # Hierarchy

    def closure(self, role_id: str) -> FrozenSet[str]:
        """Roles implied by ``role_id``, always including itself."""
        return self._closures.get(role_id, frozenset([role_id]))

    def implied_roles(self, role_id: str) -> FrozenSet[str]:
        """Roles strictly below ``role_id`` in the hierarchy."""
        return self.closure(role_id) - {role_id}

    # Permissions

    def permissions_for(self, role_id: str) -> FrozenSet[str]:
        definition = self._by_id.get(role_id)
        return definition.permissions if definition else frozenset()

    def grants(self, role_id: str, permission: str) -> bool:
        """Whether the role's own permission set contains ``permission`` or the wildcard."""
        permissions = self.permissions_for(role_id)
        return WILDCARD_PERMISSION in permissions or permission in permissions

    def context_for(self, role_id: str) -> Optional[ContextKind]:
        definition = self._by_id.get(role_id)
        return definition.context if definition else None

    @property
    def role_ids(self) -> List[str]:
        return list(self._by_id)

    def definitions(self) -> List[RoleDefinition]:
        return list(self._by_id.values())

    # Metadata

    def as_metadata(self) -> dict:
        """
        Serializable view of the catalog, versioned by a hash of its content.

        Shape:
            {
                'version': str,
                'roles': {role_id: {'name', 'displayName', 'context'}},
                'hierarchy': {role_id: [role_id, ...]},
                'permissions': {role_id: {'roleId', 'permissions', 'context'}},
            }
        """
        roles = {}
        hierarchy = {}
        permissions = {}
        for role_id, definition in sorted(self._by_id.items()):
            roles[role_id] = {
                'name': definition.name,
                'displayName': definition.display_name,
                'context': definition.context.value,
            }
            hierarchy[role_id] = sorted(self._closures[role_id])
            permissions[role_id] = {
                'roleId': role_id,
                'permissions': sorted(definition.permissions),
                'context': definition.context.value,
            }

        content = {'roles': roles, 'hierarchy': hierarchy, 'permissions': permissions}
        digest = hashlib.sha256(json.dumps(content, sort_keys=True).encode('utf-8')).hexdigest()
        return {'version': digest[:16], **content}

    @property
    def version(self) -> str:
        return self.as_metadata()['version']


def build_default_catalog() -> RoleCatalog:
    """Catalog built from the compiled-in Draco role tables."""
    return RoleCatalog.from_tables(DEFAULT_ROLES, ROLE_IDS)


@lru_cache(maxsize=1)
def get_catalog() -> RoleCatalog:
    """
    Process-wide catalog, constructed once.

    ``settings.ROLES_CATALOG`` may name an alternate factory by dotted path.
    """
    factory_path = getattr(settings, 'ROLES_CATALOG', None)
    factory = import_string(factory_path) if factory_path else build_default_catalog
    catalog = factory()
    logger.info(
        f"Role catalog loaded with {len(catalog.role_ids)} roles",
        extra={'catalog_version': catalog.version}
    )
    return catalog
