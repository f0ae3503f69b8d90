"""
Role API views.

The metadata view publishes the catalog so clients can render role names and
hierarchy; the session views expose what ``request.roles`` resolved for the
current principal.
"""
import logging
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework import status
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from apps.core.cache import CacheKeys, CacheService, CacheTTL
from apps.roles.catalog import get_catalog
from apps.roles.context import QueryContext
from apps.roles.serializers import RoleCheckQuerySerializer, SessionRolesSerializer
from apps.roles.services import RoleService

logger = logging.getLogger(__name__)


def _session_roles(request) -> RoleService:
    # Views reached without the middleware still answer, from an empty state
    roles = getattr(request, 'roles', None)
    if roles is None:
        roles = RoleService(user_id=getattr(request.user, 'pk', None))
    return roles


class RoleMetadataView(APIView):
    """
    Role catalog metadata.

    GET /v1/roles/metadata/

    Returns role names, hierarchy closures, permission sets and context kinds,
    versioned by a content hash.
    """
    permission_classes = []

    @extend_schema(
        summary="Role metadata",
        description="Role names, hierarchy, permissions and context kinds of the loaded catalog",
        responses={
            200: {
                'type': 'object',
                'properties': {
                    'version': {'type': 'string'},
                    'roles': {'type': 'object'},
                    'hierarchy': {'type': 'object'},
                    'permissions': {'type': 'object'},
                }
            }
        },
        tags=['Roles']
    )
    def get(self, request):
        catalog = get_catalog()
        cache_key = CacheKeys.format(CacheKeys.ROLE_METADATA, version=catalog.version)
        metadata = CacheService.get_or_set(cache_key, catalog.as_metadata, CacheTTL.ROLE_METADATA)
        return Response(metadata)


class SessionRolesView(APIView):
    """
    Role summary for the signed-in principal.

    GET /v1/roles/me/
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Current role assignments",
        description="Role assignments and derived flags resolved for this request",
        responses={200: SessionRolesSerializer},
        tags=['Roles']
    )
    def get(self, request):
        serializer = SessionRolesSerializer(_session_roles(request))
        return Response(serializer.data)


class RoleCheckView(APIView):
    """
    Evaluate one role or permission check for the signed-in principal.

    GET /v1/roles/check/?role=TeamAdmin&accountId=...&teamId=...
    GET /v1/roles/check/?permission=team.manage&accountId=...
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Check a role or permission",
        parameters=[
            OpenApiParameter('role', OpenApiTypes.STR, description='Role name or identifier'),
            OpenApiParameter('permission', OpenApiTypes.STR, description='Permission string'),
            OpenApiParameter('accountId', OpenApiTypes.STR),
            OpenApiParameter('teamId', OpenApiTypes.STR),
            OpenApiParameter('leagueId', OpenApiTypes.STR),
            OpenApiParameter('seasonId', OpenApiTypes.STR),
        ],
        responses={
            200: {
                'type': 'object',
                'properties': {
                    'role': {'type': 'string'},
                    'permission': {'type': 'string'},
                    'context': {'type': 'object'},
                    'granted': {'type': 'boolean'},
                }
            },
            400: {'type': 'object'},
        },
        tags=['Roles']
    )
    def get(self, request):
        serializer = RoleCheckQuerySerializer(data=request.query_params)
        if not serializer.is_valid():
            return Response(
                {'error': 'Invalid check', 'details': serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        data = serializer.validated_data
        context = QueryContext.coerce(data)
        roles = _session_roles(request)

        if data.get('role'):
            granted = roles.has_role(data['role'], context)
            result = {'role': data['role']}
        else:
            granted = roles.has_permission(data['permission'], context)
            result = {'permission': data['permission']}

        result.update({'context': context.as_dict(), 'granted': granted})
        return Response(result)
