"""
Serializers for role API responses.
"""
from rest_framework import serializers


class ContextualAssignmentSerializer(serializers.Serializer):
    """Serializer for a contextual role assignment."""
    id = serializers.CharField(allow_null=True)
    contactId = serializers.CharField(source='contact_id', allow_null=True)
    roleId = serializers.CharField(source='role')
    roleName = serializers.CharField(source='role_name', allow_null=True)
    roleData = serializers.CharField(source='scope_value', allow_null=True)
    accountId = serializers.CharField(source='account_id', allow_null=True)


class SessionRolesSerializer(serializers.Serializer):
    """
    Serializer for the signed-in principal's role summary.

    Built from a RoleService rather than a model instance.
    """
    accountId = serializers.CharField(source='state.account_id', allow_null=True)
    globalRoles = serializers.SerializerMethodField()
    contactRoles = ContextualAssignmentSerializer(source='state.contextual_assignments', many=True)
    isAdministrator = serializers.BooleanField(source='is_administrator')
    manageableAccountIds = serializers.ListField(source='manageable_account_ids', child=serializers.CharField())
    hasManageableAccount = serializers.BooleanField(source='has_manageable_account')
    loading = serializers.BooleanField(source='is_loading')
    error = serializers.CharField(source='last_error', allow_null=True)

    def get_globalRoles(self, obj):
        return [assignment.role for assignment in obj.state.global_assignments]


class RoleCheckQuerySerializer(serializers.Serializer):
    """Validate a role or permission check request."""
    role = serializers.CharField(required=False)
    permission = serializers.CharField(required=False)
    accountId = serializers.CharField(required=False)
    teamId = serializers.CharField(required=False)
    leagueId = serializers.CharField(required=False)
    seasonId = serializers.CharField(required=False)

    def validate(self, attrs):
        if bool(attrs.get('role')) == bool(attrs.get('permission')):
            raise serializers.ValidationError("Provide exactly one of 'role' or 'permission'")
        return attrs
