# core/permissions.py
from rest_framework import permissions


class PermissionGate:
    """
    Answers "does this user hold capability X" for the space registry.
    Capabilities are plain Django model permissions declared on namespaces.Namespace
    (e.g. 'edit_all_spaces', 'archive_space'), so they can be granted per user or
    through groups. django-guardian's ObjectPermissionBackend is installed next to the
    ModelBackend, so object-level grants keep working for callers that pass an object.
    """
    app_label = 'namespaces'

    def user_has_capability(self, user, capability, obj=None):
        if user is None or not user.is_authenticated:
            return False
        if '.' not in capability:
            capability = f'{self.app_label}.{capability}'
        return user.has_perm(capability, obj)


class HasSpaceCapability(permissions.BasePermission):
    """
    DRF permission backed by the PermissionGate. Subclasses set `capability`.
    """
    capability = None
    gate_class = PermissionGate

    def has_permission(self, request, view):
        return self.gate_class().user_has_capability(request.user, self.capability)


class CanAddSpaces(HasSpaceCapability):
    capability = 'add_namespace'


class CanViewSpaceAdmins(HasSpaceCapability):
    capability = 'view_space_admins'
    message = "You do not have permission to view space administrators."


class CanArchiveSpaces(permissions.BasePermission):
    """
    Archiving needs both the global switch (SPACES_ENABLE_SPACE_ARCHIVING)
    and the 'archive_space' capability.
    """
    message = "Archiving is disabled or you lack the 'archive_space' permission."

    def has_permission(self, request, view):
        from namespaces.space import Space # namespaces depends on core, not the other way round
        return Space.can_archive(request.user)
