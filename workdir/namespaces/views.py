from django.core.exceptions import PermissionDenied
from django.http import Http404
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiTypes

from core.permissions import CanAddSpaces, CanArchiveSpaces, CanViewSpaceAdmins
from .repository import NamespaceRepository
from .serializers import SpaceAdminSerializer, SpaceSerializer


def flag(request, name):
    return request.query_params.get(name, '').lower() in ('true', '1', 't')


class SpaceViewSet(viewsets.GenericViewSet):
    """
    ViewSet for managing Spaces.
    Spaces are looked up by key. Every write goes through the NamespaceRepository, which
    enforces edit rights (space administrators, or 'namespaces.edit_all_spaces'), writes
    the audit records and synchronizes administrators. Spaces are never deleted; use the
    archive/unarchive actions instead.
    """
    serializer_class = SpaceSerializer
    lookup_field = 'key'
    lookup_value_regex = '[A-Za-z0-9]+'
    repository_class = NamespaceRepository

    def get_permissions(self):
        if self.action == 'create':
            return [IsAuthenticated(), CanAddSpaces()]
        if self.action in ('archive', 'unarchive'):
            return [IsAuthenticated(), CanArchiveSpaces()]
        if self.action == 'admins':
            return [CanViewSpaceAdmins()]
        if self.action == 'mine':
            return [IsAuthenticated()]
        return super().get_permissions()

    def get_repository(self):
        if not hasattr(self, '_repository'):
            self._repository = self.repository_class()
        return self._repository

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['repository'] = self.get_repository()
        return context

    def get_object(self):
        space = self.get_repository().get_space_by_key(self.kwargs[self.lookup_field])
        if space is None:
            raise Http404("No such space.")
        return space

    @extend_schema(
        parameters=[OpenApiParameter(name='archived', type=OpenApiTypes.BOOL, description="List archived spaces instead of active ones.")],
        responses={200: SpaceSerializer(many=True)},
    )
    def list(self, request):
        repository = self.get_repository()
        space_ids = list(repository.list_spaces(archived=flag(request, 'archived')))
        page = self.paginate_queryset(space_ids)
        ids = page if page is not None else space_ids
        spaces = [repository.get_space_by_id(space_id) for space_id in ids]
        serializer = self.get_serializer(spaces, many=True)
        if page is not None:
            return self.get_paginated_response(serializer.data)
        return Response(serializer.data)

    def retrieve(self, request, key=None):
        return Response(self.get_serializer(self.get_object()).data)

    def create(self, request):
        """Creates a space owned by the requesting user, who becomes its first administrator."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        space = serializer.save()
        return Response(self.get_serializer(space).data, status=status.HTTP_201_CREATED)

    def update(self, request, key=None, partial=False):
        space = self.get_object()
        # Rights come from the stored space, never from the administrators in the request.
        if not space.can_edit(request.user, gate=self.get_repository().gate):
            raise PermissionDenied("Not enough permissions to edit this space.")
        serializer = self.get_serializer(space, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        space = serializer.save()
        return Response(self.get_serializer(space).data)

    def partial_update(self, request, key=None):
        return self.update(request, key=key, partial=True)

    @extend_schema(request=None, responses={200: SpaceSerializer})
    @action(detail=True, methods=['post'])
    def archive(self, request, key=None):
        """Archives the space. Requires archiving to be enabled and 'namespaces.archive_space'."""
        space = self.get_object()
        if space.archived:
            return Response({'detail': f'Space {space.key} is already archived.'}, status=status.HTTP_400_BAD_REQUEST)
        archived = self.get_repository().archive_space(space, user=request.user)
        return Response(self.get_serializer(archived).data)

    @extend_schema(request=None, responses={200: SpaceSerializer})
    @action(detail=True, methods=['post'])
    def unarchive(self, request, key=None):
        space = self.get_object()
        if not space.archived:
            return Response({'detail': f'Space {space.key} is not archived.'}, status=status.HTTP_400_BAD_REQUEST)
        restored = self.get_repository().unarchive_space(space, user=request.user)
        return Response(self.get_serializer(restored).data)

    @extend_schema(
        parameters=[OpenApiParameter(name='realnames', type=OpenApiTypes.BOOL, description="Include each administrator's full name.")],
        responses={200: SpaceAdminSerializer(many=True)},
    )
    @action(detail=True, methods=['get'])
    def admins(self, request, key=None):
        """Lists the stored administrators of a space. Requires 'namespaces.view_space_admins'."""
        space = self.get_object()
        repository = self.get_repository()
        users = [repository.directory.resolve_by_id(admin_id) for admin_id in repository.get_namespace_admins(space.id)]
        users = [user for user in users if user is not None]
        serializer = SpaceAdminSerializer(users, many=True, context={'realnames': flag(request, 'realnames')})
        return Response({'space_key': space.key, 'admins': serializer.data})

    @extend_schema(responses={200: SpaceSerializer(many=True)})
    @action(detail=False, methods=['get'])
    def mine(self, request):
        """Spaces the requesting user administers."""
        spaces = self.get_repository().get_spaces_for_admin(request.user.pk)
        return Response(self.get_serializer(spaces, many=True).data)
