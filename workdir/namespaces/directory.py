"""
Adapters for the two identity collaborators of the registry: the user directory and
the group-membership store. Both are backed by django.contrib.auth; the repository and
the synchronizer only talk to these classes, so tests can swap them out.
"""
import logging

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from guardian.shortcuts import assign_perm

logger = logging.getLogger(__name__)

User = get_user_model()


class DjangoUserDirectory:
    def resolve_by_name(self, name, using=None):
        """Returns the id of the user called `name`, or None."""
        if not name:
            return None
        return User.objects.using(using).filter(username=name).values_list('pk', flat=True).first()

    def resolve_by_id(self, user_id, using=None):
        if not user_id:
            return None
        return User.objects.using(using).filter(pk=user_id).first()

    def is_anonymous(self, user_id, using=None):
        # Only saved accounts can administer spaces; id 0/None is the anonymous user.
        if not user_id:
            return True
        user = self.resolve_by_id(user_id, using=using)
        return user is None or user.is_anonymous


class DjangoGroupStore:
    """
    Group memberships on a given database alias. Users must be loaded from the same
    alias: membership writes follow the user instance's database.
    """

    def get_groups(self, user, using=None):
        return set(user.groups.db_manager(using).values_list('name', flat=True))

    def add_to_group(self, user, group_name, using=None):
        group, _ = Group.objects.db_manager(using).get_or_create(name=group_name)
        user.groups.add(group)

    def remove_from_group(self, user, group_name, using=None):
        group = Group.objects.db_manager(using).filter(name=group_name).first()
        if group is not None:
            user.groups.remove(group)

    def ensure_space_group(self, group_name, namespace, using=None):
        """
        Creates the admin group of a space on first use and grants it object-level
        change permission on the space's Namespace row.
        """
        group, created = Group.objects.db_manager(using).get_or_create(name=group_name)
        if created:
            assign_perm('namespaces.change_namespace', group, namespace)
            logger.info("Created admin group %s for namespace %s", group_name, namespace.pk)
        return group
