import logging

from .config import NamespaceConfig
from .directory import DjangoGroupStore, DjangoUserDirectory
from .models import Namespace, NamespaceAdmin
from .signals import group_membership_changed

logger = logging.getLogger(__name__)


class AdministratorSynchronizer:
    """
    Makes the stored administrators of a space match `space.administrators`.

    The stored rows are always replaced wholesale (delete, then bulk insert). When
    SPACES_AUTO_ADD_ADMINS_TO_USER_GROUPS is on, the group memberships of the users
    involved are reconciled as well: removed admins lose the space group (and the shared
    admin group, unless they still look like an admin elsewhere), current admins gain both.

    Callers run this inside the same transaction as the namespace row write.
    """

    def __init__(self, directory=None, groups=None, config=None):
        self.directory = directory or DjangoUserDirectory()
        self.groups = groups or DjangoGroupStore()
        self.config = config or NamespaceConfig.from_settings()

    def resolve_administrator_ids(self, usernames, using=None):
        """
        Maps usernames to user ids, in order, without duplicates. Names that do not
        resolve to a real account are dropped; a typo means one admin fewer, not an error.
        """
        ids = {}
        for username in usernames:
            user_id = self.directory.resolve_by_name(username, using=using)
            if user_id is None or self.directory.is_anonymous(user_id, using=using):
                logger.debug("Dropping unknown space administrator %r", username)
                continue
            ids.setdefault(user_id, username)
        return list(ids)

    def stored_administrator_ids(self, namespace_id, using=None):
        return list(
            NamespaceAdmin.objects.using(using)
            .filter(namespace_id=namespace_id)
            .values_list('admin_user_id', flat=True)
        )

    def update_space_administrators(self, space, using=None):
        namespace_id = space.id
        target_ids = self.resolve_administrator_ids(space.administrators, using=using)
        previous_ids = self.stored_administrator_ids(namespace_id, using=using)
        removed_ids = [user_id for user_id in dict.fromkeys(previous_ids) if user_id not in target_ids]

        if self.config.auto_group_sync:
            for user_id in removed_ids:
                self._revoke_admin_groups(space, user_id, using)
            if target_ids:
                namespace = Namespace.objects.using(using).get(pk=namespace_id)
                self.groups.ensure_space_group(space.group_name, namespace, using=using)
            for user_id in target_ids:
                self._grant_admin_groups(space, user_id, using)

        NamespaceAdmin.objects.using(using).filter(namespace_id=namespace_id).delete()
        NamespaceAdmin.objects.using(using).bulk_create([
            NamespaceAdmin(namespace_id=namespace_id, admin_user_id=user_id) for user_id in target_ids
        ])
        logger.debug("Space %s now has administrators %s", namespace_id, target_ids)
        return target_ids

    def _revoke_admin_groups(self, space, user_id, using=None):
        user = self.directory.resolve_by_id(user_id, using=using)
        if user is None:
            logger.debug("Skipping group removal for missing user %s", user_id)
            return

        shared_group = self.config.shared_admin_group
        candidates = [space.group_name, shared_group]
        old_groups = self.groups.get_groups(user, using=using)

        # Still an admin elsewhere: only the space group goes.
        if any(self.config.is_admin_like_group(group) for group in old_groups if group not in candidates):
            candidates.remove(shared_group)

        to_remove = [group for group in candidates if group in old_groups]
        if not to_remove:
            return
        for group in to_remove:
            self.groups.remove_from_group(user, group, using=using)
        self._announce(user, old_groups, f"Removed as administrator of space {space.key}", space, using)

    def _grant_admin_groups(self, space, user_id, using=None):
        user = self.directory.resolve_by_id(user_id, using=using)
        if user is None:
            return

        old_groups = self.groups.get_groups(user, using=using)
        to_add = [group for group in (space.group_name, self.config.shared_admin_group) if group not in old_groups]
        if not to_add:
            return
        for group in to_add:
            self.groups.add_to_group(user, group, using=using)
        self._announce(user, old_groups, f"Added as administrator of space {space.key}", space, using)

    def _announce(self, user, old_groups, reason, space, using=None):
        new_groups = self.groups.get_groups(user, using=using)
        logger.info("%s: %s -> %s (%s)", user.get_username(), sorted(old_groups), sorted(new_groups), reason)
        group_membership_changed.send(
            sender=self.__class__, user=user, old_groups=old_groups,
            new_groups=new_groups, reason=reason, space=space,
        )
