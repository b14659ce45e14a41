import re
from dataclasses import dataclass, field

from django.conf import settings

# Space-specific admin groups are named "<space id>Admin"
SPACE_GROUP_PATTERN = re.compile(r'^\d+Admin$')


@dataclass(frozen=True)
class NamespaceConfig:
    """
    Snapshot of the registry's configuration. Built once per repository so that the
    core/extension namespace tables do not live in module-level state; tests pass
    their own instance instead of overriding settings.
    """
    canonical_namespaces: dict = field(default_factory=dict)
    valid_namespaces: tuple = ()
    extension_namespaces: dict = field(default_factory=dict)
    archiving_enabled: bool = True
    auto_group_sync: bool = False
    shared_admin_group: str = 'SpaceAdmin'
    admin_like_groups: frozenset = frozenset()

    @classmethod
    def from_settings(cls):
        return cls(
            canonical_namespaces=dict(settings.SPACES_CANONICAL_NAMESPACES),
            valid_namespaces=tuple(settings.SPACES_VALID_NAMESPACES),
            extension_namespaces=dict(settings.SPACES_EXTENSION_NAMESPACES),
            archiving_enabled=settings.SPACES_ENABLE_SPACE_ARCHIVING,
            auto_group_sync=settings.SPACES_AUTO_ADD_ADMINS_TO_USER_GROUPS,
            shared_admin_group=settings.SPACES_SHARED_ADMIN_GROUP,
            admin_like_groups=frozenset(settings.SPACES_ADMIN_LIKE_GROUPS),
        )

    def is_admin_like_group(self, group_name):
        """
        True for groups that mean "administrator of some space": another space's
        admin group, or one of the explicitly configured SPACES_ADMIN_LIKE_GROUPS.
        """
        return bool(SPACE_GROUP_PATTERN.match(group_name)) or group_name in self.admin_like_groups
