import copy
import re

from django.core.exceptions import ValidationError

from core.permissions import PermissionGate
from .config import NamespaceConfig
from .exceptions import SpaceNotPersisted

KEY_PATTERN = re.compile(r'[A-Za-z0-9]+')


def ucfirst(value):
    return value[:1].upper() + value[1:]


class Space:
    """
    A namespace ("space") as the rest of the code sees it: identity, attributes and the
    permission helpers built on them. Persistence is the NamespaceRepository's job; a Space
    never reads or writes the database itself.

    A space is transient until the repository assigns it an id (id 0 means "not stored").
    The talk namespace id is always id + 1 and is never stored.
    """
    UNSAVED_ID = 0

    def __init__(self, key, name, namespace_id, description, owner,
                 archived=False, administrators=None, protected=False):
        if namespace_id % 2 != 0:
            raise ValidationError(
                f"Namespace ID must be an even number; '{namespace_id}' is not even.", code='odd_id'
            )
        self._id = namespace_id
        self.key = key
        self.name = name
        self.description = description
        self.owner = owner
        self.archived = archived
        self.protected = protected
        self.administrators = administrators or []

    @classmethod
    def new_from_values(cls, key, name, description, owner):
        """Returns a transient space; the repository gives it an id on add_space()."""
        return cls(key, name, cls.UNSAVED_ID, description, owner)

    def __repr__(self):
        return f"<Space {self._id}: {self._key}>"

    # --- identity ---

    @property
    def is_persisted(self):
        return self._id != self.UNSAVED_ID

    @property
    def id(self):
        if not self.is_persisted:
            raise SpaceNotPersisted("Cannot read the id of a space that has not been stored.")
        return self._id

    @property
    def talk_id(self):
        if not self.is_persisted:
            raise SpaceNotPersisted("Cannot read the talk id of a space that has not been stored.")
        return self._id + 1

    @property
    def group_name(self):
        """Name of the group holding this space's administrators."""
        if not self.is_persisted:
            raise SpaceNotPersisted("Cannot read the group name of a space that has not been stored.")
        return f"{self._id}Admin"

    # --- validated attributes ---

    @property
    def key(self):
        return self._key

    @key.setter
    def key(self, value):
        if not value:
            raise ValidationError("Namespace key must not be empty.", code='empty_key')
        if not KEY_PATTERN.fullmatch(value):
            raise ValidationError(
                f"A namespace key can only consist of alphanumerical characters, therefore {value} is invalid.",
                code='invalid_key'
            )
        self._key = ucfirst(value)

    @property
    def description(self):
        return self._description

    @description.setter
    def description(self, value):
        if not value:
            raise ValidationError("Description must not be empty.", code='empty_description')
        self._description = value

    @property
    def owner(self):
        return self._owner

    @owner.setter
    def owner(self, user):
        if user is None or not user.is_authenticated or user.pk is None:
            raise ValidationError("A namespace cannot be owned by an anonymous user.", code='anonymous_owner')
        self._owner = user

    @property
    def administrators(self):
        """Usernames of the administrators. Unknown names are dropped when the space is saved."""
        return self._administrators

    @administrators.setter
    def administrators(self, usernames):
        self._administrators = list(usernames)

    # --- copies and snapshots ---

    def with_archived(self, archived=True):
        """Returns a copy of this space that differs only in its archived flag."""
        clone = copy.copy(self)
        clone._administrators = list(self._administrators)
        clone.archived = archived
        return clone

    def snapshot(self):
        """Plain-data view of the attributes, used for audit records."""
        return {
            'key': self.key,
            'name': self.name,
            'description': self.description,
            'owner': self.owner.get_username(),
            'administrators': sorted(set(self.administrators)),
            'archived': self.archived,
            'protected': self.protected,
        }

    # --- permissions ---

    def can_edit(self, user, gate=None):
        """
        Whether `user` may change this space's settings: space administrators can, and so
        can anyone holding 'edit_all_spaces'. Unrelated to `protected`, which is about the
        pages inside the space.
        """
        if user is None:
            return False
        if user.is_authenticated and user.get_username() in self.administrators:
            return True
        return (gate or PermissionGate()).user_has_capability(user, 'edit_all_spaces')

    def can_edit_pages(self, user, gate=None):
        """Whether `user` may edit pages inside this space when it is protected."""
        return (gate or PermissionGate()).user_has_capability(user, 'edit_protected_pages')

    @staticmethod
    def can_archive(user, config=None, gate=None):
        config = config or NamespaceConfig.from_settings()
        if not config.archiving_enabled:
            return False
        return (gate or PermissionGate()).user_has_capability(user, 'archive_space')
