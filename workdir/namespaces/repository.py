import logging

from django.core.cache import cache
from django.core.exceptions import PermissionDenied
from django.db import IntegrityError, connections, router, transaction
from django.db.models import Max, Q
from django.utils import timezone

from core.permissions import PermissionGate
from notifications.audit import AddSpaceLog, ArchiveSpaceLog, UnarchiveSpaceLog, UpdateSpaceLog
from .admins import AdministratorSynchronizer
from .config import NamespaceConfig
from .directory import DjangoGroupStore, DjangoUserDirectory
from .exceptions import SpaceAlreadyExists, SpaceConflictError, SpaceDoesNotExist
from .models import Namespace, NamespaceAdmin
from .signals import space_created
from .space import Space

logger = logging.getLogger(__name__)

# Lowest id handed out to a space. Everything below belongs to the platform's own namespaces.
MIN_SPACE_ID = 50000

# How often add_space() re-reads the maximum id after losing an insert race.
MAX_ID_ALLOCATION_ATTEMPTS = 3

ACTIVE_SPACES_CACHE_KEY = 'namespaces:active'
ACTIVE_SPACES_CACHE_TIMEOUT = 300


def table_exists(model, using):
    """
    The tables may be missing while migrations are still being applied; readers treat
    that as "no spaces yet" rather than failing.
    """
    connection = connections[using]
    return model._meta.db_table in connection.introspection.table_names()


def flipped(mapping, flip):
    return {value: key for key, value in mapping.items()} if flip else dict(mapping)


class NamespaceIdAllocator:
    """
    Hands out space ids: MIN_SPACE_ID for the first space, then the greatest stored id + 2
    (the odd id in between is the talk namespace). Must read the primary database.

    Two concurrent callers can get the same id; the primary key makes one of the inserts
    fail, and NamespaceRepository retries that one with a fresh id.
    """

    def __init__(self, using):
        self.using = using

    def next_id(self):
        greatest = Namespace.objects.using(self.using).aggregate(greatest=Max('id'))['greatest']
        if greatest is None:
            return MIN_SPACE_ID
        return greatest + 2


class NamespaceRepository:
    """
    Persistence for spaces: lookups, listings and the create/update/archive transitions.

    The repository itself holds no spaces. It keeps the configuration snapshot (core and
    extension namespace tables, feature flags) and its collaborators, all of which can be
    injected. Listings read from `using` (or the router's read alias); allocation and all
    writes go to the router's write alias.
    """

    def __init__(self, config=None, directory=None, groups=None, gate=None, using=None):
        self.config = config or NamespaceConfig.from_settings()
        self.directory = directory or DjangoUserDirectory()
        self.groups = groups or DjangoGroupStore()
        self.gate = gate or PermissionGate()
        self.using = using
        self.synchronizer = AdministratorSynchronizer(self.directory, self.groups, self.config)

    @property
    def read_alias(self):
        return self.using or router.db_for_read(Namespace)

    @property
    def write_alias(self):
        return router.db_for_write(Namespace)

    # --- listings ---

    def list_spaces(self, archived=None):
        """
        Returns {id: key} ordered by id. archived=None lists every space, False only
        active ones and True only archived ones.
        """
        if not table_exists(Namespace, self.read_alias):
            return {}
        queryset = Namespace.objects.using(self.read_alias).order_by('id')
        if archived is not None:
            queryset = queryset.filter(archived=archived)
        return dict(queryset.values_list('id', 'key'))

    def get_all_spaces(self, flip=False):
        return flipped(self.list_spaces(), flip)

    def get_spaces(self, flip=False):
        return flipped(self.list_spaces(archived=False), flip)

    def get_archived_spaces(self, flip=False):
        return flipped(self.list_spaces(archived=True), flip)

    def get_namespace_admins(self, space_id):
        """Returns the ids of the stored administrators of a space."""
        if not table_exists(NamespaceAdmin, self.read_alias):
            return []
        return self.synchronizer.stored_administrator_ids(space_id, using=self.read_alias)

    def get_spaces_for_admin(self, user_id):
        queryset = (
            Namespace.objects.using(self.read_alias)
            .filter(admin_rows__admin_user_id=user_id)
            .select_related('creator')
            .distinct()
            .order_by('id')
        )
        return [self._space_from_row(row, self.read_alias) for row in queryset]

    # --- platform namespace tables ---

    def get_canonical_namespaces(self, flip=False):
        return flipped(self.config.canonical_namespaces, flip)

    def get_extension_namespaces(self, flip=False):
        return flipped(self.config.extension_namespaces, flip)

    def get_valid_canonical_namespaces(self):
        return list(self.config.valid_namespaces)

    def get_core_namespaces(self):
        """Valid canonical namespaces plus the ones registered by extensions ({id: name})."""
        canonical = self.config.canonical_namespaces
        namespaces = {ns_id: canonical[ns_id] for ns_id in self.config.valid_namespaces if ns_id in canonical}
        for ns_id, name in self.config.extension_namespaces.items():
            namespaces.setdefault(ns_id, name)
        return namespaces

    def get_namespaces(self, flip=False, with_talk=False):
        """
        Core and extension namespaces plus the active spaces. with_talk=True also adds
        each space's talk namespace as "<key>_talk" under id + 1.
        """
        namespaces = self.get_core_namespaces()
        for ns_id, key in self._active_spaces().items():
            namespaces.setdefault(ns_id, key)
            if with_talk:
                namespaces.setdefault(ns_id + 1, f"{key}_talk")
        return flipped(namespaces, flip)

    def get_all_namespaces(self, flip=False):
        namespaces = dict(self.config.canonical_namespaces)
        for ns_id, name in self.config.extension_namespaces.items():
            namespaces.setdefault(ns_id, name)
        for ns_id, key in self.list_spaces().items():
            namespaces.setdefault(ns_id, key)
        return flipped(namespaces, flip)

    def _active_spaces(self):
        spaces = cache.get(ACTIVE_SPACES_CACHE_KEY)
        if spaces is None:
            spaces = self.list_spaces(archived=False)
            cache.set(ACTIVE_SPACES_CACHE_KEY, spaces, ACTIVE_SPACES_CACHE_TIMEOUT)
        return spaces

    def _forget_cached_spaces(self, using):
        cache.delete(ACTIVE_SPACES_CACHE_KEY)
        # Again after commit, in case a reader cached the pre-commit state meanwhile.
        transaction.on_commit(lambda: cache.delete(ACTIVE_SPACES_CACHE_KEY), using=using)

    # --- single spaces ---

    def get_space_by_id(self, namespace_id):
        """Looks up a space by its id or by its talk id. Returns None if there is none."""
        if namespace_id % 2:
            namespace_id -= 1
        if namespace_id == Space.UNSAVED_ID:
            return None
        return self._get_space(self.read_alias, pk=namespace_id)

    def get_space_by_key(self, key):
        return self._get_space(self.read_alias, key=key)

    def get_space_by_name(self, name):
        return self._get_space(self.read_alias, name=name)

    def space_exists(self, space):
        """Checks the primary database, not a replica."""
        if not space.is_persisted:
            return False
        write = self.write_alias
        if not table_exists(Namespace, write):
            return False
        return Namespace.objects.using(write).filter(pk=space.id).exists()

    def _get_space(self, using, **lookup):
        if not table_exists(Namespace, using):
            return None
        row = Namespace.objects.using(using).select_related('creator').filter(**lookup).first()
        if row is None:
            return None
        return self._space_from_row(row, using)

    def _space_from_row(self, row, using):
        administrators = [
            admin.admin_user.get_username()
            for admin in NamespaceAdmin.objects.using(using).filter(namespace_id=row.id).select_related('admin_user')
        ]
        return Space(
            row.key, row.name, row.id, row.description, row.creator,
            archived=row.archived, administrators=administrators, protected=row.protected,
        )

    # --- transitions ---

    def add_space(self, space, user=None):
        """
        Stores a new space and returns its id. The owner becomes its only administrator.

        The audit record is inserted before anything else and published only once the
        row, the space_created receivers and the administrator sync have all committed.
        """
        if self.space_exists(space):
            raise SpaceAlreadyExists(f"Space {space.key} already exists; use update_space() instead.")

        write = self.write_alias
        log = AddSpaceLog(space, user=user or space.owner)
        log.insert(using=write)

        with transaction.atomic(using=write):
            namespace_id = self._insert_namespace(space, write)
            stored = self._get_space(write, pk=namespace_id)
            # Receivers get to react to the bare space before administrators are fixed.
            space_created.send(sender=self.__class__, space=stored, user=user)
            stored.administrators = [stored.owner.get_username()]
            self.synchronizer.update_space_administrators(stored, using=write)

        self._forget_cached_spaces(write)
        log.publish(space=stored)
        logger.info("Created space %s with id %s", stored.key, namespace_id)
        return namespace_id

    def _insert_namespace(self, space, using):
        for attempt in range(1, MAX_ID_ALLOCATION_ATTEMPTS + 1):
            namespace_id = NamespaceIdAllocator(using).next_id()
            try:
                with transaction.atomic(using=using):
                    Namespace.objects.using(using).create(
                        id=namespace_id,
                        key=space.key,
                        name=space.name,
                        description=space.description,
                        creator=space.owner,
                        archived=space.archived,
                        protected=space.protected,
                        created_on=timezone.now(),
                    )
                return namespace_id
            except IntegrityError as exc:
                taken = Namespace.objects.using(using).filter(Q(key=space.key) | Q(name=space.name)).exists()
                if taken:
                    raise SpaceConflictError(
                        f"A space with key {space.key} or name {space.name} already exists."
                    ) from exc
                logger.warning("Namespace id %s was claimed concurrently (attempt %s)", namespace_id, attempt)
        raise SpaceConflictError(
            f"Could not allocate a namespace id after {MAX_ID_ALLOCATION_ATTEMPTS} attempts."
        )

    def update_space(self, old_space, new_space, user=None, force=False, log=True):
        """
        Writes `new_space` over the stored `old_space` and re-syncs its administrators.

        force=True skips the permission check (maintenance scripts). log=False skips the
        update audit record; archive/unarchive write their own.
        """
        if old_space is None or not self.space_exists(old_space):
            raise SpaceDoesNotExist("Cannot update a space that has not been stored; use add_space() instead.")
        if not new_space.is_persisted or new_space.id != old_space.id:
            raise ValueError("new_space must be an edited copy of old_space.")
        if not force and not new_space.can_edit(user, gate=self.gate):
            raise PermissionDenied("Not enough permissions to edit this space.")

        write = self.write_alias
        update_log = None
        if log:
            update_log = UpdateSpaceLog(old_space, new_space, user=user)
            update_log.insert(using=write)

        with transaction.atomic(using=write):
            Namespace.objects.using(write).filter(pk=old_space.id).update(
                key=new_space.key,
                name=new_space.name,
                description=new_space.description,
                creator=new_space.owner,
                archived=new_space.archived,
                protected=new_space.protected,
            )
            self.synchronizer.update_space_administrators(new_space, using=write)

        self._forget_cached_spaces(write)
        if update_log is not None:
            update_log.publish()

    def archive_space(self, space, user=None):
        """Returns the archived copy of `space`."""
        return self._set_archived(space, True, ArchiveSpaceLog(space, user=user), user)

    def unarchive_space(self, space, user=None):
        return self._set_archived(space, False, UnarchiveSpaceLog(space, user=user), user)

    def _set_archived(self, space, archived, log, user):
        log.insert(using=self.write_alias)
        changed = space.with_archived(archived)
        self.update_space(space, changed, user=user, force=False, log=False)
        log.publish()
        return changed
