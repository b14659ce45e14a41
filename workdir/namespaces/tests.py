from unittest import mock

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser, Group, Permission
from django.contrib.contenttypes.models import ContentType
from django.core.cache import cache
from django.core.exceptions import PermissionDenied, ValidationError
from django.db import connection
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from notifications.models import Activity
from .admins import AdministratorSynchronizer
from .checks import check_schema_files
from .config import NamespaceConfig
from .exceptions import (
    SpaceAlreadyExists, SpaceConflictError, SpaceDoesNotExist, SpaceNotPersisted, UnsupportedBackendError,
)
from .models import Namespace, NamespaceAdmin
from .repository import MIN_SPACE_ID, NamespaceIdAllocator, NamespaceRepository
from .schema import schema_files, schema_sql
from .signals import group_membership_changed, space_created
from .space import Space
from .validation import validate_space_key, validate_space_name

User = get_user_model()


def grant(user, *codenames):
    """Adds namespaces.<codename> permissions and returns a fresh user (no stale perm cache)."""
    content_type = ContentType.objects.get_for_model(Namespace)
    user.user_permissions.add(*Permission.objects.filter(content_type=content_type, codename__in=codenames))
    return User.objects.get(pk=user.pk)


def make_config(**overrides):
    values = dict(
        canonical_namespaces={0: 'Main', 1: 'Talk', 2: 'User', 3: 'User_talk'},
        valid_namespaces=(0, 2),
        extension_namespaces={3000: 'Forms'},
        archiving_enabled=True,
        auto_group_sync=False,
        shared_admin_group='SpaceAdmin',
    )
    values.update(overrides)
    return NamespaceConfig(**values)


class SpaceEntityTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.alice = User.objects.create_user(username='alice', password='password123')

    def test_new_space_is_transient(self):
        space = Space.new_from_values('Legal', 'Legal Affairs', 'desc', self.alice)
        self.assertFalse(space.is_persisted)
        with self.assertRaises(SpaceNotPersisted):
            space.id
        with self.assertRaises(SpaceNotPersisted):
            space.talk_id
        with self.assertRaises(SpaceNotPersisted):
            space.group_name

    def test_talk_id_and_group_name(self):
        space = Space('Legal', 'Legal Affairs', 50000, 'desc', self.alice)
        self.assertEqual(space.talk_id, 50001)
        self.assertEqual(space.group_name, '50000Admin')

    def test_odd_id_is_rejected(self):
        with self.assertRaises(ValidationError):
            Space('Legal', 'Legal Affairs', 50001, 'desc', self.alice)

    def test_key_is_capitalized(self):
        space = Space.new_from_values('legal', 'Legal Affairs', 'desc', self.alice)
        self.assertEqual(space.key, 'Legal')

    def test_invalid_values_are_rejected(self):
        for key in ('', 'Legal Affairs', 'Légal', 'Legal_talk'):
            with self.assertRaises(ValidationError, msg=key):
                Space.new_from_values(key, 'Legal Affairs', 'desc', self.alice)
        with self.assertRaises(ValidationError):
            Space.new_from_values('Legal', 'Legal Affairs', '', self.alice)
        with self.assertRaises(ValidationError):
            Space.new_from_values('Legal', 'Legal Affairs', 'desc', AnonymousUser())
        with self.assertRaises(ValidationError):
            Space.new_from_values('Legal', 'Legal Affairs', 'desc', User(username='unsaved'))

    def test_with_archived_copies_everything_else(self):
        space = Space('Legal', 'Legal Affairs', 50000, 'desc', self.alice, administrators=['alice'])
        archived = space.with_archived()
        self.assertTrue(archived.archived)
        self.assertFalse(space.archived)
        self.assertEqual(archived.snapshot(), {**space.snapshot(), 'archived': True})
        archived.administrators.append('bob')
        self.assertEqual(space.administrators, ['alice'])

    def test_can_edit(self):
        bob = User.objects.create_user(username='bob', password='password123')
        space = Space('Legal', 'Legal Affairs', 50000, 'desc', self.alice, administrators=['alice'])
        self.assertTrue(space.can_edit(self.alice))
        self.assertFalse(space.can_edit(bob))
        self.assertFalse(space.can_edit(AnonymousUser()))
        self.assertFalse(space.can_edit(None))
        self.assertTrue(space.can_edit(grant(bob, 'edit_all_spaces')))

    def test_can_edit_pages_ignores_administrators(self):
        space = Space('Legal', 'Legal Affairs', 50000, 'desc', self.alice, administrators=['alice'], protected=True)
        self.assertFalse(space.can_edit_pages(self.alice))
        self.assertTrue(space.can_edit_pages(grant(self.alice, 'edit_protected_pages')))

    def test_can_archive(self):
        self.assertFalse(Space.can_archive(self.alice, config=make_config()))
        archiver = grant(self.alice, 'archive_space')
        self.assertTrue(Space.can_archive(archiver, config=make_config()))
        self.assertFalse(Space.can_archive(archiver, config=make_config(archiving_enabled=False)))


class NamespaceRepositoryTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.alice = User.objects.create_user(username='alice', password='password123')
        cls.bob = User.objects.create_user(username='bob', password='password123')

    def setUp(self):
        cache.clear()
        self.repository = NamespaceRepository(config=make_config())

    def add(self, key='Legal', name='Legal Affairs', owner=None):
        return self.repository.add_space(Space.new_from_values(key, name, 'desc', owner or self.alice))

    def test_first_space_gets_min_id(self):
        self.assertEqual(NamespaceIdAllocator('default').next_id(), MIN_SPACE_ID)
        namespace_id = self.add()
        self.assertEqual(namespace_id, 50000)

        space = self.repository.get_space_by_id(namespace_id)
        self.assertEqual(space.talk_id, 50001)
        self.assertEqual((space.key, space.name, space.description), ('Legal', 'Legal Affairs', 'desc'))
        self.assertEqual(space.owner, self.alice)
        self.assertEqual(space.administrators, ['alice'])
        self.assertFalse(space.archived)
        self.assertFalse(space.protected)
        self.assertEqual(self.repository.get_namespace_admins(namespace_id), [self.alice.pk])

    def test_ids_increase_by_two(self):
        self.assertEqual(
            [self.add('Legal', 'Legal Affairs'), self.add('Hr', 'Human Resources'), self.add('It', 'IT')],
            [50000, 50002, 50004],
        )
        self.assertEqual(NamespaceIdAllocator('default').next_id(), 50006)

    def test_talk_id_is_not_stored(self):
        self.add()
        self.assertFalse(Namespace.objects.filter(pk=50001).exists())
        self.assertEqual(self.repository.get_space_by_id(50001).id, 50000)
        self.assertIsNone(self.repository.get_space_by_id(0))

    def test_add_existing_space_fails(self):
        space = self.repository.get_space_by_id(self.add())
        with self.assertRaises(SpaceAlreadyExists):
            self.repository.add_space(space)

    def test_add_space_audit_record_is_published(self):
        namespace_id = self.add()
        activity = Activity.objects.get(verb='space.create')
        self.assertTrue(activity.is_published)
        self.assertEqual(activity.target_object_id, namespace_id)
        self.assertEqual(activity.actor, self.alice)

    def test_duplicate_key_is_a_conflict(self):
        self.add()
        with self.assertRaises(SpaceConflictError):
            self.add('Legal', 'Another Name')
        self.assertEqual(Namespace.objects.count(), 1)
        # The failed create is recorded but never confirmed.
        self.assertEqual(Activity.objects.filter(verb='space.create', published_at__isnull=True).count(), 1)

    def test_lost_id_race_is_retried(self):
        self.add()
        with mock.patch.object(NamespaceIdAllocator, 'next_id', side_effect=[50000, 50002]):
            self.assertEqual(self.add('Hr', 'Human Resources'), 50002)

    def test_id_race_gives_up_after_retries(self):
        self.add()
        with mock.patch.object(NamespaceIdAllocator, 'next_id', return_value=50000):
            with self.assertRaises(SpaceConflictError):
                self.add('Hr', 'Human Resources')

    def test_space_created_is_sent_before_administrators_are_stored(self):
        seen = []

        def receiver(sender, space, user, **kwargs):
            seen.append((space.id, NamespaceAdmin.objects.filter(namespace_id=space.id).count()))

        space_created.connect(receiver)
        try:
            self.add()
        finally:
            space_created.disconnect(receiver)
        self.assertEqual(seen, [(50000, 0)])

    def test_update_absent_space_fails(self):
        space = Space.new_from_values('Legal', 'Legal Affairs', 'desc', self.alice)
        with self.assertRaises(SpaceDoesNotExist):
            self.repository.update_space(None, space, user=self.alice)
        with self.assertRaises(SpaceDoesNotExist):
            self.repository.update_space(space, space, user=self.alice)

    def test_update_space(self):
        namespace_id = self.add()
        old = self.repository.get_space_by_id(namespace_id)
        new = self.repository.get_space_by_id(namespace_id)
        new.name = 'Legal Department'
        new.protected = True
        new.administrators = ['alice', 'bob', 'bob', 'nobody']
        self.repository.update_space(old, new, user=self.alice)

        stored = self.repository.get_space_by_id(namespace_id)
        self.assertEqual(stored.name, 'Legal Department')
        self.assertTrue(stored.protected)
        self.assertEqual(sorted(stored.administrators), ['alice', 'bob'])

        activity = Activity.objects.get(verb='space.update')
        self.assertTrue(activity.is_published)
        self.assertEqual(activity.extra_data['changed'], ['name', 'administrators', 'protected'])

    def test_update_without_rights_needs_force(self):
        namespace_id = self.add()
        old = self.repository.get_space_by_id(namespace_id)
        new = self.repository.get_space_by_id(namespace_id)
        new.description = 'changed by bob'
        with self.assertRaises(PermissionDenied):
            self.repository.update_space(old, new, user=self.bob)
        self.assertFalse(Activity.objects.filter(verb='space.update').exists())

        self.repository.update_space(old, new, user=self.bob, force=True)
        self.assertEqual(self.repository.get_space_by_id(namespace_id).description, 'changed by bob')

    def test_edit_all_spaces_capability(self):
        namespace_id = self.add()
        old = self.repository.get_space_by_id(namespace_id)
        new = self.repository.get_space_by_id(namespace_id)
        new.description = 'changed by an editor'
        self.repository.update_space(old, new, user=grant(self.bob, 'edit_all_spaces'))
        self.assertEqual(self.repository.get_space_by_id(namespace_id).description, 'changed by an editor')

    def test_update_with_other_space_fails(self):
        legal = self.repository.get_space_by_id(self.add())
        hr = self.repository.get_space_by_id(self.add('Hr', 'Human Resources'))
        with self.assertRaises(ValueError):
            self.repository.update_space(legal, hr, user=self.alice)

    def test_owner_can_drop_own_admin_rights(self):
        namespace_id = self.add()
        old = self.repository.get_space_by_id(namespace_id)
        new = self.repository.get_space_by_id(namespace_id)
        new.administrators = ['bob']
        self.repository.update_space(old, new, user=self.alice)
        self.assertEqual(self.repository.get_namespace_admins(namespace_id), [self.bob.pk])
        self.assertEqual(self.repository.get_space_by_id(namespace_id).owner, self.alice)

    def test_archive_then_unarchive(self):
        namespace_id = self.add()
        space = self.repository.get_space_by_id(namespace_id)
        before = space.snapshot()

        archived = self.repository.archive_space(space, user=self.alice)
        self.assertTrue(archived.archived)
        self.assertTrue(self.repository.get_space_by_id(namespace_id).archived)
        self.assertEqual(self.repository.get_spaces(), {})
        self.assertEqual(self.repository.get_archived_spaces(), {50000: 'Legal'})

        self.repository.unarchive_space(self.repository.get_space_by_id(namespace_id), user=self.alice)
        self.assertEqual(self.repository.get_space_by_id(namespace_id).snapshot(), before)

        verbs = list(Activity.objects.order_by('id').values_list('verb', flat=True))
        self.assertEqual(verbs, ['space.create', 'space.archive', 'space.unarchive'])
        self.assertFalse(Activity.objects.filter(published_at__isnull=True).exists())

    def test_archive_needs_edit_rights(self):
        space = self.repository.get_space_by_id(self.add())
        with self.assertRaises(PermissionDenied):
            self.repository.archive_space(space, user=self.bob)
        self.assertFalse(self.repository.get_space_by_id(space.id).archived)
        self.assertFalse(Activity.objects.get(verb='space.archive').is_published)

    def test_listings(self):
        self.add('Legal', 'Legal Affairs')
        self.add('Hr', 'Human Resources', owner=self.bob)
        self.repository.archive_space(self.repository.get_space_by_key('Hr'), user=self.bob)

        self.assertEqual(self.repository.list_spaces(), {50000: 'Legal', 50002: 'Hr'})
        self.assertEqual(self.repository.get_all_spaces(flip=True), {'Legal': 50000, 'Hr': 50002})
        self.assertEqual(self.repository.get_spaces(), {50000: 'Legal'})
        self.assertEqual(self.repository.get_archived_spaces(), {50002: 'Hr'})
        self.assertEqual([s.key for s in self.repository.get_spaces_for_admin(self.bob.pk)], ['Hr'])
        self.assertEqual(self.repository.get_space_by_name('Legal Affairs').id, 50000)
        self.assertIsNone(self.repository.get_space_by_key('Nope'))

    def test_namespace_tables(self):
        self.add()
        self.assertEqual(self.repository.get_core_namespaces(), {0: 'Main', 2: 'User', 3000: 'Forms'})
        self.assertEqual(self.repository.get_valid_canonical_namespaces(), [0, 2])
        self.assertEqual(self.repository.get_extension_namespaces(flip=True), {'Forms': 3000})
        self.assertEqual(
            self.repository.get_namespaces(with_talk=True),
            {0: 'Main', 2: 'User', 3000: 'Forms', 50000: 'Legal', 50001: 'Legal_talk'},
        )
        self.assertEqual(self.repository.get_all_namespaces()[1], 'Talk')

    def test_namespace_cache_follows_writes(self):
        namespace_id = self.add()
        self.assertIn(namespace_id, self.repository.get_namespaces())
        self.repository.archive_space(self.repository.get_space_by_id(namespace_id), user=self.alice)
        self.assertNotIn(namespace_id, self.repository.get_namespaces())

    def test_missing_tables_read_as_empty(self):
        self.add()
        with mock.patch.object(connection.introspection, 'table_names', return_value=[]):
            self.assertEqual(self.repository.list_spaces(), {})
            self.assertEqual(self.repository.get_namespace_admins(50000), [])
            self.assertIsNone(self.repository.get_space_by_id(50000))


class AdministratorSynchronizerTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.alice = User.objects.create_user(username='alice', password='password123')
        cls.bob = User.objects.create_user(username='bob', password='password123')

    def setUp(self):
        cache.clear()
        self.config = make_config(auto_group_sync=True)
        self.repository = NamespaceRepository(config=self.config)
        self.changes = []
        group_membership_changed.connect(self.record_change)
        self.addCleanup(group_membership_changed.disconnect, self.record_change)

    def record_change(self, sender, user, old_groups, new_groups, reason, space, **kwargs):
        self.changes.append((user.get_username(), set(old_groups), set(new_groups), reason))

    def groups_of(self, user):
        return set(user.groups.values_list('name', flat=True))

    def add_with_admins(self, key, name, administrators):
        namespace_id = self.repository.add_space(Space.new_from_values(key, name, 'desc', self.alice))
        old = self.repository.get_space_by_id(namespace_id)
        new = self.repository.get_space_by_id(namespace_id)
        new.administrators = administrators
        self.repository.update_space(old, new, user=self.alice)
        return namespace_id

    def test_resolution_drops_unknown_and_duplicate_names(self):
        synchronizer = AdministratorSynchronizer(config=self.config)
        self.assertEqual(
            synchronizer.resolve_administrator_ids(['bob', 'ghost', 'alice', 'bob', '']),
            [self.bob.pk, self.alice.pk],
        )

    def test_new_admins_get_groups(self):
        self.add_with_admins('Legal', 'Legal Affairs', ['alice', 'bob'])
        self.assertEqual(self.groups_of(self.alice), {'50000Admin', 'SpaceAdmin'})
        self.assertEqual(self.groups_of(self.bob), {'50000Admin', 'SpaceAdmin'})
        self.assertEqual(self.changes[-1][3], "Added as administrator of space Legal")

    def test_space_group_can_change_its_namespace(self):
        self.add_with_admins('Legal', 'Legal Affairs', ['alice', 'bob'])
        bob = User.objects.get(pk=self.bob.pk)
        self.assertTrue(bob.has_perm('namespaces.change_namespace', Namespace.objects.get(pk=50000)))
        self.assertFalse(bob.has_perm('namespaces.change_namespace'))

    def test_synchronization_is_idempotent(self):
        namespace_id = self.add_with_admins('Legal', 'Legal Affairs', ['alice', 'bob'])
        space = self.repository.get_space_by_id(namespace_id)
        synchronizer = AdministratorSynchronizer(config=self.config)

        synchronizer.update_space_administrators(space)
        rows = sorted(NamespaceAdmin.objects.filter(namespace_id=namespace_id).values_list('admin_user_id', flat=True))
        changes = len(self.changes)

        synchronizer.update_space_administrators(space)
        self.assertEqual(
            sorted(NamespaceAdmin.objects.filter(namespace_id=namespace_id).values_list('admin_user_id', flat=True)),
            rows,
        )
        self.assertEqual(len(self.changes), changes)

    def test_removed_admin_loses_both_groups(self):
        namespace_id = self.add_with_admins('Legal', 'Legal Affairs', ['alice', 'bob'])
        self.changes.clear()

        old = self.repository.get_space_by_id(namespace_id)
        new = self.repository.get_space_by_id(namespace_id)
        new.administrators = ['alice']
        self.repository.update_space(old, new, user=self.alice)

        self.assertEqual(self.groups_of(self.bob), set())
        self.assertEqual(self.groups_of(self.alice), {'50000Admin', 'SpaceAdmin'})
        self.assertEqual(self.changes, [
            ('bob', {'50000Admin', 'SpaceAdmin'}, set(), "Removed as administrator of space Legal"),
        ])
        self.assertEqual(self.repository.get_namespace_admins(namespace_id), [self.alice.pk])

    def test_admin_of_another_space_keeps_shared_group(self):
        legal_id = self.add_with_admins('Legal', 'Legal Affairs', ['alice', 'bob'])
        self.add_with_admins('Hr', 'Human Resources', ['alice', 'bob'])

        old = self.repository.get_space_by_id(legal_id)
        new = self.repository.get_space_by_id(legal_id)
        new.administrators = ['alice']
        self.repository.update_space(old, new, user=self.alice)

        self.assertEqual(self.groups_of(self.bob), {'50002Admin', 'SpaceAdmin'})

    def test_configured_admin_like_group_keeps_shared_group(self):
        self.repository = NamespaceRepository(
            config=make_config(auto_group_sync=True, admin_like_groups=frozenset({'WikiAdmins'}))
        )
        legal_id = self.add_with_admins('Legal', 'Legal Affairs', ['alice', 'bob'])
        self.repository.groups.add_to_group(self.bob, 'WikiAdmins')

        old = self.repository.get_space_by_id(legal_id)
        new = self.repository.get_space_by_id(legal_id)
        new.administrators = ['alice']
        self.repository.update_space(old, new, user=self.alice)

        self.assertEqual(self.groups_of(self.bob), {'WikiAdmins', 'SpaceAdmin'})

    def test_group_names_that_merely_contain_admin_are_not_admin_like(self):
        self.assertTrue(self.config.is_admin_like_group('50002Admin'))
        self.assertFalse(self.config.is_admin_like_group('SysAdmins'))
        self.assertFalse(self.config.is_admin_like_group('Admin'))

    def test_group_changes_use_the_write_alias(self):
        manager = Group.objects
        with mock.patch.object(Group, 'objects', wraps=manager) as groups:
            self.add_with_admins('Legal', 'Legal Affairs', ['alice', 'bob'])
        aliases = {call.args[0] for call in groups.db_manager.call_args_list}
        self.assertEqual(aliases, {'default'})
        self.assertEqual(self.groups_of(self.bob), {'50000Admin', 'SpaceAdmin'})

    def test_groups_untouched_without_group_sync(self):
        self.repository = NamespaceRepository(config=make_config())
        self.add_with_admins('Legal', 'Legal Affairs', ['alice', 'bob'])
        self.assertEqual(self.groups_of(self.bob), set())
        self.assertEqual(self.changes, [])
        self.assertEqual(len(self.repository.get_namespace_admins(50000)), 2)


class ValidationTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.alice = User.objects.create_user(username='alice', password='password123')

    def setUp(self):
        cache.clear()
        self.repository = NamespaceRepository(config=make_config())
        self.repository.add_space(Space.new_from_values('Legal', 'Legal Affairs', 'desc', self.alice))

    def test_key_must_be_free(self):
        self.assertEqual(validate_space_key('Finance', self.repository), 'Finance')
        for key in ('legal', 'MAIN', 'Forms'):
            with self.assertRaises(ValidationError, msg=key):
                validate_space_key(key, self.repository)
        with self.assertRaises(ValidationError):
            validate_space_key('Not valid', self.repository)

    def test_edited_space_may_keep_its_key_and_name(self):
        legal = self.repository.get_space_by_key('Legal')
        self.assertEqual(validate_space_key('Legal', self.repository, editing=legal), 'Legal')
        self.assertEqual(validate_space_name('Legal Affairs', self.repository, editing=legal), 'Legal Affairs')

    def test_name_must_be_free(self):
        with self.assertRaises(ValidationError):
            validate_space_name('Legal Affairs', self.repository)
        self.assertEqual(validate_space_name('Finance', self.repository), 'Finance')


class SchemaTests(TestCase):
    def test_every_engine_has_schema_files(self):
        for vendor in ('mysql', 'postgresql', 'sqlite'):
            self.assertEqual(set(schema_files(vendor)), {'namespaces', 'namespace_admins'})
            self.assertIn('namespace_admins', schema_sql(vendor))

    def test_unknown_engine_is_fatal(self):
        with self.assertRaises(UnsupportedBackendError):
            schema_files('oracle')

    def test_system_check(self):
        self.assertEqual(check_schema_files(None, databases=['default']), [])
        with mock.patch('namespaces.checks.schema_files', side_effect=UnsupportedBackendError("missing")):
            errors = check_schema_files(None, databases=['default'])
        self.assertEqual([error.id for error in errors], ['namespaces.E001'])


class SpaceAPITests(APITestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user1 = User.objects.create_user(username='user1', password='password123', first_name='Ada', last_name='Lee')
        cls.user2 = User.objects.create_user(username='user2', password='password123')
        cls.user1 = grant(cls.user1, 'add_namespace', 'archive_space')

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.client.force_authenticate(user=self.user1)
        self.space1_data = dict(key='space1', name='Space One', description='First space')

        response = self.client.post(reverse('space-list'), self.space1_data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to create space in setUp. Response: {response.data}")
        self.space1_detail_url = reverse('space-detail', kwargs=dict(key='Space1'))

    def test_create_returns_allocated_ids(self):
        response = self.client.post(reverse('space-list'), dict(key='Second', name='Second Space', description='x'), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['id'], 50002)
        self.assertEqual(response.data['talk_id'], 50003)
        self.assertEqual(response.data['owner_username'], 'user1')
        self.assertEqual(response.data['administrators'], ['user1'])

    def test_create_with_extra_administrators(self):
        response = self.client.post(
            reverse('space-list'),
            dict(key='Team', name='Team Space', description='x', administrators=['user1', 'user2']),
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(sorted(response.data['administrators']), ['user1', 'user2'])

    def test_create_with_administrators_is_all_or_nothing(self):
        with mock.patch.object(NamespaceRepository, 'update_space', side_effect=PermissionDenied("edit failed")):
            response = self.client.post(
                reverse('space-list'),
                dict(key='Team', name='Team Space', description='x', administrators=['user1', 'user2']),
                format='json',
            )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Namespace.objects.filter(key='Team').exists())

        response = self.client.post(reverse('space-list'), dict(key='Team', name='Team Space', description='x'), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_duplicate_key_is_rejected(self):
        response = self.client.post(reverse('space-list'), dict(key='SPACE1', name='Other', description='x'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('key', response.data)

    def test_create_needs_permission(self):
        self.client.force_authenticate(user=self.user2)
        response = self.client.post(reverse('space-list'), dict(key='Mine', name='Mine', description='x'), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unauthenticated_cannot_create_space(self):
        self.client.force_authenticate(user=None)
        response = self.client.post(reverse('space-list'), dict(key='Anon', name='Anon Space', description='x'), format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_anon_can_list_and_retrieve_spaces(self):
        self.client.force_authenticate(user=None)
        response = self.client.get(reverse('space-list'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([space['key'] for space in response.data['results']], ['Space1'])

        response = self.client.get(self.space1_detail_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], 50000)

    def test_unknown_space_is_404(self):
        response = self.client.get(reverse('space-detail', kwargs=dict(key='Nope')))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_admin_can_update_space(self):
        response = self.client.patch(self.space1_detail_url, dict(name='Space One Updated'), format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Namespace.objects.get(pk=50000).name, 'Space One Updated')

    def test_non_admin_cannot_update_space(self):
        self.client.force_authenticate(user=self.user2)
        response = self.client.patch(self.space1_detail_url, dict(name='Attempted Update by User2'), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_non_admin_cannot_make_themselves_admin(self):
        self.client.force_authenticate(user=self.user2)
        response = self.client.patch(
            self.space1_detail_url, dict(administrators=['user2'], description='taken over'), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(
            list(NamespaceAdmin.objects.filter(namespace_id=50000).values_list('admin_user_id', flat=True)),
            [self.user1.pk],
        )
        self.assertEqual(Namespace.objects.get(pk=50000).description, 'First space')
        self.assertFalse(Activity.objects.filter(verb='space.update').exists())

    def test_archive_and_unarchive(self):
        response = self.client.post(reverse('space-archive', kwargs=dict(key='Space1')))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['archived'])

        response = self.client.get(reverse('space-list'), {'archived': 'true'})
        self.assertEqual([space['key'] for space in response.data['results']], ['Space1'])
        self.assertEqual(self.client.get(reverse('space-list')).data['results'], [])

        response = self.client.post(reverse('space-archive', kwargs=dict(key='Space1')))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(reverse('space-unarchive', kwargs=dict(key='Space1')))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['archived'])

    def test_archive_needs_permission(self):
        self.client.force_authenticate(user=self.user2)
        response = self.client.post(reverse('space-archive', kwargs=dict(key='Space1')))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_archive_needs_edit_rights(self):
        self.client.force_authenticate(user=grant(self.user2, 'archive_space'))
        response = self.client.post(reverse('space-archive', kwargs=dict(key='Space1')))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    @override_settings(SPACES_ENABLE_SPACE_ARCHIVING=False)
    def test_archiving_can_be_disabled(self):
        response = self.client.post(reverse('space-archive', kwargs=dict(key='Space1')))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admins_endpoint(self):
        url = reverse('space-admins', kwargs=dict(key='Space1'))
        self.assertEqual(self.client.get(url).status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=grant(self.user2, 'view_space_admins'))
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['admins'], [{'admin_id': self.user1.pk, 'admin_name': 'user1'}])

        response = self.client.get(url, {'realnames': '1'})
        self.assertEqual(response.data['admins'][0]['admin_realname'], 'Ada Lee')

    def test_mine(self):
        response = self.client.get(reverse('space-mine'))
        self.assertEqual([space['key'] for space in response.data], ['Space1'])

        self.client.force_authenticate(user=self.user2)
        self.assertEqual(self.client.get(reverse('space-mine')).data, [])

    def test_login_returns_tokens(self):
        self.client.force_authenticate(user=None)
        response = self.client.post(reverse('token_obtain_pair'), dict(username='user1', password='password123'), format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
