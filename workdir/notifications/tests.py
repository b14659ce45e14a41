from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase

from namespaces.signals import group_membership_changed
from namespaces.space import Space
from .audit import AddSpaceLog, ArchiveSpaceLog, UpdateSpaceLog
from .models import Activity, Notification
from .tasks import notify_group_membership_change

User = get_user_model()


class SpaceLogTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.alice = User.objects.create_user(username='alice', password='password123')

    def setUp(self):
        self.space = Space('Legal', 'Legal Affairs', 50000, 'desc', self.alice, administrators=['alice'])

    def test_insert_leaves_record_unpublished(self):
        log = ArchiveSpaceLog(self.space, user=self.alice)
        entry = log.insert()
        self.assertFalse(entry.is_published)
        self.assertEqual(entry.verb, 'space.archive')
        self.assertEqual(entry.target_object_id, 50000)
        self.assertEqual(entry.actor, self.alice)

        log.publish()
        entry.refresh_from_db()
        self.assertTrue(entry.is_published)

    def test_publish_before_insert_fails(self):
        with self.assertRaises(RuntimeError):
            ArchiveSpaceLog(self.space).publish()

    def test_create_record_gets_id_on_publish(self):
        transient = Space.new_from_values('Legal', 'Legal Affairs', 'desc', self.alice)
        log = AddSpaceLog(transient, user=self.alice)
        entry = log.insert()
        self.assertIsNone(entry.target_object_id)
        self.assertEqual(entry.extra_data['owner'], 'alice')

        log.publish(space=self.space)
        entry.refresh_from_db()
        self.assertEqual(entry.target_object_id, 50000)
        self.assertEqual(entry.extra_data['space_id'], 50000)

    def test_update_record_describes_the_change(self):
        edited = Space('Legal', 'Legal Affairs', 50000, 'new desc', self.alice, administrators=['alice', 'bob'])
        entry = UpdateSpaceLog(self.space, edited).insert()
        self.assertIsNone(entry.actor)
        self.assertEqual(entry.extra_data['changed'], ['description', 'administrators'])
        self.assertEqual(entry.extra_data['before']['description'], 'desc')
        self.assertEqual(entry.extra_data['after']['administrators'], ['alice', 'bob'])
        self.assertEqual(Activity.objects.count(), 1)


class GroupMembershipNotificationTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.alice = User.objects.create_user(username='alice', password='password123')

    def test_task_creates_notification(self):
        pk = notify_group_membership_change(
            self.alice.pk, 50000, ['Staff'], ['50000Admin', 'SpaceAdmin', 'Staff'],
            "Added as administrator of space Legal",
        )
        notification = Notification.objects.get(pk=pk)
        self.assertEqual(notification.recipient, self.alice)
        self.assertEqual(notification.object_id, 50000)
        self.assertEqual(
            notification.message,
            "Added as administrator of space Legal.\nAdded to: 50000Admin, SpaceAdmin",
        )

    def test_task_ignores_missing_user(self):
        self.assertIsNone(notify_group_membership_change(999999, 50000, [], ['SpaceAdmin'], "Added"))
        self.assertFalse(Notification.objects.exists())

    def test_notification_is_queued_after_commit(self):
        space = Space('Legal', 'Legal Affairs', 50000, 'desc', self.alice)
        with mock.patch.object(notify_group_membership_change, 'delay') as delay:
            with self.captureOnCommitCallbacks(execute=True) as callbacks:
                group_membership_changed.send(
                    sender=None, user=self.alice, old_groups={'50000Admin', 'SpaceAdmin'}, new_groups=set(),
                    reason="Removed as administrator of space Legal", space=space,
                )
                delay.assert_not_called()
        self.assertEqual(len(callbacks), 1)
        delay.assert_called_once_with(
            user_id=self.alice.pk, space_id=50000, old_groups=['50000Admin', 'SpaceAdmin'],
            new_groups=[], reason="Removed as administrator of space Legal",
        )
