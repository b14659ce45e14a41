"""
Audit records for space lifecycle events.

Every record is written in two steps. insert() stores an Activity row before the change
is attempted; publish() stamps it once the change has committed. Callers must insert
before mutating and publish only after success, so a failure leaves an unpublished
("recorded but not confirmed") row and never a confirmed change without a record.
"""
import logging

from django.contrib.contenttypes.models import ContentType
from django.utils import timezone

from namespaces.models import Namespace
from .models import Activity

logger = logging.getLogger(__name__)


class SpaceLog:
    kind = None

    def __init__(self, space, user=None):
        self.space = space
        self.user = user
        self.entry = None

    @property
    def verb(self):
        return f'space.{self.kind}'

    def describe(self):
        return {'kind': self.kind, 'key': self.space.key, 'name': self.space.name}

    def _space_id(self, space):
        return space.id if space.is_persisted else None

    def insert(self, using=None):
        space_id = self._space_id(self.space)
        extra_data = {'space_id': space_id, **self.describe()}
        actor = self.user if self.user is not None and self.user.is_authenticated else None
        self.entry = Activity.objects.using(using).create(
            actor=actor,
            verb=self.verb,
            target_content_type=ContentType.objects.db_manager(using).get_for_model(Namespace),
            target_object_id=space_id,
            extra_data=extra_data,
        )
        return self.entry

    def publish(self, space=None):
        """
        Marks the record as confirmed. `space` is the stored version of the space, for
        records inserted while it had no id yet.
        """
        if self.entry is None:
            raise RuntimeError("SpaceLog.publish() called before insert().")
        update_fields = ['published_at']
        if space is not None and self.entry.target_object_id is None:
            self.entry.target_object_id = space.id
            self.entry.extra_data = {**self.entry.extra_data, 'space_id': space.id}
            update_fields += ['target_object_id', 'extra_data']
        self.entry.published_at = timezone.now()
        self.entry.save(update_fields=update_fields)
        logger.info("%s %s (%s)", self.verb, self.entry.extra_data.get('key'), self.entry.target_object_id)
        return self.entry


class AddSpaceLog(SpaceLog):
    kind = 'create'

    def describe(self):
        return {**super().describe(), 'owner': self.space.owner.get_username(),
                'description': self.space.description}


class UpdateSpaceLog(SpaceLog):
    kind = 'update'

    def __init__(self, old_space, new_space, user=None):
        super().__init__(new_space, user=user)
        self.old_space = old_space

    def _space_id(self, space):
        return self.old_space.id

    def describe(self):
        before = self.old_space.snapshot()
        after = self.space.snapshot()
        changed = [field for field in after if before.get(field) != after[field]]
        return {**super().describe(), 'before': before, 'after': after, 'changed': changed}


class ArchiveSpaceLog(SpaceLog):
    kind = 'archive'


class UnarchiveSpaceLog(SpaceLog):
    kind = 'unarchive'
