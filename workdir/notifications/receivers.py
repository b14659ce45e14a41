from functools import partial

from django.db import transaction
from django.dispatch import receiver

from namespaces.signals import group_membership_changed
from .tasks import notify_group_membership_change


@receiver(group_membership_changed)
def queue_group_membership_notification(sender, user, old_groups, new_groups, reason, space, **kwargs):
    # Only tell the user once the membership change is committed.
    transaction.on_commit(partial(
        notify_group_membership_change.delay,
        user_id=user.pk,
        space_id=space.id,
        old_groups=sorted(old_groups),
        new_groups=sorted(new_groups),
        reason=reason,
    ))
