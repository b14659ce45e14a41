import logging

from celery import shared_task
from django.contrib.auth import get_user_model
from django.contrib.contenttypes.models import ContentType

from namespaces.models import Namespace
from .models import Notification

logger = logging.getLogger(__name__)


@shared_task
def notify_group_membership_change(user_id, space_id, old_groups, new_groups, reason):
    """
    Tells a user that the space registry changed their groups.
    Returns the id of the Notification, or None if the user no longer exists.
    """
    User = get_user_model()
    try:
        user = User.objects.get(pk=user_id)
    except User.DoesNotExist:
        logger.warning("Group change notification for missing user %s dropped", user_id)
        return None

    added = sorted(set(new_groups) - set(old_groups))
    removed = sorted(set(old_groups) - set(new_groups))
    lines = [reason + "."]
    if added:
        lines.append(f"Added to: {', '.join(added)}")
    if removed:
        lines.append(f"Removed from: {', '.join(removed)}")

    notification = Notification.objects.create(
        recipient=user,
        verb='group membership changed',
        message="\n".join(lines),
        content_type=ContentType.objects.get_for_model(Namespace),
        object_id=space_id,
    )
    return notification.pk
