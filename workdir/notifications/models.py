from django.db import models
from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType


class Notification(models.Model):
    """
    A message for one user, e.g. "you were added to group 50000Admin".
    Optionally linked to the object it is about using a GenericForeignKey.
    """
    recipient = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications')
    verb = models.CharField(max_length=255)  # e.g., "group membership changed"
    message = models.TextField(blank=True)

    content_type = models.ForeignKey(ContentType, on_delete=models.CASCADE, null=True, blank=True)
    object_id = models.PositiveIntegerField(null=True, blank=True)
    target = GenericForeignKey('content_type', 'object_id')

    timestamp = models.DateTimeField(auto_now_add=True)
    read = models.BooleanField(default=False)

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['recipient', 'read'], name='notification_recipient_read'),
        ]

    def __str__(self):
        return f'{self.verb} for {self.recipient.get_username()}'


class Activity(models.Model):
    """
    Audit record of an action on a space. Written in two phases: inserted before the
    change is made (published_at is NULL) and published once the change has committed.
    An unpublished row therefore reads as "attempted, not confirmed".
    """
    # Null for actions performed by the system (e.g. maintenance scripts)
    actor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='activities')
    verb = models.CharField(max_length=255, db_index=True)  # e.g., "space.create", "space.archive"

    target_content_type = models.ForeignKey(ContentType, on_delete=models.CASCADE, null=True, blank=True, related_name='target_activities')
    target_object_id = models.PositiveIntegerField(null=True, blank=True)
    target = GenericForeignKey('target_content_type', 'target_object_id')

    timestamp = models.DateTimeField(auto_now_add=True)
    published_at = models.DateTimeField(null=True, blank=True)
    extra_data = models.JSONField(null=True, blank=True)

    class Meta:
        ordering = ['-timestamp', '-id']
        verbose_name_plural = "Activities"

    @property
    def is_published(self):
        return self.published_at is not None

    def __str__(self):
        parts = [str(self.actor or 'system'), self.verb]
        if self.target_object_id is not None:
            parts.append(str(self.target_object_id))
        return " ".join(parts)
