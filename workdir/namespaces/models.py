from django.db import models
from django.conf import settings
from django.utils import timezone


class Namespace(models.Model):
    """
    One row per space. The id is allocated by the repository (even, >= MIN_SPACE_ID);
    the odd id above it is the space's talk namespace and is never stored.
    """
    id = models.IntegerField(primary_key=True)
    key = models.CharField(max_length=32, unique=True)
    name = models.CharField(max_length=128, unique=True)
    description = models.CharField(max_length=1024)
    creator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='created_namespaces' # User.created_namespaces -> spaces owned by the user
    )
    created_on = models.DateTimeField(default=timezone.now)
    archived = models.BooleanField(default=False)
    protected = models.BooleanField(default=False)

    class Meta:
        db_table = 'namespaces'
        ordering = ['id']
        verbose_name = "Namespace"
        verbose_name_plural = "Namespaces"
        permissions = [
            ('edit_all_spaces', "Can edit every space, not only the ones administered"),
            ('archive_space', "Can archive and unarchive spaces"),
            ('edit_protected_pages', "Can edit pages inside protected spaces"),
            ('view_space_admins', "Can list the administrators of a space"),
        ]

    def __str__(self):
        return f"{self.name} ({self.key})"


class NamespaceAdmin(models.Model):
    # Rows are only ever written by the AdministratorSynchronizer (delete all, then bulk insert).
    namespace = models.ForeignKey(
        Namespace,
        on_delete=models.CASCADE,
        related_name='admin_rows'
    )
    admin_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='space_admin_rows'
    )

    class Meta:
        db_table = 'namespace_admins'
        ordering = ['namespace', 'id']
        indexes = [
            models.Index(fields=['admin_user'], name='namespace_admins_admin_user'),
        ]
        verbose_name = "Namespace administrator"
        verbose_name_plural = "Namespace administrators"

    def __str__(self):
        return f"{self.admin_user_id} administers {self.namespace_id}"
