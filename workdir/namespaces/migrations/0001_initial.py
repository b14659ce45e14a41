from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Namespace',
            fields=[
                ('id', models.IntegerField(primary_key=True, serialize=False)),
                ('key', models.CharField(max_length=32, unique=True)),
                ('name', models.CharField(max_length=128, unique=True)),
                ('description', models.CharField(max_length=1024)),
                ('created_on', models.DateTimeField(default=django.utils.timezone.now)),
                ('archived', models.BooleanField(default=False)),
                ('protected', models.BooleanField(default=False)),
                ('creator', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='created_namespaces', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Namespace',
                'verbose_name_plural': 'Namespaces',
                'db_table': 'namespaces',
                'ordering': ['id'],
                'permissions': [
                    ('edit_all_spaces', 'Can edit every space, not only the ones administered'),
                    ('archive_space', 'Can archive and unarchive spaces'),
                    ('edit_protected_pages', 'Can edit pages inside protected spaces'),
                    ('view_space_admins', 'Can list the administrators of a space'),
                ],
            },
        ),
        migrations.CreateModel(
            name='NamespaceAdmin',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('admin_user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='space_admin_rows', to=settings.AUTH_USER_MODEL)),
                ('namespace', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='admin_rows', to='namespaces.namespace')),
            ],
            options={
                'verbose_name': 'Namespace administrator',
                'verbose_name_plural': 'Namespace administrators',
                'db_table': 'namespace_admins',
                'ordering': ['namespace', 'id'],
                'indexes': [models.Index(fields=['admin_user'], name='namespace_admins_admin_user')],
            },
        ),
    ]
