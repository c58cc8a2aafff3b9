import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='UserProfile',
            fields=[
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, primary_key=True, related_name='drive_profile', serialize=False, to=settings.AUTH_USER_MODEL)),
                ('role', models.CharField(choices=[('reader', 'Reader'), ('writer', 'Writer'), ('editor', 'Editor'), ('admin', 'Admin')], default='reader', max_length=16)),
                ('storage_limit_mb', models.PositiveIntegerField(default=500, help_text='Storage quota limit in megabytes')),
            ],
            options={
                'verbose_name': 'User Profile',
                'verbose_name_plural': 'User Profiles',
            },
        ),
        migrations.CreateModel(
            name='Folder',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('is_public', models.BooleanField(default=False)),
                ('starred', models.BooleanField(default=False)),
                ('trashed', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('color', models.CharField(blank=True, help_text='Hex color code for UI display (e.g., #FF5733)', max_length=7, null=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='drive_folders', to=settings.AUTH_USER_MODEL)),
                ('parent', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='children', to='drive.folder')),
            ],
            options={
                'verbose_name': 'Folder',
                'verbose_name_plural': 'Folders',
                'ordering': ['-created_at'],
                'abstract': False,
                'indexes': [models.Index(fields=['owner', 'parent'], name='drive_folder_owner_parent_idx')],
            },
        ),
        migrations.CreateModel(
            name='File',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('is_public', models.BooleanField(default=False)),
                ('starred', models.BooleanField(default=False)),
                ('trashed', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('size_mb', models.DecimalField(decimal_places=6, default=Decimal('0'), help_text='File size in megabytes', max_digits=16)),
                ('mime_type', models.CharField(default='application/octet-stream', max_length=255)),
                ('blob_reference', models.CharField(help_text='Storage key: {user_id}/{timestamp}_{filename}', max_length=1024)),
                ('last_accessed_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('folder', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='files', to='drive.folder')),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='drive_files', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'File',
                'verbose_name_plural': 'Files',
                'ordering': ['-created_at'],
                'abstract': False,
                'indexes': [models.Index(fields=['owner', 'folder'], name='drive_file_owner_folder_idx'), models.Index(fields=['owner', '-last_accessed_at'], name='drive_file_owner_recent_idx')],
            },
        ),
        migrations.CreateModel(
            name='ShareGrant',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('item_type', models.CharField(choices=[('file', 'File'), ('folder', 'Folder')], max_length=16)),
                ('item_id', models.UUIDField(db_index=True)),
                ('permission', models.CharField(choices=[('viewer', 'Viewer'), ('commenter', 'Commenter'), ('editor', 'Editor')], default='viewer', max_length=16)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('granted_by', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='drive_grants_given', to=settings.AUTH_USER_MODEL)),
                ('granted_to', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='drive_grants_received', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Share Grant',
                'verbose_name_plural': 'Share Grants',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['item_type', 'item_id'], name='drive_grant_item_idx')],
            },
        ),
    ]
