import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Folder',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='folders', to=settings.AUTH_USER_MODEL)),
                ('parent', models.ForeignKey(blank=True, help_text='Parent folder, empty for top-level folders', null=True, on_delete=django.db.models.deletion.RESTRICT, related_name='children', to='files.folder')),
            ],
            options={
                'verbose_name': 'Folder',
                'verbose_name_plural': 'Folders',
                'ordering': ['name'],
                'indexes': [models.Index(fields=['owner', 'parent'], name='folders_owner_parent_idx')],
                'constraints': [
                    models.UniqueConstraint(fields=('owner', 'parent', 'name'), name='folders_sibling_name_unique'),
                    models.UniqueConstraint(condition=models.Q(('parent__isnull', True)), fields=('owner', 'name'), name='folders_root_name_unique'),
                ],
            },
        ),
        migrations.CreateModel(
            name='File',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('filename', models.CharField(help_text='Generated storage filename (UUID + extension)', max_length=255)),
                ('original_name', models.CharField(help_text='Name shown to the owner', max_length=255)),
                ('mime_type', models.CharField(blank=True, default='', max_length=255)),
                ('size', models.BigIntegerField(default=0, help_text='File size in bytes')),
                ('path', models.CharField(help_text='Object key: owners/{owner_id}/YYYY/MM/DD/{filename}', max_length=500, unique=True)),
                ('bucket', models.CharField(help_text='Object storage bucket name', max_length=100)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('folder', models.ForeignKey(blank=True, help_text='Containing folder, empty for the root', null=True, on_delete=django.db.models.deletion.RESTRICT, related_name='files', to='files.folder')),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='files', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'File',
                'verbose_name_plural': 'Files',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['owner', 'folder'], name='files_owner_folder_idx'),
                    models.Index(fields=['owner', '-created_at'], name='files_owner_recent_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='FileShare',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('share_code', models.CharField(max_length=100, unique=True)),
                ('expires_at', models.DateTimeField(blank=True, help_text='Empty means the share never expires', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='file_shares', to=settings.AUTH_USER_MODEL)),
                ('file', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='shares', to='files.file')),
            ],
            options={
                'verbose_name': 'File Share',
                'verbose_name_plural': 'File Shares',
                'ordering': ['-created_at'],
            },
        ),
    ]
