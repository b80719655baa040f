import uuid

import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Ticket",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "conversation_id",
                    models.CharField(
                        blank=True, max_length=128, null=True, unique=True
                    ),
                ),
                ("owner", models.CharField(blank=True, max_length=128, null=True)),
                ("category", models.CharField(blank=True, default="", max_length=64)),
                (
                    "issue_type",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("location", models.CharField(blank=True, default="", max_length=255)),
                ("urgency", models.CharField(blank=True, default="", max_length=16)),
                ("summary", models.TextField(blank=True, default="")),
                ("reply", models.TextField(blank=True, default="")),
                ("transcript", models.TextField(blank=True, default="")),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                (
                    "team",
                    models.CharField(
                        blank=True,
                        choices=[("maintenance", "Maintenance"), ("ra", "Resident Life")],
                        max_length=16,
                        null=True,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("open", "Open"),
                            ("in_progress", "In progress"),
                            ("closed", "Closed"),
                        ],
                        default="open",
                        max_length=16,
                        null=True,
                    ),
                ),
                ("queue_position", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "created_at",
                    models.DateTimeField(
                        blank=True, default=django.utils.timezone.now, null=True
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(
                        fields=["team", "status"], name="ticket_team_status_idx"
                    ),
                    models.Index(fields=["closed_at"], name="ticket_closed_at_idx"),
                ],
            },
        ),
    ]
