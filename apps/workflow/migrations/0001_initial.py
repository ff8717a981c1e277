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
            name="Company",
            fields=[
                (
                    "prefix",
                    models.CharField(max_length=10, primary_key=True, serialize=False),
                ),
                ("name", models.CharField(max_length=255)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Company",
                "verbose_name_plural": "Companies",
                "db_table": "workflow_company",
                "ordering": ["prefix"],
            },
        ),
        migrations.CreateModel(
            name="CompanyDefaults",
            fields=[
                (
                    "company_name",
                    models.CharField(max_length=255, primary_key=True, serialize=False),
                ),
                ("default_currency", models.CharField(default="MYR", max_length=3)),
                (
                    "approval_high_days",
                    models.PositiveIntegerField(
                        default=3,
                        help_text="Entries waiting longer than this are high priority",
                    ),
                ),
                (
                    "approval_urgent_days",
                    models.PositiveIntegerField(
                        default=7,
                        help_text="Entries waiting longer than this are urgent",
                    ),
                ),
                (
                    "approval_high_amount",
                    models.BigIntegerField(
                        default=500000,
                        help_text="Amount in cents above which an entry is high priority",
                    ),
                ),
                (
                    "approval_urgent_amount",
                    models.BigIntegerField(
                        default=1000000,
                        help_text="Amount in cents above which an entry is urgent",
                    ),
                ),
                (
                    "notion_costing_database_id",
                    models.CharField(blank=True, max_length=64, null=True),
                ),
                ("notion_sync_enabled", models.BooleanField(default=False)),
                ("last_notion_sync", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Company Defaults",
                "verbose_name_plural": "Company Defaults",
                "db_table": "workflow_companydefaults",
            },
        ),
        migrations.CreateModel(
            name="AppError",
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
                ("timestamp", models.DateTimeField(auto_now_add=True)),
                ("message", models.TextField()),
                ("data", models.JSONField(blank=True, null=True)),
                ("app", models.CharField(blank=True, max_length=50, null=True)),
                ("file", models.CharField(blank=True, max_length=200, null=True)),
                ("function", models.CharField(blank=True, max_length=100, null=True)),
                ("severity", models.IntegerField(default=40)),
                ("job_code", models.CharField(blank=True, max_length=50, null=True)),
                ("user_id", models.UUIDField(blank=True, null=True)),
                ("resolved", models.BooleanField(default=False)),
                ("resolved_timestamp", models.DateTimeField(blank=True, null=True)),
                (
                    "resolved_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Application Error",
                "verbose_name_plural": "Application Errors",
                "db_table": "workflow_app_error",
                "ordering": ["-timestamp"],
                "indexes": [
                    models.Index(
                        fields=["timestamp", "severity"],
                        name="workflow_ap_timesta_5a1c7e_idx",
                    ),
                    models.Index(
                        fields=["resolved", "timestamp"],
                        name="workflow_ap_resolve_9d3f2b_idx",
                    ),
                    models.Index(
                        fields=["app", "severity"],
                        name="workflow_ap_app_4e8b61_idx",
                    ),
                ],
            },
        ),
    ]
