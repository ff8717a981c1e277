import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="ApproverProfile",
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
                    "scope",
                    models.CharField(
                        choices=[
                            ("global", "Global"),
                            ("company", "Company"),
                            ("branch", "Branch"),
                        ],
                        default="global",
                        max_length=10,
                    ),
                ),
                (
                    "company_prefixes",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Company prefixes a company approver covers",
                    ),
                ),
                (
                    "branch_ids",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Branches a branch approver covers",
                    ),
                ),
                (
                    "auto_assign",
                    models.BooleanField(
                        default=False,
                        help_text="Assign new submissions in scope to this approver",
                    ),
                ),
                (
                    "max_amount_limit",
                    models.PositiveBigIntegerField(
                        blank=True,
                        help_text="Largest entry amount (cents) this approver may approve; blank for no limit",
                        null=True,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "staff",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="approver_profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Approver Profile",
                "verbose_name_plural": "Approver Profiles",
                "db_table": "accounts_approverprofile",
                "ordering": ["staff__last_name", "staff__first_name"],
            },
        ),
    ]
