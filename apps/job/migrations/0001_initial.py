import uuid
from decimal import Decimal

import django.db.models.deletion
import simple_history.models
from django.conf import settings
from django.db import migrations, models

import apps.job.models.job_code

JOB_NATURE_CHOICES = [
    ("P", "Product"),
    ("S", "Service-sale"),
    ("SV", "Service-work"),
    ("R", "Research"),
]
JOB_CODE_STATUS_CHOICES = [
    ("draft", "Draft"),
    ("active", "Active"),
    ("completed", "Completed"),
    ("cancelled", "Cancelled"),
]
JOB_CODE_SOURCE_CHOICES = [("manual", "Manual"), ("crm", "CRM")]
COSTING_STATUS_CHOICES = [("not_started", "Not Started"), ("in_progress", "In Progress")]
COST_TYPE_CHOICES = [("pre", "PRE-Cost (Budget)"), ("post", "POST-Cost (Actual)")]
CATEGORY_CHOICES = [
    ("A", "Mechanical"),
    ("B", "Instrumentation"),
    ("C", "Electrical & Control"),
    ("D", "Labour"),
    ("E", "Freight & Transport"),
    ("F", "Travelling"),
    ("G", "Entertainment"),
    ("H", "Miscellaneous"),
]
APPROVAL_STATUS_CHOICES = [
    ("draft", "Draft"),
    ("pending", "Pending Approval"),
    ("approved", "Approved"),
    ("rejected", "Rejected"),
]
ENTRY_SOURCE_CHOICES = [("manual", "Manual"), ("notion", "Notion")]
HISTORY_TYPE_CHOICES = [("+", "Created"), ("~", "Changed"), ("-", "Deleted")]


def job_code_fields(historical=False):
    """Column definitions shared by JobCode and its history table."""
    if historical:
        id_field = models.UUIDField(db_index=True, default=uuid.uuid4, editable=False)
        code_field = models.CharField(db_index=True, max_length=50)
        stamp = dict(blank=True, editable=False)
        created_by = models.ForeignKey(
            blank=True,
            db_constraint=False,
            null=True,
            on_delete=django.db.models.deletion.DO_NOTHING,
            related_name="+",
            to=settings.AUTH_USER_MODEL,
        )
    else:
        id_field = models.UUIDField(
            default=uuid.uuid4, editable=False, primary_key=True, serialize=False
        )
        code_field = models.CharField(max_length=50, unique=True)
        stamp = {}
        created_by = models.ForeignKey(
            blank=True,
            null=True,
            on_delete=django.db.models.deletion.SET_NULL,
            related_name="created_job_codes",
            to=settings.AUTH_USER_MODEL,
        )
    return [
        ("id", id_field),
        ("code", code_field),
        ("company_prefix", models.CharField(db_index=True, max_length=10)),
        ("job_nature_code", models.CharField(choices=JOB_NATURE_CHOICES, max_length=2)),
        ("running_number", models.PositiveIntegerField()),
        ("title", models.CharField(max_length=255)),
        ("description", models.TextField(blank=True, default="")),
        ("client_id", models.CharField(blank=True, default="", max_length=100)),
        ("client_name", models.CharField(blank=True, default="", max_length=255)),
        (
            "status",
            models.CharField(
                choices=JOB_CODE_STATUS_CHOICES, default="active", max_length=20
            ),
        ),
        ("currency", models.CharField(default="MYR", max_length=3)),
        (
            "quoted_value",
            models.BigIntegerField(default=0, help_text="Quoted/contract value in cents"),
        ),
        ("company_id", models.CharField(blank=True, default="", max_length=100)),
        ("branch_id", models.CharField(blank=True, default="", max_length=100)),
        (
            "source",
            models.CharField(
                choices=JOB_CODE_SOURCE_CHOICES, default="manual", max_length=10
            ),
        ),
        ("crm_job_id", models.CharField(blank=True, default="", max_length=100)),
        ("notion_project_id", models.CharField(blank=True, default="", max_length=100)),
        (
            "costing_status",
            models.CharField(
                choices=COSTING_STATUS_CHOICES, default="not_started", max_length=20
            ),
        ),
        (
            "costing_summary",
            models.JSONField(default=apps.job.models.job_code.empty_costing_summary),
        ),
        ("pending_approval_count", models.IntegerField(default=0)),
        ("pending_approval_amount", models.BigIntegerField(default=0)),
        ("linked_pos", models.JSONField(blank=True, default=list)),
        ("linked_pis", models.JSONField(blank=True, default=list)),
        ("total_po_value", models.BigIntegerField(default=0)),
        ("total_pi_value", models.BigIntegerField(default=0)),
        ("gross_margin", models.BigIntegerField(default=0)),
        (
            "gross_margin_percentage",
            models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=9),
        ),
        ("created_at", models.DateTimeField(auto_now_add=not historical, **stamp)),
        ("updated_at", models.DateTimeField(auto_now=not historical, **stamp)),
        ("created_by", created_by),
    ]


def costing_entry_fields(historical=False):
    """Column definitions shared by CostingEntry and its history table."""

    def staff_fk(related_name):
        if historical:
            return models.ForeignKey(
                blank=True,
                db_constraint=False,
                null=True,
                on_delete=django.db.models.deletion.DO_NOTHING,
                related_name="+",
                to=settings.AUTH_USER_MODEL,
            )
        return models.ForeignKey(
            blank=True,
            null=True,
            on_delete=django.db.models.deletion.SET_NULL,
            related_name=related_name,
            to=settings.AUTH_USER_MODEL,
        )

    if historical:
        id_field = models.UUIDField(db_index=True, default=uuid.uuid4, editable=False)
        job_code = models.ForeignKey(
            blank=True,
            db_constraint=False,
            null=True,
            on_delete=django.db.models.deletion.DO_NOTHING,
            related_name="+",
            to="job.jobcode",
        )
        stamp = dict(blank=True, editable=False)
    else:
        id_field = models.UUIDField(
            default=uuid.uuid4, editable=False, primary_key=True, serialize=False
        )
        job_code = models.ForeignKey(
            on_delete=django.db.models.deletion.CASCADE,
            related_name="costing_entries",
            to="job.jobcode",
        )
        stamp = {}

    return [
        ("id", id_field),
        ("cost_type", models.CharField(choices=COST_TYPE_CHOICES, max_length=4)),
        ("category", models.CharField(choices=CATEGORY_CHOICES, max_length=1)),
        ("entry_date", models.DateField(blank=True, null=True)),
        ("description", models.TextField(blank=True, default="")),
        ("vendor", models.CharField(blank=True, default="", max_length=255)),
        ("invoice_no", models.CharField(blank=True, default="", max_length=100)),
        (
            "quantity",
            models.DecimalField(decimal_places=3, default=Decimal("1.000"), max_digits=12),
        ),
        ("unit", models.CharField(blank=True, default="", max_length=20)),
        ("unit_rate", models.BigIntegerField(default=0)),
        ("amount", models.BigIntegerField(default=0)),
        ("amount_paid", models.BigIntegerField(default=0)),
        ("balance_payable", models.BigIntegerField(default=0)),
        ("currency", models.CharField(default="MYR", max_length=3)),
        (
            "company_prefix",
            models.CharField(blank=True, db_index=True, default="", max_length=10),
        ),
        ("branch_id", models.CharField(blank=True, default="", max_length=100)),
        (
            "approval_status",
            models.CharField(
                choices=APPROVAL_STATUS_CHOICES,
                db_index=True,
                default="draft",
                max_length=10,
            ),
        ),
        ("approval_history", models.JSONField(blank=True, default=list)),
        ("submitted_at", models.DateTimeField(blank=True, null=True)),
        ("approved_at", models.DateTimeField(blank=True, null=True)),
        ("rejected_at", models.DateTimeField(blank=True, null=True)),
        ("rejection_reason", models.TextField(blank=True, default="")),
        ("remarks", models.TextField(blank=True, default="")),
        ("notes", models.TextField(blank=True, default="")),
        (
            "source",
            models.CharField(choices=ENTRY_SOURCE_CHOICES, default="manual", max_length=10),
        ),
        ("external_id", models.CharField(blank=True, max_length=255, null=True)),
        ("source_meta", models.JSONField(blank=True, default=dict)),
        ("created_at", models.DateTimeField(auto_now_add=not historical, **stamp)),
        ("updated_at", models.DateTimeField(auto_now=not historical, **stamp)),
        ("job_code", job_code),
        ("created_by", staff_fk("created_costing_entries")),
        ("approved_by", staff_fk("approved_costing_entries")),
        ("rejected_by", staff_fk("rejected_costing_entries")),
        ("assigned_approver", staff_fk("assigned_costing_entries")),
    ]


def history_fields():
    return [
        ("history_id", models.AutoField(primary_key=True, serialize=False)),
        ("history_date", models.DateTimeField(db_index=True)),
        ("history_change_reason", models.CharField(max_length=100, null=True)),
        ("history_type", models.CharField(choices=HISTORY_TYPE_CHOICES, max_length=1)),
        (
            "history_user",
            models.ForeignKey(
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="JobCode",
            fields=job_code_fields(),
            options={
                "verbose_name": "Job Code",
                "verbose_name_plural": "Job Codes",
                "db_table": "job_code",
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company_prefix", "job_nature_code", "running_number"),
                        name="unique_job_code_running_number",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="JobCodeCounter",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("company_prefix", models.CharField(max_length=10)),
                (
                    "job_nature_code",
                    models.CharField(choices=JOB_NATURE_CHOICES, max_length=2),
                ),
                ("last_number", models.PositiveIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "job_code_counter",
                "ordering": ["company_prefix", "job_nature_code"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company_prefix", "job_nature_code"),
                        name="unique_job_code_counter",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="CostingEntry",
            fields=costing_entry_fields(),
            options={
                "verbose_name": "Costing Entry",
                "verbose_name_plural": "Costing Entries",
                "db_table": "job_costing_entry",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["approval_status", "submitted_at"],
                        name="job_ce_status_submitted_idx",
                    ),
                    models.Index(
                        fields=["job_code", "approval_status"],
                        name="job_ce_job_status_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("external_id__isnull", False)),
                        fields=("source", "external_id"),
                        name="unique_costing_entry_external_id",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="HistoricalJobCode",
            fields=job_code_fields(historical=True) + history_fields(),
            options={
                "verbose_name": "historical Job Code",
                "verbose_name_plural": "historical Job Codes",
                "db_table": "job_historicaljobcode",
                "ordering": ("-history_date", "-history_id"),
                "get_latest_by": ("history_date", "history_id"),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
        migrations.CreateModel(
            name="HistoricalCostingEntry",
            fields=costing_entry_fields(historical=True) + history_fields(),
            options={
                "verbose_name": "historical Costing Entry",
                "verbose_name_plural": "historical Costing Entries",
                "db_table": "job_historicalcostingentry",
                "ordering": ("-history_date", "-history_id"),
                "get_latest_by": ("history_date", "history_id"),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
    ]
