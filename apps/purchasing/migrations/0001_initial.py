import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="PurchaseOrder",
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
                ("po_number", models.CharField(max_length=50, unique=True)),
                (
                    "supplier_name",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                (
                    "job_code",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        default="",
                        help_text="Job code this PO is raised against (source of truth for links)",
                        max_length=50,
                    ),
                ),
                (
                    "total_amount",
                    models.BigIntegerField(default=0, help_text="Total in cents"),
                ),
                ("currency", models.CharField(default="MYR", max_length=3)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("submitted", "Submitted to Supplier"),
                            ("partially_received", "Partially Received"),
                            ("fully_received", "Fully Received"),
                            ("cancelled", "Cancelled"),
                            ("deleted", "Deleted"),
                        ],
                        default="draft",
                        max_length=20,
                    ),
                ),
                ("order_date", models.DateField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Purchase Order",
                "verbose_name_plural": "Purchase Orders",
                "db_table": "purchasing_purchaseorder",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="CostInvoice",
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
                ("invoice_number", models.CharField(max_length=50, unique=True)),
                (
                    "supplier_name",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                (
                    "job_code",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        default="",
                        help_text="Job code this invoice is booked against (source of truth for links)",
                        max_length=50,
                    ),
                ),
                (
                    "total_amount",
                    models.BigIntegerField(default=0, help_text="Subtotal in cents"),
                ),
                (
                    "grand_total",
                    models.BigIntegerField(
                        blank=True, help_text="Total including tax in cents", null=True
                    ),
                ),
                ("currency", models.CharField(default="MYR", max_length=3)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("received", "Received"),
                            ("approved", "Approved"),
                            ("paid", "Paid"),
                            ("cancelled", "Cancelled"),
                            ("deleted", "Deleted"),
                        ],
                        default="received",
                        max_length=20,
                    ),
                ),
                ("invoice_date", models.DateField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "purchase_order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="cost_invoices",
                        to="purchasing.purchaseorder",
                    ),
                ),
            ],
            options={
                "verbose_name": "Cost Invoice",
                "verbose_name_plural": "Cost Invoices",
                "db_table": "purchasing_costinvoice",
                "ordering": ["-created_at"],
            },
        ),
    ]
