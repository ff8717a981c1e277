import uuid
from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("purchasing", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="PurchaseOrderLine",
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
                    "description",
                    models.CharField(blank=True, default="", max_length=200),
                ),
                ("item_code", models.CharField(blank=True, default="", max_length=50)),
                (
                    "quantity",
                    models.DecimalField(
                        decimal_places=3, default=Decimal("1"), max_digits=12
                    ),
                ),
                ("unit", models.CharField(blank=True, default="", max_length=20)),
                (
                    "unit_cost",
                    models.BigIntegerField(default=0, help_text="Unit price in cents"),
                ),
                (
                    "line_total",
                    models.BigIntegerField(
                        blank=True,
                        help_text="Line total in cents when the supplier quotes one",
                        null=True,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "purchase_order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="po_lines",
                        to="purchasing.purchaseorder",
                    ),
                ),
            ],
            options={
                "verbose_name": "Purchase Order Line",
                "verbose_name_plural": "Purchase Order Lines",
                "db_table": "purchasing_purchaseorderline",
                "ordering": ["created_at", "id"],
            },
        ),
    ]
