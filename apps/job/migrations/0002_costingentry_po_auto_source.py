from django.db import migrations, models

ENTRY_SOURCE_CHOICES = [
    ("manual", "Manual"),
    ("notion", "Notion"),
    ("po_auto", "Purchase Order"),
]


class Migration(migrations.Migration):

    dependencies = [
        ("job", "0001_initial"),
    ]

    operations = [
        migrations.AlterField(
            model_name="costingentry",
            name="source",
            field=models.CharField(
                choices=ENTRY_SOURCE_CHOICES, default="manual", max_length=10
            ),
        ),
        migrations.AlterField(
            model_name="historicalcostingentry",
            name="source",
            field=models.CharField(
                choices=ENTRY_SOURCE_CHOICES, default="manual", max_length=10
            ),
        ),
    ]
