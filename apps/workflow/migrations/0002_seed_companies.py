from django.db import migrations

COMPANIES = [
    ("FS", "Flow Solution Sdn Bhd"),
    ("FSE", "Flow Solution Engineering Sdn Bhd"),
    ("FSP", "Flow Solution (Penang) Sdn Bhd"),
    ("BWS", "Broadwater Solution Sdn Bhd"),
    ("BWE", "Broadwater Engineering Sdn Bhd"),
    ("EMIT", "EMI Technology Sdn Bhd"),
    ("EMIA", "EMI Automation Sdn Bhd"),
    ("FTS", "Futuresmiths Sdn Bhd"),
    ("IHS", "Inhaus Sdn Bhd"),
]


def seed_companies(apps, schema_editor):
    Company = apps.get_model("workflow", "Company")
    for prefix, name in COMPANIES:
        Company.objects.get_or_create(prefix=prefix, defaults={"name": name})


def remove_companies(apps, schema_editor):
    Company = apps.get_model("workflow", "Company")
    Company.objects.filter(prefix__in=[prefix for prefix, _ in COMPANIES]).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("workflow", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_companies, remove_companies),
    ]
