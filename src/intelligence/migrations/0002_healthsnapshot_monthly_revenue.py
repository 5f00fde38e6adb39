from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("intelligence", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="healthsnapshot",
            name="monthly_revenue",
            field=models.JSONField(blank=True, default=list, verbose_name="CA mensuel de reference"),
        ),
    ]
