from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Location',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('location_code', models.CharField(help_text="Short code (e.g., 'BR-COL', 'WH-MAIN')", max_length=20, unique=True)),
                ('name', models.CharField(max_length=255)),
                ('location_type', models.CharField(choices=[('BRANCH', 'Branch'), ('WAREHOUSE', 'Warehouse')], default='BRANCH', max_length=20)),
                ('address', models.TextField(blank=True)),
                ('phone', models.CharField(blank=True, max_length=50)),
                ('is_active', models.BooleanField(default=True)),
            ],
            options={
                'ordering': ['name'],
                'indexes': [models.Index(fields=['location_type', 'is_active'], name='locations_type_active_idx')],
            },
        ),
    ]
