from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='DocumentSequence',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sequence_type', models.CharField(choices=[('SR', 'Stock Release')], help_text='Type of sequence (SR)', max_length=20, unique=True)),
                ('prefix', models.CharField(help_text="Prefix for the number (e.g., 'SR-')", max_length=10)),
                ('next_value', models.PositiveIntegerField(default=1, help_text='Next number to use')),
                ('padding', models.PositiveIntegerField(default=4, help_text="Zero-pad to this width (e.g., 4 = '0001')")),
            ],
        ),
    ]
