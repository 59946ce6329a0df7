import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


def user_fk(related_name):
    return models.ForeignKey(
        blank=True,
        null=True,
        on_delete=django.db.models.deletion.PROTECT,
        related_name=related_name,
        to=settings.AUTH_USER_MODEL,
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        ('locations', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='StockRelease',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('release_number', models.CharField(help_text='Sequential release number (SR-0001)', max_length=30, unique=True)),
                ('release_type', models.CharField(choices=[('JOB_USAGE', 'Job Usage'), ('BRANCH_TRANSFER', 'Branch Transfer'), ('INTERNAL_USE', 'Internal Use'), ('SAMPLE', 'Sample'), ('PROMOTION', 'Promotion'), ('DISPOSAL', 'Disposal'), ('OTHER', 'Other')], help_text='Why the stock is leaving the location', max_length=20)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('APPROVED', 'Approved'), ('RELEASED', 'Released'), ('RECEIVED', 'Received'), ('COMPLETED', 'Completed'), ('CANCELLED', 'Cancelled')], default='PENDING', help_text='Workflow status', max_length=20)),
                ('reference_type', models.CharField(blank=True, max_length=30)),
                ('reference_id', models.PositiveBigIntegerField(blank=True, null=True)),
                ('reference_number', models.CharField(blank=True, max_length=50)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('released_at', models.DateTimeField(blank=True, null=True)),
                ('received_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('from_location', models.ForeignKey(help_text='Location stock is released from', on_delete=django.db.models.deletion.PROTECT, related_name='stock_releases_out', to='locations.location')),
                ('to_location', models.ForeignKey(blank=True, help_text='Destination (branch transfers only)', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='stock_releases_in', to='locations.location')),
                ('requested_by', user_fk('stock_releases_requested')),
                ('approved_by', user_fk('stock_releases_approved')),
                ('released_by', user_fk('stock_releases_released')),
                ('received_by', user_fk('stock_releases_received')),
                ('completed_by', user_fk('stock_releases_completed')),
                ('cancelled_by', user_fk('stock_releases_cancelled')),
            ],
            options={
                'verbose_name': 'Stock Release',
                'verbose_name_plural': 'Stock Releases',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['status', 'created_at'], name='stock_rel_status_idx'),
                    models.Index(fields=['from_location', 'status'], name='stock_rel_from_loc_idx'),
                    models.Index(fields=['to_location', 'status'], name='stock_rel_to_loc_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockReleaseItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('requested_quantity', models.PositiveIntegerField(help_text='Units requested')),
                ('released_quantity', models.PositiveIntegerField(default=0, help_text='Units actually released (never more than requested)')),
                ('released_at', models.DateTimeField(blank=True, help_text='Set once, when the line leaves source stock', null=True)),
                ('unit_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Product cost at request time', max_digits=12)),
                ('total_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='unit_cost x released_quantity', max_digits=14)),
                ('batch_number', models.CharField(blank=True, max_length=100)),
                ('serial_number', models.CharField(blank=True, max_length=100)),
                ('notes', models.TextField(blank=True)),
                ('release', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='stock_releases.stockrelease')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='stock_release_items', to='catalog.product')),
            ],
            options={
                'verbose_name': 'Stock Release Item',
                'verbose_name_plural': 'Stock Release Items',
                'ordering': ['release', 'id'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(requested_quantity__gt=0), name='stock_rel_item_requested_gt_0'),
                    models.CheckConstraint(condition=models.Q(released_quantity__lte=models.F('requested_quantity')), name='stock_rel_item_released_lte_req'),
                ],
            },
        ),
    ]
