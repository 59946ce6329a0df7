import django.db.models.deletion
import simple_history.models
from django.conf import settings
from django.db import migrations, models


MOVEMENT_TYPE_CHOICES = [
    ('PURCHASE', 'Purchase'),
    ('SALES', 'Sales'),
    ('TRANSFER_IN', 'Transfer In'),
    ('TRANSFER_OUT', 'Transfer Out'),
    ('ADJUSTMENT_IN', 'Adjustment In'),
    ('ADJUSTMENT_OUT', 'Adjustment Out'),
    ('RETURN_FROM_CUSTOMER', 'Return from Customer'),
    ('RETURN_TO_SUPPLIER', 'Return to Supplier'),
    ('DAMAGED', 'Damaged'),
    ('EXPIRED', 'Expired'),
    ('STOLEN', 'Stolen / Lost'),
    ('FOUND', 'Found'),
    ('USAGE', 'Usage'),
    ('WRITE_OFF', 'Write-off'),
]

REFERENCE_TYPE_CHOICES = [
    ('PURCHASE_ORDER', 'Purchase Order'),
    ('GOODS_RECEIPT', 'Goods Receipt'),
    ('SALE', 'Sale'),
    ('JOB_SHEET', 'Job Sheet'),
    ('STOCK_TRANSFER', 'Stock Transfer'),
    ('STOCK_RELEASE', 'Stock Release'),
    ('ADJUSTMENT', 'Adjustment'),
    ('STOCK_COUNT', 'Stock Count'),
    ('RETURN', 'Return'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        ('locations', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='InventoryRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('quantity', models.IntegerField(default=0, help_text='Units on hand')),
                ('reserved_quantity', models.IntegerField(default=0, help_text='Units earmarked but not yet removed')),
                ('available_quantity', models.IntegerField(default=0, help_text='quantity - reserved_quantity')),
                ('min_stock_level', models.PositiveIntegerField(blank=True, help_text="Low-stock threshold (falls back to the product's)", null=True)),
                ('max_stock_level', models.PositiveIntegerField(blank=True, help_text='Upper stocking target', null=True)),
                ('reorder_level', models.PositiveIntegerField(blank=True, help_text='Reorder point', null=True)),
                ('storage_location', models.CharField(blank=True, help_text='Shelf / bin within the location', max_length=100)),
                ('last_restocked', models.DateTimeField(blank=True, help_text='Last time quantity increased', null=True)),
                ('product', models.ForeignKey(help_text='Product', on_delete=django.db.models.deletion.PROTECT, related_name='inventory_records', to='catalog.product')),
                ('location', models.ForeignKey(help_text='Branch or warehouse', on_delete=django.db.models.deletion.PROTECT, related_name='inventory_records', to='locations.location')),
            ],
            options={
                'verbose_name': 'Inventory Record',
                'verbose_name_plural': 'Inventory Records',
                'indexes': [models.Index(fields=['location', 'product'], name='inv_record_loc_prod_idx')],
                'constraints': [
                    models.UniqueConstraint(fields=('product', 'location'), name='inv_record_product_location_uniq'),
                    models.CheckConstraint(condition=models.Q(quantity__gte=0), name='inv_record_quantity_gte_0'),
                    models.CheckConstraint(condition=models.Q(reserved_quantity__gte=0), name='inv_record_reserved_gte_0'),
                    models.CheckConstraint(condition=models.Q(available_quantity__gte=0), name='inv_record_available_gte_0'),
                    models.CheckConstraint(condition=models.Q(available_quantity=models.F('quantity') - models.F('reserved_quantity')), name='inv_record_available_consistent'),
                ],
            },
        ),
        migrations.CreateModel(
            name='HistoricalInventoryRecord',
            fields=[
                ('id', models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name='ID')),
                ('created_at', models.DateTimeField(blank=True, editable=False)),
                ('updated_at', models.DateTimeField(blank=True, editable=False)),
                ('quantity', models.IntegerField(default=0, help_text='Units on hand')),
                ('reserved_quantity', models.IntegerField(default=0, help_text='Units earmarked but not yet removed')),
                ('available_quantity', models.IntegerField(default=0, help_text='quantity - reserved_quantity')),
                ('min_stock_level', models.PositiveIntegerField(blank=True, help_text="Low-stock threshold (falls back to the product's)", null=True)),
                ('max_stock_level', models.PositiveIntegerField(blank=True, help_text='Upper stocking target', null=True)),
                ('reorder_level', models.PositiveIntegerField(blank=True, help_text='Reorder point', null=True)),
                ('storage_location', models.CharField(blank=True, help_text='Shelf / bin within the location', max_length=100)),
                ('last_restocked', models.DateTimeField(blank=True, help_text='Last time quantity increased', null=True)),
                ('history_id', models.AutoField(primary_key=True, serialize=False)),
                ('history_date', models.DateTimeField(db_index=True)),
                ('history_change_reason', models.CharField(max_length=100, null=True)),
                ('history_type', models.CharField(choices=[('+', 'Created'), ('~', 'Changed'), ('-', 'Deleted')], max_length=1)),
                ('history_user', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('product', models.ForeignKey(blank=True, db_constraint=False, help_text='Product', null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to='catalog.product')),
                ('location', models.ForeignKey(blank=True, db_constraint=False, help_text='Branch or warehouse', null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to='locations.location')),
            ],
            options={
                'verbose_name': 'historical Inventory Record',
                'verbose_name_plural': 'historical Inventory Records',
                'ordering': ('-history_date', '-history_id'),
                'get_latest_by': ('history_date', 'history_id'),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
        migrations.CreateModel(
            name='StockMovement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('movement_type', models.CharField(choices=MOVEMENT_TYPE_CHOICES, help_text='Type of inventory movement', max_length=30)),
                ('quantity', models.IntegerField(help_text='Units moved (always positive)')),
                ('quantity_before', models.IntegerField(help_text='On-hand quantity before this movement')),
                ('quantity_after', models.IntegerField(help_text='On-hand quantity after this movement')),
                ('reference_type', models.CharField(blank=True, choices=REFERENCE_TYPE_CHOICES, help_text='Kind of document that triggered the movement', max_length=30)),
                ('reference_id', models.PositiveBigIntegerField(blank=True, help_text='ID of the referenced document', null=True)),
                ('reference_number', models.CharField(blank=True, help_text='Human-readable reference (SR-0001, TRF-..., PO number)', max_length=50)),
                ('batch_number', models.CharField(blank=True, max_length=100)),
                ('serial_number', models.CharField(blank=True, max_length=100)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('product', models.ForeignKey(help_text='Product affected', on_delete=django.db.models.deletion.PROTECT, related_name='stock_movements', to='catalog.product')),
                ('location', models.ForeignKey(help_text='Location affected', on_delete=django.db.models.deletion.PROTECT, related_name='stock_movements', to='locations.location')),
                ('performed_by', models.ForeignKey(blank=True, help_text='User who performed the movement', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='stock_movements', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Stock Movement',
                'verbose_name_plural': 'Stock Movements',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['product', 'created_at'], name='inv_move_prod_created_idx'),
                    models.Index(fields=['location', 'created_at'], name='inv_move_loc_created_idx'),
                    models.Index(fields=['reference_type', 'reference_id'], name='inv_move_reference_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(quantity__gt=0), name='inv_move_quantity_gt_0'),
                    models.CheckConstraint(condition=models.Q(quantity_before__gte=0), name='inv_move_before_gte_0'),
                    models.CheckConstraint(condition=models.Q(quantity_after__gte=0), name='inv_move_after_gte_0'),
                ],
            },
        ),
    ]
