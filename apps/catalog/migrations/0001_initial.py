from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('product_code', models.CharField(help_text='Internal product code', max_length=50, unique=True)),
                ('sku', models.CharField(blank=True, db_index=True, help_text='Stock keeping unit / barcode', max_length=100)),
                ('name', models.CharField(help_text='Product name', max_length=255)),
                ('brand', models.CharField(blank=True, max_length=100)),
                ('model', models.CharField(blank=True, max_length=100)),
                ('cost_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Purchase cost per unit', max_digits=12)),
                ('unit_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Selling price per unit', max_digits=12)),
                ('min_stock_level', models.PositiveIntegerField(default=0, help_text='Default low-stock threshold for locations without their own')),
                ('reorder_level', models.PositiveIntegerField(blank=True, help_text='Default reorder point', null=True)),
                ('is_active', models.BooleanField(default=True)),
            ],
            options={
                'ordering': ['name'],
                'indexes': [models.Index(fields=['is_active', 'name'], name='catalog_prod_active_name_idx')],
            },
        ),
    ]
