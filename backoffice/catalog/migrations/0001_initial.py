# Generated manually

import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Material',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('sku', models.CharField(max_length=100, unique=True)),
                ('unit', models.CharField(default='cái', max_length=50)),
                ('purchase_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('retail_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('wholesale_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('stock', models.DecimalField(decimal_places=3, default=Decimal('0.000'), max_digits=15)),
                ('committed_quantity', models.DecimalField(decimal_places=3, default=Decimal('0.000'), max_digits=15)),
                ('low_stock_threshold', models.DecimalField(decimal_places=3, default=Decimal('0.000'), max_digits=15)),
                ('supplier_name', models.CharField(blank=True, max_length=200)),
                ('supplier_phone', models.CharField(blank=True, max_length=20)),
                ('description', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'materials',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('sku', models.CharField(max_length=100, unique=True)),
                ('stock', models.DecimalField(decimal_places=3, default=Decimal('0.000'), max_digits=15)),
                ('cost_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('retail_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('wholesale_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'products',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='StockHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('item_name', models.CharField(max_length=255)),
                ('item_sku', models.CharField(blank=True, max_length=100)),
                ('kind', models.CharField(choices=[('import', 'Import'), ('export', 'Export'), ('sale', 'Sale'), ('sale_return', 'Sale Return'), ('adjust', 'Adjustment')], max_length=20)),
                ('quantity', models.DecimalField(decimal_places=3, help_text='Signed change (negative when stock leaves)', max_digits=15)),
                ('quantity_before', models.DecimalField(decimal_places=3, max_digits=15)),
                ('quantity_after', models.DecimalField(decimal_places=3, max_digits=15)),
                ('unit_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('reason', models.CharField(blank=True, max_length=255)),
                ('reference', models.CharField(blank=True, help_text='Document number that caused the movement', max_length=100)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('material', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='history', to='catalog.material')),
                ('product', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='history', to='catalog.product')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='stock_movements', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'stock_history',
                'ordering': ['-created_at', '-id'],
                'verbose_name_plural': 'stock history',
            },
        ),
    ]
