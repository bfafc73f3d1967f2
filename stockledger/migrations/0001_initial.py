"""
Initial migration for Stockledger models.
"""

from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


STATUS_CHOICES = [
    (0, 'New'), (1, 'Confirmed'), (2, 'Received'), (3, 'Issued'), (4, 'Completed'), (9, 'Canceled'),
]


def document_fields():
    return [
        ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
        ('number', models.CharField(max_length=50, unique=True, verbose_name='Number')),
        ('status', models.PositiveSmallIntegerField(choices=STATUS_CHOICES, db_index=True, default=0, verbose_name='Status')),
        ('note', models.TextField(blank=True, default='', verbose_name='Note')),
        ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
        ('approved_at', models.DateTimeField(blank=True, null=True)),
        ('posted_at', models.DateTimeField(blank=True, help_text='Set when stock was mutated by this document', null=True)),
        ('completed_at', models.DateTimeField(blank=True, null=True)),
        ('canceled_at', models.DateTimeField(blank=True, null=True)),
        ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Approved by')),
        ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Created by')),
    ]


class Migration(migrations.Migration):
    """Create Stockledger models: master data, stock, lots, balances, documents, numbering."""

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Warehouse',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.SlugField(help_text='Unique identifier (e.g. hn-01)', unique=True, verbose_name='Code')),
                ('name', models.CharField(max_length=100, verbose_name='Name')),
                ('address', models.CharField(blank=True, default='', max_length=255, verbose_name='Address')),
                ('latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True, verbose_name='Latitude')),
                ('longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True, verbose_name='Longitude')),
                ('base_transfer_cost', models.DecimalField(blank=True, decimal_places=2, help_text='Empty = use STOCKLEDGER["TRANSFER_BASE_COST"]', max_digits=18, null=True, verbose_name='Base transfer cost')),
                ('cost_per_km', models.DecimalField(blank=True, decimal_places=2, max_digits=18, null=True, verbose_name='Cost per km')),
                ('cost_per_kg', models.DecimalField(blank=True, decimal_places=2, max_digits=18, null=True, verbose_name='Cost per kg')),
                ('region', models.CharField(blank=True, default='', max_length=50, verbose_name='Region')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Warehouse',
                'verbose_name_plural': 'Warehouses',
                'ordering': ['code'],
            },
        ),
        migrations.CreateModel(
            name='Material',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(max_length=50, unique=True, verbose_name='Code')),
                ('name', models.CharField(max_length=200, verbose_name='Name')),
                ('unit', models.CharField(default='un', help_text='"un", "kg", "m", ...', max_length=20, verbose_name='Unit')),
                ('costing_method', models.CharField(choices=[('fifo', 'FIFO'), ('weighted_average', 'Weighted average')], default='weighted_average', max_length=20, verbose_name='Costing method')),
                ('purchase_price', models.DecimalField(decimal_places=2, default=Decimal('0'), help_text='Used when a receipt line carries no price', max_digits=18, verbose_name='Default purchase price')),
                ('min_stock', models.DecimalField(blank=True, decimal_places=3, max_digits=18, null=True, verbose_name='Minimum stock')),
                ('max_stock', models.DecimalField(blank=True, decimal_places=3, max_digits=18, null=True, verbose_name='Maximum stock')),
                ('reorder_quantity', models.DecimalField(blank=True, decimal_places=3, max_digits=18, null=True, verbose_name='Reorder quantity')),
                ('weight_per_unit', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12, verbose_name='Weight per unit (kg)')),
                ('volume_per_unit', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=12, verbose_name='Volume per unit (m³)')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Material',
                'verbose_name_plural': 'Materials',
                'ordering': ['code'],
            },
        ),
        migrations.CreateModel(
            name='WarehouseDistance',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('distance_km', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='Distance (km)')),
                ('estimated_time_hours', models.DecimalField(decimal_places=2, default=0, max_digits=10, verbose_name='Estimated time (h)')),
                ('base_cost', models.DecimalField(decimal_places=2, default=0, max_digits=18, verbose_name='Base cost')),
                ('from_warehouse', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to='stockledger.warehouse', verbose_name='From')),
                ('to_warehouse', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to='stockledger.warehouse', verbose_name='To')),
            ],
            options={
                'verbose_name': 'Warehouse distance',
                'verbose_name_plural': 'Warehouse distances',
                'constraints': [
                    models.UniqueConstraint(fields=('from_warehouse', 'to_warehouse'), name='unique_warehouse_distance_pair'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Stock',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=18, verbose_name='Quantity')),
                ('version', models.PositiveIntegerField(default=0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('material', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='stockledger.material', verbose_name='Material')),
                ('warehouse', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='stockledger.warehouse', verbose_name='Warehouse')),
            ],
            options={
                'verbose_name': 'Stock',
                'verbose_name_plural': 'Stock',
                'constraints': [
                    models.UniqueConstraint(fields=('warehouse', 'material'), name='unique_stock_warehouse_material'),
                    models.CheckConstraint(condition=models.Q(('quantity__gte', 0)), name='stock_quantity_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockReceipt',
            fields=document_fields() + [
                ('supplier', models.CharField(blank=True, default='', max_length=200, verbose_name='Supplier')),
                ('warehouse', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='receipts', to='stockledger.warehouse', verbose_name='Warehouse')),
            ],
            options={
                'verbose_name': 'Stock receipt',
                'verbose_name_plural': 'Stock receipts',
                'ordering': ['-created_at'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='StockIssue',
            fields=document_fields() + [
                ('warehouse', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='issues', to='stockledger.warehouse', verbose_name='Warehouse')),
            ],
            options={
                'verbose_name': 'Stock issue',
                'verbose_name_plural': 'Stock issues',
                'ordering': ['-created_at'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='StockTransfer',
            fields=document_fields() + [
                ('from_warehouse', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='outgoing_transfers', to='stockledger.warehouse', verbose_name='From')),
                ('to_warehouse', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='incoming_transfers', to='stockledger.warehouse', verbose_name='To')),
            ],
            options={
                'verbose_name': 'Stock transfer',
                'verbose_name_plural': 'Stock transfers',
                'ordering': ['-created_at'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='StockLot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('lot_number', models.CharField(blank=True, default='', max_length=100, verbose_name='Lot number')),
                ('manufacture_date', models.DateField(blank=True, null=True, verbose_name='Manufacture date')),
                ('expiry_date', models.DateField(blank=True, db_index=True, null=True, verbose_name='Expiry date')),
                ('quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=18, verbose_name='Quantity')),
                ('unit_price', models.DecimalField(decimal_places=2, default=Decimal('0'), help_text='Cost basis stamped at receipt', max_digits=18, verbose_name='Unit cost')),
                ('is_reserved', models.BooleanField(default=False, verbose_name='Reserved')),
                ('reserved_at', models.DateTimeField(blank=True, null=True)),
                ('version', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('material', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='lots', to='stockledger.material', verbose_name='Material')),
                ('parent_lot', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='children', to='stockledger.stocklot', verbose_name='Parent lot')),
                ('reserved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('reserved_for_issue', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reserved_lots', to='stockledger.stockissue', verbose_name='Reserved for issue')),
                ('warehouse', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='lots', to='stockledger.warehouse', verbose_name='Warehouse')),
            ],
            options={
                'verbose_name': 'Lot',
                'verbose_name_plural': 'Lots',
                'indexes': [models.Index(fields=['warehouse', 'material'], name='stock_lot_key_idx')],
                'constraints': [
                    models.UniqueConstraint(fields=('warehouse', 'material', 'lot_number', 'manufacture_date', 'expiry_date'), name='unique_stock_lot_key'),
                    models.CheckConstraint(condition=models.Q(('quantity__gte', 0)), name='stock_lot_quantity_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='LotHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('receive', 'Receive'), ('issue', 'Issue'), ('transfer_out', 'Transfer out'), ('transfer_in', 'Transfer in'), ('reserve', 'Reserve'), ('release', 'Release'), ('split', 'Split'), ('merge', 'Merge')], max_length=20, verbose_name='Action')),
                ('quantity_before', models.DecimalField(decimal_places=3, max_digits=18)),
                ('quantity_after', models.DecimalField(decimal_places=3, max_digits=18)),
                ('related_lots', models.CharField(blank=True, default='', help_text='Comma-separated lot ids', max_length=500, verbose_name='Related lots')),
                ('reference', models.CharField(blank=True, db_index=True, default='', help_text='Document that caused the event, e.g. "issue:12"', max_length=50, verbose_name='Reference')),
                ('performed_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('notes', models.CharField(blank=True, default='', max_length=500)),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='history', to='stockledger.stocklot', verbose_name='Lot')),
                ('performed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Performed by')),
            ],
            options={
                'verbose_name': 'Lot history',
                'verbose_name_plural': 'Lot history',
                'ordering': ['performed_at', 'id'],
            },
        ),
        migrations.CreateModel(
            name='StockBalance',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField(db_index=True, verbose_name='Date')),
                ('in_qty', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=18)),
                ('out_qty', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=18)),
                ('in_value', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=18)),
                ('out_value', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=18)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('material', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='stockledger.material', verbose_name='Material')),
                ('warehouse', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='stockledger.warehouse', verbose_name='Warehouse')),
            ],
            options={
                'verbose_name': 'Daily balance',
                'verbose_name_plural': 'Daily balances',
                'ordering': ['-date'],
                'constraints': [
                    models.UniqueConstraint(fields=('warehouse', 'material', 'date'), name='unique_stock_balance_day'),
                ],
            },
        ),
        migrations.CreateModel(
            name='DocumentNumbering',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('document_type', models.CharField(choices=[('receipt', 'Stock receipt'), ('issue', 'Stock issue'), ('transfer', 'Stock transfer')], max_length=20, verbose_name='Document type')),
                ('year', models.PositiveSmallIntegerField(verbose_name='Year')),
                ('prefix', models.CharField(default='CT', max_length=20, verbose_name='Prefix')),
                ('format', models.CharField(default='{Prefix}{yyMMdd}-{No:0000}', help_text='Tokens: {Prefix} {yyyy} {yy} {MM} {dd} {yyMM} {yyMMdd} {WH} {WHID} {No:0000}', max_length=100, verbose_name='Format')),
                ('current_no', models.PositiveIntegerField(default=0, verbose_name='Current number')),
                ('version', models.PositiveIntegerField(default=0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('warehouse', models.ForeignKey(blank=True, help_text='Empty = one series for all warehouses', null=True, on_delete=django.db.models.deletion.CASCADE, related_name='+', to='stockledger.warehouse', verbose_name='Warehouse')),
            ],
            options={
                'verbose_name': 'Document numbering',
                'verbose_name_plural': 'Document numbering',
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('warehouse__isnull', False)), fields=('document_type', 'warehouse', 'year'), name='unique_numbering_per_warehouse'),
                    models.UniqueConstraint(condition=models.Q(('warehouse__isnull', True)), fields=('document_type', 'year'), name='unique_numbering_shared'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockReceiptDetail',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=18)),
                ('unit_price', models.DecimalField(blank=True, decimal_places=2, help_text='Empty = material purchase price', max_digits=18, null=True)),
                ('lot_number', models.CharField(blank=True, default='', max_length=100)),
                ('manufacture_date', models.DateField(blank=True, null=True)),
                ('expiry_date', models.DateField(blank=True, null=True)),
                ('unit_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=18, null=True)),
                ('previous_unit_cost', models.DecimalField(blank=True, decimal_places=2, help_text='Lot cost before posting (empty = lot created by this line)', max_digits=18, null=True)),
                ('total_value', models.DecimalField(blank=True, decimal_places=2, max_digits=18, null=True)),
                ('lot', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to='stockledger.stocklot')),
                ('material', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='stockledger.material')),
                ('receipt', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='details', to='stockledger.stockreceipt')),
            ],
            options={
                'verbose_name': 'Receipt line',
                'verbose_name_plural': 'Receipt lines',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='StockIssueDetail',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=18)),
                ('unit_price', models.DecimalField(blank=True, decimal_places=2, help_text='Informational price; the booked cost comes from the lots', max_digits=18, null=True)),
                ('unit_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=18, null=True)),
                ('total_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=18, null=True)),
                ('issue', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='details', to='stockledger.stockissue')),
                ('material', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='stockledger.material')),
            ],
            options={
                'verbose_name': 'Issue line',
                'verbose_name_plural': 'Issue lines',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='StockIssueAllocation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=18)),
                ('unit_cost', models.DecimalField(decimal_places=2, max_digits=18)),
                ('detail', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='allocations', to='stockledger.stockissuedetail')),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='issue_allocations', to='stockledger.stocklot')),
            ],
            options={
                'verbose_name': 'Issue allocation',
                'verbose_name_plural': 'Issue allocations',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='StockTransferDetail',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=18)),
                ('unit_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=18, null=True)),
                ('total_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=18, null=True)),
                ('lot', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to='stockledger.stocklot')),
                ('material', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='stockledger.material')),
                ('transfer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='details', to='stockledger.stocktransfer')),
            ],
            options={
                'verbose_name': 'Transfer line',
                'verbose_name_plural': 'Transfer lines',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='StockTransferAllocation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=18)),
                ('unit_cost', models.DecimalField(decimal_places=2, max_digits=18)),
                ('destination_lot', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='stockledger.stocklot')),
                ('detail', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='allocations', to='stockledger.stocktransferdetail')),
                ('source_lot', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='stockledger.stocklot')),
            ],
            options={
                'verbose_name': 'Transfer allocation',
                'verbose_name_plural': 'Transfer allocations',
                'ordering': ['id'],
            },
        ),
    ]
