# Generated manually — document numbers are unique per issuing warehouse.
# Each warehouse runs its own numbering series, so two warehouses may
# legitimately share the same formatted number on the same day.

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('stockledger', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='stockreceipt',
            name='number',
            field=models.CharField(db_index=True, max_length=50, verbose_name='Number'),
        ),
        migrations.AlterField(
            model_name='stockissue',
            name='number',
            field=models.CharField(db_index=True, max_length=50, verbose_name='Number'),
        ),
        migrations.AlterField(
            model_name='stocktransfer',
            name='number',
            field=models.CharField(db_index=True, max_length=50, verbose_name='Number'),
        ),
        migrations.AddConstraint(
            model_name='stockreceipt',
            constraint=models.UniqueConstraint(fields=('warehouse', 'number'), name='unique_receipt_number_per_warehouse'),
        ),
        migrations.AddConstraint(
            model_name='stockissue',
            constraint=models.UniqueConstraint(fields=('warehouse', 'number'), name='unique_issue_number_per_warehouse'),
        ),
        migrations.AddConstraint(
            model_name='stocktransfer',
            constraint=models.UniqueConstraint(fields=('from_warehouse', 'number'), name='unique_transfer_number_per_warehouse'),
        ),
    ]
