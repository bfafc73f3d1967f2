"""
Warehouse model — Where stock exists.
"""

from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _


class Warehouse(models.Model):
    """
    A physical warehouse. Scopes every stock row, lot and balance.

    Warehouses are stable entities, created during system setup.

    Examples:
        Warehouse.objects.create(code='hn-01', name='Hanoi Central', address='...')
    """

    code = models.SlugField(
        unique=True,
        max_length=50,
        verbose_name=_('Code'),
        help_text=_('Unique identifier (e.g. hn-01)'),
    )
    name = models.CharField(
        max_length=100,
        verbose_name=_('Name'),
    )
    address = models.CharField(
        max_length=255,
        blank=True,
        default='',
        verbose_name=_('Address'),
    )

    # Transfer estimation
    latitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True,
        verbose_name=_('Latitude'),
    )
    longitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True,
        verbose_name=_('Longitude'),
    )
    base_transfer_cost = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_('Base transfer cost'),
        help_text=_('Empty = use STOCKLEDGER["TRANSFER_BASE_COST"]'),
    )
    cost_per_km = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_('Cost per km'),
    )
    cost_per_kg = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_('Cost per kg'),
    )
    region = models.CharField(
        max_length=50,
        blank=True,
        default='',
        verbose_name=_('Region'),
    )

    is_active = models.BooleanField(default=True, verbose_name=_('Active'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Warehouse')
        verbose_name_plural = _('Warehouses')
        ordering = ['code']

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def __str__(self) -> str:
        return self.name


class WarehouseDistanceQuerySet(models.QuerySet):

    def between(self, first, second):
        """Distance rows for the pair, in either direction."""
        first_id = getattr(first, 'pk', first)
        second_id = getattr(second, 'pk', second)
        return self.filter(
            Q(from_warehouse_id=first_id, to_warehouse_id=second_id)
            | Q(from_warehouse_id=second_id, to_warehouse_id=first_id)
        )


class WarehouseDistance(models.Model):
    """Precomputed road distance and base cost between two warehouses."""

    from_warehouse = models.ForeignKey(
        Warehouse,
        on_delete=models.CASCADE,
        related_name='+',
        verbose_name=_('From'),
    )
    to_warehouse = models.ForeignKey(
        Warehouse,
        on_delete=models.CASCADE,
        related_name='+',
        verbose_name=_('To'),
    )
    distance_km = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        verbose_name=_('Distance (km)'),
    )
    estimated_time_hours = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=0,
        verbose_name=_('Estimated time (h)'),
    )
    base_cost = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=0,
        verbose_name=_('Base cost'),
    )

    objects = WarehouseDistanceQuerySet.as_manager()

    class Meta:
        verbose_name = _('Warehouse distance')
        verbose_name_plural = _('Warehouse distances')
        constraints = [
            models.UniqueConstraint(
                fields=['from_warehouse', 'to_warehouse'],
                name='unique_warehouse_distance_pair',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.from_warehouse_id} → {self.to_warehouse_id}: {self.distance_km} km"
