"""
Stockledger Admin — read-only views for operations and debugging.

- Warehouse / Material / WarehouseDistance: editable master data
- Stock, StockLot, LotHistory, StockBalance: read-only (ledger-owned)
- Receipts / Issues / Transfers: read-only, with confirm/cancel actions
  routed through the document state machine
"""

import logging

from django.contrib import admin, messages
from django.utils.translation import gettext_lazy as _

from stockledger.exceptions import StockError
from stockledger.models import (
    DocumentAction,
    DocumentNumbering,
    LotHistory,
    Material,
    Stock,
    StockBalance,
    StockIssue,
    StockIssueDetail,
    StockLot,
    StockReceipt,
    StockReceiptDetail,
    StockTransfer,
    StockTransferDetail,
    Warehouse,
    WarehouseDistance,
)

logger = logging.getLogger(__name__)


class ReadOnlyAdminMixin:
    """Rows owned by the ledger never change through the admin."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# MASTER DATA (editable)
# =========================================================================


@admin.register(Warehouse)
class WarehouseAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'region', 'is_active']
    list_filter = ['is_active', 'region']
    search_fields = ['code', 'name']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(WarehouseDistance)
class WarehouseDistanceAdmin(admin.ModelAdmin):
    list_display = ['from_warehouse', 'to_warehouse', 'distance_km', 'estimated_time_hours', 'base_cost']
    list_select_related = ['from_warehouse', 'to_warehouse']


@admin.register(Material)
class MaterialAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'unit', 'costing_method', 'min_stock', 'max_stock', 'is_active']
    list_filter = ['costing_method', 'is_active']
    search_fields = ['code', 'name']
    readonly_fields = ['created_at', 'updated_at']


# =========================================================================
# LEDGER (read-only)
# =========================================================================


@admin.register(Stock)
class StockAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Stock admin — read-only. Stock only changes via document postings."""

    list_display = ['material', 'warehouse', 'quantity', 'updated_at']
    list_filter = ['warehouse']
    search_fields = ['material__code', 'material__name']
    list_select_related = ['material', 'warehouse']


@admin.register(StockLot)
class StockLotAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['__str__', 'material', 'warehouse', 'quantity', 'unit_price',
                    'manufacture_date', 'expiry_date', 'is_reserved']
    list_filter = ['warehouse', 'is_reserved']
    search_fields = ['lot_number', 'material__code']
    date_hierarchy = 'created_at'
    list_select_related = ['material', 'warehouse']


@admin.register(LotHistory)
class LotHistoryAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Immutable audit trail of lot events."""

    list_display = ['performed_at', 'lot', 'action', 'quantity_before', 'quantity_after',
                    'reference', 'performed_by']
    list_filter = ['action']
    search_fields = ['reference']
    date_hierarchy = 'performed_at'


@admin.register(StockBalance)
class StockBalanceAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['date', 'warehouse', 'material', 'in_qty', 'out_qty', 'in_value', 'out_value']
    list_filter = ['warehouse']
    date_hierarchy = 'date'


@admin.register(DocumentNumbering)
class DocumentNumberingAdmin(admin.ModelAdmin):
    """Prefix and format are editable; the counter is not."""

    list_display = ['document_type', 'warehouse', 'year', 'prefix', 'format', 'current_no']
    list_filter = ['document_type', 'year']
    readonly_fields = ['document_type', 'warehouse', 'year', 'current_no', 'version', 'updated_at']

    def has_add_permission(self, request):
        return False


# =========================================================================
# DOCUMENTS (read-only with transition actions)
# =========================================================================


class DocumentAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['number', 'status', 'created_by', 'created_at', 'approved_at', 'posted_at']
    list_filter = ['status']
    search_fields = ['number']
    date_hierarchy = 'created_at'
    actions = ['confirm_documents', 'cancel_documents']

    def _run(self, request, queryset, action):
        from stockledger import ledger

        done = 0
        for document in queryset:
            try:
                ledger.transition(document.document_id, action, actor=request.user)
                done += 1
            except StockError as exc:
                logger.warning(
                    "admin.transition.failed",
                    extra={"document_id": document.document_id, "action": action, "code": exc.code},
                )
                self.message_user(request, f"{document.number}: {exc.message}", level=messages.WARNING)
        self.message_user(request, _('{count} document(s) updated.').format(count=done))

    @admin.action(description=_('Confirm selected documents'))
    def confirm_documents(self, request, queryset):
        self._run(request, queryset, DocumentAction.CONFIRM)

    @admin.action(description=_('Cancel selected documents'))
    def cancel_documents(self, request, queryset):
        self._run(request, queryset, DocumentAction.CANCEL)


class ReceiptDetailInline(admin.TabularInline):
    model = StockReceiptDetail
    extra = 0
    can_delete = False
    readonly_fields = ['material', 'quantity', 'unit_price', 'lot_number', 'manufacture_date',
                       'expiry_date', 'lot', 'unit_cost', 'previous_unit_cost', 'total_value']


class IssueDetailInline(admin.TabularInline):
    model = StockIssueDetail
    extra = 0
    can_delete = False
    readonly_fields = ['material', 'quantity', 'unit_price', 'unit_cost', 'total_cost']


class TransferDetailInline(admin.TabularInline):
    model = StockTransferDetail
    extra = 0
    can_delete = False
    readonly_fields = ['material', 'quantity', 'lot', 'unit_cost', 'total_cost']


@admin.register(StockReceipt)
class StockReceiptAdmin(DocumentAdmin):
    list_display = DocumentAdmin.list_display + ['warehouse', 'supplier']
    list_filter = DocumentAdmin.list_filter + ['warehouse']
    inlines = [ReceiptDetailInline]


@admin.register(StockIssue)
class StockIssueAdmin(DocumentAdmin):
    list_display = DocumentAdmin.list_display + ['warehouse']
    list_filter = DocumentAdmin.list_filter + ['warehouse']
    inlines = [IssueDetailInline]


@admin.register(StockTransfer)
class StockTransferAdmin(DocumentAdmin):
    list_display = DocumentAdmin.list_display + ['from_warehouse', 'to_warehouse']
    list_filter = DocumentAdmin.list_filter + ['from_warehouse', 'to_warehouse']
    inlines = [TransferDetailInline]
