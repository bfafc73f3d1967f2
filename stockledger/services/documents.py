"""
Document state machine — creation and gated transitions of stock documents.

    receipt:  NEW ─confirm─► CONFIRMED ─post─► RECEIVED ─complete─► COMPLETED
    issue:    NEW ─confirm─► CONFIRMED ─post─► ISSUED   ─complete─► COMPLETED
    transfer: NEW ─confirm─► CONFIRMED ─complete─► COMPLETED

    cancel: from any non-terminal status. A posted document is reversed
    exactly (lots, stock, balances and lot cost).

Every transition runs in one transaction.atomic() with the document row
locked. Postings lock stock rows and lots, write through the versioned
ledger, and verify Stock == Σ lots before committing. A version conflict
(or a database deadlock) rolls back the attempt and the posting is retried
from scratch.

Lock order: document row, then stock rows by (warehouse, material), then
the lots of each locked key. Lines are walked by material so two postings
over the same materials always queue instead of deadlocking.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from django.db import OperationalError, transaction

from stockledger.adapters import get_audit_sink, get_authorizer, get_clock
from stockledger.conf import stockledger_settings
from stockledger.exceptions import StockError
from stockledger.models.documents import (
    StockIssue,
    StockIssueAllocation,
    StockIssueDetail,
    StockReceipt,
    StockReceiptDetail,
    StockTransfer,
    StockTransferAllocation,
    StockTransferDetail,
)
from stockledger.models.enums import DocumentAction, DocumentStatus, DocumentType, LotAction
from stockledger.models.lot import StockLot
from stockledger.rounding import ZERO, line_value, round_money, round_quantity, to_decimal
from stockledger.services.allocation import LotAllocator
from stockledger.services.balances import StockBalanceAggregator
from stockledger.services.costing import CostingEngine
from stockledger.services.ledger import StockLedger
from stockledger.services.lots import LotOperations
from stockledger.services.numbering import DocumentNumberGenerator

logger = logging.getLogger('stockledger')


MODELS = {
    DocumentType.RECEIPT: StockReceipt,
    DocumentType.ISSUE: StockIssue,
    DocumentType.TRANSFER: StockTransfer,
}

S = DocumentStatus

# (type, action) -> (allowed from, target status, handler name)
TRANSITIONS = {
    (DocumentType.RECEIPT, DocumentAction.CONFIRM): ({S.NEW}, S.CONFIRMED, '_confirm'),
    (DocumentType.RECEIPT, DocumentAction.POST): ({S.CONFIRMED}, S.RECEIVED, '_post_receipt'),
    (DocumentType.RECEIPT, DocumentAction.COMPLETE): ({S.RECEIVED}, S.COMPLETED, '_complete'),
    (DocumentType.RECEIPT, DocumentAction.CANCEL): (
        {S.NEW, S.CONFIRMED, S.RECEIVED}, S.CANCELED, '_cancel_receipt',
    ),
    (DocumentType.ISSUE, DocumentAction.CONFIRM): ({S.NEW}, S.CONFIRMED, '_confirm'),
    (DocumentType.ISSUE, DocumentAction.POST): ({S.CONFIRMED}, S.ISSUED, '_post_issue'),
    (DocumentType.ISSUE, DocumentAction.COMPLETE): ({S.ISSUED}, S.COMPLETED, '_complete'),
    (DocumentType.ISSUE, DocumentAction.CANCEL): (
        {S.NEW, S.CONFIRMED, S.ISSUED}, S.CANCELED, '_cancel_issue',
    ),
    (DocumentType.TRANSFER, DocumentAction.CONFIRM): ({S.NEW}, S.CONFIRMED, '_confirm'),
    (DocumentType.TRANSFER, DocumentAction.COMPLETE): ({S.CONFIRMED}, S.COMPLETED, '_complete_transfer'),
    (DocumentType.TRANSFER, DocumentAction.CANCEL): ({S.NEW, S.CONFIRMED}, S.CANCELED, '_cancel'),
}


@dataclass(frozen=True)
class DocumentLine:
    """
    One line of a document being created.

    ``material`` is a Material or its pk. Receipt lines may carry lot
    metadata; transfer lines may pin a source ``lot``.
    """

    material: Any
    quantity: Decimal
    unit_price: Decimal | None = None
    lot_number: str = ''
    manufacture_date: date | None = None
    expiry_date: date | None = None
    lot: Any = None

    @classmethod
    def coerce(cls, line) -> 'DocumentLine':
        if isinstance(line, cls):
            return line
        return cls(**line)

    @property
    def material_id(self):
        return getattr(self.material, 'pk', self.material)

    @property
    def lot_id(self):
        return getattr(self.lot, 'pk', self.lot)


def _actor_id(actor):
    return getattr(actor, 'pk', actor)


# SQLSTATE 40P01 deadlock_detected, 40001 serialization_failure;
# MySQL 1213 deadlock, 1205 lock wait timeout.
LOCK_CONFLICT_CODES = {'40P01', '40001', 1213, 1205}


def _is_lock_conflict(error: OperationalError) -> bool:
    """Was this database error a lock conflict worth retrying?"""
    cause = error.__cause__
    code = getattr(cause, 'sqlstate', None) or getattr(cause, 'pgcode', None)
    if code is None and cause is not None and cause.args:
        code = cause.args[0]
    if code in LOCK_CONFLICT_CODES:
        return True
    return 'database is locked' in str(error)


def parse_document_id(document_id: str) -> tuple[str, int]:
    """Split "issue:12" into ('issue', 12)."""
    if isinstance(document_id, str) and ':' in document_id:
        kind, _, raw_pk = document_id.partition(':')
        if kind in DocumentType.values:
            try:
                return kind, int(raw_pk)
            except ValueError:
                pass
    raise StockError('INVALID_DOCUMENT_ID', document_id=document_id)


def _audit(actor_id, action: str, document, content: dict[str, Any]) -> None:
    """Send one record to the audit sink after commit. Failures are logged only."""
    object_type = document.DOCUMENT_TYPE
    object_id = document.document_id

    def _send():
        try:
            get_audit_sink().record(actor_id, action, object_type, object_id, content)
        except Exception:
            logger.warning(
                "stock.audit.failed",
                exc_info=True,
                extra={"document_id": object_id, "action": action},
            )

    transaction.on_commit(_send)


class DocumentStateMachine:
    """Creates documents and drives their status transitions."""

    # ══════════════════════════════════════════════════════════════
    # CREATE
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def create(cls, document_type: str, warehouse, lines, actor=None,
               to_warehouse=None, note: str = '', supplier: str = '') -> tuple[str, str]:
        """
        Create a document in status NEW. No stock is touched.

        Returns:
            (document_id, number), e.g. ('receipt:7', 'PN250114-0001')

        Raises:
            StockError('INVALID_DOCUMENT_ID'): Unknown document type
            StockError('NOT_AUTHORIZED'): Authorizer denied 'create'
            StockError('EMPTY_DOCUMENT'): No lines
            StockError('INVALID_QUANTITY'): A line quantity <= 0
            StockError('INVALID_PRICE'): A negative unit price
            StockError('SAME_WAREHOUSE'): Transfer to its own source
        """
        if document_type not in DocumentType.values:
            raise StockError('INVALID_DOCUMENT_ID', document_type=document_type)
        document_type = DocumentType(document_type)
        actor_id = _actor_id(actor)

        if not get_authorizer().has_permission(actor_id, document_type, 'create'):
            raise StockError('NOT_AUTHORIZED', actor_id=actor_id, module=str(document_type), action='create')

        lines = [DocumentLine.coerce(line) for line in lines or []]
        cls._validate(document_type, warehouse, lines, to_warehouse)

        with transaction.atomic():
            number = DocumentNumberGenerator.next(document_type, warehouse)
            now = get_clock().now()
            header = {
                'number': number,
                'note': note,
                'created_by_id': actor_id,
                'created_at': now,
            }

            if document_type == DocumentType.RECEIPT:
                document = StockReceipt.objects.create(warehouse=warehouse, supplier=supplier, **header)
                StockReceiptDetail.objects.bulk_create([
                    StockReceiptDetail(
                        receipt=document,
                        material_id=line.material_id,
                        quantity=round_quantity(line.quantity),
                        unit_price=None if line.unit_price is None else round_money(line.unit_price),
                        lot_number=line.lot_number or '',
                        manufacture_date=line.manufacture_date,
                        expiry_date=line.expiry_date,
                    )
                    for line in lines
                ])
            elif document_type == DocumentType.ISSUE:
                document = StockIssue.objects.create(warehouse=warehouse, **header)
                StockIssueDetail.objects.bulk_create([
                    StockIssueDetail(
                        issue=document,
                        material_id=line.material_id,
                        quantity=round_quantity(line.quantity),
                        unit_price=None if line.unit_price is None else round_money(line.unit_price),
                    )
                    for line in lines
                ])
            else:
                document = StockTransfer.objects.create(
                    from_warehouse=warehouse, to_warehouse=to_warehouse, **header,
                )
                StockTransferDetail.objects.bulk_create([
                    StockTransferDetail(
                        transfer=document,
                        material_id=line.material_id,
                        quantity=round_quantity(line.quantity),
                        lot_id=line.lot_id,
                    )
                    for line in lines
                ])

            _audit(actor_id, 'create', document, {'number': number, 'lines': len(lines)})

        logger.info(
            "stock.document.created",
            extra={
                "document_id": document.document_id,
                "number": number,
                "lines": len(lines),
            },
        )
        return document.document_id, number

    @classmethod
    def _validate(cls, document_type, warehouse, lines, to_warehouse) -> None:
        if not lines:
            raise StockError('EMPTY_DOCUMENT', document_type=str(document_type))
        for line in lines:
            quantity = to_decimal(line.quantity)
            if quantity <= 0:
                raise StockError('INVALID_QUANTITY', requested=quantity, material_id=line.material_id)
            if line.unit_price is not None and to_decimal(line.unit_price) < 0:
                raise StockError('INVALID_PRICE', unit_price=line.unit_price, material_id=line.material_id)
        if document_type == DocumentType.TRANSFER:
            if to_warehouse is None or getattr(to_warehouse, 'pk', to_warehouse) == getattr(warehouse, 'pk', warehouse):
                raise StockError('SAME_WAREHOUSE', warehouse_id=getattr(warehouse, 'pk', warehouse))
            pinned = [line.lot_id for line in lines if line.lot_id is not None]
            if pinned:
                valid = set(StockLot.objects.filter(
                    pk__in=pinned, warehouse_id=getattr(warehouse, 'pk', warehouse),
                ).values_list('pk', flat=True))
                for lot_id in pinned:
                    if lot_id not in valid:
                        raise StockError('INVALID_LOT_OPERATION', lot_id=lot_id, reason='lot not in source warehouse')

    # ══════════════════════════════════════════════════════════════
    # TRANSITION
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def transition(cls, document_id: str, action: str, actor=None) -> int:
        """
        Apply ``action`` to a document.

        Returns:
            The new DocumentStatus value

        Raises:
            StockError('INVALID_DOCUMENT_ID'): Malformed id
            StockError('NOT_AUTHORIZED'): Authorizer denied the action
            StockError('DOCUMENT_NOT_FOUND'): No such document
            StockError('INVALID_TRANSITION'): Action not allowed from status
            StockError('INSUFFICIENT_STOCK'): Posting cannot be covered
            StockError('CONCURRENCY_CONFLICT'): Retries exhausted

        A failed transition leaves status and quantities unchanged.
        """
        document_type, pk = parse_document_id(document_id)
        actor_id = _actor_id(actor)

        if action not in DocumentAction.values:
            raise StockError('INVALID_TRANSITION', document_id=document_id, action=action)
        action = DocumentAction(action)

        if not get_authorizer().has_permission(actor_id, document_type, action):
            raise StockError('NOT_AUTHORIZED', actor_id=actor_id, module=document_type, action=str(action))

        max_retries = max(1, stockledger_settings.POSTING_MAX_RETRIES)
        for attempt in range(1, max_retries + 1):
            try:
                return cls._apply(document_type, pk, action, actor_id)
            except StockError as e:
                if not e.is_retryable or attempt >= max_retries:
                    raise
                logger.warning(
                    "stock.posting.retry",
                    extra={
                        "document_id": document_id,
                        "action": str(action),
                        "attempt": attempt,
                    },
                )

    @classmethod
    def _apply(cls, document_type: str, pk: int, action: str, actor_id) -> int:
        """
        One transition attempt.

        A database deadlock or serialization failure rolls the attempt back
        and surfaces as CONCURRENCY_CONFLICT, so transition() retries it.
        """
        try:
            return cls._apply_locked(document_type, pk, action, actor_id)
        except OperationalError as e:
            if not _is_lock_conflict(e):
                raise
            logger.warning(
                "stock.lock.conflict",
                extra={"document_id": f"{document_type}:{pk}", "action": str(action)},
            )
            raise StockError(
                'CONCURRENCY_CONFLICT',
                document_id=f"{document_type}:{pk}",
                reason=str(e),
            ) from e

    @classmethod
    def _apply_locked(cls, document_type: str, pk: int, action: str, actor_id) -> int:
        model = MODELS[document_type]

        with transaction.atomic():
            try:
                document = model.objects.select_for_update().get(pk=pk)
            except model.DoesNotExist:
                raise StockError('DOCUMENT_NOT_FOUND', document_id=f"{document_type}:{pk}")

            rule = TRANSITIONS.get((document_type, action))
            if rule is None or document.status not in rule[0]:
                raise StockError(
                    'INVALID_TRANSITION',
                    document_id=document.document_id,
                    status=DocumentStatus(document.status).label,
                    action=str(action),
                )
            allowed, target, handler = rule
            previous = document.status
            now = get_clock().now()

            getattr(cls, handler)(document, actor_id, now)

            document.status = target
            document.save()

            _audit(actor_id, str(action), document, {
                'from_status': int(previous),
                'to_status': int(target),
                'number': document.number,
            })

        logger.info(
            "stock.document.transition",
            extra={
                "document_id": document.document_id,
                "action": str(action),
                "from_status": int(previous),
                "to_status": int(target),
            },
        )
        return target

    # ══════════════════════════════════════════════════════════════
    # HANDLERS (inside the transition's transaction)
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _confirm(cls, document, actor_id, now) -> None:
        document.approved_by_id = actor_id
        document.approved_at = now

    @classmethod
    def _complete(cls, document, actor_id, now) -> None:
        document.completed_at = now

    @classmethod
    def _cancel(cls, document, actor_id, now) -> None:
        document.canceled_at = now

    # ── receipt ──

    @classmethod
    def _post_receipt(cls, receipt: StockReceipt, actor_id, now) -> None:
        reference = receipt.document_id
        touched = set()
        total_qty = ZERO

        for detail in receipt.details.select_related('material').order_by('material_id', 'id'):
            material = detail.material
            price = CostingEngine.receipt_price(detail)

            stock = StockLedger.lock_stock(receipt.warehouse_id, material)
            lot, _ = StockLedger.find_or_create_lot(
                receipt.warehouse_id, material,
                detail.lot_number, detail.manufacture_date, detail.expiry_date,
            )
            stamp = CostingEngine.incoming(material, lot, detail.quantity, price)

            StockLedger.adjust_lot(
                lot, detail.quantity, LotAction.RECEIVE,
                reference=reference, actor_id=actor_id, unit_price=stamp.unit_cost,
            )
            if stamp.restamp_open_lots:
                StockLedger.restamp_open_lots(receipt.warehouse_id, material, stamp.unit_cost, exclude=lot)
            StockLedger.adjust_stock(stock, detail.quantity)

            value = line_value(detail.quantity, price)
            StockBalanceAggregator.record_in(receipt.warehouse_id, material, detail.quantity, value)

            detail.unit_price = price
            detail.lot = lot
            detail.unit_cost = stamp.unit_cost
            detail.previous_unit_cost = stamp.previous_unit_cost
            detail.total_value = value
            detail.save(update_fields=['unit_price', 'lot', 'unit_cost', 'previous_unit_cost', 'total_value'])

            touched.add((receipt.warehouse_id, material.pk))
            total_qty += detail.quantity

        for warehouse_id, material_id in touched:
            StockLedger.verify(warehouse_id, material_id)

        receipt.posted_at = now
        logger.info(
            "stock.receipt.posted",
            extra={"document_id": reference, "qty": str(total_qty)},
        )

    @classmethod
    def _cancel_receipt(cls, receipt: StockReceipt, actor_id, now) -> None:
        receipt.canceled_at = now
        if not receipt.is_posted:
            return

        reference = receipt.document_id
        touched = set()

        for detail in receipt.details.select_related('material').order_by('material_id', 'id'):
            material = detail.material
            stock = StockLedger.lock_stock(receipt.warehouse_id, material)
            lot = StockLedger.lock_lot(detail.lot_id)
            restore = CostingEngine.receipt_reversal(material, lot, detail)

            StockLedger.adjust_lot(
                lot, -detail.quantity, LotAction.RELEASE,
                reference=reference, actor_id=actor_id,
                unit_price=restore, notes='receipt canceled',
            )
            if restore is not None and not material.is_fifo:
                StockLedger.restamp_open_lots(receipt.warehouse_id, material, restore, exclude=lot)
            StockLedger.adjust_stock(stock, -detail.quantity)
            StockBalanceAggregator.reverse_in(
                receipt.warehouse_id, material, detail.quantity, detail.total_value,
            )
            touched.add((receipt.warehouse_id, material.pk))

        for warehouse_id, material_id in touched:
            StockLedger.verify(warehouse_id, material_id)

        logger.info("stock.receipt.reversed", extra={"document_id": reference})

    # ── issue ──

    @classmethod
    def _post_issue(cls, issue: StockIssue, actor_id, now) -> None:
        reference = issue.document_id
        touched = set()
        total_cost = ZERO

        for detail in issue.details.select_related('material').order_by('material_id', 'id'):
            material = detail.material
            stock = StockLedger.lock_stock(issue.warehouse_id, material)
            allocations = LotAllocator.allocate(issue.warehouse_id, material, detail.quantity, issue=issue)

            for allocation in allocations:
                StockIssueAllocation.objects.create(
                    detail=detail,
                    lot=allocation.lot,
                    quantity=allocation.quantity,
                    unit_cost=allocation.lot.unit_price,
                )
            line_cost, unit_cost = CostingEngine.issue_cost(allocations)

            for allocation in allocations:
                StockLedger.adjust_lot(
                    allocation.lot, -allocation.quantity, LotAction.ISSUE,
                    reference=reference, actor_id=actor_id,
                )
            StockLedger.adjust_stock(stock, -detail.quantity)
            StockBalanceAggregator.record_out(issue.warehouse_id, material, detail.quantity, line_cost)

            detail.unit_cost = unit_cost
            detail.total_cost = line_cost
            detail.save(update_fields=['unit_cost', 'total_cost'])

            touched.add((issue.warehouse_id, material.pk))
            total_cost += line_cost

        LotOperations.release_for_issue(issue, actor_id=actor_id)

        for warehouse_id, material_id in touched:
            StockLedger.verify(warehouse_id, material_id)

        issue.posted_at = now
        logger.info(
            "stock.issue.posted",
            extra={"document_id": reference, "cost": str(total_cost)},
        )

    @classmethod
    def _cancel_issue(cls, issue: StockIssue, actor_id, now) -> None:
        issue.canceled_at = now
        LotOperations.release_for_issue(issue, actor_id=actor_id)
        if not issue.is_posted:
            return

        reference = issue.document_id
        touched = set()

        for detail in issue.details.select_related('material').order_by('material_id', 'id'):
            material = detail.material
            stock = StockLedger.lock_stock(issue.warehouse_id, material)

            for allocation in detail.allocations.all():
                lot = StockLedger.lock_lot(allocation.lot_id)
                stamp = CostingEngine.incoming(material, lot, allocation.quantity, allocation.unit_cost)
                StockLedger.adjust_lot(
                    lot, allocation.quantity, LotAction.RELEASE,
                    reference=reference, actor_id=actor_id,
                    unit_price=stamp.unit_cost, notes='issue canceled',
                )
                if stamp.restamp_open_lots:
                    StockLedger.restamp_open_lots(issue.warehouse_id, material, stamp.unit_cost, exclude=lot)

            StockLedger.adjust_stock(stock, detail.quantity)
            StockBalanceAggregator.reverse_out(
                issue.warehouse_id, material, detail.quantity, detail.total_cost or ZERO,
            )
            touched.add((issue.warehouse_id, material.pk))

        for warehouse_id, material_id in touched:
            StockLedger.verify(warehouse_id, material_id)

        logger.info("stock.issue.reversed", extra={"document_id": reference})

    # ── transfer ──

    @classmethod
    def _complete_transfer(cls, transfer: StockTransfer, actor_id, now) -> None:
        reference = transfer.document_id
        source_id = transfer.from_warehouse_id
        destination_id = transfer.to_warehouse_id
        touched = set()

        details = list(transfer.details.select_related('material').order_by('material_id', 'id'))

        # Every stock row of both warehouses, locked in (warehouse, material) order
        keys = sorted({
            (warehouse_id, detail.material_id)
            for detail in details
            for warehouse_id in (source_id, destination_id)
        })
        stocks = {key: StockLedger.lock_stock(*key) for key in keys}

        for detail in details:
            material = detail.material
            allocations = LotAllocator.allocate(source_id, material, detail.quantity, lot=detail.lot_id)

            line_cost = ZERO
            for allocation in allocations:
                source_lot = allocation.lot
                cost = source_lot.unit_price
                destination_lot, _ = StockLedger.find_or_create_lot(
                    destination_id, material,
                    source_lot.lot_number, source_lot.manufacture_date, source_lot.expiry_date,
                )
                stamp = CostingEngine.incoming(material, destination_lot, allocation.quantity, cost)

                StockLedger.adjust_lot(
                    source_lot, -allocation.quantity, LotAction.TRANSFER_OUT,
                    reference=reference, actor_id=actor_id,
                    related_lots=str(destination_lot.pk),
                )
                StockLedger.adjust_lot(
                    destination_lot, allocation.quantity, LotAction.TRANSFER_IN,
                    reference=reference, actor_id=actor_id,
                    unit_price=stamp.unit_cost, related_lots=str(source_lot.pk),
                )
                if stamp.restamp_open_lots:
                    StockLedger.restamp_open_lots(destination_id, material, stamp.unit_cost, exclude=destination_lot)

                StockTransferAllocation.objects.create(
                    detail=detail,
                    source_lot=source_lot,
                    destination_lot=destination_lot,
                    quantity=allocation.quantity,
                    unit_cost=cost,
                )
                line_cost += line_value(allocation.quantity, cost)

            StockLedger.adjust_stock(stocks[(source_id, material.pk)], -detail.quantity)
            StockLedger.adjust_stock(stocks[(destination_id, material.pk)], detail.quantity)
            StockBalanceAggregator.record_out(source_id, material, detail.quantity, line_cost)
            StockBalanceAggregator.record_in(destination_id, material, detail.quantity, line_cost)

            detail.unit_cost = round_money(line_cost / detail.quantity)
            detail.total_cost = line_cost
            detail.save(update_fields=['unit_cost', 'total_cost'])

            touched.add((source_id, material.pk))
            touched.add((destination_id, material.pk))

        for warehouse_id, material_id in touched:
            StockLedger.verify(warehouse_id, material_id)

        transfer.posted_at = now
        transfer.completed_at = now
        logger.info(
            "stock.transfer.completed",
            extra={
                "document_id": reference,
                "from_warehouse_id": source_id,
                "to_warehouse_id": destination_id,
            },
        )
