"""
Enums for Stockledger models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class DocumentStatus(models.IntegerChoices):
    """
    Document lifecycle status.

    NEW → CONFIRMED → RECEIVED (receipt) / ISSUED (issue) → COMPLETED
    CANCELED is reachable from any non-terminal status.
    """
    NEW = 0, _('New')                # Created, no stock effect
    CONFIRMED = 1, _('Confirmed')    # Approved, awaiting posting
    RECEIVED = 2, _('Received')      # Receipt posted, stock added
    ISSUED = 3, _('Issued')          # Issue posted, stock removed
    COMPLETED = 4, _('Completed')    # Terminal
    CANCELED = 9, _('Canceled')      # Terminal; posted stock reversed

    @classmethod
    def terminal(cls) -> frozenset:
        return frozenset({cls.COMPLETED, cls.CANCELED})


class DocumentType(models.TextChoices):
    """Kinds of stock documents."""
    RECEIPT = 'receipt', _('Stock receipt')
    ISSUE = 'issue', _('Stock issue')
    TRANSFER = 'transfer', _('Stock transfer')


class DocumentAction(models.TextChoices):
    """Actions accepted by the document state machine."""
    CONFIRM = 'confirm', _('Confirm')
    POST = 'post', _('Post')
    COMPLETE = 'complete', _('Complete')
    CANCEL = 'cancel', _('Cancel')


class CostingMethod(models.TextChoices):
    """
    How a material's unit cost is derived.

    FIFO:             each lot keeps the price it was received at;
                      issue cost follows the lots actually drawn.
    WEIGHTED_AVERAGE: every receipt re-blends the cost of all open lots.
    """
    FIFO = 'fifo', _('FIFO')
    WEIGHTED_AVERAGE = 'weighted_average', _('Weighted average')


class LotAction(models.TextChoices):
    """Lot history event kinds."""
    RECEIVE = 'receive', _('Receive')
    ISSUE = 'issue', _('Issue')
    TRANSFER_OUT = 'transfer_out', _('Transfer out')
    TRANSFER_IN = 'transfer_in', _('Transfer in')
    RESERVE = 'reserve', _('Reserve')
    RELEASE = 'release', _('Release')
    SPLIT = 'split', _('Split')
    MERGE = 'merge', _('Merge')
