"""
Stockledger configuration.

Usage in settings.py:
    STOCKLEDGER = {
        "AUTHORIZER": "myproject.permissions.LedgerAuthorizer",
        "AUDIT_SINK": "stockledger.adapters.system.LoggingAuditSink",
        "CLOCK": "stockledger.adapters.system.SystemClock",
        "NUMBERING_MAX_RETRIES": 5,
        "TRANSFER_COST_PER_KM": "5000",
    }
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from django.conf import settings


def _default_prefixes() -> dict[str, str]:
    return {
        'receipt': 'PN',
        'issue': 'PX',
        'transfer': 'CK',
    }


@dataclass
class StockledgerSettings:
    """Stockledger configuration settings."""

    # Authorization backend (dotted path), consulted before every transition
    AUTHORIZER: str = ""

    # Audit sink backend (dotted path), called after commit, fire-and-forget
    AUDIT_SINK: str = "stockledger.adapters.system.LoggingAuditSink"

    # Clock backend (dotted path), source of "today" and the numbering year
    CLOCK: str = "stockledger.adapters.system.SystemClock"

    # Optimistic retry bounds
    NUMBERING_MAX_RETRIES: int = 5
    POSTING_MAX_RETRIES: int = 3

    # Document numbering
    NUMBER_FORMAT: str = "{Prefix}{yyMMdd}-{No:0000}"
    NUMBER_PREFIXES: dict[str, str] = field(default_factory=_default_prefixes)
    NUMBER_DEFAULT_PREFIX: str = "CT"

    # Transfer cost rates (warehouse-level values take precedence)
    TRANSFER_BASE_COST: Decimal = Decimal('50000')
    TRANSFER_COST_PER_KM: Decimal = Decimal('5000')
    TRANSFER_COST_PER_KG: Decimal = Decimal('2000')
    TRANSFER_COST_PER_M3: Decimal = Decimal('10000')
    TRANSFER_FREE_VOLUME_M3: Decimal = Decimal('1')
    TRANSFER_AVERAGE_SPEED_KMH: Decimal = Decimal('50')

    # Lots expiring within this many days are reported as expiring
    EXPIRY_WARNING_DAYS: int = 30

    def __post_init__(self):
        for name in (
            'TRANSFER_BASE_COST', 'TRANSFER_COST_PER_KM', 'TRANSFER_COST_PER_KG',
            'TRANSFER_COST_PER_M3', 'TRANSFER_FREE_VOLUME_M3', 'TRANSFER_AVERAGE_SPEED_KMH',
        ):
            setattr(self, name, Decimal(str(getattr(self, name))))


def get_stockledger_settings() -> StockledgerSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "STOCKLEDGER", {})
    return StockledgerSettings(**{
        k: v for k, v in user_settings.items()
        if k in StockledgerSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_stockledger_settings(), name)


stockledger_settings = _LazySettings()
