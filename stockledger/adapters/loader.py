"""
Stockledger adapter loader — resolves collaborators from settings.

Usage:
    from stockledger.adapters import get_authorizer, get_audit_sink, get_clock

    if not get_authorizer().has_permission(user.pk, "issue", "post"):
        ...

Settings:
    STOCKLEDGER = {
        "AUTHORIZER": "myproject.permissions.LedgerAuthorizer",
        "AUDIT_SINK": "stockledger.adapters.system.LoggingAuditSink",
        "CLOCK": "stockledger.adapters.system.SystemClock",
    }

If AUTHORIZER is not configured, get_authorizer() raises ImproperlyConfigured.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from stockledger.conf import stockledger_settings
from stockledger.protocols.audit import AuditSink
from stockledger.protocols.authorization import Authorizer
from stockledger.protocols.clock import Clock

logger = logging.getLogger(__name__)


# Cached instances, keyed by dotted path
_lock = threading.Lock()
_instances: dict[str, Any] = {}


def _load(setting_name: str) -> Any:
    path = getattr(stockledger_settings, setting_name)

    if not path:
        raise ImproperlyConfigured(
            f"STOCKLEDGER['{setting_name}'] must be configured. "
            "Example: 'stockledger.adapters.noop.AllowAllAuthorizer'"
        )

    instance = _instances.get(path)
    if instance is None:
        with _lock:
            instance = _instances.get(path)
            if instance is None:  # double-checked
                try:
                    instance = import_string(path)()
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import {setting_name} '{path}': {e}"
                    ) from e
                _instances[path] = instance
                logger.debug("Loaded %s: %s", setting_name, path)
    return instance


def get_authorizer() -> Authorizer:
    """
    Return the configured authorizer.

    Raises:
        ImproperlyConfigured: If AUTHORIZER is not configured or import fails
    """
    return _load("AUTHORIZER")


def get_audit_sink() -> AuditSink:
    """Return the configured audit sink."""
    return _load("AUDIT_SINK")


def get_clock() -> Clock:
    """Return the configured clock."""
    return _load("CLOCK")


def reset_adapters() -> None:
    """Reset cached adapters. Useful for testing."""
    with _lock:
        _instances.clear()
