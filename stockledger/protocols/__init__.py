"""
Stockledger Protocols.

Defines interfaces for external collaborators.
"""

from stockledger.protocols.audit import AuditSink
from stockledger.protocols.authorization import Authorizer
from stockledger.protocols.clock import Clock

__all__ = [
    "AuditSink",
    "Authorizer",
    "Clock",
]
