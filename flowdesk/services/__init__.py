"""
Services for FlowDesk.

This package provides:
- BillingEngine: unbilled time, statistics and invoice generation
- InvoiceNumberGenerator: store-backed invoice numbering
- AlertService / AlertRefresher: dashboard alerts and notifications
"""

from .alert_refresher import AlertRefresher
from .alert_service import AlertService
from .billing_engine import BillingEngine
from .invoice_numbering import InvoiceNumberGenerator

__all__ = [
    "BillingEngine",
    "InvoiceNumberGenerator",
    "AlertService",
    "AlertRefresher",
]
