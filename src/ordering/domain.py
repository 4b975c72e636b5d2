"""Ordering bounded context: checkout orders and their payment state.

Holds the order aggregate, its line items and the addresses and payment
confirmations captured on it.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
