"""Core domain models."""

from core.models.line_item import LineItem, ServiceLineItem, ProductLineItem
from core.models.charges import AssigneeTip, ChargeModifiers, Discount, DiscountKind, PriceBreakdown
from core.models.payment import AllocationState, PaymentAllocation, PaymentChoice, PaymentMode
from core.models.wallet import (
    POINTS_PER_CURRENCY_UNIT, points_for_cents,
    TransactionKind, WalletAccount, WalletTransaction, WalletCreditRequest,
)
from core.models.booking import (
    Booking, BookingRequest, BookingResult, BookingStatus, BookingWarning,
    CustomerIdentity, PaymentStatus, Schedule, StaffAssignment,
    STATUS_TRANSITIONS, LEDGER_WRITE_FAILED,
)
from core.models.ledger_outbox import OutboxEntry, OutboxPurpose, OutboxStatus

__all__ = [
    # LineItem
    "LineItem", "ServiceLineItem", "ProductLineItem",
    # Charges
    "AssigneeTip", "ChargeModifiers", "Discount", "DiscountKind", "PriceBreakdown",
    # Payment
    "AllocationState", "PaymentAllocation", "PaymentChoice", "PaymentMode",
    # Wallet
    "POINTS_PER_CURRENCY_UNIT", "points_for_cents",
    "TransactionKind", "WalletAccount", "WalletTransaction", "WalletCreditRequest",
    # Booking
    "Booking", "BookingRequest", "BookingResult", "BookingStatus", "BookingWarning",
    "CustomerIdentity", "PaymentStatus", "Schedule", "StaffAssignment",
    "STATUS_TRANSITIONS", "LEDGER_WRITE_FAILED",
    # Ledger outbox
    "OutboxEntry", "OutboxPurpose", "OutboxStatus",
]
