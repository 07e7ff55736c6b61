"""Typed exceptions for checkout, allocation and ledger failures."""

from utils.money import format_cents


class BookingError(Exception):
    """Base class for checkout engine errors."""

    code = "BOOKING_ERROR"


# =============================================================================
# VALIDATION ERRORS: returned to the caller, never raised past BookingService
# =============================================================================


class BookingValidationError(BookingError):
    """
    A booking request was rejected before anything was written.

    The message is user-facing; the code is stable for clients.
    """

    code = "VALIDATION_ERROR"


class EmptyCartError(BookingValidationError):
    code = "EMPTY_CART"

    def __init__(self):
        super().__init__("Please add services or products to your cart first.")


class MissingCustomerInfoError(BookingValidationError):
    code = "MISSING_CUSTOMER_INFO"

    def __init__(self, missing: list[str] | None = None):
        self.missing = missing or []
        super().__init__("Please fill in all customer information.")


class MissingScheduleError(BookingValidationError):
    code = "MISSING_SCHEDULE"

    def __init__(self):
        super().__init__("Please select date and time.")


class MissingStaffError(BookingValidationError):
    code = "MISSING_STAFF"

    def __init__(self):
        super().__init__("Please select a staff member.")


class MissingPaymentMethodError(BookingValidationError):
    code = "MISSING_PAYMENT_METHOD"

    def __init__(self):
        super().__init__("Please select a payment method.")


class UnauthenticatedPaymentModeError(BookingValidationError):
    """Wallet or mixed payment chosen by a guest. Sign in or pay cash."""

    code = "UNAUTHENTICATED_PAYMENT_MODE"

    def __init__(self):
        super().__init__(
            "Wallet and Mixed Payment require an account. Please sign in or pay with cash."
        )


class InvalidInputError(BookingValidationError):
    """Negative price, zero quantity, out-of-range rate and similar."""

    code = "INVALID_INPUT"


class InsufficientFundsError(BookingValidationError):
    """Wallet-only payment where the balance does not cover the total."""

    code = "INSUFFICIENT_FUNDS"

    def __init__(self, balance_cents: int, total_cents: int):
        self.balance_cents = balance_cents
        self.total_cents = total_cents
        self.shortfall_cents = total_cents - balance_cents
        super().__init__(
            f"Insufficient wallet balance. Your balance is {format_cents(balance_cents)} "
            f"but total is {format_cents(total_cents)}. "
            f"Please choose another payment method or top up {format_cents(self.shortfall_cents)}."
        )


class MismatchedTotalError(BookingValidationError):
    code = "MISMATCHED_TOTAL"

    def __init__(self, wallet_cents: int, cash_cents: int, total_cents: int):
        self.wallet_cents = wallet_cents
        self.cash_cents = cash_cents
        self.total_cents = total_cents
        super().__init__(
            f"Mixed payment amounts must equal the total of {format_cents(total_cents)}. "
            f"Current: Wallet {format_cents(wallet_cents)} + Cash {format_cents(cash_cents)} "
            f"= {format_cents(wallet_cents + cash_cents)}"
        )


class ExceedsWalletBalanceError(BookingValidationError):
    code = "EXCEEDS_WALLET_BALANCE"

    def __init__(self, wallet_cents: int, balance_cents: int):
        self.wallet_cents = wallet_cents
        self.balance_cents = balance_cents
        super().__init__(
            f"Wallet amount ({format_cents(wallet_cents)}) exceeds your balance "
            f"({format_cents(balance_cents)})"
        )


# =============================================================================
# OPERATIONAL ERRORS
# =============================================================================


class PersistenceFailedError(BookingError):
    """Booking could not be saved. Nothing was written; the user should retry."""

    code = "PERSISTENCE_FAILED"


class AccountNotFoundError(BookingError):
    code = "ACCOUNT_NOT_FOUND"

    def __init__(self, customer_id):
        self.customer_id = customer_id
        super().__init__(f"Wallet account for customer {customer_id} not found")


class ConcurrentModificationError(BookingError):
    """Optimistic concurrency retries exhausted for one wallet account."""

    code = "CONCURRENT_MODIFICATION"


class InvalidStatusTransitionError(BookingError):
    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move booking from '{current}' to '{requested}'")
