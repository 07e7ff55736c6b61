"""Tests for payment allocation across cash and wallet."""

import random

import pytest

from core.allocation import (
    allocate, enter_mixed, on_cash_edited, on_wallet_edited, validate_allocation,
)
from core.exceptions import (
    ExceedsWalletBalanceError, InsufficientFundsError, InvalidInputError, MismatchedTotalError,
)
from core.models import PaymentAllocation, PaymentMode


class TestEnterMixed:

    def test_wallet_first_then_cash(self):
        """Total 100.00, balance 40.00 -> wallet 40.00, cash 60.00."""
        state = enter_mixed(10000, 4000)

        assert state.wallet_cents == 4000
        assert state.cash_cents == 6000

    def test_balance_covers_everything(self):
        state = enter_mixed(10000, 25000)

        assert state.wallet_cents == 10000
        assert state.cash_cents == 0

    def test_empty_wallet(self):
        state = enter_mixed(10000, 0)

        assert state.wallet_cents == 0
        assert state.cash_cents == 10000

    def test_negative_total_rejected(self):
        with pytest.raises(InvalidInputError):
            enter_mixed(-1, 100)


class TestEdits:

    def test_cash_edit_recomputes_wallet(self):
        """Cash set to 90.00 -> wallet min(10.00, 40.00) = 10.00."""
        state = on_cash_edited(enter_mixed(10000, 4000), 9000)

        assert state.wallet_cents == 1000
        assert state.cash_cents == 9000

    def test_cash_edit_below_what_wallet_can_cover_raises_cash(self):
        """Wallet can only cover 40.00, so cash 10.00 is pushed back up to 60.00."""
        state = on_cash_edited(enter_mixed(10000, 4000), 1000)

        assert state.wallet_cents == 4000
        assert state.cash_cents == 6000

    def test_wallet_edit_clamped_to_balance(self):
        state = on_wallet_edited(enter_mixed(10000, 4000), 7000)

        assert state.wallet_cents == 4000
        assert state.cash_cents == 6000

    def test_wallet_edit_clamped_to_total(self):
        state = on_wallet_edited(enter_mixed(10000, 50000), 20000)

        assert state.wallet_cents == 10000
        assert state.cash_cents == 0

    def test_negative_edits_clamped_to_zero(self):
        state = enter_mixed(10000, 4000)

        assert on_wallet_edited(state, -500).wallet_cents == 0
        assert on_cash_edited(state, -500).cash_cents == 6000

    def test_edits_do_not_mutate_previous_state(self):
        state = enter_mixed(10000, 4000)
        on_wallet_edited(state, 1000)

        assert state.wallet_cents == 4000

    def test_random_edit_sequences_keep_sum_and_ceiling(self):
        rng = random.Random(1234)

        for _ in range(200):
            total = rng.randint(0, 50000)
            balance = rng.randint(0, 60000)
            state = enter_mixed(total, balance)

            for _ in range(20):
                amount = rng.randint(-1000, 70000)
                if rng.random() < 0.5:
                    state = on_wallet_edited(state, amount)
                else:
                    state = on_cash_edited(state, amount)

                assert state.wallet_cents + state.cash_cents == total
                assert 0 <= state.wallet_cents <= balance
                assert state.cash_cents >= 0

    def test_state_converts_to_mixed_allocation(self):
        allocation = on_cash_edited(enter_mixed(10000, 4000), 9000).to_allocation()

        assert allocation == PaymentAllocation(mode=PaymentMode.MIXED, wallet_cents=1000, cash_cents=9000)


class TestAllocate:

    def test_cash(self):
        allocation = allocate(15750, PaymentMode.CASH)

        assert allocation.wallet_cents == 0
        assert allocation.cash_cents == 15750

    def test_wallet_with_enough_balance(self):
        allocation = allocate(10000, PaymentMode.WALLET, 10000)

        assert allocation.wallet_cents == 10000
        assert allocation.cash_cents == 0

    def test_wallet_one_cent_short(self):
        """Total 100.00, balance 99.99 -> InsufficientFunds with 0.01 shortfall."""
        with pytest.raises(InsufficientFundsError) as exc_info:
            allocate(10000, PaymentMode.WALLET, 9999)

        assert exc_info.value.shortfall_cents == 1
        assert "top up 0.01" in str(exc_info.value)

    def test_mixed_uses_default_split(self):
        allocation = allocate(10000, PaymentMode.MIXED, 4000)

        assert allocation.mode == PaymentMode.MIXED
        assert (allocation.wallet_cents, allocation.cash_cents) == (4000, 6000)


class TestValidateAllocation:

    def test_valid_mixed(self):
        allocation = PaymentAllocation(mode=PaymentMode.MIXED, wallet_cents=4000, cash_cents=6000)

        validate_allocation(allocation, 10000, 4000)

    def test_one_cent_gap_tolerated(self):
        allocation = PaymentAllocation(mode=PaymentMode.MIXED, wallet_cents=4000, cash_cents=5999)

        validate_allocation(allocation, 10000, 4000)

    def test_mismatched_total(self):
        allocation = PaymentAllocation(mode=PaymentMode.MIXED, wallet_cents=4000, cash_cents=5000)

        with pytest.raises(MismatchedTotalError, match="must equal the total of 100.00"):
            validate_allocation(allocation, 10000, 4000)

    def test_mismatch_checked_before_balance(self):
        allocation = PaymentAllocation(mode=PaymentMode.MIXED, wallet_cents=9000, cash_cents=0)

        with pytest.raises(MismatchedTotalError):
            validate_allocation(allocation, 10000, 4000)

    def test_exceeds_wallet_balance(self):
        allocation = PaymentAllocation(mode=PaymentMode.MIXED, wallet_cents=5000, cash_cents=5000)

        with pytest.raises(ExceedsWalletBalanceError):
            validate_allocation(allocation, 10000, 4000)

    def test_wallet_mode_over_balance_is_insufficient_funds(self):
        allocation = PaymentAllocation(mode=PaymentMode.WALLET, wallet_cents=10000, cash_cents=0)

        with pytest.raises(InsufficientFundsError):
            validate_allocation(allocation, 10000, 9999)

    def test_negative_portion(self):
        allocation = PaymentAllocation(mode=PaymentMode.MIXED, wallet_cents=-100, cash_cents=10100)

        with pytest.raises(InvalidInputError):
            validate_allocation(allocation, 10000, 4000)
