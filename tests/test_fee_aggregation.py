# tests/test_fee_aggregation.py

from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from fees.aggregation import (
    STATUS_OVERDUE,
    STATUS_PAID,
    STATUS_PARTIAL,
    STATUS_UNPAID,
    ZERO,
    InstallmentState,
    apply_payment,
    derive_status,
    keep_overdue,
    recompute_student_fee,
    validate_payment_amount,
)


def installment(amount, paid='0', pk=None):
    return InstallmentState(amount=Decimal(amount), paid_amount=Decimal(paid), id=pk)


class TestRecompute:

    def test_sums_installments(self):
        result = recompute_student_fee(
            [installment('4000', '4000'), installment('4000', '1500'), installment('4000')]
        )
        assert result.total_fee == Decimal('12000')
        assert result.paid_amount == Decimal('5500')
        assert result.pending_amount == Decimal('6500')
        assert result.status == STATUS_PARTIAL

    def test_order_does_not_matter(self):
        rows = [installment('100.50', '20'), installment('300', '300'), installment('49.50')]
        assert recompute_student_fee(rows) == recompute_student_fee(list(reversed(rows)))

    def test_no_installments_is_zero_and_unpaid(self):
        result = recompute_student_fee([])
        assert result.total_fee == ZERO
        assert result.paid_amount == ZERO
        assert result.pending_amount == ZERO
        assert result.status == STATUS_UNPAID

    def test_overpayment_is_not_clamped(self):
        result = recompute_student_fee([installment('100', '150')])
        assert result.pending_amount == Decimal('-50')
        assert result.status == STATUS_PAID

    def test_discount_reduces_net_fee_only(self):
        result = recompute_student_fee([installment('1000', '200')], discount_amount=Decimal('100'))
        assert result.net_fee == Decimal('900')
        assert result.pending_amount == Decimal('800')
        assert result.as_dict()['discount_amount'] == Decimal('100')


class TestStatus:

    @pytest.mark.parametrize('paid, total, expected', [
        ('0', '100', STATUS_UNPAID),
        ('40', '100', STATUS_PARTIAL),
        ('100', '100', STATUS_PAID),
        ('0', '0', STATUS_UNPAID),
    ])
    def test_derive_status(self, paid, total, expected):
        assert derive_status(Decimal(paid), Decimal(total)) == expected

    def test_overdue_survives_until_paid(self):
        assert keep_overdue(STATUS_OVERDUE, STATUS_PARTIAL) == STATUS_OVERDUE
        assert keep_overdue(STATUS_OVERDUE, STATUS_UNPAID) == STATUS_OVERDUE
        assert keep_overdue(STATUS_OVERDUE, STATUS_PAID) == STATUS_PAID
        assert keep_overdue(STATUS_PARTIAL, STATUS_PAID) == STATUS_PAID


class TestPayments:

    @pytest.mark.parametrize('amount', ['0', '-5'])
    def test_non_positive_amount_rejected(self, amount):
        with pytest.raises(ValidationError):
            validate_payment_amount(installment('100'), Decimal(amount))

    def test_amount_above_pending_rejected(self):
        with pytest.raises(ValidationError, match='exceeds pending amount'):
            validate_payment_amount(installment('100', '60'), Decimal('41'))

    def test_exact_pending_accepted(self):
        assert validate_payment_amount(installment('100', '60'), Decimal('40')) == Decimal('40')

    def test_apply_payment_updates_installment_and_aggregate(self):
        first = installment('500', pk=1)
        second = installment('500', '500', pk=2)
        updated, aggregate = apply_payment(first, Decimal('200'), installments=[first, second])

        assert updated.paid_amount == Decimal('200')
        assert updated.status == STATUS_PARTIAL
        assert aggregate.total_fee == Decimal('1000')
        assert aggregate.paid_amount == Decimal('700')
        assert aggregate.status == STATUS_PARTIAL

    def test_apply_payment_leaves_input_untouched_on_error(self):
        target = installment('100', '90')
        with pytest.raises(ValidationError):
            apply_payment(target, Decimal('20'))
        assert target.paid_amount == Decimal('90')

    def test_two_payments_from_the_same_snapshot_both_validate(self):
        # Both clerks see 100 pending; the arithmetic alone accepts both.
        # FeeService guards the write with a conditional update.
        snapshot = installment('100')
        first, _ = apply_payment(snapshot, Decimal('100'))
        second, _ = apply_payment(snapshot, Decimal('100'))
        assert first.paid_amount + second.paid_amount == Decimal('200')
