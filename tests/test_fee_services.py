# tests/test_fee_services.py

from datetime import date
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError
from django.db import transaction

from fees.aggregation import apply_payment
from fees.models import FeeDiscountApproval, FeeInstallment, FeePayment, StudentFee
from fees.services import NOT_GENERATED, FeeService, fee_overview, overview_totals

from .conftest import ACADEMIC_YEAR

pytestmark = pytest.mark.django_db


def fee_record(student):
    return StudentFee.all_objects.get(student=student, academic_year=ACADEMIC_YEAR)


@pytest.fixture
def installments(student, fee_structure):
    return FeeService.generate_installments(
        student, ACADEMIC_YEAR, number_of_installments=3, first_due_date=date(2024, 4, 10)
    )


class TestGenerateInstallments:

    def test_splits_class_fee_evenly(self, student, installments):
        assert [i.amount for i in installments] == [Decimal('4000.00')] * 3
        assert [i.due_date for i in installments] == [date(2024, 4, 10), date(2024, 5, 10), date(2024, 6, 10)]

        fee = fee_record(student)
        assert fee.total_fee == Decimal('12000')
        assert fee.pending_amount == Decimal('12000')
        assert fee.status == 'unpaid'

    def test_last_installment_takes_the_remainder(self, student, fee_structure):
        created = FeeService.generate_installments(student, ACADEMIC_YEAR, number_of_installments=7)
        assert created[0].amount == Decimal('1714.28')
        assert created[-1].amount == Decimal('1714.32')
        assert sum(i.amount for i in created) == Decimal('12000')

    def test_refuses_to_generate_twice(self, student, installments):
        with pytest.raises(ValidationError, match='already exist'):
            FeeService.generate_installments(student, ACADEMIC_YEAR)

    def test_requires_a_fee_structure(self, student):
        with pytest.raises(ValidationError, match='No fee structure defined'):
            FeeService.generate_installments(student, ACADEMIC_YEAR)

    def test_due_dates_clamp_to_month_end(self, student, fee_structure):
        created = FeeService.generate_installments(
            student, ACADEMIC_YEAR, number_of_installments=3, first_due_date=date(2024, 1, 31)
        )
        assert [i.due_date for i in created] == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)]

    def test_interval_months(self, student, fee_structure):
        created = FeeService.generate_installments(
            student, ACADEMIC_YEAR, number_of_installments=2, first_due_date=date(2024, 11, 15), interval_months=3
        )
        assert [i.due_date for i in created] == [date(2024, 11, 15), date(2025, 2, 15)]


class TestInstallmentPayments:

    def test_payment_updates_installment_and_aggregate(self, student, installments):
        payment = FeeService.record_installment_payment(installments[0], '1500', payment_mode='upi')

        installment = FeeInstallment.all_objects.get(pk=installments[0].pk)
        assert installment.paid_amount == Decimal('1500')
        assert installment.status == 'partially_paid'

        fee = fee_record(student)
        assert fee.paid_amount == Decimal('1500')
        assert fee.pending_amount == Decimal('10500')
        assert fee.status == 'partially_paid'

        assert payment.installment_id == installment.pk
        assert payment.receipt_number.startswith('RCT-')
        assert payment.receipt_number.endswith('-0001')

    def test_receipt_numbers_are_sequential(self, installments):
        first = FeeService.record_installment_payment(installments[0], '100')
        second = FeeService.record_installment_payment(installments[1], '100')
        assert first.receipt_number.endswith('-0001')
        assert second.receipt_number.endswith('-0002')

    def test_overpayment_rejected(self, installments):
        with pytest.raises(ValidationError, match='exceeds pending amount'):
            FeeService.record_installment_payment(installments[0], '4000.01')
        assert not FeePayment.all_objects.exists()

    @pytest.mark.parametrize('amount', [Decimal('NaN'), 'Infinity', 'abc'])
    def test_non_finite_amount_rejected(self, installments, amount):
        with pytest.raises(ValidationError, match='Invalid amount'):
            FeeService.record_installment_payment(installments[0], amount)
        assert not FeePayment.all_objects.exists()

    def test_stale_second_payment_is_rejected(self, student, installments):
        clerk_a = FeeInstallment.all_objects.get(pk=installments[0].pk)
        clerk_b = FeeInstallment.all_objects.get(pk=installments[0].pk)

        FeeService.record_installment_payment(clerk_a, '4000')
        with pytest.raises(ValidationError, match='no longer has'):
            FeeService.record_installment_payment(clerk_b, '4000')

        installment = FeeInstallment.all_objects.get(pk=installments[0].pk)
        assert installment.paid_amount == Decimal('4000')
        assert installment.status == 'paid'
        assert fee_record(student).paid_amount == Decimal('4000')
        assert FeePayment.all_objects.count() == 1

    def test_overdue_is_kept_until_fully_paid(self, student, fee_structure):
        (installment,) = FeeService.generate_installments(student, ACADEMIC_YEAR)
        StudentFee.all_objects.filter(student=student).update(status='overdue')

        FeeService.record_installment_payment(installment, '2000')
        assert fee_record(student).status == 'overdue'

        installment = FeeInstallment.all_objects.get(pk=installment.pk)
        FeeService.record_installment_payment(installment, '10000')
        assert fee_record(student).status == 'paid'


class TestApplyPaymentOnStoredInstallments:

    def test_aggregate_covers_every_installment_of_the_year(self, student, installments):
        updated, aggregate = apply_payment(installments[0], Decimal('100'))

        assert updated.paid_amount == Decimal('100')
        assert aggregate.total_fee == Decimal('12000')
        assert aggregate.paid_amount == Decimal('100')
        assert aggregate.pending_amount == Decimal('11900')
        assert aggregate.status == 'partially_paid'

    def test_stored_discount_is_used(self, student, installments):
        FeeService.apply_discount(fee_record(student), '2000')
        _, aggregate = apply_payment(installments[1], Decimal('500'))
        assert aggregate.net_fee == Decimal('10000')

    def test_nothing_is_saved(self, student, installments):
        apply_payment(installments[0], Decimal('100'))
        assert FeeInstallment.all_objects.get(pk=installments[0].pk).paid_amount == Decimal('0')
        assert fee_record(student).paid_amount == Decimal('0')


class TestCollectPayment:

    def test_spreads_oldest_due_first(self, student, installments):
        FeeService.collect_payment(fee_record(student), '5000')

        paid = list(
            FeeInstallment.all_objects.filter(student=student)
            .order_by('installment_number')
            .values_list('paid_amount', 'status')
        )
        assert paid == [
            (Decimal('4000'), 'paid'),
            (Decimal('1000'), 'partially_paid'),
            (Decimal('0'), 'unpaid'),
        ]
        assert fee_record(student).paid_amount == Decimal('5000')

    def test_cannot_exceed_pending(self, student, installments):
        with pytest.raises(ValidationError, match='cannot exceed pending amount'):
            FeeService.collect_payment(fee_record(student), '12000.50')


class TestDiscounts:

    def test_discount_sets_net_fee_and_records_approval(self, student, installments):
        fee = FeeService.apply_discount(fee_record(student), '2000', reason='Sibling', user_id='admin-1')

        assert fee.net_fee == Decimal('10000')
        approval = FeeDiscountApproval.all_objects.get(student_fee=fee)
        assert approval.status == 'approved'
        assert approval.requested_amount == Decimal('2000')

        FeeService.record_installment_payment(installments[0], '500')
        fee = fee_record(student)
        assert fee.discount_amount == Decimal('2000')
        assert fee.net_fee == Decimal('10000')

    def test_discount_must_be_below_total(self, student, installments):
        with pytest.raises(ValidationError, match='less than total fee'):
            FeeService.apply_discount(fee_record(student), '12000')


class TestStudentFeeDeletion:

    def test_instance_delete_blocked_while_installments_exist(self, student, installments):
        with pytest.raises(ValidationError, match='cannot be deleted while installments exist'), transaction.atomic():
            fee_record(student).delete()
        assert StudentFee.all_objects.filter(student=student).exists()

    def test_queryset_delete_blocked_while_installments_exist(self, student, installments):
        with pytest.raises(ValidationError, match='cannot be deleted while installments exist'), transaction.atomic():
            StudentFee.all_objects.filter(student=student).delete()
        assert StudentFee.all_objects.filter(student=student).count() == 1
        assert FeeInstallment.all_objects.filter(student=student).count() == 3

    def test_record_without_installments_can_be_deleted(self, school, student):
        StudentFee.all_objects.create(school=school, student=student, academic_year=ACADEMIC_YEAR)
        fee_record(student).delete()
        assert not StudentFee.all_objects.filter(student=student).exists()

    def test_deleting_the_student_removes_everything(self, student, installments):
        student_id = student.pk
        student.delete()
        assert not StudentFee.all_objects.filter(student_id=student_id).exists()
        assert not FeeInstallment.all_objects.filter(student_id=student_id).exists()


class TestBackfillAndOverview:

    def test_backfill_creates_missing_records(self, school, student, fee_structure, make_student):
        unplaced = make_student('Kiran Das', class_id=None, section_id=None)

        result = FeeService.backfill_missing_fees(school, ACADEMIC_YEAR)

        assert result['created'] == 1
        assert result['skipped'] == 1
        assert 'Skipped 1 students' in result['message']
        assert fee_record(student).total_fee == Decimal('12000')
        assert not StudentFee.all_objects.filter(student=unplaced).exists()

    def test_backfill_is_idempotent(self, school, student, fee_structure):
        FeeService.backfill_missing_fees(school, ACADEMIC_YEAR)
        assert FeeService.backfill_missing_fees(school, ACADEMIC_YEAR)['created'] == 0

    def test_reconcile_adds_backfill_payment(self, school, student, installments):
        FeeInstallment.all_objects.filter(pk=installments[0].pk).update(paid_amount=Decimal('4000'))
        FeeService.recompute_for(student, ACADEMIC_YEAR)

        assert FeeService.reconcile_payment_records(school, ACADEMIC_YEAR) == 1
        payment = FeePayment.all_objects.get()
        assert payment.receipt_number.startswith('BACKFILL-')
        assert payment.amount == Decimal('4000')

    def test_overview_lists_students_without_records(self, school, student, installments, make_student):
        make_student('Kiran Das')
        rows = fee_overview(school, ACADEMIC_YEAR)

        by_name = {row['student_name']: row for row in rows}
        assert by_name['Asha Verma']['total_fee'] == Decimal('12000')
        assert by_name['Kiran Das']['status'] == NOT_GENERATED

        totals = overview_totals(rows)
        assert totals['students'] == 2
        assert totals['not_generated'] == 1
        assert totals['pending'] == Decimal('12000')

    def test_overview_totals_separate_discount(self, school, student, installments):
        FeeService.apply_discount(fee_record(student), '2000')
        FeeService.record_installment_payment(installments[0], '4000')

        totals = overview_totals(fee_overview(school, ACADEMIC_YEAR))
        assert totals['total_fee'] == Decimal('12000')
        assert totals['discount'] == Decimal('2000')
        assert totals['net_fee'] == Decimal('10000')
        assert totals['collected'] + totals['pending'] == totals['total_fee']

    def test_overview_filters_by_status(self, school, student, installments, make_student):
        make_student('Kiran Das')
        rows = fee_overview(school, ACADEMIC_YEAR, {'status': NOT_GENERATED})
        assert [row['student_name'] for row in rows] == ['Kiran Das']
