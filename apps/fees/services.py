# fees/services.py

"""
Core Fee Operations

Payments, discounts, installment generation and aggregate maintenance.
The arithmetic lives in fees/aggregation.py; this module persists it.
"""

from decimal import Decimal, ROUND_DOWN

from dateutil.relativedelta import relativedelta
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, Q, Sum
from django.utils import timezone
import logging

from fees.aggregation import (
    ZERO,
    derive_status,
    keep_overdue,
    recompute_student_fee,
    validate_payment_amount,
)
from fees.models import (
    ClassFeeStructure,
    FeeDiscountApproval,
    FeeInstallment,
    FeePayment,
    StudentFee,
)
from fees.utils import generate_receipt_number
from students.models import Student
from utils.utils import to_decimal

logger = logging.getLogger(__name__)

NOT_GENERATED = 'not_generated'
BACKFILL_PREFIX = 'BACKFILL-'


# =============================================================================
# FEE SERVICE
# =============================================================================

class FeeService:
    """
    Fee write paths. Every method that touches installments leaves the
    student's StudentFee aggregate re-derived from them.
    """

    @staticmethod
    def installments_for(student, academic_year):
        return FeeInstallment.all_objects.filter(
            student_id=student.pk, academic_year=academic_year
        ).order_by('installment_number')

    @staticmethod
    @transaction.atomic
    def recompute_for(student, academic_year, create=True):
        """
        Refresh the cached aggregate from installments, creating it when
        missing unless `create` is False.

        Returns:
            StudentFee instance, or None when missing and not created
        """
        lookup = {
            'school_id': student.school_id,
            'student_id': student.pk,
            'academic_year': academic_year,
        }
        if create:
            student_fee, created = StudentFee.all_objects.get_or_create(**lookup)
        else:
            student_fee = StudentFee.all_objects.filter(**lookup).first()
            created = False
            if student_fee is None:
                return None

        aggregate = recompute_student_fee(
            FeeService.installments_for(student, academic_year),
            discount_amount=student_fee.discount_amount,
        )

        student_fee.total_fee = aggregate.total_fee
        student_fee.paid_amount = aggregate.paid_amount
        student_fee.pending_amount = aggregate.pending_amount
        student_fee.net_fee = aggregate.net_fee
        student_fee.status = keep_overdue(student_fee.status, aggregate.status)
        student_fee.save()

        if created:
            logger.info(f"Created fee record for {student} ({academic_year})")

        return student_fee

    # -------------------------------------------------------------------------
    # PAYMENTS
    # -------------------------------------------------------------------------

    @staticmethod
    def _claim_installment_amount(installment_id, amount):
        """
        Add `amount` to an installment's paid_amount in one conditional
        UPDATE. Returns False when the row no longer has that much pending.
        """
        updated = FeeInstallment.all_objects.filter(
            pk=installment_id,
            paid_amount__lte=F('amount') - amount,
        ).update(
            paid_amount=F('paid_amount') + amount,
            updated_at=timezone.now(),
        )
        return updated == 1

    @staticmethod
    def _refresh_installment_status(installment):
        installment.refresh_from_db()
        status = keep_overdue(
            installment.status, derive_status(installment.paid_amount, installment.amount)
        )
        if status != installment.status:
            FeeInstallment.all_objects.filter(pk=installment.pk).update(status=status)
            installment.status = status
        return installment

    @staticmethod
    @transaction.atomic
    def record_installment_payment(installment, amount, payment_mode='cash', transaction_ref=None,
                                   payment_date=None, paid_by=None, remarks=None):
        """
        Collect a payment against one installment.

        The amount is checked against the installment as the caller saw it,
        then written with a conditional update so that a concurrent payment
        cannot push paid_amount past amount.

        Returns:
            FeePayment instance

        Raises:
            ValidationError: amount <= 0, amount > pending, or the installment
            was paid by someone else in the meantime
        """
        amount = to_decimal(amount)
        validate_payment_amount(installment, amount)

        if not FeeService._claim_installment_amount(installment.pk, amount):
            raise ValidationError(
                "Payment could not be applied: the installment no longer has "
                f"{amount} pending. Reload and try again."
            )

        installment = FeeService._refresh_installment_status(installment)
        student = installment.student
        student_fee = FeeService.recompute_for(student, installment.academic_year)

        payment = FeePayment.all_objects.create(
            school_id=installment.school_id,
            student_fee=student_fee,
            installment=installment,
            receipt_number=generate_receipt_number(installment.school_id),
            amount=amount,
            payment_mode=payment_mode,
            transaction_ref=transaction_ref,
            payment_date=payment_date or timezone.localdate(),
            paid_by=paid_by,
            remarks=remarks,
        )

        logger.info(
            f"Recorded payment {payment.receipt_number} of {amount} for {student} "
            f"({installment.academic_year}, installment {installment.installment_number})"
        )
        return payment

    @staticmethod
    @transaction.atomic
    def collect_payment(student_fee, amount, payment_mode='cash', transaction_ref=None,
                        payment_date=None, paid_by=None, remarks=None):
        """
        Lump-sum payment against the aggregate, spread across open
        installments oldest due date first.

        Returns:
            FeePayment instance
        """
        amount = to_decimal(amount)
        student = student_fee.student
        student_fee = FeeService.recompute_for(student, student_fee.academic_year)

        if amount <= 0:
            raise ValidationError("Payment amount must be greater than zero.")
        if amount > student_fee.pending_amount:
            raise ValidationError(
                f"Payment amount cannot exceed pending amount of {student_fee.pending_amount}"
            )

        open_installments = (
            FeeService.installments_for(student, student_fee.academic_year)
            .filter(paid_amount__lt=F('amount'))
            .order_by(F('due_date').asc(nulls_last=True), 'installment_number')
        )

        remaining = amount
        for installment in open_installments:
            if remaining <= 0:
                break
            share = min(remaining, installment.pending_amount)
            if not FeeService._claim_installment_amount(installment.pk, share):
                raise ValidationError(
                    "Payment could not be applied: fee record changed while saving. Reload and try again."
                )
            FeeService._refresh_installment_status(installment)
            remaining -= share

        if remaining > 0:
            raise ValidationError("Payment amount exceeds the open installments.")

        student_fee = FeeService.recompute_for(student, student_fee.academic_year)

        payment = FeePayment.all_objects.create(
            school_id=student_fee.school_id,
            student_fee=student_fee,
            receipt_number=generate_receipt_number(student_fee.school_id),
            amount=amount,
            payment_mode=payment_mode,
            transaction_ref=transaction_ref,
            payment_date=payment_date or timezone.localdate(),
            paid_by=paid_by,
            remarks=remarks,
        )

        logger.info(f"Collected {amount} from {student} ({student_fee.academic_year}): {payment.receipt_number}")
        return payment

    # -------------------------------------------------------------------------
    # DISCOUNTS
    # -------------------------------------------------------------------------

    @staticmethod
    @transaction.atomic
    def apply_discount(student_fee, amount, reason='', user_id=None):
        """
        Set the discount on a fee record. Admin-entered discounts are
        approved on the spot and the approval is recorded.
        """
        amount = to_decimal(amount, 'discount amount')
        if amount < 0:
            raise ValidationError("Discount amount cannot be negative")
        if amount >= student_fee.total_fee:
            raise ValidationError("Discount amount must be less than total fee")

        now = timezone.now()
        FeeDiscountApproval.all_objects.create(
            school_id=student_fee.school_id,
            student_fee=student_fee,
            student_id=student_fee.student_id,
            requested_by=user_id,
            requested_amount=amount,
            reason=reason,
            status='approved',
            reviewed_by=user_id,
            reviewed_at=now,
            review_comments='Auto-approved by admin',
        )

        student_fee.discount_amount = amount
        student_fee.discount_reason = reason
        student_fee.discount_approved_by = user_id
        student_fee.discount_approved_at = now
        student_fee.net_fee = student_fee.total_fee - amount
        student_fee.save()

        logger.info(f"Applied discount of {amount} to {student_fee}")
        return student_fee

    # -------------------------------------------------------------------------
    # INSTALLMENT GENERATION
    # -------------------------------------------------------------------------

    @staticmethod
    def class_fee_total(school_class, academic_year):
        total = ClassFeeStructure.all_objects.filter(
            school_class=school_class,
            academic_year=academic_year,
            fee_type__is_active=True,
        ).aggregate(total=Sum('amount'))['total']
        return total or ZERO

    @staticmethod
    @transaction.atomic
    def generate_installments(student, academic_year, number_of_installments=1,
                              first_due_date=None, interval_months=1):
        """
        Create installments for a student from the class fee matrix,
        split into equal parts; the last part takes the rounding remainder.

        Returns:
            list of FeeInstallment
        """
        if number_of_installments < 1:
            raise ValidationError("Number of installments must be at least 1.")
        if not student.school_class_id:
            raise ValidationError(f"{student.name} is not assigned to a class.")
        if FeeService.installments_for(student, academic_year).exists():
            raise ValidationError(
                f"Installments already exist for {student.name} in {academic_year}."
            )

        total = FeeService.class_fee_total(student.school_class, academic_year)
        if total <= 0:
            raise ValidationError(
                f"No fee structure defined for {student.school_class.name} in {academic_year}."
            )

        share = (total / number_of_installments).quantize(Decimal('0.01'), rounding=ROUND_DOWN)
        installments = []
        for index in range(number_of_installments):
            amount = share
            if index == number_of_installments - 1:
                amount = total - share * (number_of_installments - 1)
            due_date = None
            if first_due_date:
                due_date = first_due_date + relativedelta(months=index * interval_months)
            installments.append(FeeInstallment(
                school_id=student.school_id,
                student_id=student.pk,
                academic_year=academic_year,
                installment_number=index + 1,
                installment_name=f"Installment {index + 1}",
                due_date=due_date,
                amount=amount,
            ))

        created = FeeInstallment.all_objects.bulk_create(installments)
        FeeService.recompute_for(student, academic_year)

        logger.info(f"Generated {len(created)} installments for {student} ({academic_year}), total {total}")
        return created

    # -------------------------------------------------------------------------
    # MAINTENANCE
    # -------------------------------------------------------------------------

    @staticmethod
    def backfill_missing_fees(school, academic_year):
        """
        Create the missing fee records of a school for a year.

        Students with installments get their aggregate derived; students
        with none get a single installment from the class fee matrix.
        Students with neither are skipped. Each student commits on its own.

        Returns:
            dict: {'created': int, 'skipped': int, 'message': str}
        """
        school_id = getattr(school, 'pk', school)
        existing = StudentFee.all_objects.filter(
            school_id=school_id, academic_year=academic_year
        ).values_list('student_id', flat=True)

        students = Student.all_objects.filter(school_id=school_id).exclude(pk__in=existing)

        created = 0
        skipped = 0
        for student in students:
            try:
                if FeeService.installments_for(student, academic_year).exists():
                    FeeService.recompute_for(student, academic_year)
                elif student.school_class_id and FeeService.class_fee_total(student.school_class, academic_year) > 0:
                    FeeService.generate_installments(student, academic_year)
                else:
                    skipped += 1
                    continue
                created += 1
            except ValidationError as e:
                logger.warning(f"Backfill skipped {student}: {e}")
                skipped += 1

        message = f"Created {created} missing fee records for {academic_year}."
        if skipped:
            message += f" Skipped {skipped} students with no fee structure."
        logger.info(f"Fee backfill for school {school_id}: {message}")
        return {'created': created, 'skipped': skipped, 'message': message}

    @staticmethod
    def reconcile_payment_records(school, academic_year):
        """
        Add a BACKFILL payment wherever recorded payments fall short of the
        aggregate's paid amount by more than 1.00.

        Returns:
            int: number of payments created
        """
        school_id = getattr(school, 'pk', school)
        fees = StudentFee.all_objects.filter(
            school_id=school_id, academic_year=academic_year, paid_amount__gt=0
        ).annotate(recorded=Sum('payments__amount'))

        created = 0
        for student_fee in fees:
            recorded = student_fee.recorded or ZERO
            gap = student_fee.paid_amount - recorded
            if gap <= Decimal('1.00'):
                continue
            with transaction.atomic():
                FeePayment.all_objects.create(
                    school_id=school_id,
                    student_fee=student_fee,
                    receipt_number=f"{BACKFILL_PREFIX}{str(student_fee.pk)[:8].upper()}",
                    amount=gap,
                    payment_mode='cash',
                    remarks='Backfilled to match recorded paid amount',
                )
            created += 1

        logger.info(f"Reconciled {created} fee records for school {school_id} ({academic_year})")
        return created


# =============================================================================
# OVERVIEW
# =============================================================================

def fee_overview(school, academic_year, filters=None):
    """
    Every student of the school with their fee record for the year.
    Students with no record get a zeroed row with status 'not_generated'.

    filters: class_id, section_id, status, search (name or admission number)
    """
    filters = filters or {}
    school_id = getattr(school, 'pk', school)

    students = Student.all_objects.filter(school_id=school_id).select_related(
        'school_class', 'section'
    ).order_by('name')
    if filters.get('class_id'):
        students = students.filter(school_class_id=filters['class_id'])
    if filters.get('section_id'):
        students = students.filter(section_id=filters['section_id'])
    if filters.get('search'):
        term = filters['search']
        students = students.filter(Q(name__icontains=term) | Q(admission_number__icontains=term))

    fees = {
        fee.student_id: fee
        for fee in StudentFee.all_objects.filter(school_id=school_id, academic_year=academic_year)
    }

    rows = []
    for student in students:
        fee = fees.get(student.pk)
        row = {
            'student_id': str(student.pk),
            'student_name': student.name,
            'admission_number': student.admission_number,
            'class_name': student.school_class.name if student.school_class_id else 'N/A',
            'section_name': student.section.name if student.section_id else '',
            'class_id': str(student.school_class_id) if student.school_class_id else None,
            'section_id': str(student.section_id) if student.section_id else None,
        }
        if fee:
            row.update({
                'id': str(fee.pk),
                'total_fee': fee.total_fee,
                'discount_amount': fee.discount_amount,
                'net_fee': fee.net_fee,
                'paid_amount': fee.paid_amount,
                'pending_amount': fee.pending_amount,
                'status': fee.status,
            })
        else:
            row.update({
                'id': None,
                'total_fee': ZERO,
                'discount_amount': ZERO,
                'net_fee': ZERO,
                'paid_amount': ZERO,
                'pending_amount': ZERO,
                'status': NOT_GENERATED,
            })
        rows.append(row)

    if filters.get('status'):
        rows = [row for row in rows if row['status'] == filters['status']]
    return rows


def overview_totals(rows):
    return {
        'students': len(rows),
        'total_fee': sum((row['total_fee'] for row in rows), ZERO),
        'discount': sum((row['discount_amount'] for row in rows), ZERO),
        'net_fee': sum((row['net_fee'] for row in rows), ZERO),
        'collected': sum((row['paid_amount'] for row in rows), ZERO),
        'pending': sum((row['pending_amount'] for row in rows), ZERO),
        'not_generated': sum(1 for row in rows if row['status'] == NOT_GENERATED),
    }
