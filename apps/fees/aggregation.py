# fees/aggregation.py

"""
Fee aggregation.

A StudentFee row is a cache of a fold over the student's installments for
one academic year. The functions here compute that fold and validate a
payment against an installment; services.py persists the results. Only
apply_payment reads the database, to load the stored siblings of a saved
installment when the caller does not pass them.

Inputs are duck-typed on `amount` / `paid_amount` so model instances and
InstallmentState values can be mixed.
"""

from dataclasses import dataclass, replace
from decimal import Decimal

from django.core.exceptions import ValidationError

ZERO = Decimal('0.00')

STATUS_UNPAID = 'unpaid'
STATUS_PARTIAL = 'partially_paid'
STATUS_PAID = 'paid'
STATUS_OVERDUE = 'overdue'


def _money(value):
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class InstallmentState:
    amount: Decimal
    paid_amount: Decimal = ZERO
    status: str = STATUS_UNPAID
    id: object = None

    @property
    def pending_amount(self):
        return self.amount - self.paid_amount

    @classmethod
    def from_instance(cls, installment):
        if isinstance(installment, cls):
            return installment
        return cls(
            amount=_money(installment.amount),
            paid_amount=_money(installment.paid_amount),
            status=getattr(installment, 'status', None) or STATUS_UNPAID,
            id=getattr(installment, 'pk', None),
        )


@dataclass(frozen=True)
class StudentFeeAggregate:
    total_fee: Decimal
    paid_amount: Decimal
    pending_amount: Decimal
    discount_amount: Decimal
    net_fee: Decimal
    status: str

    def as_dict(self):
        return {
            'total_fee': self.total_fee,
            'paid_amount': self.paid_amount,
            'pending_amount': self.pending_amount,
            'discount_amount': self.discount_amount,
            'net_fee': self.net_fee,
            'status': self.status,
        }


def derive_status(paid_amount, total):
    """paid / partially_paid / unpaid from amounts. Never returns overdue."""
    paid_amount = _money(paid_amount)
    total = _money(total)
    if total > 0 and paid_amount >= total:
        return STATUS_PAID
    if ZERO < paid_amount < total:
        return STATUS_PARTIAL
    return STATUS_UNPAID


def keep_overdue(stored_status, derived_status):
    """
    Overdue is written by an external job; a recompute keeps it until the
    fee is fully paid.
    """
    if stored_status == STATUS_OVERDUE and derived_status != STATUS_PAID:
        return STATUS_OVERDUE
    return derived_status


def recompute_student_fee(installments, discount_amount=ZERO):
    """
    Fold installments into the StudentFee aggregate.

    Order-independent; no clamping. Zero installments give a zero total
    and `unpaid`.
    """
    total_fee = ZERO
    paid_amount = ZERO
    for installment in installments:
        total_fee += _money(installment.amount)
        paid_amount += _money(installment.paid_amount)

    discount_amount = _money(discount_amount)
    return StudentFeeAggregate(
        total_fee=total_fee,
        paid_amount=paid_amount,
        pending_amount=total_fee - paid_amount,
        discount_amount=discount_amount,
        net_fee=total_fee - discount_amount,
        status=derive_status(paid_amount, total_fee),
    )


def validate_payment_amount(installment, amount):
    """Raise ValidationError unless 0 < amount <= pending."""
    amount = _money(amount)
    pending = _money(installment.amount) - _money(installment.paid_amount)
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than zero.")
    if amount > pending:
        raise ValidationError(
            f"Payment amount ({amount}) exceeds pending amount ({pending})."
        )
    return amount


def _same_installment(candidate, target):
    if candidate is target:
        return True
    candidate_id = getattr(candidate, 'pk', None) or getattr(candidate, 'id', None)
    target_id = getattr(target, 'pk', None) or getattr(target, 'id', None)
    return candidate_id is not None and candidate_id == target_id


def _stored_siblings(installment):
    """Every stored installment of the same (student, year) and its discount."""
    model = installment._meta.model
    siblings = list(
        model.all_objects.filter(
            student_id=installment.student_id, academic_year=installment.academic_year
        ).order_by('installment_number')
    )
    student_fee = installment.student.student_fees.filter(academic_year=installment.academic_year).first()
    return siblings, (student_fee.discount_amount if student_fee else ZERO)


def apply_payment(installment, amount, installments=None, discount_amount=None):
    """
    Apply a payment to one installment.

    `installments` is every installment of the same (student, year),
    the target included. When omitted for a saved installment the stored
    siblings and the stored discount are used; a bare InstallmentState
    stands alone.

    Returns:
        (InstallmentState, StudentFeeAggregate)

    Raises:
        ValidationError: amount <= 0 or amount > pending. Nothing is
        changed in that case.
    """
    amount = validate_payment_amount(installment, amount)

    current = InstallmentState.from_instance(installment)
    new_paid = current.paid_amount + amount
    updated = replace(
        current,
        paid_amount=new_paid,
        status=derive_status(new_paid, current.amount),
    )

    if installments is not None:
        siblings = list(installments)
    elif getattr(installment, '_meta', None) is not None and installment.pk is not None:
        siblings, stored_discount = _stored_siblings(installment)
        if discount_amount is None:
            discount_amount = stored_discount
    else:
        siblings = [installment]
    if discount_amount is None:
        discount_amount = ZERO

    folded = []
    found = False
    for candidate in siblings:
        if not found and _same_installment(candidate, installment):
            folded.append(updated)
            found = True
        else:
            folded.append(candidate)
    if not found:
        folded.append(updated)

    return updated, recompute_student_fee(folded, discount_amount=discount_amount)
