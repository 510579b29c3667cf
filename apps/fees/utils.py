# fees/utils.py

"""
Fee utility functions

Contains:
- Receipt number generation
- Receipt payload for display/printing
- Status display helpers
"""

from django.conf import settings
from django.db import transaction
from django.utils import timezone
import logging

from utils.utils import last_sequence

logger = logging.getLogger(__name__)

RECEIPT_PREFIX = 'RCT'


# =============================================================================
# REFERENCE NUMBER GENERATION
# =============================================================================

def generate_receipt_number(school_id, year=None):
    """
    Next receipt number for a school.
    Format: RCT-2024-0001, sequential per school and calendar year.

    Returns:
        str: Unique receipt number
    """
    from fees.models import FeePayment

    year = year or timezone.now().year
    search_prefix = f"{RECEIPT_PREFIX}-{year}-"

    with transaction.atomic():
        numbers = list(
            FeePayment.all_objects.select_for_update()
            .filter(school_id=school_id, receipt_number__startswith=search_prefix)
            .values_list('receipt_number', flat=True)
        )
        new_number = last_sequence(numbers, search_prefix) + 1

    return f"{search_prefix}{new_number:04d}"


# =============================================================================
# DISPLAY HELPERS
# =============================================================================


def format_amount(amount):
    symbol = getattr(settings, 'SCHOOLDESK_CURRENCY_SYMBOL', '')
    return f"{symbol}{amount:,.2f}"


def build_receipt(payment):
    """
    Receipt payload for a FeePayment.

    Returns:
        dict: JSON-safe receipt data
    """
    student_fee = payment.student_fee
    student = student_fee.student
    school = payment.school

    return {
        'receipt_number': payment.receipt_number,
        'payment_date': payment.payment_date.isoformat(),
        'school': {
            'name': school.name,
            'address': school.address,
            'phone': school.contact_phone,
        },
        'student': {
            'id': str(student.pk),
            'name': student.name,
            'admission_number': student.admission_number,
            'class': student.class_label,
        },
        'academic_year': student_fee.academic_year,
        'installment': (
            payment.installment.installment_name or f"Installment {payment.installment.installment_number}"
            if payment.installment_id else None
        ),
        'amount': str(payment.amount),
        'amount_display': format_amount(payment.amount),
        'payment_mode': payment.get_payment_mode_display(),
        'transaction_ref': payment.transaction_ref or '',
        'remarks': payment.remarks or '',
        'balance_after': str(student_fee.pending_amount),
    }
