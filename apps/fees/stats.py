# fees/stats.py

"""
Statistics helpers for fee records and payments.
Used by the fee dashboard and the admin dashboard.
"""

from django.db.models import Count, Sum
from django.db.models.functions import Coalesce, TruncMonth
from django.db.models import DecimalField, Value
from decimal import Decimal
import logging

logger = logging.getLogger(__name__)

ZERO = Value(Decimal('0.00'), output_field=DecimalField(max_digits=12, decimal_places=2))


# =============================================================================
# FEE RECORD STATISTICS
# =============================================================================

def get_fee_statistics(academic_year):
    """
    Totals over StudentFee records of the current school for a year.

    Returns:
        dict: totals, collection rate and counts per status
    """
    from .models import StudentFee

    fees = StudentFee.objects.filter(academic_year=academic_year)

    totals = fees.aggregate(
        total_fee=Coalesce(Sum('total_fee'), ZERO),
        discounts=Coalesce(Sum('discount_amount'), ZERO),
        net_fee=Coalesce(Sum('net_fee'), ZERO),
        collected=Coalesce(Sum('paid_amount'), ZERO),
        pending=Coalesce(Sum('pending_amount'), ZERO),
    )

    by_status = {row['status']: row['count'] for row in fees.order_by().values('status').annotate(count=Count('id'))}

    collection_rate = 0.0
    if totals['net_fee'] > 0:
        collection_rate = round(float(totals['collected'] / totals['net_fee'] * 100), 1)

    return {
        **totals,
        'records': sum(by_status.values()),
        'by_status': {
            'paid': by_status.get('paid', 0),
            'partially_paid': by_status.get('partially_paid', 0),
            'unpaid': by_status.get('unpaid', 0),
            'overdue': by_status.get('overdue', 0),
        },
        'collection_rate': collection_rate,
    }


# =============================================================================
# PAYMENT STATISTICS
# =============================================================================

def get_payment_statistics(start_date=None, end_date=None):
    """
    Payment totals in a date range, by mode and by month.
    """
    from .models import FeePayment

    payments = FeePayment.objects.all()
    if start_date:
        payments = payments.filter(payment_date__gte=start_date)
    if end_date:
        payments = payments.filter(payment_date__lte=end_date)

    summary = payments.aggregate(total=Coalesce(Sum('amount'), ZERO), count=Count('id'))

    by_mode = {
        row['payment_mode']: row['total']
        for row in payments.order_by().values('payment_mode').annotate(total=Sum('amount'))
    }

    by_month = [
        {'month': row['month'].strftime('%Y-%m'), 'total': row['total']}
        for row in payments.annotate(month=TruncMonth('payment_date'))
        .values('month').annotate(total=Sum('amount')).order_by('month')
        if row['month']
    ]

    return {
        'total': summary['total'],
        'count': summary['count'],
        'by_mode': by_mode,
        'by_month': by_month,
    }
