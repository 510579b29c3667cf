# expenses/services.py

"""
Expense book: filtered listings, period summaries and writes.
"""

from decimal import Decimal

from django.db import transaction
from django.db.models import Count, Sum
from django.utils import timezone
import logging

from .models import Expense

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


def current_month(today=None):
    """(first of this month, today)"""
    today = today or timezone.localdate()
    return today.replace(day=1), today


class ExpenseService:

    @staticmethod
    def expenses_for(start=None, end=None, category=None):
        expenses = Expense.objects.all()
        if start:
            expenses = expenses.filter(date__gte=start)
        if end:
            expenses = expenses.filter(date__lte=end)
        if category:
            expenses = expenses.filter(category=category)
        return expenses.order_by('-date', '-created_at')

    @staticmethod
    def summary(expenses):
        """
        Totals for a listing.

        Returns:
            dict: total, count, per-category amounts and the latest entry
        """
        totals = expenses.aggregate(total=Sum('amount'), count=Count('id'))
        by_category = {
            row['category']: row['amount']
            for row in expenses.order_by().values('category').annotate(amount=Sum('amount'))
        }
        latest = expenses.first()
        return {
            'total': totals['total'] or ZERO,
            'count': totals['count'],
            'by_category': {code: by_category.get(code, ZERO) for code, _label in Expense.CATEGORY_CHOICES},
            'most_recent': {'title': latest.title, 'date': latest.date.isoformat()} if latest else None,
        }

    @staticmethod
    @transaction.atomic
    def save(form):
        created = form.instance._state.adding
        expense = form.save()
        logger.info(f"{'Recorded' if created else 'Updated'} expense {expense}")
        return expense

    @staticmethod
    def delete(expense):
        label = str(expense)
        expense.delete()
        logger.info(f"Deleted expense {label}")
