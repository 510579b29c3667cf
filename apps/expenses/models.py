# expenses/models.py

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from utils.models import BaseModel


class Expense(BaseModel):
    """Money paid out by the school: salaries, repairs, events, supplies."""

    CATEGORY_CHOICES = [
        ('maintenance', 'Maintenance'),
        ('salary', 'Salary'),
        ('events', 'Events'),
        ('utilities', 'Utilities'),
        ('supplies', 'Supplies'),
        ('other', 'Other'),
    ]

    PAYMENT_METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('bank_transfer', 'Bank Transfer'),
        ('upi', 'UPI'),
        ('cheque', 'Cheque'),
        ('card', 'Card'),
    ]

    title = models.CharField("Title", max_length=200)
    category = models.CharField("Category", max_length=15, choices=CATEGORY_CHOICES, default='other', db_index=True)
    amount = models.DecimalField(
        "Amount", max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))]
    )
    date = models.DateField("Date", default=timezone.localdate, db_index=True)
    payment_method = models.CharField(
        "Payment Method", max_length=15, choices=PAYMENT_METHOD_CHOICES, default='cash'
    )
    paid_to = models.CharField("Paid To", max_length=200, blank=True)
    description = models.TextField("Description", blank=True)

    class Meta:
        ordering = ['-date', '-created_at']

    def __str__(self):
        return f"{self.title} ({self.amount} on {self.date})"
