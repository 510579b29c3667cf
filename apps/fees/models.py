# fees/models.py

"""
Fee models.

FeeType / ClassFeeStructure describe what a class owes per year.
FeeInstallment rows are the payment obligations of one student for one
academic year. StudentFee is the per (student, year) aggregate: a cache of
a fold over that student's installments (see fees.aggregation), created
lazily and refreshed whenever an installment changes.
"""

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from utils.models import BaseModel

ZERO = Decimal('0.00')

FEE_STATUS_UNPAID = 'unpaid'
FEE_STATUS_PARTIAL = 'partially_paid'
FEE_STATUS_PAID = 'paid'
FEE_STATUS_OVERDUE = 'overdue'

FEE_STATUS_CHOICES = [
    (FEE_STATUS_UNPAID, 'Unpaid'),
    (FEE_STATUS_PARTIAL, 'Partially Paid'),
    (FEE_STATUS_PAID, 'Paid'),
    (FEE_STATUS_OVERDUE, 'Overdue'),
]


# =============================================================================
# FEE DEFINITIONS
# =============================================================================

class FeeType(BaseModel):

    FREQUENCY_CHOICES = [
        ('one_time', 'One Time'),
        ('monthly', 'Monthly'),
        ('quarterly', 'Quarterly'),
        ('half_yearly', 'Half Yearly'),
        ('annual', 'Annual'),
    ]

    name = models.CharField("Fee Type", max_length=100)
    description = models.TextField("Description", blank=True)
    frequency = models.CharField("Frequency", max_length=15, choices=FREQUENCY_CHOICES, default='annual')
    is_mandatory = models.BooleanField("Mandatory", default=True)
    is_active = models.BooleanField("Active", default=True)

    class Meta:
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['school', 'name'], name='unique_fee_type_per_school'),
        ]

    def __str__(self):
        return self.name


class ClassFeeStructure(BaseModel):
    """One cell of the fee matrix: amount of a fee type for a class in a year."""

    school_class = models.ForeignKey('academics.SchoolClass', on_delete=models.CASCADE, related_name='fee_structures')
    fee_type = models.ForeignKey(FeeType, on_delete=models.CASCADE, related_name='class_structures')
    academic_year = models.CharField("Academic Year", max_length=9, db_index=True)
    amount = models.DecimalField(
        "Amount", max_digits=12, decimal_places=2, validators=[MinValueValidator(ZERO)]
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['school_class', 'fee_type', 'academic_year'],
                name='unique_fee_matrix_cell',
            ),
        ]

    def __str__(self):
        return f"{self.school_class} / {self.fee_type} ({self.academic_year}): {self.amount}"


# =============================================================================
# INSTALLMENTS
# =============================================================================

class FeeInstallment(BaseModel):

    student = models.ForeignKey('students.Student', on_delete=models.CASCADE, related_name='fee_installments')
    academic_year = models.CharField("Academic Year", max_length=9, db_index=True)
    installment_number = models.PositiveIntegerField("Installment Number", default=1)
    installment_name = models.CharField("Installment Name", max_length=100, blank=True)
    due_date = models.DateField("Due Date", null=True, blank=True)

    amount = models.DecimalField(
        "Amount", max_digits=12, decimal_places=2, validators=[MinValueValidator(ZERO)]
    )
    paid_amount = models.DecimalField(
        "Paid Amount", max_digits=12, decimal_places=2, default=ZERO, validators=[MinValueValidator(ZERO)]
    )
    status = models.CharField("Status", max_length=15, choices=FEE_STATUS_CHOICES, default=FEE_STATUS_UNPAID)

    class Meta:
        ordering = ['academic_year', 'installment_number']
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'academic_year', 'installment_number'],
                name='unique_installment_number',
            ),
        ]

    def __str__(self):
        label = self.installment_name or f"Installment {self.installment_number}"
        return f"{self.student} - {label} ({self.academic_year})"

    @property
    def pending_amount(self):
        return self.amount - self.paid_amount

    def clean(self):
        if self.paid_amount is not None and self.amount is not None and self.paid_amount > self.amount:
            raise ValidationError("Paid amount cannot exceed the installment amount.")


# =============================================================================
# STUDENT FEE AGGREGATE
# =============================================================================

class StudentFee(BaseModel):

    student = models.ForeignKey('students.Student', on_delete=models.CASCADE, related_name='student_fees')
    academic_year = models.CharField("Academic Year", max_length=9, db_index=True)

    # -------------------------------------------------------------------------
    # DERIVED FROM INSTALLMENTS
    # -------------------------------------------------------------------------

    total_fee = models.DecimalField("Total Fee", max_digits=12, decimal_places=2, default=ZERO)
    paid_amount = models.DecimalField("Paid Amount", max_digits=12, decimal_places=2, default=ZERO)
    pending_amount = models.DecimalField("Pending Amount", max_digits=12, decimal_places=2, default=ZERO)
    net_fee = models.DecimalField("Net Fee", max_digits=12, decimal_places=2, default=ZERO)
    status = models.CharField("Status", max_length=15, choices=FEE_STATUS_CHOICES, default=FEE_STATUS_UNPAID, db_index=True)

    # -------------------------------------------------------------------------
    # DISCOUNT
    # -------------------------------------------------------------------------

    discount_amount = models.DecimalField("Discount", max_digits=12, decimal_places=2, default=ZERO)
    discount_reason = models.TextField("Discount Reason", blank=True)
    discount_approved_by = models.CharField(max_length=64, blank=True, null=True)
    discount_approved_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ['academic_year', 'student__name']
        constraints = [
            models.UniqueConstraint(fields=['student', 'academic_year'], name='unique_student_fee_per_year'),
        ]

    def __str__(self):
        return f"{self.student} ({self.academic_year}): {self.status}"

    def installments(self):
        return FeeInstallment.all_objects.filter(student_id=self.student_id, academic_year=self.academic_year)



# =============================================================================
# PAYMENTS
# =============================================================================

class FeePayment(BaseModel):

    PAYMENT_MODE_CHOICES = [
        ('cash', 'Cash'),
        ('cheque', 'Cheque'),
        ('online', 'Online'),
        ('card', 'Card'),
        ('upi', 'UPI'),
    ]

    student_fee = models.ForeignKey(StudentFee, on_delete=models.CASCADE, related_name='payments')
    installment = models.ForeignKey(
        FeeInstallment,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='payments',
    )
    receipt_number = models.CharField("Receipt Number", max_length=30, db_index=True)
    amount = models.DecimalField("Amount", max_digits=12, decimal_places=2)
    payment_mode = models.CharField("Payment Mode", max_length=10, choices=PAYMENT_MODE_CHOICES, default='cash')
    transaction_ref = models.CharField("Transaction Reference", max_length=100, blank=True, null=True)
    payment_date = models.DateField("Payment Date", default=timezone.localdate, db_index=True)
    paid_by = models.CharField("Collected By", max_length=64, blank=True, null=True)
    remarks = models.TextField("Remarks", blank=True, null=True)
    is_locked = models.BooleanField("Locked", default=True)

    class Meta:
        ordering = ['-payment_date', '-created_at']

    def __str__(self):
        return f"{self.receipt_number}: {self.amount}"


class FeeDiscountApproval(BaseModel):

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    ]

    student_fee = models.ForeignKey(StudentFee, on_delete=models.CASCADE, related_name='discount_approvals')
    student = models.ForeignKey('students.Student', on_delete=models.CASCADE, related_name='discount_approvals')
    requested_by = models.CharField(max_length=64, blank=True, null=True)
    requested_amount = models.DecimalField(max_digits=12, decimal_places=2)
    reason = models.TextField(blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='pending')
    reviewed_by = models.CharField(max_length=64, blank=True, null=True)
    reviewed_at = models.DateTimeField(blank=True, null=True)
    review_comments = models.TextField(blank=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.student} discount {self.requested_amount} ({self.status})"
