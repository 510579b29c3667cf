# hr/models.py

from decimal import Decimal

from django.db import models
from django.utils import timezone

from utils.models import BaseModel


class Educator(BaseModel):

    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('resigned', 'Resigned'),
    ]

    # -------------------------------------------------------------------------
    # IDENTIFICATION
    # -------------------------------------------------------------------------

    employee_id = models.CharField("Employee ID", max_length=30)
    name = models.CharField("Full Name", max_length=150, db_index=True)
    photo = models.ImageField("Photo", upload_to='educators/photos/', blank=True, null=True)

    # -------------------------------------------------------------------------
    # CONTACT
    # -------------------------------------------------------------------------

    phone = models.CharField("Phone", max_length=20, blank=True)
    email = models.EmailField("Email", blank=True)
    address = models.TextField("Address", blank=True)

    # -------------------------------------------------------------------------
    # EMPLOYMENT
    # -------------------------------------------------------------------------

    designation = models.CharField("Designation", max_length=100, blank=True)
    qualification = models.CharField("Qualification", max_length=150, blank=True)
    experience_years = models.DecimalField(
        "Experience (Years)", max_digits=4, decimal_places=1, default=Decimal('0')
    )
    joining_date = models.DateField("Joining Date", default=timezone.localdate)
    status = models.CharField("Status", max_length=10, choices=STATUS_CHOICES, default='active', db_index=True)

    # Login account for the educator portal, when one exists
    user_id = models.CharField(max_length=64, blank=True, null=True)

    class Meta:
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['school', 'employee_id'], name='unique_employee_id_per_school'),
        ]

    def __str__(self):
        return f"{self.name} ({self.employee_id})"
