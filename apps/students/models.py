# students/models.py

from django.db import models
from django.utils import timezone

from utils.models import BaseModel


# =============================================================================
# PARENT MODEL
# =============================================================================

class Parent(BaseModel):

    RELATIONSHIP_CHOICES = [
        ('father', 'Father'),
        ('mother', 'Mother'),
        ('guardian', 'Guardian'),
    ]

    name = models.CharField("Name", max_length=150)
    relationship = models.CharField("Relationship", max_length=10, choices=RELATIONSHIP_CHOICES, default='guardian')
    phone = models.CharField("Phone", max_length=20, db_index=True)
    email = models.EmailField("Email", blank=True)
    occupation = models.CharField("Occupation", max_length=100, blank=True)
    address = models.TextField("Address", blank=True)

    # Login account for the parent portal, when one exists
    user_id = models.CharField(max_length=64, blank=True, null=True, db_index=True)

    class Meta:
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['school', 'phone'], name='unique_parent_phone_per_school'),
        ]

    def __str__(self):
        return f"{self.name} ({self.phone})"


# =============================================================================
# STUDENT MODEL
# =============================================================================

class Student(BaseModel):

    GENDER_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
        ('other', 'Other'),
    ]

    BLOOD_GROUP_CHOICES = [
        ('A+', 'A+'), ('A-', 'A-'),
        ('B+', 'B+'), ('B-', 'B-'),
        ('AB+', 'AB+'), ('AB-', 'AB-'),
        ('O+', 'O+'), ('O-', 'O-'),
    ]

    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('graduated', 'Graduated'),
        ('transferred', 'Transferred'),
    ]

    # -------------------------------------------------------------------------
    # IDENTIFICATION
    # -------------------------------------------------------------------------

    admission_number = models.CharField("Admission Number", max_length=30)
    name = models.CharField("Full Name", max_length=150, db_index=True)
    date_of_birth = models.DateField("Date of Birth", null=True, blank=True)
    gender = models.CharField("Gender", max_length=10, choices=GENDER_CHOICES, default='male')
    blood_group = models.CharField("Blood Group", max_length=3, choices=BLOOD_GROUP_CHOICES, blank=True)
    photo = models.ImageField("Photo", upload_to='students/photos/', blank=True, null=True)

    # -------------------------------------------------------------------------
    # PLACEMENT
    # -------------------------------------------------------------------------

    school_class = models.ForeignKey(
        'academics.SchoolClass',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='students',
    )
    section = models.ForeignKey(
        'academics.Section',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='students',
    )
    parent = models.ForeignKey(
        Parent,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='children',
    )
    status = models.CharField("Status", max_length=12, choices=STATUS_CHOICES, default='active', db_index=True)
    admission_date = models.DateField("Admission Date", default=timezone.localdate)

    # -------------------------------------------------------------------------
    # OTHER DETAILS
    # -------------------------------------------------------------------------

    address = models.TextField("Address", blank=True)
    medical_info = models.TextField("Medical Information", blank=True)

    class Meta:
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['school', 'admission_number'], name='unique_admission_number_per_school'),
        ]

    def __str__(self):
        return f"{self.name} ({self.admission_number})"

    @property
    def class_label(self):
        if not self.school_class_id:
            return ''
        if self.section_id:
            return str(self.section)
        return self.school_class.name
