# documents/models.py

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from utils.models import BaseModel


# =============================================================================
# ID CARDS
# =============================================================================

class IDCardSettings(BaseModel):
    """One row per school: what the printed ID cards look like."""

    school_display_name = models.CharField("School Name on Card", max_length=200, blank=True)
    school_address = models.CharField("Address on Card", max_length=255, blank=True)
    principal_name = models.CharField("Principal", max_length=150, blank=True)
    current_academic_year = models.CharField("Academic Year", max_length=9, blank=True)

    # --- Appearance ---
    header_text = models.CharField("Header Text", max_length=100, default='IDENTITY CARD')
    primary_color = models.CharField("Primary Colour", max_length=7, default='#1E40AF')
    text_color = models.CharField("Text Colour", max_length=7, default='#0F172A')
    validity_text = models.CharField("Validity Text", max_length=100, blank=True)

    # --- Fields shown ---
    show_blood_group = models.BooleanField(default=True)
    show_dob = models.BooleanField(default=True)
    show_parent_phone = models.BooleanField(default=True)
    show_address = models.BooleanField(default=False)

    class Meta:
        verbose_name = "ID Card Settings"
        verbose_name_plural = "ID Card Settings"
        constraints = [
            models.UniqueConstraint(fields=['school'], name='unique_id_card_settings_per_school'),
        ]

    def __str__(self):
        return f"ID card settings for {self.school_display_name or self.school_id}"

    def clean(self):
        for field in ('primary_color', 'text_color'):
            value = getattr(self, field)
            if value and not (len(value) == 7 and value.startswith('#')):
                raise ValidationError({field: "Colours must be hex codes like #1E40AF."})


class IDCardGeneration(BaseModel):

    CARD_TYPE_CHOICES = [
        ('student', 'Student'),
        ('staff', 'Staff'),
    ]

    MODE_CHOICES = [
        ('single', 'Single'),
        ('bulk', 'Bulk'),
    ]

    card_type = models.CharField(max_length=10, choices=CARD_TYPE_CHOICES, db_index=True)
    entity_id = models.UUIDField()
    generation_mode = models.CharField(max_length=10, choices=MODE_CHOICES, default='single')
    bulk_criteria = models.JSONField(null=True, blank=True)
    generated_by = models.CharField(max_length=64, blank=True, null=True)
    status = models.CharField(max_length=10, default='success')

    class Meta:
        ordering = ['-created_at']


# =============================================================================
# AWARDS & CERTIFICATES
# =============================================================================

class AwardType(BaseModel):
    name = models.CharField("Award", max_length=100)
    category = models.CharField("Category", max_length=50, blank=True)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['school', 'name'], name='unique_award_type_per_school'),
        ]

    def __str__(self):
        return self.name


class CertificateTemplate(BaseModel):

    LAYOUT_CHOICES = [
        ('classic', 'Classic'),
        ('modern', 'Modern'),
        ('elegant', 'Elegant'),
        ('minimal', 'Minimal'),
        ('ornate', 'Ornate'),
    ]

    name = models.CharField("Template", max_length=100)
    layout = models.CharField("Layout", max_length=10, choices=LAYOUT_CHOICES, default='classic')
    title_text = models.CharField("Title", max_length=100, default='Certificate of Achievement')
    is_default = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ['-is_default', 'name']

    def __str__(self):
        return self.name


class StudentAward(BaseModel):

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
        ('issued', 'Issued'),
    ]

    student = models.ForeignKey('students.Student', on_delete=models.CASCADE, related_name='awards')
    award_type = models.ForeignKey(AwardType, on_delete=models.SET_NULL, null=True, blank=True, related_name='awards')
    award_name = models.CharField("Award", max_length=100)
    event_name = models.CharField("Event", max_length=150)
    event_date = models.DateField("Event Date")
    position = models.CharField("Position", max_length=50, blank=True)
    remarks = models.TextField(blank=True)
    issued_by = models.CharField(max_length=64, blank=True, null=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='pending', db_index=True)

    # --- Approval ---
    approved_by = models.CharField(max_length=64, blank=True, null=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    approval_comments = models.TextField(blank=True)

    # --- Certificate ---
    certificate_issued = models.BooleanField(default=False)
    certificate_template = models.ForeignKey(
        CertificateTemplate, on_delete=models.SET_NULL, null=True, blank=True, related_name='awards'
    )
    certificate_issued_at = models.DateTimeField(null=True, blank=True)
    certificate_issued_by = models.CharField(max_length=64, blank=True, null=True)

    class Meta:
        ordering = ['-event_date', '-created_at']

    def __str__(self):
        return f"{self.award_name} - {self.student_id}"

    def mark_reviewed(self, approved, user_id=None, comments=''):
        self.status = 'approved' if approved else 'rejected'
        self.approved_by = user_id
        self.approved_at = timezone.now()
        self.approval_comments = comments or ''
