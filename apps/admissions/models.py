# admissions/models.py

from django.db import models
from django.utils import timezone

from utils.models import BaseModel


# =============================================================================
# FUNNEL CONFIGURATION
# =============================================================================

class FunnelStage(BaseModel):

    CATEGORY_CHOICES = [
        ('inquiry', 'Inquiry'),
        ('engagement', 'Engagement'),
        ('application', 'Application'),
        ('enrolled', 'Enrolled'),
        ('lost', 'Lost'),
    ]

    name = models.CharField("Stage", max_length=60)
    stage_order = models.PositiveIntegerField("Order", default=1)
    stage_category = models.CharField("Category", max_length=15, choices=CATEGORY_CHOICES, default='inquiry')
    color_code = models.CharField("Colour", max_length=7, default='#3B82F6')
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ['stage_order', 'name']
        constraints = [
            models.UniqueConstraint(fields=['school', 'name'], name='unique_funnel_stage_per_school'),
        ]

    def __str__(self):
        return self.name


class LeadSource(BaseModel):
    name = models.CharField("Source", max_length=60)
    source_type = models.CharField("Type", max_length=20, default='other')
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['school', 'name'], name='unique_lead_source_per_school'),
        ]

    def __str__(self):
        return self.name


# =============================================================================
# LEADS
# =============================================================================

class AdmissionLead(BaseModel):

    STATUS_CHOICES = [
        ('active', 'Active'),
        ('converted', 'Converted'),
        ('lost', 'Lost'),
        ('on_hold', 'On Hold'),
    ]

    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('very_high', 'Very High'),
    ]

    lead_number = models.CharField("Lead Number", max_length=20, db_index=True)

    # --- Family ---
    parent_name = models.CharField("Parent Name", max_length=150)
    student_name = models.CharField("Student Name", max_length=150, blank=True)
    student_dob = models.DateField("Student DOB", null=True, blank=True)
    contact_number = models.CharField("Contact Number", max_length=20)
    contact_email = models.EmailField("Email", blank=True)
    address = models.TextField("Address", blank=True)
    previous_school = models.CharField("Previous School", max_length=200, blank=True)

    # --- Funnel ---
    applying_class = models.ForeignKey(
        'academics.SchoolClass', on_delete=models.SET_NULL, null=True, blank=True, related_name='admission_leads'
    )
    current_stage = models.ForeignKey(
        FunnelStage, on_delete=models.SET_NULL, null=True, blank=True, related_name='leads'
    )
    lead_source = models.ForeignKey(
        LeadSource, on_delete=models.SET_NULL, null=True, blank=True, related_name='leads'
    )
    status = models.CharField("Status", max_length=10, choices=STATUS_CHOICES, default='active', db_index=True)
    priority = models.CharField("Priority", max_length=10, choices=PRIORITY_CHOICES, default='medium')
    academic_year = models.CharField("Academic Year", max_length=9)
    next_followup_date = models.DateField("Next Follow-up", null=True, blank=True)
    last_contacted_at = models.DateTimeField("Last Contacted", null=True, blank=True)
    assigned_counselor_id = models.CharField(max_length=64, blank=True, null=True)
    notes = models.TextField("Notes", blank=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['school', 'lead_number'], name='unique_lead_number_per_school'),
        ]

    def __str__(self):
        return f"{self.lead_number} - {self.parent_name}"


class AdmissionVisit(BaseModel):

    VISIT_TYPE_CHOICES = [
        ('phone_call', 'Phone Call'),
        ('campus_tour', 'Campus Tour'),
        ('meeting', 'Meeting'),
        ('email', 'Email'),
        ('whatsapp', 'WhatsApp'),
        ('other', 'Other'),
    ]

    OUTCOME_CHOICES = [
        ('interested', 'Interested'),
        ('not_interested', 'Not Interested'),
        ('followup_needed', 'Follow-up Needed'),
        ('application_submitted', 'Application Submitted'),
        ('other', 'Other'),
    ]

    lead = models.ForeignKey(AdmissionLead, on_delete=models.CASCADE, related_name='visits')
    visit_type = models.CharField(max_length=15, choices=VISIT_TYPE_CHOICES, default='phone_call')
    visit_date = models.DateField(default=timezone.localdate)
    visit_time = models.TimeField(null=True, blank=True)
    duration_minutes = models.PositiveIntegerField(null=True, blank=True)
    people_met = models.CharField(max_length=200, blank=True)
    counselor_id = models.CharField(max_length=64, blank=True, null=True)
    outcome = models.CharField(max_length=25, choices=OUTCOME_CHOICES, default='interested')
    interest_level = models.CharField(max_length=10, choices=AdmissionLead.PRIORITY_CHOICES, default='medium')
    followup_required = models.BooleanField(default=False)
    next_followup_date = models.DateField(null=True, blank=True)
    discussion_points = models.TextField(blank=True)
    concerns_raised = models.TextField(blank=True)
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ['-visit_date', '-created_at']


# =============================================================================
# APPLICATIONS
# =============================================================================

class AdmissionApplication(BaseModel):

    STATUS_CHOICES = [
        ('submitted', 'Submitted'),
        ('under_review', 'Under Review'),
        ('decided', 'Decided'),
    ]

    DECISION_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    ]

    application_number = models.CharField("Application Number", max_length=20, db_index=True)
    lead = models.ForeignKey(AdmissionLead, on_delete=models.CASCADE, related_name='applications')
    student_name = models.CharField(max_length=150)
    parent_name = models.CharField(max_length=150)
    contact_number = models.CharField(max_length=20)
    applying_class = models.ForeignKey(
        'academics.SchoolClass', on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    application_date = models.DateField(default=timezone.localdate)
    status = models.CharField(max_length=15, choices=STATUS_CHOICES, default='submitted')
    decision_status = models.CharField(max_length=10, choices=DECISION_CHOICES, default='pending', db_index=True)
    decided_by = models.CharField(max_length=64, blank=True, null=True)
    decided_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-application_date', '-created_at']
        constraints = [
            models.UniqueConstraint(fields=['school', 'application_number'], name='unique_application_number_per_school'),
        ]

    def __str__(self):
        return self.application_number
