# admissions/services.py

"""
Admissions funnel: lead numbering, lead capture, visit logging, stage
moves, application decisions and funnel analytics.
"""

from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone
import logging

from utils.forms import EMAIL_PATTERN, NAME_PATTERN
from utils.utils import last_sequence

from .models import AdmissionApplication, AdmissionLead, AdmissionVisit, FunnelStage, LeadSource

logger = logging.getLogger(__name__)

DEFAULT_STAGES = [
    # (name, order, category, colour)
    ('New Inquiry', 1, 'inquiry', '#3B82F6'),
    ('Contacted', 2, 'engagement', '#8B5CF6'),
    ('Campus Visit', 3, 'engagement', '#F59E0B'),
    ('Application Submitted', 4, 'application', '#06B6D4'),
    ('Enrolled', 5, 'enrolled', '#10B981'),
    ('Lost', 6, 'lost', '#64748B'),
]

DEFAULT_SOURCES = ['Walk-in', 'Phone Inquiry', 'Website', 'Reference', 'Social Media', 'Advertisement']

DECISIONS = ('approved', 'rejected')


def _next_number(model, field, school_id, prefix):
    """Next zero-padded sequence for numbers shaped <prefix><0001>."""
    numbers = (
        model.all_objects.select_for_update()
        .filter(school_id=school_id, **{f'{field}__startswith': prefix})
        .values_list(field, flat=True)
    )
    return f"{prefix}{last_sequence(numbers, prefix) + 1:04d}"


def start_year(academic_year):
    """'2025-26' -> '2025'."""
    return (academic_year or settings.SCHOOLDESK_ACADEMIC_YEAR).split('-')[0]


@transaction.atomic
def generate_next_lead_number(school_id, academic_year=None):
    """
    Format: LEAD-<start year>-0001, sequential per school and year.
    """
    lead_number = _next_number(AdmissionLead, 'lead_number', school_id, f"LEAD-{start_year(academic_year)}-")
    logger.info(f"Generated lead number: {lead_number}")
    return lead_number


@transaction.atomic
def generate_application_number(school_id, academic_year=None):
    return _next_number(
        AdmissionApplication, 'application_number', school_id, f"APP-{start_year(academic_year)}-"
    )


def validate_lead_contact(parent_name, contact_number, student_name='', contact_email=''):
    if not parent_name or not NAME_PATTERN.match(parent_name):
        raise ValidationError("Parent Name should not contain numbers")
    if student_name and not NAME_PATTERN.match(student_name):
        raise ValidationError("Student Name should not contain numbers")
    if not contact_number or not contact_number.isdigit():
        raise ValidationError("Phone number should only contain digits")
    if contact_email and not EMAIL_PATTERN.match(contact_email):
        raise ValidationError("Invalid email address")


class AdmissionService:

    # =========================================================================
    # SETUP
    # =========================================================================

    @staticmethod
    @transaction.atomic
    def seed_defaults(school_id):
        """Create the default funnel stages and lead sources a school is missing."""
        created = 0
        for name, order, category, colour in DEFAULT_STAGES:
            _stage, was_created = FunnelStage.all_objects.get_or_create(
                school_id=school_id, name=name,
                defaults={'stage_order': order, 'stage_category': category, 'color_code': colour},
            )
            created += was_created
        for name in DEFAULT_SOURCES:
            _source, was_created = LeadSource.all_objects.get_or_create(school_id=school_id, name=name)
            created += was_created
        if created:
            logger.info(f"Seeded {created} admission defaults for school {school_id}")
        return created

    @staticmethod
    def first_stage(school_id):
        stages = FunnelStage.all_objects.filter(school_id=school_id, is_active=True).order_by('stage_order')
        if not stages.exists():
            AdmissionService.seed_defaults(school_id)
        return stages.first()

    # =========================================================================
    # LEADS
    # =========================================================================

    @staticmethod
    @transaction.atomic
    def create_lead(school_id, parent_name, contact_number, lead_source_id=None, applying_class_id=None,
                    academic_year=None, student_name='', priority='medium', notes='', user_id=None,
                    assigned_counselor_id=None, contact_email=''):
        """
        Capture a new enquiry at the first funnel stage. The creating user
        is the counselor unless one is assigned explicitly.
        """
        parent_name = (parent_name or '').strip()
        student_name = (student_name or '').strip()
        contact_number = (contact_number or '').strip()
        contact_email = (contact_email or '').strip()
        validate_lead_contact(parent_name, contact_number, student_name, contact_email)

        academic_year = academic_year or settings.SCHOOLDESK_ACADEMIC_YEAR
        lead = AdmissionLead.all_objects.create(
            school_id=school_id,
            lead_number=generate_next_lead_number(school_id, academic_year),
            parent_name=parent_name,
            student_name=student_name,
            contact_number=contact_number,
            contact_email=contact_email,
            lead_source_id=lead_source_id or None,
            applying_class_id=applying_class_id or None,
            current_stage=AdmissionService.first_stage(school_id),
            academic_year=academic_year,
            priority=priority or 'medium',
            notes=notes or '',
            assigned_counselor_id=assigned_counselor_id or user_id,
        )
        logger.info(f"Created admission lead {lead.lead_number}")
        return lead

    @staticmethod
    @transaction.atomic
    def log_visit(lead, counselor_id=None, **details):
        """
        Record an interaction with a lead. A visit that needs a follow-up
        with a date moves the lead's next follow-up and last-contacted time.
        """
        visit = AdmissionVisit(school_id=lead.school_id, lead=lead, counselor_id=counselor_id, **details)
        visit.full_clean(exclude=['school'])
        visit.save()

        if visit.followup_required and visit.next_followup_date:
            lead.next_followup_date = visit.next_followup_date
            lead.last_contacted_at = timezone.now()
            lead.save(update_fields=['next_followup_date', 'last_contacted_at'])

        logger.info(f"Logged {visit.visit_type} for lead {lead.lead_number}")
        return visit

    @staticmethod
    @transaction.atomic
    def move_stage(lead, stage):
        """
        Move a lead to another stage of its school's funnel. Enrolled and
        lost stages close the lead.
        """
        if stage.school_id != lead.school_id:
            raise ValidationError("Stage does not belong to this school.")
        lead.current_stage = stage
        if stage.stage_category == 'enrolled':
            lead.status = 'converted'
        elif stage.stage_category == 'lost':
            lead.status = 'lost'
        elif lead.status in ('converted', 'lost'):
            lead.status = 'active'
        lead.save(update_fields=['current_stage', 'status'])
        logger.info(f"Lead {lead.lead_number} moved to {stage.name}")
        return lead

    # =========================================================================
    # APPLICATIONS
    # =========================================================================

    @staticmethod
    @transaction.atomic
    def submit_application(lead):
        if not lead.student_name:
            raise ValidationError("Student name is required before submitting an application.")
        if lead.applications.filter(decision_status='pending').exists():
            raise ValidationError("This lead already has a pending application.")

        application = AdmissionApplication.all_objects.create(
            school_id=lead.school_id,
            application_number=generate_application_number(lead.school_id, lead.academic_year),
            lead=lead,
            student_name=lead.student_name,
            parent_name=lead.parent_name,
            contact_number=lead.contact_number,
            applying_class_id=lead.applying_class_id,
        )
        stage = FunnelStage.all_objects.filter(
            school_id=lead.school_id, stage_category='application', is_active=True
        ).order_by('stage_order').first()
        if stage:
            AdmissionService.move_stage(lead, stage)

        logger.info(f"Application {application.application_number} submitted for lead {lead.lead_number}")
        return application

    @staticmethod
    @transaction.atomic
    def update_application_status(application_id, status, user_id=None):
        """
        Approve or reject a pending application in one step. Approval
        converts the lead.
        """
        if status not in DECISIONS:
            raise ValidationError(f"Invalid decision '{status}' (must be approved or rejected).")

        application = AdmissionApplication.objects.select_for_update().select_related('lead').get(pk=application_id)
        if application.decision_status != 'pending':
            raise ValidationError(f"Application has already been {application.decision_status}.")

        application.decision_status = status
        application.status = 'decided'
        application.decided_by = user_id
        application.decided_at = timezone.now()
        application.save(update_fields=['decision_status', 'status', 'decided_by', 'decided_at'])

        if status == 'approved':
            lead = application.lead
            lead.status = 'converted'
            enrolled = FunnelStage.all_objects.filter(
                school_id=lead.school_id, stage_category='enrolled', is_active=True
            ).first()
            if enrolled:
                lead.current_stage = enrolled
            lead.save(update_fields=['status', 'current_stage'])

        logger.info(f"Application {application.application_number} {status}")
        return application

    # =========================================================================
    # ANALYTICS
    # =========================================================================

    @staticmethod
    def conversion_rate(converted, total):
        if not total:
            return Decimal('0')
        return (Decimal(converted) * 100 / Decimal(total)).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)

    @staticmethod
    def funnel_summary(academic_year=None):
        leads = AdmissionLead.objects.all()
        if academic_year:
            leads = leads.filter(academic_year=academic_year)

        counts = dict(leads.order_by().values_list('current_stage_id').annotate(n=Count('id')))
        stages = [
            {
                'id': str(stage.pk),
                'name': stage.name,
                'stage_category': stage.stage_category,
                'color_code': stage.color_code,
                'count': counts.get(stage.pk, 0),
            }
            for stage in FunnelStage.objects.filter(is_active=True).order_by('stage_order')
        ]

        total = leads.count()
        converted = leads.filter(status='converted').count()
        return {
            'stages': stages,
            'total_leads': total,
            'active': leads.filter(status='active').count(),
            'converted': converted,
            'lost': leads.filter(status='lost').count(),
            'conversion_rate': AdmissionService.conversion_rate(converted, total),
            'followups_due': leads.filter(
                status='active', next_followup_date__lte=timezone.localdate()
            ).count(),
        }

    @staticmethod
    def counsellor_summary(academic_year=None):
        """Leads and conversions per assigned counselor, best converters first."""
        leads = AdmissionLead.objects.exclude(assigned_counselor_id__isnull=True)
        if academic_year:
            leads = leads.filter(academic_year=academic_year)
        rows = leads.order_by().values('assigned_counselor_id').annotate(
            total=Count('id'), converted=Count('id', filter=Q(status='converted'))
        )
        summary = [
            {
                'counselor_id': row['assigned_counselor_id'],
                'total_leads': row['total'],
                'converted': row['converted'],
                'conversion_rate': AdmissionService.conversion_rate(row['converted'], row['total']),
            }
            for row in rows
        ]
        summary.sort(key=lambda r: (r['conversion_rate'], r['converted']), reverse=True)
        return summary
