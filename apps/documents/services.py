# documents/services.py

"""
ID card generation and the award/certificate workflow.
"""

from django.conf import settings as django_settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone
import logging

from accounts.models import School
from hr.models import Educator
from students.models import Student

from .id_cards import IDCardRenderer, build_id_card_zip
from .models import CertificateTemplate, IDCardGeneration, IDCardSettings, StudentAward

logger = logging.getLogger(__name__)


# =============================================================================
# ID CARDS
# =============================================================================

class IDCardService:

    @staticmethod
    def settings_for(school_id):
        """The school's card settings, created from the school record on first use."""
        card_settings = IDCardSettings.all_objects.filter(school_id=school_id).first()
        if card_settings is None:
            school = School.objects.get(pk=school_id)
            card_settings = IDCardSettings.all_objects.create(
                school_id=school_id,
                school_display_name=school.name,
                school_address=', '.join(part for part in (school.city, school.state) if part),
                current_academic_year=django_settings.SCHOOLDESK_ACADEMIC_YEAR,
            )
        return card_settings

    @staticmethod
    def entities(card_type, entity_ids):
        if card_type == 'student':
            queryset = Student.objects.select_related('school_class', 'section', 'parent')
        elif card_type == 'staff':
            queryset = Educator.objects.all()
        else:
            raise ValidationError(f"Unknown card type '{card_type}'.")
        found = list(queryset.filter(pk__in=entity_ids).order_by('name'))
        if len(found) != len(set(str(i) for i in entity_ids)):
            raise ValidationError("Some selected people were not found.")
        return found

    @staticmethod
    @transaction.atomic
    def generate(school_id, card_type, entity_ids, generated_by=None, bulk_criteria=None):
        """
        Log one generation row per card and return the cards as a ZIP.

        Returns:
            tuple: (zip bytes, number of cards)
        """
        entity_ids = [i for i in (entity_ids or []) if i]
        if not entity_ids:
            raise ValidationError("Please select at least one person")

        entities = IDCardService.entities(card_type, entity_ids)
        bulk = len(entities) > 1
        IDCardGeneration.all_objects.bulk_create([
            IDCardGeneration(
                school_id=school_id,
                card_type=card_type,
                entity_id=entity.pk,
                generation_mode='bulk' if bulk else 'single',
                bulk_criteria=(bulk_criteria or {}) if bulk else None,
                generated_by=generated_by,
            )
            for entity in entities
        ])

        renderer = IDCardRenderer(IDCardService.settings_for(school_id))
        archive = build_id_card_zip(renderer, entities, card_type='student' if card_type == 'student' else 'staff')
        logger.info(f"Generated {len(entities)} {card_type} ID card(s) for school {school_id}")
        return archive, len(entities)


# =============================================================================
# AWARDS & CERTIFICATES
# =============================================================================

class AwardService:

    @staticmethod
    @transaction.atomic
    def nominate(student_ids, award_name, event_name, event_date, award_type=None,
                 position='', remarks='', issued_by=None):
        """
        One pending award per selected student. A chosen award type names
        the award; otherwise the free-text name is used.
        """
        award_name = award_type.name if award_type else (award_name or '').strip()
        if not award_name or not event_name or not event_date:
            raise ValidationError("Please fill in all required fields")
        student_ids = [s for s in (student_ids or []) if s]
        if not student_ids:
            raise ValidationError("Please select at least one student")

        students = list(Student.objects.filter(pk__in=student_ids))
        if len(students) != len(set(str(s) for s in student_ids)):
            raise ValidationError("Some selected students were not found.")

        awards = StudentAward.objects.bulk_create([
            StudentAward(
                school_id=student.school_id,
                student=student,
                award_type=award_type,
                award_name=award_name,
                event_name=event_name,
                event_date=event_date,
                position=position or '',
                remarks=remarks or '',
                issued_by=issued_by,
            )
            for student in students
        ])
        logger.info(f"Nominated {len(awards)} student(s) for {award_name}")
        return awards

    @staticmethod
    def review(award, approved, user_id=None, comments=''):
        if award.status != 'pending':
            raise ValidationError(f"Award is already {award.status}.")
        award.mark_reviewed(approved, user_id, comments)
        award.save(update_fields=['status', 'approved_by', 'approved_at', 'approval_comments'])
        logger.info(f"Award {award.pk} {award.status}")
        return award

    @staticmethod
    def default_template():
        return CertificateTemplate.objects.filter(is_default=True, is_active=True).first()

    @staticmethod
    @transaction.atomic
    def set_default_template(template):
        CertificateTemplate.objects.exclude(pk=template.pk).filter(is_default=True).update(is_default=False)
        template.is_default = True
        template.save(update_fields=['is_default'])
        return template

    @staticmethod
    @transaction.atomic
    def issue_certificates(award_ids, user_id=None):
        """
        Mark approved awards as issued against the default template.

        Returns:
            int: awards issued
        """
        if not award_ids:
            raise ValidationError("Please select awards to generate certificates")
        template = AwardService.default_template()
        if template is None:
            raise ValidationError("No default template found")

        awards = StudentAward.objects.filter(pk__in=award_ids)
        not_ready = awards.exclude(status__in=['approved', 'issued'])
        if not_ready.exists():
            raise ValidationError("Only approved awards can be issued certificates.")

        issued = awards.update(
            certificate_issued=True,
            certificate_template=template,
            certificate_issued_at=timezone.now(),
            certificate_issued_by=user_id,
            status='issued',
            updated_at=timezone.now(),
        )
        logger.info(f"Issued {issued} certificate(s) using template {template.name}")
        return issued

    @staticmethod
    def certificate_preview(award, template=None):
        """Template context for documents/certificate_preview.html."""
        template = template or award.certificate_template or AwardService.default_template()
        card_settings = IDCardService.settings_for(award.school_id)
        return {
            'award': award,
            'student': award.student,
            'layout': template.layout if template else 'classic',
            'title': template.title_text if template else 'Certificate of Achievement',
            'school_name': card_settings.school_display_name,
            'principal_name': card_settings.principal_name,
            'academic_year': card_settings.current_academic_year,
        }
