# announcements/services.py

"""
Announcement publishing and the per-student feed used by the parent and
student portals.
"""

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q
from django.utils import timezone
import logging

from accounts.auth import ROLE_EDUCATOR, ROLE_LEARNER, ROLE_PARENT

from .models import (
    AUDIENCE_CHOICES,
    Announcement,
    AnnouncementAudience,
    AnnouncementTargetClass,
    AnnouncementTargetSection,
)

logger = logging.getLogger(__name__)

AUDIENCES = [code for code, _label in AUDIENCE_CHOICES]

ROLE_AUDIENCE = {
    ROLE_LEARNER: 'students',
    ROLE_PARENT: 'parents',
    ROLE_EDUCATOR: 'educators',
}


class AnnouncementService:

    @staticmethod
    def _clean_audience(audience):
        audience = [a for a in (audience or []) if a]
        unknown = sorted(set(audience) - set(AUDIENCES))
        if unknown:
            raise ValidationError(f"Unknown audience: {', '.join(unknown)}")
        return audience or ['all']

    @staticmethod
    @transaction.atomic
    def save(announcement, class_ids=None, section_ids=None, audience=None, published_by=None):
        """
        Create or update an announcement and its targets.

        School-wide announcements keep their audience on the row itself.
        Targeted ones need at least one class or section; their audience
        is stored as AnnouncementAudience rows and the row list is ['all'].
        On update every existing target row is replaced.

        Raises:
            ValidationError: targeted with no class or section
        """
        class_ids = list(class_ids or [])
        section_ids = list(section_ids or [])
        audience = AnnouncementService._clean_audience(audience)
        targeted = announcement.target_scope == Announcement.SCOPE_TARGETED

        if targeted and not class_ids and not section_ids:
            raise ValidationError("Please select at least one class or section for targeted announcements.")

        is_new = announcement._state.adding
        announcement.target_audience = ['all'] if targeted else audience
        if is_new:
            announcement.is_active = True
            announcement.published_at = timezone.now()
            announcement.published_by = published_by
        announcement.full_clean(exclude=['school'])
        announcement.save()

        if not is_new:
            AnnouncementTargetClass.objects.filter(announcement=announcement).delete()
            AnnouncementTargetSection.objects.filter(announcement=announcement).delete()
            AnnouncementAudience.objects.filter(announcement=announcement).delete()

        if targeted:
            AnnouncementTargetClass.objects.bulk_create([
                AnnouncementTargetClass(school_id=announcement.school_id, announcement=announcement,
                                        school_class_id=class_id)
                for class_id in class_ids
            ])
            AnnouncementTargetSection.objects.bulk_create([
                AnnouncementTargetSection(school_id=announcement.school_id, announcement=announcement,
                                          section_id=section_id)
                for section_id in section_ids
            ])
            AnnouncementAudience.objects.bulk_create([
                AnnouncementAudience(school_id=announcement.school_id, announcement=announcement,
                                     audience_type=audience_type)
                for audience_type in audience
            ])

        logger.info(f"{'Published' if is_new else 'Updated'} announcement '{announcement.title}'")
        return announcement

    @staticmethod
    def toggle_active(announcement):
        announcement.is_active = not announcement.is_active
        announcement.save(update_fields=['is_active'])
        return announcement

    @staticmethod
    def audiences_of(announcement):
        if announcement.target_scope == Announcement.SCOPE_TARGETED:
            return [a.audience_type for a in announcement.audiences.all()] or ['all']
        return announcement.target_audience or ['all']

    @staticmethod
    def visible_to(student=None, role=None, urgent_only=False, now=None):
        """
        Active, unexpired announcements for a portal user, newest first.

        With a student, targeted announcements are kept only when they name
        the student's class or section. With a role, the audience must be
        'all' or the role's own audience.
        """
        now = now or timezone.now()
        announcements = Announcement.objects.filter(is_active=True).filter(
            Q(expires_at__isnull=True) | Q(expires_at__gt=now)
        )
        if urgent_only:
            announcements = announcements.filter(priority='urgent')

        if student is not None:
            targets = Q(target_scope=Announcement.SCOPE_SCHOOL_WIDE)
            if student.school_class_id:
                targets |= Q(target_classes__school_class_id=student.school_class_id)
            if student.section_id:
                targets |= Q(target_sections__section_id=student.section_id)
            announcements = announcements.filter(targets)

        announcements = announcements.distinct().prefetch_related('audiences').order_by('-published_at')

        if role is None:
            return list(announcements)
        wanted = ROLE_AUDIENCE.get(role)
        return [
            a for a in announcements
            if 'all' in AnnouncementService.audiences_of(a) or wanted in AnnouncementService.audiences_of(a)
        ]

    @staticmethod
    def target_preview(announcement):
        """Readable summary of who an announcement reaches."""
        if announcement.target_scope == Announcement.SCOPE_SCHOOL_WIDE:
            return {'scope': 'Entire School', 'classes': [], 'sections': [],
                    'audience': AnnouncementService.audiences_of(announcement)}
        return {
            'scope': 'Selected Classes/Sections',
            'classes': [t.school_class.name for t in announcement.target_classes.select_related('school_class')],
            'sections': [
                f"{t.section.school_class.name} - {t.section.name}"
                for t in announcement.target_sections.select_related('section__school_class')
            ],
            'audience': AnnouncementService.audiences_of(announcement),
        }
