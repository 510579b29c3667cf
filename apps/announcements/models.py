# announcements/models.py

from django.db import models
from django.utils import timezone

from utils.models import BaseModel


AUDIENCE_CHOICES = [
    ('all', 'All'),
    ('students', 'Students'),
    ('parents', 'Parents'),
    ('educators', 'Educators'),
]


class Announcement(BaseModel):

    SCOPE_SCHOOL_WIDE = 'school_wide'
    SCOPE_TARGETED = 'targeted'

    SCOPE_CHOICES = [
        (SCOPE_SCHOOL_WIDE, 'Entire School'),
        (SCOPE_TARGETED, 'Selected Classes/Sections'),
    ]

    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('normal', 'Normal'),
        ('high', 'High'),
        ('urgent', 'Urgent'),
    ]

    title = models.CharField("Title", max_length=200)
    content = models.TextField("Content")
    target_scope = models.CharField("Target", max_length=15, choices=SCOPE_CHOICES, default=SCOPE_SCHOOL_WIDE)
    # Audiences for school-wide announcements; targeted ones use AnnouncementAudience rows
    target_audience = models.JSONField("Audience", default=list, blank=True)
    priority = models.CharField("Priority", max_length=10, choices=PRIORITY_CHOICES, default='normal', db_index=True)

    published_by = models.CharField(max_length=64, blank=True, null=True)
    published_at = models.DateTimeField("Published At", default=timezone.now, db_index=True)
    expires_at = models.DateTimeField("Expires At", blank=True, null=True)
    is_active = models.BooleanField("Active", default=True)

    class Meta:
        ordering = ['-published_at']

    def __str__(self):
        return self.title


class AnnouncementTargetClass(BaseModel):
    announcement = models.ForeignKey(Announcement, on_delete=models.CASCADE, related_name='target_classes')
    school_class = models.ForeignKey('academics.SchoolClass', on_delete=models.CASCADE, related_name='+')

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['announcement', 'school_class'], name='unique_announcement_class'),
        ]


class AnnouncementTargetSection(BaseModel):
    announcement = models.ForeignKey(Announcement, on_delete=models.CASCADE, related_name='target_sections')
    section = models.ForeignKey('academics.Section', on_delete=models.CASCADE, related_name='+')

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['announcement', 'section'], name='unique_announcement_section'),
        ]


class AnnouncementAudience(BaseModel):
    announcement = models.ForeignKey(Announcement, on_delete=models.CASCADE, related_name='audiences')
    audience_type = models.CharField(max_length=10, choices=AUDIENCE_CHOICES)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['announcement', 'audience_type'], name='unique_announcement_audience'),
        ]
