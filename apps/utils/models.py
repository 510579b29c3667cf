# utils/models.py

"""
Base models for SchoolDesk.

- TimeStampedModel: UUID key, timestamps and created/updated-by stamps
  taken from the thread-local request context.
- BaseModel: TimeStampedModel plus the tenant (school) column and the
  school-scoped manager. Every tenant-owned table inherits from it.
- DefinitionChangeLog: who changed which field of a school definition
  (class, section, subject, fee type...) and what the change affects.
"""

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from schooldesk.managers import SchoolManager, get_current_school_id
import uuid
import logging

logger = logging.getLogger(__name__)

AUDIT_FIELDS = ('id', 'school', 'created_at', 'updated_at', 'created_by_id', 'updated_by_id')


# =============================================================================
# TIMESTAMPED MODEL - SHARED (NON-TENANT) DATA
# =============================================================================

class TimeStampedModel(models.Model):

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    created_at = models.DateTimeField("Created At", default=timezone.now, db_index=True)
    updated_at = models.DateTimeField("Updated At", default=timezone.now, db_index=True)

    # CharField: mock-auth users have no auth.User row
    created_by_id = models.CharField("Created By ID", max_length=64, null=True, blank=True)
    updated_by_id = models.CharField("Updated By ID", max_length=64, null=True, blank=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        from utils.context import get_current_user_id

        is_new = self._state.adding
        user_id = get_current_user_id()

        if is_new:
            if user_id and not self.created_by_id:
                self.created_by_id = user_id
        else:
            self.updated_at = timezone.now()
            update_fields = kwargs.get('update_fields')
            if update_fields is not None:
                kwargs['update_fields'] = set(update_fields) | {'updated_at', 'updated_by_id'}

        if user_id:
            self.updated_by_id = user_id

        return super().save(*args, **kwargs)

    def tracked_changes(self):
        """
        Compare this instance against its stored row.

        Returns:
            dict: {field_name: {'old': str|None, 'new': str|None}}
        """
        if self._state.adding or not self.pk:
            return {}

        try:
            stored = type(self)._base_manager.get(pk=self.pk)
        except type(self).DoesNotExist:
            return {}

        changes = {}
        for field in self._meta.concrete_fields:
            if field.name in AUDIT_FIELDS:
                continue
            old_value = getattr(stored, field.attname)
            new_value = getattr(self, field.attname)
            if old_value != new_value:
                changes[field.name] = {
                    'old': str(old_value) if old_value is not None else None,
                    'new': str(new_value) if new_value is not None else None,
                }
        return changes


# =============================================================================
# BASE MODEL - TENANT DATA
# =============================================================================

class BaseModel(TimeStampedModel):
    """
    Tenant-owned row.

    The school is attached from the active SchoolContext when the caller
    does not set it; saving a tenant row with no school is an error.
    """

    school = models.ForeignKey(
        'accounts.School',
        on_delete=models.CASCADE,
        related_name='%(app_label)s_%(class)s_set',
    )

    # School-scoped by default; `all_objects` is for cross-tenant jobs
    objects = SchoolManager()
    all_objects = models.Manager()

    school_required = True

    class Meta:
        abstract = True
        base_manager_name = 'all_objects'

    def save(self, *args, **kwargs):
        if not self.school_id:
            current_school_id = get_current_school_id()
            if current_school_id:
                self.school_id = current_school_id
            elif self.school_required:
                raise ValidationError(
                    f"{self.__class__.__name__} must belong to a school."
                )
        return super().save(*args, **kwargs)


# =============================================================================
# DEFINITION CHANGE LOG
# =============================================================================

class DefinitionChangeLog(BaseModel):
    """Field-level history of school definition edits."""

    entity_type = models.CharField(max_length=50, db_index=True)
    entity_id = models.CharField(max_length=64, db_index=True)
    field_name = models.CharField(max_length=100, blank=True)
    old_value = models.TextField(blank=True, null=True)
    new_value = models.TextField(blank=True, null=True)
    changed_by = models.CharField(max_length=64, blank=True, null=True)
    changed_at = models.DateTimeField(default=timezone.now)
    impact_summary = models.TextField(blank=True)

    class Meta:
        ordering = ['-changed_at']
        indexes = [
            models.Index(fields=['school', 'entity_type', 'entity_id']),
        ]

    def __str__(self):
        return f"{self.entity_type}:{self.entity_id} {self.field_name}"
