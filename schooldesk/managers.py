# schooldesk/managers.py

from django.db import models
from threading import local
import logging

logger = logging.getLogger(__name__)

_thread_locals = local()


def get_current_school_id():
    """Get the tenant (school id) active for this thread"""
    return getattr(_thread_locals, 'school_id', None)


def set_current_school_id(school_id):
    """Set the tenant for this thread"""
    if not school_id:
        return False

    _thread_locals.school_id = str(school_id)
    logger.debug(f"Set current school to: {school_id}")
    return True


def clear_current_school_id():
    """Clear the tenant for this thread"""
    if hasattr(_thread_locals, 'school_id'):
        delattr(_thread_locals, 'school_id')


class SchoolContext:
    """Context manager for temporarily switching the active school"""

    def __init__(self, school):
        self.school_id = getattr(school, 'pk', school)
        self.previous_school_id = None

    def __enter__(self):
        self.previous_school_id = get_current_school_id()
        if self.school_id:
            set_current_school_id(self.school_id)
        else:
            clear_current_school_id()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.previous_school_id:
            set_current_school_id(self.previous_school_id)
        else:
            clear_current_school_id()


class SchoolManager(models.Manager):
    """
    Manager that scopes every query to the current school.

    With no school set (management commands, superadmin screens) the
    queryset is unscoped; callers that need a particular tenant wrap the
    work in SchoolContext.
    """

    def get_queryset(self):
        school_id = get_current_school_id()

        if not school_id:
            return super().get_queryset()

        return super().get_queryset().filter(school_id=school_id)

    def _attach_school(self, kwargs):
        school_id = get_current_school_id()
        if school_id and 'school' not in kwargs and 'school_id' not in kwargs:
            kwargs['school_id'] = school_id
        return kwargs

    # Creation methods attach the current school
    def create(self, **kwargs):
        return self.get_queryset().create(**self._attach_school(kwargs))

    def bulk_create(self, objs, **kwargs):
        school_id = get_current_school_id()
        if school_id:
            for obj in objs:
                if not obj.school_id:
                    obj.school_id = school_id
        return self.get_queryset().bulk_create(objs, **kwargs)

    def get_or_create(self, defaults=None, **kwargs):
        return self.get_queryset().get_or_create(defaults=defaults, **self._attach_school(kwargs))

    def update_or_create(self, defaults=None, **kwargs):
        return self.get_queryset().update_or_create(defaults=defaults, **self._attach_school(kwargs))
