# utils/forms.py

"""
Base form utilities shared by every app's ModelForms.
"""

from django import forms
from django.core.exceptions import ValidationError
import re
import logging

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r'^[^\d]+$')
PHONE_PATTERN = re.compile(r'^\d{7,15}$')
EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
ACADEMIC_YEAR_PATTERN = re.compile(r'^(\d{4})-(\d{2})$')


# =============================================================================
# WIDGETS
# =============================================================================

class DatePickerInput(forms.DateInput):
    """Date picker widget with HTML5 date input"""
    input_type = 'date'

    def __init__(self, attrs=None, format=None):
        default_attrs = {'class': 'form-control'}
        if attrs:
            default_attrs.update(attrs)
        super().__init__(attrs=default_attrs, format=format or '%Y-%m-%d')


# =============================================================================
# MIXINS
# =============================================================================

class BootstrapFormMixin:
    """Mixin to add Bootstrap classes to form fields"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for field in self.fields.values():
            widget = field.widget
            if isinstance(widget, (forms.CheckboxInput, forms.RadioSelect)):
                css_class = 'form-check-input'
            elif isinstance(widget, forms.Select):
                css_class = 'form-select'
            else:
                css_class = 'form-control'
            existing_classes = widget.attrs.get('class', '')
            if css_class not in existing_classes:
                widget.attrs['class'] = f"{existing_classes} {css_class}".strip()


# =============================================================================
# VALIDATORS
# =============================================================================

def validate_person_name(value):
    """Names may not contain digits."""
    if value and not NAME_PATTERN.match(value.strip()):
        raise ValidationError('Name cannot contain numbers.')


def validate_phone_number(value):
    """Phone numbers are digits only."""
    if not value:
        return
    if not PHONE_PATTERN.match(value.strip()):
        raise ValidationError('Phone number must contain only digits (7 to 15).')


def validate_email_address(value):
    if value and not EMAIL_PATTERN.match(value.strip()):
        raise ValidationError('Enter a valid email address.')


def validate_academic_year_format(value):
    """
    Validate academic year format, e.g. '2024-25' (second part follows the first).
    """
    if not value:
        return
    match = ACADEMIC_YEAR_PATTERN.match(value)
    if not match:
        raise ValidationError('Enter a valid academic year (e.g., 2024-25).')
    start, end = int(match.group(1)), int(match.group(2))
    if (start + 1) % 100 != end:
        raise ValidationError('Academic year must span consecutive years (e.g., 2024-25).')
