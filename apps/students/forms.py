# students/forms.py

"""
Student and parent forms.
Uses utils/forms for consistent behaviour across the application.
"""

from django import forms
from django.utils import timezone
import logging

from academics.models import SchoolClass, Section
from utils.forms import (
    BootstrapFormMixin,
    DatePickerInput,
    validate_person_name,
    validate_phone_number,
)

from .models import Student

logger = logging.getLogger(__name__)


# =============================================================================
# FILTERS
# =============================================================================

class StudentFilterForm(BootstrapFormMixin, forms.Form):
    search = forms.CharField(required=False)
    class_id = forms.ModelChoiceField(queryset=SchoolClass.objects.none(), required=False)
    section_id = forms.ModelChoiceField(queryset=Section.objects.none(), required=False)
    status = forms.ChoiceField(choices=[('', 'All')] + Student.STATUS_CHOICES, required=False)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['class_id'].queryset = SchoolClass.objects.all()
        self.fields['section_id'].queryset = Section.objects.all()

    def filter_queryset(self, queryset):
        data = self.cleaned_data
        if data.get('search'):
            term = data['search']
            queryset = queryset.filter(name__icontains=term) | queryset.filter(admission_number__icontains=term)
        if data.get('class_id'):
            queryset = queryset.filter(school_class=data['class_id'])
        if data.get('section_id'):
            queryset = queryset.filter(section=data['section_id'])
        if data.get('status'):
            queryset = queryset.filter(status=data['status'])
        return queryset


# =============================================================================
# STUDENT FORM
# =============================================================================

class StudentForm(BootstrapFormMixin, forms.ModelForm):
    """Student details plus the parent contact used to find or create the Parent."""

    parent_name = forms.CharField(max_length=150, required=False, validators=[validate_person_name])
    parent_phone = forms.CharField(max_length=20, required=False, validators=[validate_phone_number])

    class Meta:
        model = Student
        fields = [
            'admission_number', 'name', 'date_of_birth', 'gender', 'blood_group',
            'school_class', 'section', 'status', 'admission_date', 'address', 'medical_info',
        ]
        widgets = {
            'date_of_birth': DatePickerInput(),
            'admission_date': DatePickerInput(),
            'address': forms.Textarea(attrs={'rows': 2}),
            'medical_info': forms.Textarea(attrs={'rows': 2}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['school_class'].queryset = SchoolClass.objects.filter(is_active=True)
        self.fields['section'].queryset = Section.objects.all()
        if self.instance.pk and self.instance.parent_id:
            self.initial.setdefault('parent_name', self.instance.parent.name)
            self.initial.setdefault('parent_phone', self.instance.parent.phone)

    def clean_name(self):
        name = self.cleaned_data['name'].strip()
        validate_person_name(name)
        return name

    def clean_admission_number(self):
        value = self.cleaned_data['admission_number'].strip()
        duplicates = Student.objects.filter(admission_number=value)
        if self.instance.pk:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise forms.ValidationError(f"Admission number {value} already exists.")
        return value

    def clean_date_of_birth(self):
        dob = self.cleaned_data.get('date_of_birth')
        if dob and dob > timezone.localdate():
            raise forms.ValidationError("Date of birth cannot be in the future.")
        return dob

    def clean(self):
        cleaned_data = super().clean()
        school_class = cleaned_data.get('school_class')
        section = cleaned_data.get('section')
        if section and school_class and section.school_class_id != school_class.pk:
            self.add_error('section', "Section does not belong to the selected class.")
        if section and not school_class:
            cleaned_data['school_class'] = section.school_class
        return cleaned_data


class StudentImportForm(forms.Form):
    file = forms.FileField()

    def clean_file(self):
        uploaded = self.cleaned_data['file']
        if not uploaded.name.lower().endswith('.csv'):
            raise forms.ValidationError("Upload a .csv file.")
        return uploaded
