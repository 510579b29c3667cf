# admissions/forms.py

from django import forms
from django.utils import timezone

from academics.models import SchoolClass
from utils.forms import BootstrapFormMixin, DatePickerInput, validate_academic_year_format

from .models import AdmissionLead, AdmissionVisit, LeadSource


class LeadForm(BootstrapFormMixin, forms.Form):
    parent_name = forms.CharField(max_length=150)
    contact_number = forms.CharField(max_length=20)
    contact_email = forms.CharField(max_length=254, required=False)
    student_name = forms.CharField(max_length=150, required=False)
    applying_class = forms.ModelChoiceField(queryset=SchoolClass.objects.none(), required=False)
    lead_source = forms.ModelChoiceField(queryset=LeadSource.objects.none(), required=False)
    academic_year = forms.CharField(max_length=9, required=False)
    priority = forms.ChoiceField(choices=AdmissionLead.PRIORITY_CHOICES, required=False)
    notes = forms.CharField(widget=forms.Textarea(attrs={'rows': 3}), required=False)
    assigned_counselor_id = forms.CharField(max_length=64, required=False)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['applying_class'].queryset = SchoolClass.objects.all()
        self.fields['lead_source'].queryset = LeadSource.objects.filter(is_active=True)

    def clean_academic_year(self):
        value = self.cleaned_data.get('academic_year')
        validate_academic_year_format(value)
        return value


class VisitForm(BootstrapFormMixin, forms.ModelForm):
    class Meta:
        model = AdmissionVisit
        fields = [
            'visit_type', 'visit_date', 'visit_time', 'duration_minutes', 'people_met',
            'outcome', 'interest_level', 'followup_required', 'next_followup_date',
            'discussion_points', 'concerns_raised', 'notes',
        ]
        widgets = {
            'visit_date': DatePickerInput(),
            'next_followup_date': DatePickerInput(),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['visit_date'].required = False

    def clean_visit_date(self):
        return self.cleaned_data.get('visit_date') or timezone.localdate()
