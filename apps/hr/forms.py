# hr/forms.py

from django import forms

from utils.forms import (
    BootstrapFormMixin,
    DatePickerInput,
    validate_email_address,
    validate_person_name,
    validate_phone_number,
)

from .models import Educator


class EducatorForm(BootstrapFormMixin, forms.ModelForm):
    """employee_id may be left blank; one is generated on save."""

    class Meta:
        model = Educator
        fields = [
            'employee_id', 'name', 'phone', 'email', 'address', 'designation',
            'qualification', 'experience_years', 'joining_date', 'status',
        ]
        widgets = {
            'joining_date': DatePickerInput(),
            'address': forms.Textarea(attrs={'rows': 2}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['employee_id'].required = False

    def clean_name(self):
        name = self.cleaned_data['name'].strip()
        validate_person_name(name)
        return name

    def clean_phone(self):
        phone = self.cleaned_data.get('phone', '').strip()
        validate_phone_number(phone)
        return phone

    def clean_email(self):
        email = self.cleaned_data.get('email', '').strip()
        validate_email_address(email)
        return email

    def clean_employee_id(self):
        value = (self.cleaned_data.get('employee_id') or '').strip()
        if value:
            duplicates = Educator.objects.filter(employee_id=value)
            if self.instance.pk:
                duplicates = duplicates.exclude(pk=self.instance.pk)
            if duplicates.exists():
                raise forms.ValidationError(f"Employee ID {value} already exists.")
        return value

    def clean_experience_years(self):
        value = self.cleaned_data.get('experience_years')
        if value is not None and value < 0:
            raise forms.ValidationError("Experience cannot be negative.")
        return value


class EducatorImportForm(forms.Form):
    file = forms.FileField()
