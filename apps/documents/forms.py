# documents/forms.py

from django import forms

from utils.forms import BootstrapFormMixin, DatePickerInput

from .models import AwardType, CertificateTemplate, IDCardSettings


class IDCardSettingsForm(BootstrapFormMixin, forms.ModelForm):
    class Meta:
        model = IDCardSettings
        fields = [
            'school_display_name', 'school_address', 'principal_name', 'current_academic_year',
            'header_text', 'primary_color', 'text_color', 'validity_text',
            'show_blood_group', 'show_dob', 'show_parent_phone', 'show_address',
        ]


class AwardTypeForm(BootstrapFormMixin, forms.ModelForm):
    class Meta:
        model = AwardType
        fields = ['name', 'category', 'description', 'is_active']


class CertificateTemplateForm(BootstrapFormMixin, forms.ModelForm):
    class Meta:
        model = CertificateTemplate
        fields = ['name', 'layout', 'title_text', 'is_active']


class NominationForm(BootstrapFormMixin, forms.Form):
    """Required-field checks happen in AwardService.nominate."""

    award_type = forms.ModelChoiceField(queryset=AwardType.objects.none(), required=False)
    award_name = forms.CharField(max_length=100, required=False)
    event_name = forms.CharField(max_length=150, required=False)
    event_date = forms.DateField(required=False, widget=DatePickerInput())
    position = forms.CharField(max_length=50, required=False)
    remarks = forms.CharField(required=False, widget=forms.Textarea(attrs={'rows': 3}))

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['award_type'].queryset = AwardType.objects.filter(is_active=True)
