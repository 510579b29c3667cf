# portal/forms.py

from django import forms

from utils.forms import BootstrapFormMixin

from .models import ServiceTicket


class ServiceTicketForm(BootstrapFormMixin, forms.ModelForm):
    class Meta:
        model = ServiceTicket
        fields = ['category', 'priority', 'subject', 'description']
        widgets = {
            'description': forms.Textarea(attrs={'rows': 4}),
        }

    def clean_subject(self):
        subject = self.cleaned_data['subject'].strip()
        if not subject:
            raise forms.ValidationError("Subject is required.")
        return subject
