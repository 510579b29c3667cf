# accounts/forms.py

from django import forms

from utils.forms import BootstrapFormMixin

from .models import School


class SchoolForm(BootstrapFormMixin, forms.ModelForm):
    class Meta:
        model = School
        fields = [
            'name', 'board', 'address', 'city', 'state', 'pincode',
            'contact_person', 'contact_phone', 'contact_email', 'status',
        ]
