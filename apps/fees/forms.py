# fees/forms.py

from decimal import Decimal

from django import forms
from django.conf import settings

from academics.models import SchoolClass
from utils.forms import BootstrapFormMixin, DatePickerInput, validate_academic_year_format

from .models import ClassFeeStructure, FeePayment, FeeType


# =============================================================================
# FEE DEFINITIONS
# =============================================================================

class FeeTypeForm(BootstrapFormMixin, forms.ModelForm):
    class Meta:
        model = FeeType
        fields = ['name', 'description', 'frequency', 'is_mandatory', 'is_active']

    def clean_name(self):
        name = self.cleaned_data['name'].strip()
        duplicates = FeeType.objects.filter(name__iexact=name)
        if self.instance.pk:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise forms.ValidationError("A fee type with this name already exists.")
        return name


class ClassFeeStructureForm(BootstrapFormMixin, forms.ModelForm):
    class Meta:
        model = ClassFeeStructure
        fields = ['school_class', 'fee_type', 'academic_year', 'amount']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['school_class'].queryset = SchoolClass.objects.filter(is_active=True)
        self.fields['fee_type'].queryset = FeeType.objects.filter(is_active=True)
        if not self.instance.pk:
            self.initial.setdefault('academic_year', settings.SCHOOLDESK_ACADEMIC_YEAR)

    def clean_academic_year(self):
        value = self.cleaned_data['academic_year']
        validate_academic_year_format(value)
        return value


# =============================================================================
# PAYMENTS & DISCOUNTS
# =============================================================================

class PaymentForm(BootstrapFormMixin, forms.Form):
    amount = forms.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    payment_mode = forms.ChoiceField(choices=FeePayment.PAYMENT_MODE_CHOICES, initial='cash')
    transaction_ref = forms.CharField(max_length=100, required=False)
    payment_date = forms.DateField(required=False, widget=DatePickerInput())
    remarks = forms.CharField(required=False, widget=forms.Textarea(attrs={'rows': 2}))


class DiscountForm(BootstrapFormMixin, forms.Form):
    discount_amount = forms.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'))
    reason = forms.CharField(widget=forms.Textarea(attrs={'rows': 2}))


class GenerateInstallmentsForm(BootstrapFormMixin, forms.Form):
    academic_year = forms.CharField(max_length=9, validators=[validate_academic_year_format])
    number_of_installments = forms.IntegerField(min_value=1, max_value=12, initial=1)
    first_due_date = forms.DateField(required=False, widget=DatePickerInput())
    interval_months = forms.IntegerField(min_value=1, max_value=12, required=False)

    def clean_interval_months(self):
        return self.cleaned_data.get('interval_months') or 1
