# expenses/forms.py

from decimal import Decimal

from django import forms
from django.utils import timezone

from utils.forms import BootstrapFormMixin, DatePickerInput

from .models import Expense


class ExpenseForm(BootstrapFormMixin, forms.ModelForm):
    amount = forms.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    date = forms.DateField(required=False, widget=DatePickerInput())

    class Meta:
        model = Expense
        fields = ['title', 'category', 'amount', 'date', 'payment_method', 'paid_to', 'description']
        widgets = {
            'description': forms.Textarea(attrs={'rows': 3}),
        }

    def clean_title(self):
        title = self.cleaned_data['title'].strip()
        if not title:
            raise forms.ValidationError("Title is required.")
        return title

    def clean_date(self):
        return self.cleaned_data.get('date') or timezone.localdate()


class ExpenseFilterForm(forms.Form):
    start = forms.DateField(required=False)
    end = forms.DateField(required=False)
    category = forms.ChoiceField(choices=[('', 'All')] + Expense.CATEGORY_CHOICES, required=False)

    def clean(self):
        cleaned = super().clean()
        start, end = cleaned.get('start'), cleaned.get('end')
        if start and end and start > end:
            raise forms.ValidationError("Start date must be on or before the end date.")
        return cleaned
