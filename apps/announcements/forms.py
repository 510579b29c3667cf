# announcements/forms.py

from django import forms

from academics.models import SchoolClass, Section
from utils.forms import BootstrapFormMixin

from .models import AUDIENCE_CHOICES, Announcement


class AnnouncementForm(BootstrapFormMixin, forms.ModelForm):
    target_classes = forms.ModelMultipleChoiceField(queryset=SchoolClass.objects.none(), required=False)
    target_sections = forms.ModelMultipleChoiceField(queryset=Section.objects.none(), required=False)
    audience = forms.MultipleChoiceField(choices=AUDIENCE_CHOICES, required=False)

    class Meta:
        model = Announcement
        fields = ['title', 'content', 'target_scope', 'priority', 'expires_at']
        widgets = {
            'content': forms.Textarea(attrs={'rows': 5}),
            'expires_at': forms.DateTimeInput(attrs={'type': 'datetime-local'}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['target_classes'].queryset = SchoolClass.objects.all()
        self.fields['target_sections'].queryset = Section.objects.all()

    def clean_title(self):
        title = self.cleaned_data['title'].strip()
        if not title:
            raise forms.ValidationError("Title is required.")
        return title
