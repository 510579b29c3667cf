# academics/forms.py

from django import forms

from hr.models import Educator
from utils.forms import BootstrapFormMixin, DatePickerInput, validate_academic_year_format

from .models import Exam, ExamSubject, SchoolClass, Section, Subject


class SchoolClassForm(BootstrapFormMixin, forms.ModelForm):
    class Meta:
        model = SchoolClass
        fields = ['name', 'sort_order', 'description', 'is_active']

    def clean_name(self):
        name = self.cleaned_data['name'].strip()
        duplicates = SchoolClass.objects.filter(name__iexact=name)
        if self.instance.pk:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise forms.ValidationError(f"Class '{name}' already exists.")
        return name


class SectionForm(BootstrapFormMixin, forms.ModelForm):
    class Meta:
        model = Section
        fields = ['school_class', 'name', 'capacity', 'class_teacher']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['school_class'].queryset = SchoolClass.objects.all()
        self.fields['class_teacher'].queryset = Educator.objects.filter(status='active')

    def clean(self):
        cleaned_data = super().clean()
        school_class = cleaned_data.get('school_class')
        name = (cleaned_data.get('name') or '').strip()
        if school_class and name:
            duplicates = Section.objects.filter(school_class=school_class, name__iexact=name)
            if self.instance.pk:
                duplicates = duplicates.exclude(pk=self.instance.pk)
            if duplicates.exists():
                self.add_error('name', f"Section {name} already exists in {school_class.name}.")
        return cleaned_data


class SubjectForm(BootstrapFormMixin, forms.ModelForm):
    class Meta:
        model = Subject
        fields = ['name', 'code', 'description']


class ExamForm(BootstrapFormMixin, forms.ModelForm):
    class Meta:
        model = Exam
        fields = ['name', 'exam_type', 'academic_year', 'school_class', 'start_date', 'end_date']
        widgets = {
            'start_date': DatePickerInput(),
            'end_date': DatePickerInput(),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['school_class'].queryset = SchoolClass.objects.all()

    def clean_academic_year(self):
        value = self.cleaned_data['academic_year']
        validate_academic_year_format(value)
        return value


class ExamSubjectForm(BootstrapFormMixin, forms.ModelForm):
    class Meta:
        model = ExamSubject
        fields = ['subject', 'max_marks', 'passing_marks', 'exam_date']
        widgets = {'exam_date': DatePickerInput()}

    def clean(self):
        cleaned_data = super().clean()
        max_marks = cleaned_data.get('max_marks')
        passing = cleaned_data.get('passing_marks')
        if max_marks is not None and max_marks <= 0:
            self.add_error('max_marks', "Maximum marks must be greater than zero.")
        if max_marks is not None and passing is not None and passing > max_marks:
            self.add_error('passing_marks', "Passing marks cannot exceed maximum marks.")
        return cleaned_data


class AttendanceUploadForm(forms.Form):
    file = forms.FileField()
    date = forms.DateField()
    school_class = forms.ModelChoiceField(queryset=SchoolClass.objects.none())
    section = forms.ModelChoiceField(queryset=Section.objects.none(), required=False)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['school_class'].queryset = SchoolClass.objects.all()
        self.fields['section'].queryset = Section.objects.all()
