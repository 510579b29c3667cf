# academics/models.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from utils.models import BaseModel


# =============================================================================
# CLASSES & SECTIONS
# =============================================================================

class SchoolClass(BaseModel):
    """A grade/standard, e.g. 'Grade 5'."""

    name = models.CharField("Class Name", max_length=50)
    sort_order = models.PositiveIntegerField("Sort Order", default=0)
    description = models.TextField("Description", blank=True)
    is_active = models.BooleanField("Active", default=True)

    class Meta:
        ordering = ['sort_order', 'name']
        constraints = [
            models.UniqueConstraint(fields=['school', 'name'], name='unique_class_name_per_school'),
        ]
        verbose_name = "Class"
        verbose_name_plural = "Classes"

    def __str__(self):
        return self.name


class Section(BaseModel):

    school_class = models.ForeignKey(SchoolClass, on_delete=models.CASCADE, related_name='sections')
    name = models.CharField("Section Name", max_length=20)
    capacity = models.PositiveIntegerField("Capacity", default=40)
    class_teacher = models.ForeignKey(
        'hr.Educator',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='class_sections',
    )

    class Meta:
        ordering = ['school_class__sort_order', 'name']
        constraints = [
            models.UniqueConstraint(fields=['school_class', 'name'], name='unique_section_per_class'),
        ]

    def __str__(self):
        return f"{self.school_class.name} - {self.name}"

    def clean(self):
        if self.school_class_id and self.school_id and self.school_class.school_id != self.school_id:
            raise ValidationError("Section and class must belong to the same school.")


# =============================================================================
# SUBJECTS
# =============================================================================

class Subject(BaseModel):
    """
    A subject. Rows with no school form the global catalogue that every
    school can use; schools add their own on top.
    """

    school = models.ForeignKey(
        'accounts.School',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='subjects',
    )
    name = models.CharField("Subject Name", max_length=100)
    code = models.CharField("Subject Code", max_length=20)
    description = models.TextField("Description", blank=True)
    is_active = models.BooleanField("Active", default=True)

    school_required = False

    class Meta:
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.code})"

    @property
    def is_global(self):
        return self.school_id is None


class ClassSubject(BaseModel):
    """Subjects taught in a class, optionally with the assigned educator."""

    school_class = models.ForeignKey(SchoolClass, on_delete=models.CASCADE, related_name='class_subjects')
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name='class_subjects')
    educator = models.ForeignKey(
        'hr.Educator',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='class_subjects',
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['school_class', 'subject'], name='unique_subject_per_class'),
        ]

    def __str__(self):
        return f"{self.school_class} - {self.subject.name}"


# =============================================================================
# EXAMS & MARKS
# =============================================================================

class Exam(BaseModel):

    EXAM_TYPE_CHOICES = [
        ('unit_test', 'Unit Test'),
        ('mid_term', 'Mid Term'),
        ('quarterly', 'Quarterly'),
        ('half_yearly', 'Half Yearly'),
        ('final', 'Final'),
        ('annual', 'Annual'),
    ]

    name = models.CharField("Exam Name", max_length=150)
    exam_type = models.CharField("Exam Type", max_length=20, choices=EXAM_TYPE_CHOICES, default='unit_test')
    academic_year = models.CharField("Academic Year", max_length=9, db_index=True)
    school_class = models.ForeignKey(
        SchoolClass,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='exams',
    )
    start_date = models.DateField("Start Date", null=True, blank=True)
    end_date = models.DateField("End Date", null=True, blank=True)
    is_published = models.BooleanField("Published", default=False)

    class Meta:
        ordering = ['-start_date', 'name']

    def __str__(self):
        return f"{self.name} ({self.academic_year})"

    def clean(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError("End date cannot be before start date.")


class ExamSubject(BaseModel):
    """Per-exam subject configuration: maximum and passing marks."""

    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='exam_subjects')
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name='exam_subjects')
    max_marks = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal('100'))
    passing_marks = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal('33'))
    exam_date = models.DateField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['exam', 'subject'], name='unique_subject_per_exam'),
        ]


class Mark(BaseModel):

    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='marks')
    student = models.ForeignKey('students.Student', on_delete=models.CASCADE, related_name='marks')
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name='marks')
    marks_obtained = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0'))],
    )
    max_marks = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal('100'))
    grade = models.CharField(max_length=5, blank=True)
    remarks = models.CharField(max_length=255, blank=True)
    entered_by = models.CharField(max_length=64, blank=True, null=True)
    is_locked = models.BooleanField(default=False)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['exam', 'student', 'subject'], name='unique_mark_per_exam_subject'),
        ]

    def __str__(self):
        return f"{self.student} - {self.subject.name}: {self.marks_obtained}/{self.max_marks}"


# =============================================================================
# ATTENDANCE
# =============================================================================

class Attendance(BaseModel):

    STATUS_CHOICES = [
        ('present', 'Present'),
        ('absent', 'Absent'),
        ('late', 'Late'),
        ('half_day', 'Half Day'),
        ('on_leave', 'On Leave'),
    ]

    student = models.ForeignKey('students.Student', on_delete=models.CASCADE, related_name='attendance_records')
    date = models.DateField(default=timezone.localdate, db_index=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='present')
    marked_by = models.CharField(max_length=64, blank=True, null=True)
    remarks = models.CharField(max_length=255, blank=True, null=True)

    class Meta:
        ordering = ['-date']
        constraints = [
            models.UniqueConstraint(fields=['student', 'date'], name='unique_attendance_per_day'),
        ]
        verbose_name_plural = "Attendance"

    def __str__(self):
        return f"{self.student} - {self.date}: {self.status}"
