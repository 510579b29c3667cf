# academics/services.py

"""
Academic Services Module

- Subject catalogue (global subjects plus each school's own)
- Definition saves with change logging (classes, sections, subjects, exams)
- Daily attendance and attendance CSV upload
- Marks entry, grading and report cards
"""

from decimal import Decimal, ROUND_HALF_UP

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q
import logging

from hr.models import Educator
from students.models import Student
from utils.audit import log_definition_change
from utils.utils import to_decimal

from .models import Attendance, ClassSubject, Exam, ExamSubject, Mark, Subject

logger = logging.getLogger(__name__)

ATTENDANCE_STATUSES = {code for code, _label in Attendance.STATUS_CHOICES}
UPLOAD_STATUSES = ('present', 'absent')

# (minimum percentage, grade), highest first
GRADE_SCALE = [
    (Decimal('90'), 'A+'),
    (Decimal('80'), 'A'),
    (Decimal('70'), 'B'),
    (Decimal('60'), 'C'),
    (Decimal('40'), 'D'),
]
FAIL_GRADE = 'F'
DEFAULT_MAX_MARKS = Decimal('100')


# =============================================================================
# DEFINITIONS
# =============================================================================

def save_definition(entity_type, instance, impact_summary=''):
    """
    Validate and save a class/section/subject/exam, recording what changed.
    """
    is_new = instance._state.adding
    changes = {} if is_new else instance.tracked_changes()
    instance.full_clean(exclude=['school'])
    instance.save()
    log_definition_change(
        entity_type, instance, changes,
        impact_summary=impact_summary,
        action='CREATE' if is_new else 'UPDATE',
    )
    return instance


def delete_definition(entity_type, instance, impact_summary=''):
    log_definition_change(entity_type, instance, impact_summary=impact_summary, action='DELETE')
    instance.delete()


# =============================================================================
# SUBJECTS
# =============================================================================

class SubjectService:
    """Global catalogue subjects (no school) are visible to every school and read-only to them."""

    @staticmethod
    def get_available_subjects(school_id):
        return Subject.all_objects.filter(
            Q(school__isnull=True) | Q(school_id=school_id), is_active=True
        ).order_by('name')

    @staticmethod
    def _check_code(school_id, code, exclude_id=None):
        clash = SubjectService.get_available_subjects(school_id).filter(code__iexact=code)
        if exclude_id:
            clash = clash.exclude(pk=exclude_id)
        if clash.exists():
            raise ValidationError(f"Subject code '{code}' is already in use.")

    @staticmethod
    def _school_subject(subject_id, school_id):
        subject = Subject.all_objects.filter(pk=subject_id).first()
        if subject is None or (subject.school_id and str(subject.school_id) != str(school_id)):
            raise Subject.DoesNotExist("Subject not found.")
        if subject.is_global:
            raise ValidationError("Global subjects cannot be modified by a school.")
        return subject

    @staticmethod
    @transaction.atomic
    def create_subject(school_id, name, code, description=''):
        name = (name or '').strip()
        code = (code or '').strip().upper()
        if not name or not code:
            raise ValidationError("Subject name and code are required.")
        SubjectService._check_code(school_id, code)

        subject = Subject(school_id=school_id, name=name, code=code, description=description or '')
        save_definition('subject', subject)
        logger.info(f"Created subject {subject}")
        return subject

    @staticmethod
    @transaction.atomic
    def update_subject(subject_id, school_id, name, code, description=''):
        subject = SubjectService._school_subject(subject_id, school_id)
        code = (code or '').strip().upper()
        if not (name or '').strip() or not code:
            raise ValidationError("Subject name and code are required.")
        SubjectService._check_code(school_id, code, exclude_id=subject.pk)

        subject.name = name.strip()
        subject.code = code
        subject.description = description or ''
        save_definition('subject', subject)
        return subject

    @staticmethod
    @transaction.atomic
    def delete_subject(subject_id, school_id):
        subject = SubjectService._school_subject(subject_id, school_id)
        if subject.marks.exists():
            raise ValidationError("Subject has marks recorded and cannot be deleted.")
        delete_definition('subject', subject)
        logger.info(f"Deleted subject {subject_id}")

    @staticmethod
    def class_subjects(school_class):
        return (
            ClassSubject.all_objects.filter(school_class=school_class)
            .select_related('subject', 'educator')
            .order_by('subject__name')
        )

    @staticmethod
    @transaction.atomic
    def assign_to_class(school_class, subject_id, educator_id=None):
        """
        Teach an available subject (global or the school's own) in a class,
        optionally naming the educator. Re-assigning updates the educator.
        """
        subject = SubjectService.get_available_subjects(school_class.school_id).filter(pk=subject_id).first()
        if subject is None:
            raise Subject.DoesNotExist("Subject not found.")
        if educator_id and not Educator.all_objects.filter(pk=educator_id, school_id=school_class.school_id).exists():
            raise ValidationError("Educator does not belong to this school.")

        class_subject, created = ClassSubject.all_objects.update_or_create(
            school_id=school_class.school_id,
            school_class=school_class,
            subject=subject,
            defaults={'educator_id': educator_id or None},
        )
        logger.info(f"{'Assigned' if created else 'Updated'} {subject.name} for {school_class.name}")
        return class_subject


# =============================================================================
# ATTENDANCE
# =============================================================================

class AttendanceService:

    @staticmethod
    def roster(school_class, section=None):
        students = Student.objects.filter(school_class=school_class, status='active')
        if section is not None:
            students = students.filter(section=section)
        return students.order_by('name')

    @staticmethod
    def day_sheet(school_class, day, section=None):
        """Roster with each student's status for the day; unmarked students default to present."""
        students = list(AttendanceService.roster(school_class, section))
        marked = {
            a.student_id: a
            for a in Attendance.objects.filter(date=day, student__in=students)
        }
        sheet = []
        for student in students:
            record = marked.get(student.pk)
            sheet.append({
                'student_id': str(student.pk),
                'admission_number': student.admission_number,
                'name': student.name,
                'status': record.status if record else 'present',
                'remarks': record.remarks if record else '',
                'marked': record is not None,
            })
        return sheet

    @staticmethod
    @transaction.atomic
    def save_day(school_class, day, statuses, section=None, marked_by=None):
        """
        Replace the day's attendance for the roster: existing rows are
        deleted, then one row per student is inserted.

        statuses: {student_id: status}; students left out are present.

        Returns:
            int: rows written
        """
        students = list(AttendanceService.roster(school_class, section))
        statuses = {str(k): v for k, v in (statuses or {}).items()}

        invalid = {v for v in statuses.values() if v not in ATTENDANCE_STATUSES}
        if invalid:
            raise ValidationError(f"Invalid attendance status: {', '.join(sorted(invalid))}")

        Attendance.objects.filter(date=day, student__in=students).delete()
        records = [
            Attendance(
                school_id=student.school_id,
                student=student,
                date=day,
                status=statuses.get(str(student.pk), 'present'),
                marked_by=marked_by,
            )
            for student in students
        ]
        Attendance.objects.bulk_create(records)

        logger.info(f"Saved attendance for {school_class} on {day}: {len(records)} students")
        return len(records)

    @staticmethod
    def bulk_upload(school_class, day, rows, section=None, marked_by=None):
        """
        Attendance from CSV rows (admission_number, name, status, remarks).

        The roster's attendance for the day is cleared first; then each row
        is matched to a student by admission number or name and saved on
        its own. Bad rows are reported, not fatal.

        Returns:
            dict: {'success': int, 'errors': ['Row N: ...']}
        """
        students = list(AttendanceService.roster(school_class, section))
        by_admission = {s.admission_number: s for s in students}
        by_name = {s.name.lower(): s for s in students}

        Attendance.objects.filter(date=day, student__in=students).delete()

        success = 0
        errors = []
        for index, row in enumerate(rows, start=2):
            line = row.get('_row', index)
            student = by_admission.get(row.get('admission_number', '')) or by_name.get(
                (row.get('name') or '').lower()
            )
            if student is None:
                errors.append(f"Row {line}: Student not found")
                continue

            status = (row.get('status') or '').lower()
            if status not in UPLOAD_STATUSES:
                errors.append(f"Row {line}: Invalid status (must be present or absent)")
                continue

            Attendance.objects.update_or_create(
                student=student,
                date=day,
                defaults={
                    'school_id': student.school_id,
                    'status': status,
                    'remarks': row.get('remarks') or None,
                    'marked_by': marked_by,
                },
            )
            success += 1

        logger.info(f"Attendance upload for {school_class} on {day}: {success} saved, {len(errors)} errors")
        return {'success': success, 'errors': errors}


# =============================================================================
# MARKS & GRADES
# =============================================================================

def percentage_of(obtained, maximum):
    if not maximum:
        return Decimal('0')
    return (Decimal(obtained) / Decimal(maximum) * 100).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def grade_for(percentage):
    percentage = Decimal(percentage)
    for minimum, grade in GRADE_SCALE:
        if percentage >= minimum:
            return grade
    return FAIL_GRADE


class MarksService:

    @staticmethod
    def subject_config(exam, subject):
        config = ExamSubject.objects.filter(exam=exam, subject=subject).first()
        if config:
            return config.max_marks, config.passing_marks
        return DEFAULT_MAX_MARKS, None

    @staticmethod
    def marks_sheet(exam, subject, section=None):
        max_marks, _passing = MarksService.subject_config(exam, subject)
        students = Student.objects.filter(school_class=exam.school_class, status='active')
        if section is not None:
            students = students.filter(section=section)
        marks = {m.student_id: m for m in Mark.objects.filter(exam=exam, subject=subject)}
        return [
            {
                'student_id': str(student.pk),
                'admission_number': student.admission_number,
                'name': student.name,
                'marks_obtained': marks[student.pk].marks_obtained if student.pk in marks else None,
                'grade': marks[student.pk].grade if student.pk in marks else '',
                'is_locked': marks[student.pk].is_locked if student.pk in marks else False,
                'max_marks': max_marks,
            }
            for student in students.order_by('name')
        ]

    @staticmethod
    @transaction.atomic
    def save_marks(exam, subject, entries, entered_by=None):
        """
        Upsert marks for one exam subject.

        entries: [{'student_id', 'marks_obtained', 'remarks'}]; blank marks
        are skipped.

        Raises:
            ValidationError: marks out of range or row locked
        """
        max_marks, _passing = MarksService.subject_config(exam, subject)
        students = {
            str(s.pk): s for s in Student.objects.filter(pk__in=[e.get('student_id') for e in entries])
        }

        saved = 0
        for entry in entries:
            student = students.get(str(entry.get('student_id')))
            if student is None:
                raise ValidationError(f"Student {entry.get('student_id')} not found.")

            value = entry.get('marks_obtained')
            if value in (None, ''):
                continue
            obtained = to_decimal(value, f"marks for {student.name}")
            if obtained < 0 or obtained > max_marks:
                raise ValidationError(f"Marks for {student.name} must be between 0 and {max_marks}.")

            existing = Mark.objects.filter(exam=exam, student=student, subject=subject).first()
            if existing and existing.is_locked:
                raise ValidationError(f"Marks for {student.name} are locked.")

            Mark.objects.update_or_create(
                exam=exam,
                student=student,
                subject=subject,
                defaults={
                    'school_id': exam.school_id,
                    'marks_obtained': obtained,
                    'max_marks': max_marks,
                    'grade': grade_for(percentage_of(obtained, max_marks)),
                    'remarks': entry.get('remarks') or '',
                    'entered_by': entered_by,
                },
            )
            saved += 1

        logger.info(f"Saved {saved} marks for {exam} / {subject.name}")
        return saved

    @staticmethod
    def report_card(exam):
        """
        Per-student totals for an exam, ranked by percentage.
        """
        rows = {}
        for mark in Mark.objects.filter(exam=exam).select_related('student', 'subject').order_by('subject__name'):
            if mark.marks_obtained is None:
                continue
            row = rows.setdefault(mark.student_id, {
                'student_id': str(mark.student_id),
                'student_name': mark.student.name,
                'admission_number': mark.student.admission_number,
                'exam_name': exam.name,
                'total_obtained': Decimal('0'),
                'total_max': Decimal('0'),
                'subject_details': [],
            })
            row['total_obtained'] += mark.marks_obtained
            row['total_max'] += mark.max_marks
            row['subject_details'].append({
                'subject': mark.subject.name,
                'marks_obtained': mark.marks_obtained,
                'max_marks': mark.max_marks,
                'grade': mark.grade,
            })

        cards = list(rows.values())
        for card in cards:
            card['percentage'] = percentage_of(card['total_obtained'], card['total_max'])
            card['grade'] = grade_for(card['percentage'])
        cards.sort(key=lambda c: c['percentage'], reverse=True)
        for rank, card in enumerate(cards, start=1):
            card['rank'] = rank
        return cards

    @staticmethod
    def toggle_publish(exam):
        exam.is_published = not exam.is_published
        exam.save(update_fields=['is_published'])
        logger.info(f"Exam {exam} {'published' if exam.is_published else 'unpublished'}")
        return exam

    @staticmethod
    def lock_marks(exam):
        return Mark.objects.filter(exam=exam, is_locked=False).update(is_locked=True)
