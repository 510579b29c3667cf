# students/services.py
"""
Business logic services for student management.
Handles operations that span students, parents and classes.
"""

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Count, Q
from django.utils.dateparse import parse_date
import logging

from academics.models import Attendance, Mark, SchoolClass, Section
from utils.forms import validate_person_name, validate_phone_number

from .models import Parent, Student

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    'admission_number', 'name', 'dob', 'gender', 'blood_group',
    'class', 'section', 'parent_phone', 'address', 'admission_date',
]

GENDERS = {code for code, _label in Student.GENDER_CHOICES}
BLOOD_GROUPS = {code for code, _label in Student.BLOOD_GROUP_CHOICES}
STATUSES = {code for code, _label in Student.STATUS_CHOICES}


def _parse_optional_date(value, label):
    if not value:
        return None
    if hasattr(value, 'isoformat'):
        return value
    parsed = parse_date(str(value))
    if parsed is None:
        raise ValidationError(f"Invalid {label} '{value}' (expected YYYY-MM-DD)")
    return parsed


# =============================================================================
# STUDENT SERVICE
# =============================================================================

class StudentService:
    """Create/update students together with their parent record."""

    @staticmethod
    def resolve_parent(school_id, phone, parent_name='', student_name=''):
        """
        Parent with this phone in the school, created when missing.
        A given name replaces the stored one.
        """
        if not phone:
            return None
        phone = phone.strip()
        validate_phone_number(phone)
        if parent_name:
            validate_person_name(parent_name)

        parent = Parent.all_objects.filter(school_id=school_id, phone=phone).first()
        if parent is None:
            parent = Parent.all_objects.create(
                school_id=school_id,
                phone=phone,
                name=parent_name or f"Guardian of {student_name}",
            )
            logger.info(f"Created parent {parent.name} ({phone})")
        elif parent_name and parent.name != parent_name:
            parent.name = parent_name
            parent.save(update_fields=['name'])
        return parent

    @staticmethod
    def resolve_placement(school_id, class_id=None, section_id=None):
        """(class, section) after checking they belong together and to the school."""
        school_class = None
        section = None
        if class_id:
            school_class = SchoolClass.all_objects.filter(school_id=school_id, pk=class_id).first()
            if school_class is None:
                raise ValidationError("Selected class does not exist.")
        if section_id:
            section = Section.all_objects.select_related('school_class').filter(
                school_id=school_id, pk=section_id
            ).first()
            if section is None:
                raise ValidationError("Selected section does not exist.")
            if school_class is None:
                school_class = section.school_class
            elif section.school_class_id != school_class.pk:
                raise ValidationError("Section does not belong to the selected class.")
        return school_class, section

    @staticmethod
    @transaction.atomic
    def create_student_with_parent(school_id, admission_number, name, dob=None, gender='male',
                                   class_id=None, section_id=None, blood_group='', address='',
                                   admission_date=None, status='active', parent_name='',
                                   parent_phone=''):
        """
        Create a student and link (or create) the parent identified by phone.

        Returns:
            Student instance

        Raises:
            ValidationError: invalid fields or duplicate admission number
        """
        admission_number = (admission_number or '').strip()
        name = (name or '').strip()
        if not admission_number or not name:
            raise ValidationError("Admission number and name are required.")
        validate_person_name(name)

        if Student.all_objects.filter(school_id=school_id, admission_number=admission_number).exists():
            raise ValidationError(f"Admission number {admission_number} already exists.")

        gender = (gender or 'male').lower()
        if gender not in GENDERS:
            raise ValidationError(f"Invalid gender '{gender}'.")
        if blood_group and blood_group not in BLOOD_GROUPS:
            raise ValidationError(f"Invalid blood group '{blood_group}'.")
        if status not in STATUSES:
            raise ValidationError(f"Invalid status '{status}'.")

        school_class, section = StudentService.resolve_placement(school_id, class_id, section_id)
        parent = StudentService.resolve_parent(school_id, parent_phone, parent_name, student_name=name)

        student = Student(
            school_id=school_id,
            admission_number=admission_number,
            name=name,
            date_of_birth=_parse_optional_date(dob, 'date of birth'),
            gender=gender,
            blood_group=blood_group or '',
            school_class=school_class,
            section=section,
            parent=parent,
            status=status,
            address=address or '',
        )
        admission_date = _parse_optional_date(admission_date, 'admission date')
        if admission_date:
            student.admission_date = admission_date
        student.save()

        logger.info(f"Created student {student.name} ({student.admission_number})")
        return student

    @staticmethod
    @transaction.atomic
    def update_student(student, data, parent_name='', parent_phone=''):
        """Apply cleaned form data to a student and re-link the parent."""
        for field, value in data.items():
            setattr(student, field, value)
        if student.section_id and student.section.school_class_id != student.school_class_id:
            raise ValidationError("Section does not belong to the selected class.")
        if parent_phone:
            student.parent = StudentService.resolve_parent(
                student.school_id, parent_phone, parent_name, student_name=student.name
            )
        student.save()
        logger.info(f"Updated student {student.name} ({student.admission_number})")
        return student

    @staticmethod
    def link_parent_account(parent, user_id):
        """Attach a portal login to a parent; one parent per login in a school."""
        user_id = (user_id or '').strip() or None
        if user_id and Parent.all_objects.filter(
            school_id=parent.school_id, user_id=user_id
        ).exclude(pk=parent.pk).exists():
            raise ValidationError(f"Login {user_id} is already linked to another parent.")
        parent.user_id = user_id
        parent.save(update_fields=['user_id'])
        logger.info(f"{'Linked' if user_id else 'Unlinked'} portal login for parent {parent.name}")
        return parent

    @staticmethod
    def profile(student, academic_year):
        """Student profile: fee record, attendance rate and marks."""
        from fees.models import StudentFee

        fee = StudentFee.all_objects.filter(student=student, academic_year=academic_year).first()

        attendance = Attendance.all_objects.filter(student=student).aggregate(
            total=Count('id'),
            present=Count('id', filter=Q(status__in=['present', 'late', 'half_day'])),
        )
        attendance_rate = 0.0
        if attendance['total']:
            attendance_rate = round(attendance['present'] / attendance['total'] * 100, 1)

        marks = [
            {
                'exam': mark.exam.name,
                'subject': mark.subject.name,
                'marks_obtained': mark.marks_obtained,
                'max_marks': mark.max_marks,
                'grade': mark.grade,
            }
            for mark in Mark.all_objects.filter(student=student).select_related('exam', 'subject')
            .order_by('-exam__start_date', 'subject__name')
        ]

        return {
            'fee': {
                'total_fee': fee.total_fee,
                'net_fee': fee.net_fee,
                'paid_amount': fee.paid_amount,
                'pending_amount': fee.pending_amount,
                'status': fee.status,
            } if fee else None,
            'attendance': {**attendance, 'rate': attendance_rate},
            'marks': marks,
        }


# =============================================================================
# CSV IMPORT / EXPORT
# =============================================================================

class StudentImportService:

    @staticmethod
    def _import_row(school_id, row):
        admission_number = row.get('admission_number', '')
        name = row.get('name', '')
        if not admission_number or not name:
            raise ValidationError("admission_number and name are required")

        class_id = None
        section_id = None
        class_name = row.get('class', '')
        if class_name:
            school_class = SchoolClass.all_objects.filter(school_id=school_id, name__iexact=class_name).first()
            if school_class is None:
                raise ValidationError(f"Class '{class_name}' not found")
            class_id = school_class.pk
            section_name = row.get('section', '')
            if section_name:
                section = Section.all_objects.filter(
                    school_id=school_id, school_class=school_class, name__iexact=section_name
                ).first()
                if section is None:
                    raise ValidationError(f"Section '{section_name}' not found in {school_class.name}")
                section_id = section.pk

        return StudentService.create_student_with_parent(
            school_id=school_id,
            admission_number=admission_number,
            name=name,
            dob=row.get('dob') or None,
            gender=row.get('gender') or 'male',
            class_id=class_id,
            section_id=section_id,
            blood_group=(row.get('blood_group') or '').upper(),
            address=row.get('address', ''),
            admission_date=row.get('admission_date') or None,
            parent_name=row.get('parent_name', ''),
            parent_phone=row.get('parent_phone', ''),
        )

    @staticmethod
    def import_rows(school_id, rows):
        """
        Create students from parsed CSV rows. Rows that fail are reported
        and skipped; rows already saved stay saved.

        Returns:
            dict: {'success': int, 'errors': ['Row N: ...']}
        """
        success = 0
        errors = []
        for index, row in enumerate(rows, start=2):
            line = row.get('_row', index)
            try:
                StudentImportService._import_row(school_id, row)
                success += 1
            except ValidationError as e:
                errors.append(f"Row {line}: {' '.join(e.messages)}")
            except IntegrityError as e:
                logger.warning(f"Student import row {line} failed: {e}")
                errors.append(f"Row {line}: Duplicate or invalid record")

        logger.info(f"Student import: {success} created, {len(errors)} errors")
        return {'success': success, 'errors': errors}

    @staticmethod
    def export_rows(students):
        """Rows in CSV_HEADERS order, readable by import_rows."""
        rows = []
        for student in students.select_related('school_class', 'section', 'parent'):
            rows.append([
                student.admission_number,
                student.name,
                student.date_of_birth.isoformat() if student.date_of_birth else '',
                student.gender,
                student.blood_group,
                student.school_class.name if student.school_class_id else '',
                student.section.name if student.section_id else '',
                student.parent.phone if student.parent_id else '',
                student.address,
                student.admission_date.isoformat() if student.admission_date else '',
            ])
        return rows
