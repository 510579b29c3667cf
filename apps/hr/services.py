# hr/services.py

"""
Educator services: employee ID generation and CSV import/export.
"""

from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.dateparse import parse_date
import logging

from utils.forms import validate_email_address, validate_person_name, validate_phone_number
from utils.utils import last_sequence

from .models import Educator

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    'employee_id', 'name', 'phone', 'email', 'designation',
    'qualification', 'experience_years', 'joining_date',
]


# =============================================================================
# EMPLOYEE ID GENERATION
# =============================================================================

class EmployeeIDService:

    @staticmethod
    @transaction.atomic
    def generate_employee_id(school_id, joining_year=None):
        """
        Next employee ID for a school.
        Format: EMP-<year>-001
        """
        year = joining_year or timezone.now().year
        prefix = f"EMP-{year}-"

        numbers = (
            Educator.all_objects.select_for_update()
            .filter(school_id=school_id, employee_id__startswith=prefix)
            .values_list('employee_id', flat=True)
        )
        next_seq = last_sequence(numbers, prefix) + 1

        employee_id = f"{prefix}{next_seq:03d}"
        logger.info(f"Generated employee ID: {employee_id}")
        return employee_id


# =============================================================================
# CSV IMPORT / EXPORT
# =============================================================================

class EducatorImportService:

    @staticmethod
    @transaction.atomic
    def _import_row(school_id, row):
        name = row.get('name', '')
        if not name:
            raise ValidationError("name is required")
        validate_person_name(name)
        validate_phone_number(row.get('phone', ''))
        validate_email_address(row.get('email', ''))

        employee_id = row.get('employee_id') or EmployeeIDService.generate_employee_id(school_id)
        if Educator.all_objects.filter(school_id=school_id, employee_id=employee_id).exists():
            raise ValidationError(f"Employee ID {employee_id} already exists")

        experience = Decimal('0')
        if row.get('experience_years'):
            try:
                experience = Decimal(row['experience_years'])
            except InvalidOperation:
                raise ValidationError(f"Invalid experience_years '{row['experience_years']}'")

        joining_date = timezone.localdate()
        if row.get('joining_date'):
            joining_date = parse_date(row['joining_date'])
            if joining_date is None:
                raise ValidationError(f"Invalid joining_date '{row['joining_date']}' (expected YYYY-MM-DD)")

        return Educator.all_objects.create(
            school_id=school_id,
            employee_id=employee_id,
            name=name,
            phone=row.get('phone', ''),
            email=row.get('email', ''),
            designation=row.get('designation', ''),
            qualification=row.get('qualification', ''),
            experience_years=experience,
            joining_date=joining_date,
        )

    @staticmethod
    def import_rows(school_id, rows):
        """
        Returns:
            dict: {'success': int, 'errors': ['Row N: ...']}
        """
        success = 0
        errors = []
        for index, row in enumerate(rows, start=2):
            line = row.get('_row', index)
            try:
                EducatorImportService._import_row(school_id, row)
                success += 1
            except ValidationError as e:
                errors.append(f"Row {line}: {' '.join(e.messages)}")
            except IntegrityError as e:
                logger.warning(f"Educator import row {line} failed: {e}")
                errors.append(f"Row {line}: Duplicate or invalid record")

        logger.info(f"Educator import: {success} created, {len(errors)} errors")
        return {'success': success, 'errors': errors}

    @staticmethod
    def export_rows(educators):
        return [
            [
                e.employee_id, e.name, e.phone, e.email, e.designation,
                e.qualification, e.experience_years, e.joining_date.isoformat(),
            ]
            for e in educators
        ]
