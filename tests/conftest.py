# tests/conftest.py

from decimal import Decimal
from itertools import count

import pytest

from academics.models import SchoolClass, Section
from accounts.models import School
from fees.models import ClassFeeStructure, FeeType
from schooldesk.managers import SchoolContext, clear_current_school_id
from students.services import StudentService

ACADEMIC_YEAR = '2024-25'


@pytest.fixture(autouse=True)
def reset_tenant():
    clear_current_school_id()
    yield
    clear_current_school_id()


# =============================================================================
# SCHOOLS
# =============================================================================

@pytest.fixture
def school(db):
    return School.objects.create(name='Greenfield Public School', city='Pune', state='Maharashtra')


@pytest.fixture
def other_school(school):
    return School.objects.create(name='Riverside Academy')


@pytest.fixture
def tenant(school):
    """Run the test body scoped to `school`."""
    with SchoolContext(school):
        yield school


# =============================================================================
# CLASSES & STUDENTS
# =============================================================================

@pytest.fixture
def school_class(school):
    return SchoolClass.all_objects.create(school=school, name='Grade 5', sort_order=5)


@pytest.fixture
def section(school, school_class):
    return Section.all_objects.create(school=school, school_class=school_class, name='A')


@pytest.fixture
def make_student(school, school_class, section):
    numbers = count(1)

    def _make(name='Asha Verma', **kwargs):
        kwargs.setdefault('class_id', school_class.pk)
        kwargs.setdefault('section_id', section.pk)
        admission_number = kwargs.pop('admission_number', None) or f"ADM{next(numbers):03d}"
        return StudentService.create_student_with_parent(
            school.pk, admission_number=admission_number, name=name, **kwargs
        )

    return _make


@pytest.fixture
def student(make_student):
    return make_student('Asha Verma', parent_phone='9876543210', parent_name='Ravi Verma')


@pytest.fixture
def fee_structure(school, school_class):
    """Tuition 9000 + Transport 3000 for Grade 5."""
    tuition = FeeType.all_objects.create(school=school, name='Tuition')
    transport = FeeType.all_objects.create(school=school, name='Transport')
    for fee_type, amount in ((tuition, '9000'), (transport, '3000')):
        ClassFeeStructure.all_objects.create(
            school=school, school_class=school_class, fee_type=fee_type,
            academic_year=ACADEMIC_YEAR, amount=Decimal(amount),
        )
    return school_class


# =============================================================================
# HTTP
# =============================================================================

@pytest.fixture
def login(client, school, settings):
    """Mock-auth login; the session acts on the oldest active school."""
    settings.SCHOOLDESK_MOCK_AUTH = True

    def _login(role='ADMIN'):
        response = client.post('/login/', {'role': role}, content_type='application/json')
        assert response.status_code == 200, response.content
        return client

    return _login
