# tests/test_reports.py

from datetime import date
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError
from django.utils import timezone

from academics.models import Exam
from academics.services import AttendanceService, MarksService, SubjectService
from fees.services import FeeService
from reports.services import ReportService, is_pass
from schooldesk.managers import SchoolContext
from students.models import Student

from .conftest import ACADEMIC_YEAR

pytestmark = pytest.mark.django_db

DAY = date(2024, 7, 15)


@pytest.fixture
def roster(make_student):
    return [make_student('Asha Verma'), make_student('Kiran Das')]


@pytest.mark.parametrize('grade, obtained, maximum, expected', [
    ('A', 10, 100, True),
    ('F', 90, 100, False),
    ('Fail', 90, 100, False),
    ('', 33, 100, True),
    ('', 32, 100, False),
    ('', 5, 0, False),
])
def test_pass_rule(grade, obtained, maximum, expected):
    assert is_pass(grade, obtained, maximum) is expected


def test_attendance_report(school_class, roster):
    AttendanceService.save_day(school_class, DAY, {str(roster[1].pk): 'absent'})
    AttendanceService.save_day(school_class, date(2024, 8, 1), {})

    report = ReportService.attendance(date(2024, 7, 1), date(2024, 7, 31))

    assert report['summary'] == {
        'total_records': 2, 'present_count': 1, 'absent_count': 1, 'attendance_rate': Decimal('50.0'),
    }
    assert report['headers'][0] == 'student_name'
    assert {row[4] for row in report['rows']} == {'present', 'absent'}


def test_exam_report(school, school_class, roster):
    exam = Exam.all_objects.create(school=school, name='Term 1', exam_type='mid_term',
                                   academic_year=ACADEMIC_YEAR, school_class=school_class)
    subject = SubjectService.create_subject(school.pk, 'Science', 'SCI')
    MarksService.save_marks(exam, subject, [
        {'student_id': roster[0].pk, 'marks_obtained': 72},
        {'student_id': roster[1].pk, 'marks_obtained': 20},
    ])

    summary = ReportService.exams()['summary']
    assert summary['total_results'] == 2
    assert summary['avg_marks'] == Decimal('46.00')
    assert summary['pass_count'] == 1
    assert summary['pass_rate'] == Decimal('50.0')


def test_student_report(roster):
    Student.all_objects.filter(pk=roster[1].pk).update(status='transferred')
    summary = ReportService.students()['summary']
    assert summary == {'total_students': 2, 'active_students': 1, 'inactive_students': 1}


def test_fee_report_summarises_payments_in_range(student, fee_structure):
    (installment,) = FeeService.generate_installments(student, ACADEMIC_YEAR)
    FeeService.record_installment_payment(installment, '1500')
    today = timezone.localdate()

    report = ReportService.fees(today, today)
    assert len(report['rows']) == 1
    assert report['rows'][0][5] == Decimal('1500')
    assert report['summary'] == {
        'total_amount': Decimal('1500'), 'total_transactions': 1, 'avg_transaction': Decimal('1500.00'),
    }

    earlier = ReportService.fees(date(2000, 1, 1), date(2000, 1, 31))
    assert earlier['summary']['total_transactions'] == 0
    assert len(earlier['rows']) == 1


def test_reports_are_scoped_to_school(school, other_school, roster):
    with SchoolContext(other_school):
        assert ReportService.students()['summary']['total_students'] == 0
    with SchoolContext(school):
        assert ReportService.students()['summary']['total_students'] == 2


def test_unknown_report_type():
    with pytest.raises(ValidationError, match='Unknown report type'):
        ReportService.build('library', DAY, DAY)


def test_dashboard(school, roster, school_class):
    AttendanceService.save_day(school_class, DAY, {str(roster[0].pk): 'absent'})
    with SchoolContext(school):
        stats = ReportService.dashboard(ACADEMIC_YEAR, today=DAY)

    assert stats['total_students'] == 2
    assert stats['attendance_marked_today'] == 2
    assert stats['present_today'] == 1
    assert stats['attendance_rate_today'] == 50
    assert stats['fees']['records'] == 0
    assert stats['active_announcements'] == 0


class TestReportViews:

    def test_json_report(self, login, roster):
        client = login('ADMIN')
        response = client.get('/reports/students/')
        assert response.status_code == 200
        assert response.json()['summary']['total_students'] == 2

    def test_csv_export(self, login, roster):
        client = login('ADMIN')
        response = client.get('/reports/students/', {
            'format': 'csv', 'start_date': '2024-07-01', 'end_date': '2024-07-31',
        })
        assert response['Content-Type'] == 'text/csv'
        assert response['Content-Disposition'] == 'attachment; filename="students_report_2024-07-01_to_2024-07-31.csv"'
        lines = response.content.decode().splitlines()
        assert lines[0].startswith('name,admission_number,class')
        assert len(lines) == 3

    def test_excel_and_pdf_exports(self, login, roster):
        client = login('ADMIN')
        xlsx = client.get('/reports/students/', {'format': 'xlsx'})
        assert xlsx['Content-Type'] == 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
        pdf = client.get('/reports/students/', {'format': 'pdf'})
        assert pdf['Content-Type'] == 'application/pdf'
        assert pdf.content.startswith(b'%PDF')

    def test_bad_range_and_type(self, login):
        client = login('ADMIN')
        assert client.get('/reports/library/').status_code == 400
        response = client.get('/reports/students/', {'start_date': '2024-08-01', 'end_date': '2024-07-01'})
        assert response.status_code == 400

    def test_educators_cannot_run_reports(self, login):
        client = login('EDUCATOR')
        assert client.get('/reports/students/').status_code == 403
