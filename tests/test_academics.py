# tests/test_academics.py

from datetime import date
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from academics.models import Attendance, ClassSubject, Exam, ExamSubject, Mark, Subject
from academics.services import (
    AttendanceService,
    MarksService,
    SubjectService,
    grade_for,
    percentage_of,
)
from hr.models import Educator
from utils.models import DefinitionChangeLog

pytestmark = pytest.mark.django_db

DAY = date(2024, 7, 15)


@pytest.fixture
def global_subject(db):
    return Subject.all_objects.create(name='Mathematics', code='MATH')


@pytest.fixture
def roster(make_student):
    return [make_student('Asha Verma'), make_student('Kiran Das')]


@pytest.fixture
def exam(school, school_class):
    return Exam.all_objects.create(
        school=school, name='Term 1', exam_type='mid_term', academic_year='2024-25', school_class=school_class
    )


# =============================================================================
# SUBJECTS
# =============================================================================

class TestSubjects:

    def test_global_and_own_subjects_are_available(self, school, other_school, global_subject):
        SubjectService.create_subject(school.pk, 'Robotics', 'rob')
        SubjectService.create_subject(other_school.pk, 'Pottery', 'pot')

        codes = [s.code for s in SubjectService.get_available_subjects(school.pk)]
        assert codes == ['MATH', 'ROB']

    def test_code_is_unique_against_global_catalogue(self, school, global_subject):
        with pytest.raises(ValidationError, match="'MATH' is already in use"):
            SubjectService.create_subject(school.pk, 'Maths', 'math')

    def test_global_subject_is_read_only(self, school, global_subject):
        with pytest.raises(ValidationError, match='Global subjects cannot be modified'):
            SubjectService.update_subject(global_subject.pk, school.pk, 'Maths', 'MTH')
        with pytest.raises(ValidationError):
            SubjectService.delete_subject(global_subject.pk, school.pk)

    def test_other_school_subject_is_not_found(self, school, other_school):
        subject = SubjectService.create_subject(other_school.pk, 'Pottery', 'POT')
        with pytest.raises(Subject.DoesNotExist):
            SubjectService.update_subject(subject.pk, school.pk, 'Clay', 'CLY')

    def test_changes_are_logged(self, school):
        subject = SubjectService.create_subject(school.pk, 'Robotics', 'ROB')
        SubjectService.update_subject(subject.pk, school.pk, 'Robotics Lab', 'ROB')

        logs = DefinitionChangeLog.all_objects.filter(entity_id=str(subject.pk))
        assert set(logs.values_list('field_name', flat=True)) == {'create', 'name'}
        change = logs.get(field_name='name')
        assert (change.old_value, change.new_value) == ('Robotics', 'Robotics Lab')

    def test_subject_with_marks_cannot_be_deleted(self, school, exam, student):
        subject = SubjectService.create_subject(school.pk, 'Robotics', 'ROB')
        MarksService.save_marks(exam, subject, [{'student_id': student.pk, 'marks_obtained': 50}])
        with pytest.raises(ValidationError, match='marks recorded'):
            SubjectService.delete_subject(subject.pk, school.pk)


class TestClassSubjects:

    @pytest.fixture
    def educator(self, school):
        return Educator.all_objects.create(school=school, employee_id='EMP-2024-001', name='Neha Sharma')

    def test_assign_global_subject(self, school_class, global_subject, educator):
        SubjectService.assign_to_class(school_class, global_subject.pk, educator_id=educator.pk)

        assigned = list(SubjectService.class_subjects(school_class))
        assert [c.subject.code for c in assigned] == ['MATH']
        assert assigned[0].educator == educator

    def test_reassigning_updates_educator(self, school, school_class, global_subject, educator):
        SubjectService.assign_to_class(school_class, global_subject.pk, educator_id=educator.pk)
        SubjectService.assign_to_class(school_class, global_subject.pk)

        assert ClassSubject.all_objects.filter(school_class=school_class).count() == 1
        assert ClassSubject.all_objects.get(school_class=school_class).educator is None

    def test_educator_from_other_school(self, school_class, global_subject, other_school):
        outsider = Educator.all_objects.create(school=other_school, employee_id='T-01', name='Elsewhere')
        with pytest.raises(ValidationError, match='does not belong'):
            SubjectService.assign_to_class(school_class, global_subject.pk, educator_id=outsider.pk)

    def test_other_school_subject_is_unavailable(self, school_class, other_school):
        pottery = SubjectService.create_subject(other_school.pk, 'Pottery', 'POT')
        with pytest.raises(Subject.DoesNotExist):
            SubjectService.assign_to_class(school_class, pottery.pk)

    def test_class_subjects_view(self, login, school_class, global_subject, educator):
        client = login('ADMIN')
        url = f'/academics/classes/{school_class.pk}/subjects/'

        response = client.post(url, {
            'subject_id': str(global_subject.pk), 'educator_id': str(educator.pk),
        }, content_type='application/json')
        assert response.status_code == 201

        items = client.get(url).json()['items']
        assert [(i['subject_name'], i['educator_name']) for i in items] == [('Mathematics', 'Neha Sharma')]


# =============================================================================
# ATTENDANCE
# =============================================================================

class TestAttendance:

    def test_save_day_defaults_to_present(self, school_class, roster):
        asha, kiran = roster
        saved = AttendanceService.save_day(school_class, DAY, {str(kiran.pk): 'absent'})

        assert saved == 2
        statuses = dict(Attendance.all_objects.filter(date=DAY).values_list('student_id', 'status'))
        assert statuses == {asha.pk: 'present', kiran.pk: 'absent'}

    def test_save_day_replaces_previous_marks(self, school_class, roster):
        asha, _kiran = roster
        AttendanceService.save_day(school_class, DAY, {str(asha.pk): 'absent'})
        AttendanceService.save_day(school_class, DAY, {str(asha.pk): 'late'})

        assert Attendance.all_objects.filter(date=DAY).count() == 2
        assert Attendance.all_objects.get(student=asha, date=DAY).status == 'late'

    def test_invalid_status_saves_nothing(self, school_class, roster):
        with pytest.raises(ValidationError, match='Invalid attendance status'):
            AttendanceService.save_day(school_class, DAY, {str(roster[0].pk): 'sick'})
        assert not Attendance.all_objects.exists()

    def test_day_sheet_marks_unsaved_students_present(self, school_class, roster):
        AttendanceService.save_day(school_class, DAY, {str(roster[1].pk): 'absent'}, section=None)
        sheet = AttendanceService.day_sheet(school_class, date(2024, 7, 16))
        assert {row['status'] for row in sheet} == {'present'}
        assert not any(row['marked'] for row in sheet)

    def test_bulk_upload(self, school_class, roster):
        asha, kiran = roster
        rows = [
            {'_row': 2, 'admission_number': asha.admission_number, 'status': 'Absent', 'remarks': 'Fever'},
            {'_row': 3, 'admission_number': '', 'name': 'kiran das', 'status': 'present'},
            {'_row': 4, 'admission_number': 'NOPE', 'status': 'present'},
            {'_row': 5, 'admission_number': asha.admission_number, 'status': 'late'},
        ]
        result = AttendanceService.bulk_upload(school_class, DAY, rows)

        assert result['success'] == 2
        assert result['errors'] == [
            'Row 4: Student not found',
            'Row 5: Invalid status (must be present or absent)',
        ]
        record = Attendance.all_objects.get(student=asha, date=DAY)
        assert (record.status, record.remarks) == ('absent', 'Fever')
        assert Attendance.all_objects.get(student=kiran, date=DAY).status == 'present'


# =============================================================================
# MARKS
# =============================================================================

class TestGrades:

    @pytest.mark.parametrize('percentage, grade', [
        ('95', 'A+'), ('90', 'A+'), ('89.99', 'A'), ('70', 'B'), ('65', 'C'), ('40', 'D'), ('39.5', 'F'),
    ])
    def test_grade_scale(self, percentage, grade):
        assert grade_for(Decimal(percentage)) == grade

    def test_percentage(self):
        assert percentage_of(Decimal('45'), Decimal('60')) == Decimal('75.00')
        assert percentage_of(Decimal('10'), Decimal('0')) == Decimal('0')


class TestMarks:

    @pytest.fixture
    def subject(self, school):
        return SubjectService.create_subject(school.pk, 'Science', 'SCI')

    def test_save_marks_upserts(self, exam, subject, roster):
        asha, _kiran = roster
        MarksService.save_marks(exam, subject, [{'student_id': asha.pk, 'marks_obtained': '72'}])
        MarksService.save_marks(exam, subject, [{'student_id': asha.pk, 'marks_obtained': '91'}])

        mark = Mark.all_objects.get(exam=exam, subject=subject, student=asha)
        assert mark.marks_obtained == Decimal('91')
        assert mark.grade == 'A+'

    def test_blank_marks_are_skipped(self, exam, subject, roster):
        saved = MarksService.save_marks(exam, subject, [
            {'student_id': roster[0].pk, 'marks_obtained': ''},
            {'student_id': roster[1].pk, 'marks_obtained': 35},
        ])
        assert saved == 1

    @pytest.mark.parametrize('value', ['NaN', 'Infinity', 'ninety'])
    def test_non_numeric_marks_rejected(self, exam, subject, roster, value):
        with pytest.raises(ValidationError, match='Invalid marks for Asha Verma'):
            MarksService.save_marks(exam, subject, [{'student_id': roster[0].pk, 'marks_obtained': value}])
        assert not Mark.all_objects.exists()

    def test_marks_respect_exam_subject_maximum(self, exam, subject, roster):
        ExamSubject.all_objects.create(school=exam.school, exam=exam, subject=subject, max_marks=Decimal('50'))
        with pytest.raises(ValidationError, match='between 0 and 50'):
            MarksService.save_marks(exam, subject, [{'student_id': roster[0].pk, 'marks_obtained': 51}])

    def test_locked_marks_cannot_change(self, exam, subject, roster):
        MarksService.save_marks(exam, subject, [{'student_id': roster[0].pk, 'marks_obtained': 60}])
        assert MarksService.lock_marks(exam) == 1
        with pytest.raises(ValidationError, match='locked'):
            MarksService.save_marks(exam, subject, [{'student_id': roster[0].pk, 'marks_obtained': 70}])

    def test_report_card_ranks_students(self, school, exam, subject, roster):
        asha, kiran = roster
        english = SubjectService.create_subject(school.pk, 'English', 'ENG')
        MarksService.save_marks(exam, subject, [
            {'student_id': asha.pk, 'marks_obtained': 60},
            {'student_id': kiran.pk, 'marks_obtained': 95},
        ])
        MarksService.save_marks(exam, english, [
            {'student_id': asha.pk, 'marks_obtained': 70},
            {'student_id': kiran.pk, 'marks_obtained': 85},
        ])

        cards = MarksService.report_card(exam)
        assert [c['student_name'] for c in cards] == ['Kiran Das', 'Asha Verma']
        assert cards[0]['percentage'] == Decimal('90.00')
        assert cards[0]['grade'] == 'A+'
        assert cards[1]['rank'] == 2
        assert [d['subject'] for d in cards[1]['subject_details']] == ['English', 'Science']

    def test_publish_toggles(self, exam):
        assert MarksService.toggle_publish(exam).is_published is True
        assert MarksService.toggle_publish(exam).is_published is False
