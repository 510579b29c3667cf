# reports/services.py

"""
School reports (attendance, fees, expenses, exams, students) and dashboard
figures.

Every report returns {'headers': [...], 'rows': [[...]], 'summary': {...}}
so the same result feeds the JSON view and the CSV/Excel/PDF exports.
"""

from decimal import Decimal, ROUND_HALF_UP

from django.core.exceptions import ValidationError
from django.db.models import Sum
from django.utils import timezone
import logging

from academics.models import Attendance, Mark, SchoolClass
from announcements.services import AnnouncementService
from expenses.services import ExpenseService, current_month
from fees.models import FeePayment, StudentFee
from fees.stats import get_fee_statistics
from hr.models import Educator
from students.models import Student

logger = logging.getLogger(__name__)

REPORT_TYPES = ('attendance', 'fees', 'expenses', 'exams', 'students')
FAIL_GRADES = ('F', 'Fail', 'E')
PASS_RATIO = Decimal('0.33')


def _rate(part, whole, places='0.1'):
    if not whole:
        return Decimal('0')
    return (Decimal(part) * 100 / Decimal(whole)).quantize(Decimal(places), rounding=ROUND_HALF_UP)


def _result(headers, rows, summary):
    return {'headers': headers, 'rows': rows, 'summary': summary}


def is_pass(grade, marks_obtained, max_marks):
    """A graded mark passes unless its grade is a failing one; ungraded needs 33%."""
    if grade:
        return grade not in FAIL_GRADES
    if not max_marks:
        return False
    return Decimal(marks_obtained or 0) / Decimal(max_marks) >= PASS_RATIO


class ReportService:

    @staticmethod
    def attendance(start_date, end_date):
        records = (
            Attendance.objects.filter(date__gte=start_date, date__lte=end_date)
            .select_related('student__school_class')
            .order_by('-date')
        )
        rows = []
        present = absent = 0
        for record in records:
            student = record.student
            rows.append([
                student.name,
                student.admission_number,
                student.school_class.name if student.school_class_id else 'N/A',
                record.date.isoformat(),
                record.status,
                record.remarks or '-',
            ])
            present += record.status == 'present'
            absent += record.status == 'absent'

        return _result(
            ['student_name', 'admission_number', 'class', 'date', 'status', 'remarks'],
            rows,
            {
                'total_records': len(rows),
                'present_count': present,
                'absent_count': absent,
                'attendance_rate': _rate(present, len(rows)),
            },
        )

    @staticmethod
    def fees(start_date, end_date):
        """
        Rows: every fee record with a payment. Summary: payments dated
        within the range.
        """
        fees = (
            StudentFee.objects.filter(paid_amount__gt=0)
            .select_related('student__school_class', 'student__section')
            .order_by('-updated_at')
        )
        rows = [
            [
                fee.student.name,
                fee.student.admission_number,
                fee.student.school_class.name if fee.student.school_class_id else 'N/A',
                fee.student.section.name if fee.student.section_id else '',
                fee.total_fee,
                fee.paid_amount,
                fee.updated_at.date().isoformat(),
                fee.get_status_display(),
            ]
            for fee in fees
        ]

        payments = FeePayment.objects.filter(payment_date__gte=start_date, payment_date__lte=end_date)
        total_amount = payments.aggregate(total=Sum('amount'))['total'] or Decimal('0')
        total_transactions = payments.count()
        average = Decimal('0')
        if total_transactions:
            average = (total_amount / total_transactions).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)

        return _result(
            ['student_name', 'admission_number', 'class', 'section', 'total_fee', 'amount_paid', 'date', 'status'],
            rows,
            {
                'total_amount': total_amount,
                'total_transactions': total_transactions,
                'avg_transaction': average,
            },
        )

    @staticmethod
    def expenses(start_date, end_date):
        expenses = ExpenseService.expenses_for(start_date, end_date)
        rows = [
            [
                expense.date.isoformat(),
                expense.title,
                expense.get_category_display(),
                expense.amount,
                expense.get_payment_method_display(),
                expense.paid_to or '-',
            ]
            for expense in expenses
        ]
        summary = ExpenseService.summary(expenses)
        return _result(
            ['date', 'title', 'category', 'amount', 'payment_method', 'paid_to'],
            rows,
            {'total_amount': summary['total'], 'total_expenses': summary['count']},
        )

    @staticmethod
    def exams():
        marks = Mark.objects.select_related('student', 'exam', 'subject').order_by('-created_at')
        rows = []
        obtained_total = Decimal('0')
        passed = 0
        for mark in marks:
            rows.append([
                mark.student.name,
                mark.student.admission_number,
                mark.exam.name,
                mark.subject.name,
                mark.marks_obtained,
                mark.max_marks,
                mark.grade,
                mark.created_at.date().isoformat(),
            ])
            obtained_total += mark.marks_obtained or 0
            passed += is_pass(mark.grade, mark.marks_obtained, mark.max_marks)

        average = Decimal('0')
        if rows:
            average = (obtained_total / len(rows)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)

        return _result(
            ['student_name', 'admission_number', 'exam_name', 'subject', 'marks_obtained', 'max_marks', 'grade', 'date'],
            rows,
            {
                'total_results': len(rows),
                'avg_marks': average,
                'pass_count': passed,
                'pass_rate': _rate(passed, len(rows)),
            },
        )

    @staticmethod
    def students():
        students = Student.objects.select_related('school_class', 'section', 'parent').order_by('name')
        rows = []
        active = 0
        for student in students:
            rows.append([
                student.name,
                student.admission_number,
                student.school_class.name if student.school_class_id else 'N/A',
                student.section.name if student.section_id else 'N/A',
                student.parent.name if student.parent_id else 'N/A',
                student.status,
                student.admission_date.isoformat() if student.admission_date else '',
            ])
            active += student.status == 'active'

        return _result(
            ['name', 'admission_number', 'class', 'section', 'parent_name', 'status', 'admission_date'],
            rows,
            {
                'total_students': len(rows),
                'active_students': active,
                'inactive_students': len(rows) - active,
            },
        )

    @staticmethod
    def build(report_type, start_date, end_date):
        if report_type == 'attendance':
            return ReportService.attendance(start_date, end_date)
        if report_type == 'fees':
            return ReportService.fees(start_date, end_date)
        if report_type == 'expenses':
            return ReportService.expenses(start_date, end_date)
        if report_type == 'exams':
            return ReportService.exams()
        if report_type == 'students':
            return ReportService.students()
        raise ValidationError(f"Unknown report type: {report_type}")

    @staticmethod
    def dashboard(academic_year, today=None):
        """Headline figures for the admin dashboard."""
        today = today or timezone.localdate()
        active_students = Student.objects.filter(status='active').count()
        present_today = Attendance.objects.filter(date=today, status='present').count()

        return {
            'total_students': active_students,
            'total_educators': Educator.objects.filter(status='active').count(),
            'total_classes': SchoolClass.objects.count(),
            'attendance_marked_today': Attendance.objects.filter(date=today).count(),
            'present_today': present_today,
            'attendance_rate_today': int(_rate(present_today, active_students, places='1')),
            'fees': get_fee_statistics(academic_year),
            'expenses_this_month': ExpenseService.summary(
                ExpenseService.expenses_for(*current_month(today))
            )['total'],
            'active_announcements': len(AnnouncementService.visible_to()),
        }
