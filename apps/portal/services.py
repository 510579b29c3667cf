# portal/services.py

"""
Parent portal.

A parent account sees only the students whose Parent record carries its
login (Parent.user_id). Every lookup here goes through children(), so a
student id supplied by the client is never trusted on its own.
"""

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction
from django.db.models import F
from django.utils import timezone
import logging

from academics.models import Exam
from academics.services import MarksService
from accounts.auth import ADMIN_ROLES
from fees.models import FeePayment, StudentFee
from fees.services import FeeService
from students.models import Parent, Student

from .models import ServiceTicket, TicketReply

logger = logging.getLogger(__name__)


# =============================================================================
# CHILDREN
# =============================================================================

class ParentPortalService:

    @staticmethod
    def parent_for(auth):
        if not auth.user_id or not auth.school_id:
            return None
        return Parent.all_objects.filter(school_id=auth.school_id, user_id=auth.user_id).first()

    @staticmethod
    def children(auth):
        if not auth.user_id or not auth.school_id:
            return Student.all_objects.none()
        return (
            Student.all_objects.filter(school_id=auth.school_id, parent__user_id=auth.user_id)
            .select_related('school_class', 'section')
            .order_by('name')
        )

    @staticmethod
    def child(auth, student_id=None):
        """
        The requested child, or the first one when no id is given.

        Raises:
            PermissionDenied: the student is not linked to this parent
            Student.DoesNotExist: the parent has no linked children
        """
        children = ParentPortalService.children(auth)
        if not student_id:
            first = children.first()
            if first is None:
                raise Student.DoesNotExist("No children are linked to this account.")
            return first
        student = children.filter(pk=student_id).first()
        if student is None:
            logger.warning(f"Parent {auth.user_id} asked for student {student_id} outside their children")
            raise PermissionDenied("This student is not linked to your account.")
        return student

    @staticmethod
    def fee_summary(student, academic_year):
        student_fee = StudentFee.all_objects.filter(student=student, academic_year=academic_year).first()
        payments = FeePayment.all_objects.none()
        if student_fee is not None:
            payments = FeePayment.all_objects.filter(student_fee=student_fee)
        installments = FeeService.installments_for(student, academic_year).order_by(
            F('due_date').asc(nulls_last=True), 'installment_number'
        )
        return {
            'student_fee': student_fee,
            'installments': installments,
            'payments': payments,
        }

    @staticmethod
    def results(student):
        """Report card lines of every published exam the student has marks in."""
        exams = (
            Exam.all_objects.filter(school_id=student.school_id, is_published=True, marks__student=student)
            .distinct()
            .order_by(F('start_date').desc(nulls_last=True), 'name')
        )
        results = []
        for exam in exams:
            card = next(
                (c for c in MarksService.report_card(exam) if c['student_id'] == str(student.pk)),
                None,
            )
            if card is None:
                continue
            results.append({
                'exam_id': str(exam.pk),
                'academic_year': exam.academic_year,
                'start_date': exam.start_date.isoformat() if exam.start_date else None,
                **card,
            })
        return results


# =============================================================================
# SERVICE TICKETS
# =============================================================================

class TicketService:

    @staticmethod
    def open_ticket(parent, student, form):
        if student.parent_id != parent.pk:
            raise PermissionDenied("This student is not linked to your account.")
        ticket = form.save(commit=False)
        ticket.school_id = student.school_id
        ticket.parent = parent
        ticket.student = student
        ticket.status = ServiceTicket.STATUS_OPEN
        ticket.save()
        logger.info(f"Ticket opened by {parent.name} for {student.name}: {ticket.subject}")
        return ticket

    @staticmethod
    def can_view(ticket, auth):
        if auth.has_role(*ADMIN_ROLES):
            return True
        return bool(auth.user_id) and ticket.parent.user_id == auth.user_id

    @staticmethod
    @transaction.atomic
    def reply(ticket, auth, message):
        """
        Add a reply. A staff reply moves an open ticket to in progress.
        Closed tickets take no replies.
        """
        message = (message or '').strip()
        if not message:
            raise ValidationError("Reply message is required.")
        if ticket.is_closed:
            raise ValidationError("This ticket is closed.")

        reply = TicketReply.all_objects.create(
            school_id=ticket.school_id,
            ticket=ticket,
            sender_id=auth.user_id,
            sender_role=auth.role,
            message=message,
        )
        if auth.has_role(*ADMIN_ROLES) and ticket.status == ServiceTicket.STATUS_OPEN:
            ticket.status = ServiceTicket.STATUS_IN_PROGRESS
            ticket.save(update_fields=['status'])
        return reply

    @staticmethod
    def set_status(ticket, status):
        valid = {code for code, _label in ServiceTicket.STATUS_CHOICES}
        if status not in valid:
            raise ValidationError(f"Unknown ticket status: {status}")
        ticket.status = status
        ticket.resolved_at = timezone.now() if status == ServiceTicket.STATUS_RESOLVED else ticket.resolved_at
        ticket.save(update_fields=['status', 'resolved_at'])
        logger.info(f"Ticket {ticket.pk} set to {status}")
        return ticket
