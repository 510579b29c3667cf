# portal/views.py

"""
Parent portal views (JSON): linked children, a child's fees and results,
and service tickets. Staff see every ticket of the school and set status.

The child is ?student_id= when given, else the session's selected child,
else the first linked child.
"""

from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_http_methods, require_POST
import logging

from accounts.auth import ADMIN_ROLES, ROLE_PARENT, resolve_auth_context, role_required
from accounts.session_state import SessionState
from utils.utils import (
    form_errors, get_academic_year, handle_json_errors, json_error,
    json_success, paginate_queryset, parse_request_data, serialize_instance,
)

from .forms import ServiceTicketForm
from .models import ServiceTicket
from .services import ParentPortalService, TicketService

logger = logging.getLogger(__name__)


def _selected_child(request):
    auth = resolve_auth_context(request)
    student_id = request.GET.get('student_id') or SessionState.load(request).selected_child_id
    return ParentPortalService.child(auth, student_id or None)


def _child_data(student):
    return {
        'id': str(student.pk),
        'name': student.name,
        'admission_number': student.admission_number,
        'class_label': student.class_label,
    }


def _ticket_data(ticket):
    data = serialize_instance(ticket, exclude=['school'])
    data['student_name'] = ticket.student.name
    data['parent_name'] = ticket.parent.name
    return data


# =============================================================================
# CHILDREN, FEES & RESULTS
# =============================================================================

@role_required(ROLE_PARENT)
@require_GET
@handle_json_errors
def children(request):
    auth = resolve_auth_context(request)
    return json_success(children=[_child_data(s) for s in ParentPortalService.children(auth)])


@role_required(ROLE_PARENT)
@require_GET
@handle_json_errors
def child_fees(request):
    student = _selected_child(request)
    academic_year = get_academic_year(request)
    summary = ParentPortalService.fee_summary(student, academic_year)
    student_fee = summary['student_fee']

    installments = []
    for installment in summary['installments']:
        data = serialize_instance(installment, exclude=['school', 'student'])
        data['pending_amount'] = str(installment.pending_amount)
        installments.append(data)

    return json_success(
        student=_child_data(student),
        academic_year=academic_year,
        student_fee=serialize_instance(student_fee, exclude=['school', 'student']) if student_fee else None,
        installments=installments,
        payments=[serialize_instance(p, exclude=['school', 'student_fee']) for p in summary['payments']],
    )


@role_required(ROLE_PARENT)
@require_GET
@handle_json_errors
def child_results(request):
    student = _selected_child(request)
    return json_success(student=_child_data(student), results=ParentPortalService.results(student))


# =============================================================================
# SERVICE TICKETS
# =============================================================================

@role_required(ROLE_PARENT)
@require_http_methods(['GET', 'POST'])
@handle_json_errors
def tickets(request):
    """GET the selected child's tickets; POST opens one for that child."""
    auth = resolve_auth_context(request)
    student = _selected_child(request)

    if request.method == 'POST':
        data = parse_request_data(request)
        if data.get('student_id'):
            student = ParentPortalService.child(auth, data['student_id'])
        form = ServiceTicketForm(data)
        if not form.is_valid():
            return json_error("Invalid request.", errors=form_errors(form))
        parent = ParentPortalService.parent_for(auth)
        ticket = TicketService.open_ticket(parent, student, form)
        return json_success("Request submitted.", status=201, ticket=_ticket_data(ticket))

    items = ServiceTicket.objects.filter(student=student).select_related('student', 'parent')
    return json_success(student=_child_data(student), tickets=[_ticket_data(t) for t in items])


@role_required(ROLE_PARENT, *ADMIN_ROLES)
@require_http_methods(['GET', 'POST'])
@handle_json_errors
def ticket_detail(request, pk):
    """GET the ticket with its replies; POST {message} adds a reply."""
    auth = resolve_auth_context(request)
    ticket = get_object_or_404(ServiceTicket.objects.select_related('student', 'parent'), pk=pk)
    if not TicketService.can_view(ticket, auth):
        return json_error("This ticket belongs to another parent.", status=403)

    if request.method == 'POST':
        reply = TicketService.reply(ticket, auth, parse_request_data(request).get('message'))
        return json_success("Reply sent.", status=201, reply=serialize_instance(reply, exclude=['school']))

    return json_success(
        ticket=_ticket_data(ticket),
        replies=[serialize_instance(r, exclude=['school']) for r in ticket.replies.all()],
    )


@role_required(*ADMIN_ROLES)
@require_GET
@handle_json_errors
def support_queue(request):
    """Every ticket of the school, newest first; ?status= filters."""
    items = ServiceTicket.objects.select_related('student', 'parent')
    if request.GET.get('status'):
        items = items.filter(status=request.GET['status'])
    page_obj, paginator = paginate_queryset(request, items)
    return json_success(
        tickets=[_ticket_data(t) for t in page_obj],
        count=paginator.count,
        page=page_obj.number,
        num_pages=paginator.num_pages,
    )


@role_required(*ADMIN_ROLES)
@require_POST
@handle_json_errors
def ticket_status(request, pk):
    ticket = get_object_or_404(ServiceTicket.objects, pk=pk)
    ticket = TicketService.set_status(ticket, parse_request_data(request).get('status'))
    return json_success("Ticket updated.", ticket=_ticket_data(ticket))
