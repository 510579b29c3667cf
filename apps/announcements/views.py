# announcements/views.py

from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_http_methods, require_POST
import logging

from accounts.auth import ADMIN_ROLES, ALL_ROLES, ROLE_PARENT, resolve_auth_context, role_required
from accounts.session_state import SessionState
from portal.services import ParentPortalService
from students.models import Student
from utils.utils import (
    form_errors, handle_json_errors, json_error, json_success,
    paginate_queryset, parse_request_data, serialize_instance,
)

from .forms import AnnouncementForm
from .models import Announcement
from .services import AnnouncementService

logger = logging.getLogger(__name__)


def _announcement_data(announcement):
    data = serialize_instance(announcement, exclude=['school'])
    data['targets'] = AnnouncementService.target_preview(announcement)
    return data


def _save_from_form(request, form):
    return AnnouncementService.save(
        form.save(commit=False),
        class_ids=[c.pk for c in form.cleaned_data['target_classes']],
        section_ids=[s.pk for s in form.cleaned_data['target_sections']],
        audience=form.cleaned_data['audience'],
        published_by=resolve_auth_context(request).user_id,
    )


@role_required(*ADMIN_ROLES)
@require_http_methods(['GET', 'POST'])
@handle_json_errors
def announcement_list(request):
    if request.method == 'POST':
        form = AnnouncementForm(parse_request_data(request))
        if not form.is_valid():
            return json_error("Invalid announcement.", errors=form_errors(form))
        announcement = _save_from_form(request, form)
        return json_success("Announcement published successfully!", status=201,
                            announcement=_announcement_data(announcement))

    announcements = Announcement.objects.all()
    if request.GET.get('priority'):
        announcements = announcements.filter(priority=request.GET['priority'])
    if request.GET.get('search'):
        announcements = announcements.filter(title__icontains=request.GET['search'])
    page_obj, paginator = paginate_queryset(request, announcements)
    return json_success(
        announcements=[_announcement_data(a) for a in page_obj],
        count=paginator.count,
    )


@role_required(*ADMIN_ROLES)
@require_http_methods(['GET', 'POST', 'DELETE'])
@handle_json_errors
def announcement_detail(request, pk):
    announcement = get_object_or_404(Announcement.objects, pk=pk)

    if request.method == 'GET':
        return json_success(announcement=_announcement_data(announcement))

    if request.method == 'DELETE':
        announcement.delete()
        logger.info(f"Deleted announcement {pk}")
        return json_success("Announcement deleted.")

    form = AnnouncementForm(parse_request_data(request), instance=announcement)
    if not form.is_valid():
        return json_error("Invalid announcement.", errors=form_errors(form))
    announcement = _save_from_form(request, form)
    return json_success("Announcement updated successfully!", announcement=_announcement_data(announcement))


@role_required(*ADMIN_ROLES)
@require_POST
@handle_json_errors
def announcement_toggle(request, pk):
    announcement = AnnouncementService.toggle_active(get_object_or_404(Announcement.objects, pk=pk))
    return json_success(
        "Announcement activated." if announcement.is_active else "Announcement deactivated.",
        is_active=announcement.is_active,
    )


@role_required(*ALL_ROLES)
@require_GET
@handle_json_errors
def announcement_feed(request):
    """
    Portal feed. Parents see announcements for the child selected in their
    session unless ?student_id= names another of their own children;
    ?urgent=1 keeps urgent ones.
    """
    auth = resolve_auth_context(request)
    student_id = request.GET.get('student_id')
    if auth.role == ROLE_PARENT:
        student_id = student_id or SessionState.load(request).selected_child_id
        # Raises PermissionDenied for a student outside the parent's children
        student = ParentPortalService.child(auth, student_id) if student_id else None
    else:
        student = get_object_or_404(Student.objects, pk=student_id) if student_id else None

    announcements = AnnouncementService.visible_to(
        student=student,
        role=auth.role,
        urgent_only=request.GET.get('urgent') in ('1', 'true'),
    )
    return json_success(announcements=[serialize_instance(a, exclude=['school']) for a in announcements])
