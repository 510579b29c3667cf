# academics/views.py

"""
Academic structure, attendance and marks views (JSON).
"""

from django.core.exceptions import ValidationError
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date
from django.views.decorators.http import require_GET, require_http_methods, require_POST
import logging

from accounts.auth import ADMIN_ROLES, STAFF_ROLES, resolve_auth_context, role_required
from utils.models import DefinitionChangeLog
from utils.utils import (
    form_errors, handle_json_errors, json_error, json_success,
    paginate_queryset, parse_request_data, read_csv_upload, serialize_instance,
)

from .forms import AttendanceUploadForm, ExamForm, ExamSubjectForm, SchoolClassForm, SectionForm, SubjectForm
from .models import Exam, ExamSubject, SchoolClass, Section
from .services import (
    AttendanceService, MarksService, SubjectService, delete_definition, save_definition,
)

logger = logging.getLogger(__name__)


def _require_date(value):
    day = parse_date(value or '')
    if day is None:
        raise ValidationError(f"Invalid date '{value}' (expected YYYY-MM-DD).")
    return day


def _definition_view(request, queryset, form_class, entity_type, pk=None, impact_summary=''):
    """List/create (no pk) or update/delete (pk) for a school definition."""
    model = queryset.model

    if pk is None:
        if request.method == 'GET':
            return json_success(items=[serialize_instance(obj, exclude=['school']) for obj in queryset])
        form = form_class(parse_request_data(request))
        if not form.is_valid():
            return json_error(f"Invalid {entity_type} details.", errors=form_errors(form))
        obj = save_definition(entity_type, form.save(commit=False), impact_summary)
        return json_success(f"{model._meta.verbose_name.title()} created.", status=201,
                            item=serialize_instance(obj, exclude=['school']))

    obj = get_object_or_404(queryset, pk=pk)
    if request.method == 'DELETE':
        delete_definition(entity_type, obj, impact_summary)
        return json_success(f"{model._meta.verbose_name.title()} deleted.")

    form = form_class(parse_request_data(request), instance=obj)
    if not form.is_valid():
        return json_error(f"Invalid {entity_type} details.", errors=form_errors(form))
    obj = save_definition(entity_type, form.save(commit=False), impact_summary)
    return json_success(f"{model._meta.verbose_name.title()} updated.", item=serialize_instance(obj, exclude=['school']))


# =============================================================================
# CLASSES & SECTIONS
# =============================================================================

@role_required(*ADMIN_ROLES)
@require_http_methods(['GET', 'POST', 'DELETE'])
@handle_json_errors
def class_view(request, pk=None):
    return _definition_view(
        request, SchoolClass.objects.all(), SchoolClassForm, 'class', pk,
        impact_summary="Class structure changed",
    )


@role_required(*ADMIN_ROLES)
@require_http_methods(['GET', 'POST', 'DELETE'])
@handle_json_errors
def section_view(request, pk=None):
    sections = Section.objects.select_related('school_class')
    class_id = request.GET.get('class_id')
    if class_id and pk is None:
        sections = sections.filter(school_class_id=class_id)
    return _definition_view(
        request, sections, SectionForm, 'section', pk,
        impact_summary="Section structure changed",
    )


# =============================================================================
# SUBJECTS
# =============================================================================

@role_required(*ADMIN_ROLES)
@require_http_methods(['GET', 'POST'])
@handle_json_errors
def subject_list(request):
    if request.method == 'POST':
        form = SubjectForm(parse_request_data(request))
        if not form.is_valid():
            return json_error("Invalid subject details.", errors=form_errors(form))
        subject = SubjectService.create_subject(request.school_id, **form.cleaned_data)
        return json_success("Subject created.", status=201, subject=serialize_instance(subject, exclude=['school']))

    subjects = []
    for subject in SubjectService.get_available_subjects(request.school_id):
        data = serialize_instance(subject, exclude=['school'])
        data['is_global'] = subject.is_global
        subjects.append(data)
    return json_success(subjects=subjects)


@role_required(*ADMIN_ROLES)
@require_http_methods(['POST', 'DELETE'])
@handle_json_errors
def subject_detail(request, pk):
    if request.method == 'DELETE':
        SubjectService.delete_subject(pk, request.school_id)
        return json_success("Subject deleted.")

    form = SubjectForm(parse_request_data(request))
    if not form.is_valid():
        return json_error("Invalid subject details.", errors=form_errors(form))
    subject = SubjectService.update_subject(pk, request.school_id, **form.cleaned_data)
    return json_success("Subject updated.", subject=serialize_instance(subject, exclude=['school']))


@role_required(*ADMIN_ROLES)
@require_http_methods(['GET', 'POST'])
@handle_json_errors
def class_subjects(request, pk):
    school_class = get_object_or_404(SchoolClass.objects, pk=pk)

    if request.method == 'POST':
        data = parse_request_data(request)
        class_subject = SubjectService.assign_to_class(
            school_class, data.get('subject_id'), educator_id=data.get('educator_id')
        )
        return json_success(
            "Subject assigned.", status=201, item=serialize_instance(class_subject, exclude=['school'])
        )

    items = [
        {
            **serialize_instance(c, exclude=['school']),
            'subject_name': c.subject.name,
            'educator_name': c.educator.name if c.educator else None,
        }
        for c in SubjectService.class_subjects(school_class)
    ]
    return json_success(items=items)


# =============================================================================
# EXAMS
# =============================================================================

@role_required(*ADMIN_ROLES)
@require_http_methods(['GET', 'POST', 'DELETE'])
@handle_json_errors
def exam_view(request, pk=None):
    exams = Exam.objects.select_related('school_class')
    if pk is None and request.GET.get('academic_year'):
        exams = exams.filter(academic_year=request.GET['academic_year'])
    return _definition_view(request, exams, ExamForm, 'exam', pk)


@role_required(*ADMIN_ROLES)
@require_POST
@handle_json_errors
def exam_publish(request, pk):
    exam = MarksService.toggle_publish(get_object_or_404(Exam.objects, pk=pk))
    return json_success(
        "Exam published." if exam.is_published else "Exam unpublished.",
        is_published=exam.is_published,
    )


@role_required(*ADMIN_ROLES)
@require_http_methods(['GET', 'POST'])
@handle_json_errors
def exam_subjects(request, pk):
    exam = get_object_or_404(Exam.objects, pk=pk)

    if request.method == 'POST':
        data = parse_request_data(request)
        existing = ExamSubject.objects.filter(exam=exam, subject_id=data.get('subject')).first()
        form = ExamSubjectForm(data, instance=existing)
        form.fields['subject'].queryset = SubjectService.get_available_subjects(request.school_id)
        if not form.is_valid():
            return json_error("Invalid exam subject.", errors=form_errors(form))
        config = form.save(commit=False)
        config.exam = exam
        config.save()
        return json_success("Exam subject saved.", item=serialize_instance(config, exclude=['school']))

    items = [
        {**serialize_instance(c, exclude=['school']), 'subject_name': c.subject.name}
        for c in exam.exam_subjects.select_related('subject')
    ]
    return json_success(items=items)


@role_required(*STAFF_ROLES)
@require_GET
@handle_json_errors
def report_card(request, pk):
    exam = get_object_or_404(Exam.objects, pk=pk)
    return json_success(exam=serialize_instance(exam, exclude=['school']), cards=MarksService.report_card(exam))


# =============================================================================
# ATTENDANCE
# =============================================================================

@role_required(*STAFF_ROLES)
@require_http_methods(['GET', 'POST'])
@handle_json_errors
def attendance_day(request):
    """
    GET ?class_id=&section_id=&date= returns the day sheet;
    POST {class_id, section_id, date, statuses: {student_id: status}} saves it.
    """
    data = request.GET if request.method == 'GET' else parse_request_data(request)
    school_class = get_object_or_404(SchoolClass.objects, pk=data.get('class_id'))
    section = None
    if data.get('section_id'):
        section = get_object_or_404(Section.objects, pk=data['section_id'], school_class=school_class)
    day = _require_date(data.get('date'))

    if request.method == 'POST':
        count = AttendanceService.save_day(
            school_class, day, data.get('statuses') or {}, section=section,
            marked_by=resolve_auth_context(request).user_id,
        )
        return json_success("Attendance saved successfully!", saved=count)

    return json_success(date=day.isoformat(), students=AttendanceService.day_sheet(school_class, day, section))


@role_required(*STAFF_ROLES)
@require_POST
@handle_json_errors
def attendance_upload(request):
    form = AttendanceUploadForm(request.POST, request.FILES)
    if not form.is_valid():
        return json_error("Invalid upload.", errors=form_errors(form))

    result = AttendanceService.bulk_upload(
        form.cleaned_data['school_class'],
        form.cleaned_data['date'],
        read_csv_upload(form.cleaned_data['file']),
        section=form.cleaned_data.get('section'),
        marked_by=resolve_auth_context(request).user_id,
    )
    return json_success(
        f"Successfully processed {result['success']} attendance record(s)",
        imported=result['success'],
        errors=result['errors'],
    )


# =============================================================================
# MARKS
# =============================================================================

@role_required(*STAFF_ROLES)
@require_http_methods(['GET', 'POST'])
@handle_json_errors
def marks_entry(request, pk):
    exam = get_object_or_404(Exam.objects, pk=pk)
    data = request.GET if request.method == 'GET' else parse_request_data(request)
    subject = get_object_or_404(SubjectService.get_available_subjects(request.school_id), pk=data.get('subject_id'))

    if request.method == 'POST':
        saved = MarksService.save_marks(
            exam, subject, data.get('entries') or [],
            entered_by=resolve_auth_context(request).user_id,
        )
        return json_success("Marks saved successfully!", saved=saved)

    section = None
    if data.get('section_id'):
        section = get_object_or_404(Section.objects, pk=data['section_id'])
    return json_success(students=MarksService.marks_sheet(exam, subject, section))


# =============================================================================
# CHANGE LOG
# =============================================================================

@role_required(*ADMIN_ROLES)
@require_GET
@handle_json_errors
def change_log(request):
    logs = DefinitionChangeLog.objects.all()
    if request.GET.get('entity_type'):
        logs = logs.filter(entity_type=request.GET['entity_type'])
    page_obj, paginator = paginate_queryset(request, logs, per_page=50)
    return json_success(
        changes=[serialize_instance(log, exclude=['school']) for log in page_obj],
        count=paginator.count,
    )
