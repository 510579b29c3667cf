# students/views.py

"""
Student management views: list/filter, profile, CRUD, CSV import and
CSV/Excel/PDF export.
"""

from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_http_methods, require_POST
import logging

from accounts.auth import ADMIN_ROLES, STAFF_ROLES, role_required
from utils.exports import build_excel_response, build_pdf_response
from utils.utils import (
    form_errors, generate_csv_response, get_academic_year, handle_json_errors,
    json_error, json_success, paginate_queryset, parse_request_data,
    read_csv_upload, serialize_instance,
)

from .forms import StudentFilterForm, StudentForm, StudentImportForm
from .models import Parent, Student
from .services import CSV_HEADERS, StudentImportService, StudentService

logger = logging.getLogger(__name__)

EXPORT_HEADERS = ['Admission No', 'Name', 'Class', 'Gender', 'Date of Birth', 'Parent', 'Parent Phone', 'Status']


def _student_data(student):
    data = serialize_instance(student, exclude=['school', 'photo'])
    data['class_label'] = student.class_label
    data['parent_name'] = student.parent.name if student.parent_id else ''
    data['parent_phone'] = student.parent.phone if student.parent_id else ''
    return data


def _export_table(students):
    return [
        [
            s.admission_number, s.name, s.class_label, s.get_gender_display(),
            s.date_of_birth, s.parent.name if s.parent_id else '',
            s.parent.phone if s.parent_id else '', s.get_status_display(),
        ]
        for s in students
    ]


# =============================================================================
# LIST & CREATE
# =============================================================================

@role_required(*STAFF_ROLES)
@require_http_methods(['GET', 'POST'])
@handle_json_errors
def student_list(request):
    if request.method == 'POST':
        return _student_create(request)

    students = Student.objects.select_related('school_class', 'section', 'parent')
    form = StudentFilterForm(request.GET)
    if form.is_valid():
        students = form.filter_queryset(students)

    export_format = request.GET.get('format')
    if export_format == 'xlsx':
        return build_excel_response("Students", EXPORT_HEADERS, _export_table(students), "students")
    if export_format == 'pdf':
        return build_pdf_response("Student List", EXPORT_HEADERS, _export_table(students), "students")

    page_obj, paginator = paginate_queryset(request, students, per_page=50)
    return json_success(
        students=[_student_data(s) for s in page_obj],
        count=paginator.count,
        page=page_obj.number,
        num_pages=paginator.num_pages,
    )


@role_required(*ADMIN_ROLES)
def _student_create(request):
    form = StudentForm(parse_request_data(request))
    if not form.is_valid():
        return json_error("Please correct the errors below.", errors=form_errors(form))

    data = form.cleaned_data
    student = StudentService.create_student_with_parent(
        school_id=request.school_id,
        admission_number=data['admission_number'],
        name=data['name'],
        dob=data.get('date_of_birth'),
        gender=data['gender'],
        class_id=data['school_class'].pk if data.get('school_class') else None,
        section_id=data['section'].pk if data.get('section') else None,
        blood_group=data.get('blood_group', ''),
        address=data.get('address', ''),
        admission_date=data.get('admission_date'),
        status=data['status'],
        parent_name=data.get('parent_name', ''),
        parent_phone=data.get('parent_phone', ''),
    )
    if data.get('medical_info'):
        student.medical_info = data['medical_info']
        student.save(update_fields=['medical_info'])
    return json_success(f"Student {student.name} created.", status=201, student=_student_data(student))


# =============================================================================
# DETAIL, UPDATE & DELETE
# =============================================================================

@role_required(*STAFF_ROLES)
@require_http_methods(['GET', 'POST', 'DELETE'])
@handle_json_errors
def student_detail(request, pk):
    student = get_object_or_404(Student.objects.select_related('school_class', 'section', 'parent'), pk=pk)

    if request.method == 'GET':
        return json_success(
            student=_student_data(student),
            profile=StudentService.profile(student, get_academic_year(request)),
        )

    if not request.auth_context.has_role(*ADMIN_ROLES):
        return json_error("Only administrators can change student records.", status=403)

    if request.method == 'DELETE':
        name = student.name
        student.delete()
        logger.info(f"Deleted student {name}")
        return json_success(f"Student {name} deleted.")

    form = StudentForm(parse_request_data(request), instance=student)
    if not form.is_valid():
        return json_error("Please correct the errors below.", errors=form_errors(form))

    data = dict(form.cleaned_data)
    parent_name = data.pop('parent_name', '')
    parent_phone = data.pop('parent_phone', '')
    student = StudentService.update_student(student, data, parent_name=parent_name, parent_phone=parent_phone)
    return json_success(f"Student {student.name} updated.", student=_student_data(student))


@role_required(*ADMIN_ROLES)
@require_POST
@handle_json_errors
def parent_account(request, pk):
    """Link (or with a blank user_id, unlink) a parent's portal login."""
    parent = get_object_or_404(Parent.objects, pk=pk)
    parent = StudentService.link_parent_account(parent, parse_request_data(request).get('user_id'))
    return json_success(
        "Parent login updated.",
        parent={'id': str(parent.pk), 'name': parent.name, 'user_id': parent.user_id},
    )


# =============================================================================
# CSV IMPORT / EXPORT
# =============================================================================

@role_required(*ADMIN_ROLES)
@require_GET
def student_csv_template(request):
    return generate_csv_response([], "students_template.csv", headers=CSV_HEADERS)


@role_required(*ADMIN_ROLES)
@require_POST
@handle_json_errors
def student_import(request):
    form = StudentImportForm(request.POST, request.FILES)
    if not form.is_valid():
        return json_error("Upload a CSV file.", errors=form_errors(form))

    rows = read_csv_upload(form.cleaned_data['file'])
    missing = [header for header in ('admission_number', 'name') if rows and header not in rows[0]]
    if missing:
        return json_error(f"Missing required columns: {', '.join(missing)}")

    result = StudentImportService.import_rows(request.school_id, rows)
    return json_success(
        f"Successfully processed {result['success']} student(s)",
        imported=result['success'],
        errors=result['errors'],
    )


@role_required(*STAFF_ROLES)
@require_GET
def student_csv_export(request):
    students = Student.objects.order_by('admission_number')
    return generate_csv_response(
        StudentImportService.export_rows(students), "students.csv", headers=CSV_HEADERS
    )
