# hr/views.py

"""
Educator management views: CRUD, CSV import and export.
"""

from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_http_methods, require_POST
import logging

from accounts.auth import ADMIN_ROLES, role_required
from utils.utils import (
    form_errors, generate_csv_response, handle_json_errors, json_error,
    json_success, parse_request_data, read_csv_upload, serialize_instance,
)

from .forms import EducatorForm, EducatorImportForm
from .models import Educator
from .services import CSV_HEADERS, EducatorImportService, EmployeeIDService

logger = logging.getLogger(__name__)


def _educator_data(educator):
    return serialize_instance(educator, exclude=['school', 'photo'])


@role_required(*ADMIN_ROLES)
@require_http_methods(['GET', 'POST'])
@handle_json_errors
def educator_list(request):
    if request.method == 'POST':
        form = EducatorForm(parse_request_data(request))
        if not form.is_valid():
            return json_error("Please correct the errors below.", errors=form_errors(form))
        educator = form.save(commit=False)
        if not educator.employee_id:
            educator.employee_id = EmployeeIDService.generate_employee_id(request.school_id)
        educator.save()
        logger.info(f"Created educator {educator}")
        return json_success(f"Educator {educator.name} created.", status=201, educator=_educator_data(educator))

    educators = Educator.objects.all()
    search = request.GET.get('search', '').strip()
    if search:
        educators = educators.filter(name__icontains=search) | educators.filter(employee_id__icontains=search)
    if request.GET.get('status'):
        educators = educators.filter(status=request.GET['status'])
    return json_success(educators=[_educator_data(e) for e in educators])


@role_required(*ADMIN_ROLES)
@require_http_methods(['GET', 'POST', 'DELETE'])
@handle_json_errors
def educator_detail(request, pk):
    educator = get_object_or_404(Educator.objects, pk=pk)

    if request.method == 'GET':
        return json_success(educator=_educator_data(educator))

    if request.method == 'DELETE':
        name = educator.name
        educator.delete()
        logger.info(f"Deleted educator {name}")
        return json_success(f"Educator {name} deleted.")

    form = EducatorForm(parse_request_data(request), instance=educator)
    if not form.is_valid():
        return json_error("Please correct the errors below.", errors=form_errors(form))
    educator = form.save(commit=False)
    if not educator.employee_id:
        educator.employee_id = EmployeeIDService.generate_employee_id(request.school_id)
    educator.save()
    return json_success(f"Educator {educator.name} updated.", educator=_educator_data(educator))


@role_required(*ADMIN_ROLES)
@require_GET
def educator_csv_template(request):
    return generate_csv_response([], "educators_template.csv", headers=CSV_HEADERS)


@role_required(*ADMIN_ROLES)
@require_POST
@handle_json_errors
def educator_import(request):
    form = EducatorImportForm(request.POST, request.FILES)
    if not form.is_valid():
        return json_error("Upload a CSV file.", errors=form_errors(form))

    result = EducatorImportService.import_rows(request.school_id, read_csv_upload(form.cleaned_data['file']))
    return json_success(
        f"Successfully processed {result['success']} educator(s)",
        imported=result['success'],
        errors=result['errors'],
    )


@role_required(*ADMIN_ROLES)
@require_GET
def educator_csv_export(request):
    educators = Educator.objects.order_by('employee_id')
    return generate_csv_response(EducatorImportService.export_rows(educators), "educators.csv", headers=CSV_HEADERS)
