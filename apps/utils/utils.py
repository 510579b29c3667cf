# utils/utils.py

import csv
import io
import json
import logging
from decimal import Decimal, InvalidOperation
from functools import wraps

from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError
from django.core.paginator import Paginator, EmptyPage, PageNotAnInteger
from django.forms.models import model_to_dict
from django.http import Http404, HttpResponse, JsonResponse

logger = logging.getLogger(__name__)


# =============================================================================
# CORE UTILITY HELPER FUNCTIONS
# =============================================================================

def paginate_queryset(request, queryset, per_page=20):
    paginator = Paginator(queryset, per_page)
    page = request.GET.get('page', 1)
    try:
        page_obj = paginator.page(page)
    except PageNotAnInteger:
        page_obj = paginator.page(1)
    except EmptyPage:
        page_obj = paginator.page(paginator.num_pages)
    return page_obj, paginator


def parse_filters(request, filter_keys):
    """
    Extract filter values from request.GET.
    filter_keys: list of filter names to extract
    Returns dict: {key: value or None}
    """
    filters = {}
    for key in filter_keys:
        value = request.GET.get(key, '').strip()
        filters[key] = value if value else None
    return filters


def parse_request_data(request):
    """
    Read a JSON body, falling back to form data.

    Raises:
        ValidationError: body is not valid JSON
    """
    content_type = request.META.get('CONTENT_TYPE', '')
    if content_type.startswith('application/json'):
        if not request.body:
            return {}
        try:
            data = json.loads(request.body)
        except json.JSONDecodeError:
            raise ValidationError("Invalid JSON data.")
        if not isinstance(data, dict):
            raise ValidationError("Expected a JSON object.")
        return data
    return request.POST.dict()


def get_academic_year(request=None):
    """Academic year from ?academic_year=, else the configured default."""
    from django.conf import settings

    if request is not None:
        value = request.GET.get('academic_year', '').strip()
        if value:
            return value
    return settings.SCHOOLDESK_ACADEMIC_YEAR


def to_decimal(value, field_name='amount'):
    """Parse a money value; raises ValidationError on garbage."""
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, TypeError, ValueError):
            raise ValidationError(f"Invalid {field_name}: {value!r}")
    if not result.is_finite():
        raise ValidationError(f"Invalid {field_name}: {value!r}")
    return result


def last_sequence(numbers, prefix):
    """Highest numeric suffix among numbers shaped <prefix><digits>, or 0."""
    last = 0
    for number in numbers:
        if not number or not number.startswith(prefix):
            continue
        try:
            last = max(last, int(number[len(prefix):]))
        except ValueError:
            continue
    return last


# =============================================================================
# JSON RESPONSES
# =============================================================================

def json_success(message='', status=200, **payload):
    return JsonResponse({"success": True, "message": message, **payload}, status=status)


def json_error(message, status=400, **payload):
    return JsonResponse({"success": False, "message": message, **payload}, status=status)


def validation_message(error):
    """Flatten a ValidationError into a single user-facing string."""
    if hasattr(error, 'message_dict'):
        return '; '.join(
            f"{field}: {', '.join(messages)}" if field != '__all__' else ', '.join(messages)
            for field, messages in error.message_dict.items()
        )
    return ' '.join(error.messages)


def form_errors(form):
    """Convert form errors to a dictionary for JSON responses"""
    return {field: [str(error) for error in errors] for field, errors in form.errors.items()}


def serialize_instance(instance, fields=None, exclude=None):
    """model_to_dict with JSON-safe values (UUID, Decimal, dates, files)."""
    data = model_to_dict(instance, fields=fields, exclude=exclude)
    data['id'] = str(instance.pk)
    for key, value in list(data.items()):
        if value is None or isinstance(value, (bool, int, float, str)):
            continue
        if isinstance(value, (list, dict)):
            continue
        if hasattr(value, 'name') and hasattr(value, 'url'):
            data[key] = value.name or None
        else:
            data[key] = str(value)
    return data


# =============================================================================
# CSV
# =============================================================================

def read_csv_upload(uploaded_file):
    """
    Parse an uploaded CSV file into a list of dicts keyed by header.
    Header names are stripped and lower-cased; blank lines are dropped.
    Each row carries its file line number under "_row" for error reports.
    """
    raw = uploaded_file.read()
    if isinstance(raw, bytes):
        try:
            raw = raw.decode('utf-8-sig')
        except UnicodeDecodeError:
            raise ValidationError("CSV file must be UTF-8 encoded.")

    reader = csv.DictReader(io.StringIO(raw))
    if not reader.fieldnames:
        raise ValidationError("CSV file is empty.")
    reader.fieldnames = [name.strip().lower() for name in reader.fieldnames]

    rows = []
    for row in reader:
        cleaned = {key: (value or '').strip() for key, value in row.items() if key}
        if any(cleaned.values()):
            cleaned['_row'] = reader.line_num
            rows.append(cleaned)
    return rows


def generate_csv_response(data, filename, headers=None):
    """
    Generate CSV HTTP response from data.

    Args:
        data: List of lists/tuples containing row data
        filename: Output filename
        headers: Optional list of column headers

    Returns:
        HttpResponse: CSV download response
    """
    response = HttpResponse(content_type='text/csv')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'

    writer = csv.writer(response)

    if headers:
        writer.writerow(headers)

    for row in data:
        writer.writerow(row)

    return response


# =============================================================================
# VIEW ERROR HANDLING
# =============================================================================

def handle_json_errors(view_func):
    """
    Map exceptions raised by a JSON view to error responses:
    ValidationError -> 400, PermissionDenied -> 403, not found -> 404,
    anything else is logged and returned as 500.
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except ValidationError as e:
            return json_error(validation_message(e), status=400)
        except PermissionDenied as e:
            return json_error(str(e) or "Permission denied.", status=403)
        except (ObjectDoesNotExist, Http404) as e:
            return json_error(str(e) or "Not found.", status=404)
        except Exception as e:
            logger.error(f"Error in {view_func.__name__}: {e}", exc_info=True)
            return json_error(f"Server error: {str(e)}", status=500)

    return wrapper
