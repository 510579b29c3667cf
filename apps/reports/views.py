# reports/views.py

from django.core.exceptions import ValidationError
from django.utils import timezone
from django.utils.dateparse import parse_date
from django.views.decorators.http import require_GET
import logging

from accounts.auth import ADMIN_ROLES, role_required
from utils.exports import build_excel_response, build_pdf_response
from utils.utils import generate_csv_response, get_academic_year, handle_json_errors, json_success

from .services import REPORT_TYPES, ReportService

logger = logging.getLogger(__name__)


def _date_range(request):
    """?start_date=&end_date=, defaulting to the current month so far."""
    today = timezone.localdate()
    start = parse_date(request.GET.get('start_date') or '') or today.replace(day=1)
    end = parse_date(request.GET.get('end_date') or '') or today
    if start > end:
        raise ValidationError("Start date must be on or before end date.")
    return start, end


@role_required(*ADMIN_ROLES)
@require_GET
@handle_json_errors
def report_view(request, report_type):
    """
    JSON by default; ?format=csv|xlsx|pdf downloads the same report.
    """
    if report_type not in REPORT_TYPES:
        raise ValidationError(f"Unknown report type: {report_type}")
    start, end = _date_range(request)
    report = ReportService.build(report_type, start, end)

    export_format = request.GET.get('format')
    if export_format == 'csv':
        return generate_csv_response(
            report['rows'], f"{report_type}_report_{start}_to_{end}.csv", headers=report['headers']
        )
    title = f"{report_type.title()} Report"
    subtitle = f"{start} to {end}"
    if export_format == 'xlsx':
        return build_excel_response(
            title, report['headers'], report['rows'], f"{report_type}_report",
            subtitle=subtitle, summary=report['summary'],
        )
    if export_format == 'pdf':
        return build_pdf_response(
            title, report['headers'], report['rows'], f"{report_type}_report",
            subtitle=subtitle, summary=report['summary'],
        )

    return json_success(
        report_type=report_type,
        start_date=start.isoformat(),
        end_date=end.isoformat(),
        **report,
    )


@role_required(*ADMIN_ROLES)
@require_GET
@handle_json_errors
def dashboard(request):
    return json_success(stats=ReportService.dashboard(get_academic_year(request)))
