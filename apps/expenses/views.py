# expenses/views.py

"""
Expense views (JSON): list with period/category filters and totals,
create, update, delete. ?format=csv|xlsx|pdf exports the listing.
"""

from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_http_methods
import logging

from accounts.auth import ADMIN_ROLES, role_required
from utils.exports import build_excel_response, build_pdf_response
from utils.utils import (
    form_errors, generate_csv_response, handle_json_errors,
    json_error, json_success, parse_request_data, serialize_instance,
)

from .forms import ExpenseFilterForm, ExpenseForm
from .models import Expense
from .services import ExpenseService, current_month

logger = logging.getLogger(__name__)

EXPORT_HEADERS = ['Date', 'Title', 'Category', 'Amount', 'Payment Method', 'Paid To']


def _export_table(expenses):
    return [
        [
            e.date, e.title, e.get_category_display(), e.amount,
            e.get_payment_method_display(), e.paid_to,
        ]
        for e in expenses
    ]


@role_required(*ADMIN_ROLES)
@require_http_methods(['GET', 'POST'])
@handle_json_errors
def expense_list(request):
    if request.method == 'POST':
        form = ExpenseForm(parse_request_data(request))
        if not form.is_valid():
            return json_error("Invalid expense.", errors=form_errors(form))
        expense = ExpenseService.save(form)
        return json_success("Expense recorded.", status=201, expense=serialize_instance(expense, exclude=['school']))

    filters = ExpenseFilterForm(request.GET)
    if not filters.is_valid():
        return json_error("Invalid filters.", errors=form_errors(filters))
    default_start, default_end = current_month()
    start = filters.cleaned_data['start'] or default_start
    end = filters.cleaned_data['end'] or default_end
    expenses = ExpenseService.expenses_for(start, end, filters.cleaned_data['category'])
    summary = ExpenseService.summary(expenses)

    export_format = request.GET.get('format')
    filename = f"expenses_{start}_to_{end}"
    if export_format == 'csv':
        return generate_csv_response(_export_table(expenses), f"{filename}.csv", headers=EXPORT_HEADERS)
    if export_format == 'xlsx':
        return build_excel_response(
            "Expenses", EXPORT_HEADERS, _export_table(expenses), filename,
            subtitle=f"{start} to {end}", summary={'total': summary['total'], 'count': summary['count']},
        )
    if export_format == 'pdf':
        return build_pdf_response(
            "Expenses", EXPORT_HEADERS, _export_table(expenses), filename,
            subtitle=f"{start} to {end}", summary={'total': summary['total'], 'count': summary['count']},
        )

    return json_success(
        start=start.isoformat(),
        end=end.isoformat(),
        expenses=[serialize_instance(e, exclude=['school']) for e in expenses],
        summary=summary,
    )


@role_required(*ADMIN_ROLES)
@require_http_methods(['POST', 'DELETE'])
@handle_json_errors
def expense_detail(request, pk):
    expense = get_object_or_404(Expense.objects, pk=pk)

    if request.method == 'DELETE':
        ExpenseService.delete(expense)
        return json_success("Expense deleted.")

    form = ExpenseForm(parse_request_data(request), instance=expense)
    if not form.is_valid():
        return json_error("Invalid expense.", errors=form_errors(form))
    expense = ExpenseService.save(form)
    return json_success("Expense updated.", expense=serialize_instance(expense, exclude=['school']))
