# fees/views.py

"""
Fee Management Views

JSON endpoints for:
- Fee overview (all students with their fee record), with exports
- Installments, installment payments and lump-sum collection
- Discounts and receipts
- Fee types and the class fee matrix
- Backfill of missing fee records
"""

from django.db import IntegrityError
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_http_methods, require_POST
import logging

from accounts.auth import ADMIN_ROLES, STAFF_ROLES, resolve_auth_context, role_required
from utils.audit import log_definition_change
from utils.exports import build_excel_response, build_pdf_response
from utils.utils import (
    form_errors, generate_csv_response, get_academic_year, handle_json_errors,
    json_error, json_success, parse_filters, parse_request_data, serialize_instance,
)

from .forms import ClassFeeStructureForm, DiscountForm, FeeTypeForm, GenerateInstallmentsForm, PaymentForm
from .models import ClassFeeStructure, FeeInstallment, FeePayment, FeeType, StudentFee
from .services import FeeService, fee_overview, overview_totals
from .stats import get_fee_statistics, get_payment_statistics
from .utils import build_receipt

from students.models import Student

logger = logging.getLogger(__name__)

OVERVIEW_HEADERS = [
    'Admission No', 'Student', 'Class', 'Section', 'Total Fee', 'Discount',
    'Net Fee', 'Paid', 'Pending', 'Status',
]


def _overview_table(rows):
    return [
        [
            row['admission_number'], row['student_name'], row['class_name'], row['section_name'],
            row['total_fee'], row['discount_amount'], row['net_fee'], row['paid_amount'],
            row['pending_amount'], row['status'],
        ]
        for row in rows
    ]


def _installment_data(installment):
    data = serialize_instance(installment, exclude=['school', 'student'])
    data['pending_amount'] = str(installment.pending_amount)
    return data


# =============================================================================
# DASHBOARD & OVERVIEW
# =============================================================================

@role_required(*STAFF_ROLES)
@require_GET
@handle_json_errors
def fees_dashboard(request):
    academic_year = get_academic_year(request)
    return json_success(
        academic_year=academic_year,
        fees=get_fee_statistics(academic_year),
        payments=get_payment_statistics(),
    )


@role_required(*ADMIN_ROLES)
@require_GET
@handle_json_errors
def fee_overview_list(request):
    """
    All students with their fee record for the year.
    ?format=csv|xlsx|pdf downloads the same rows.
    """
    academic_year = get_academic_year(request)
    filters = parse_filters(request, ['class_id', 'section_id', 'status', 'search'])
    rows = fee_overview(request.school_id, academic_year, filters)
    totals = overview_totals(rows)

    export_format = request.GET.get('format')
    if export_format == 'csv':
        return generate_csv_response(
            _overview_table(rows), f"fees_{academic_year}.csv", headers=OVERVIEW_HEADERS
        )
    if export_format == 'xlsx':
        return build_excel_response(
            f"Fees {academic_year}", OVERVIEW_HEADERS, _overview_table(rows),
            f"fees_{academic_year}", summary=totals,
        )
    if export_format == 'pdf':
        return build_pdf_response(
            f"Fee Collection {academic_year}", OVERVIEW_HEADERS, _overview_table(rows),
            f"fees_{academic_year}", summary=totals,
        )

    return json_success(academic_year=academic_year, fees=rows, totals=totals)


# =============================================================================
# INSTALLMENTS & PAYMENTS
# =============================================================================

@role_required(*ADMIN_ROLES)
@require_http_methods(['GET', 'POST'])
@handle_json_errors
def student_installments(request, student_id):
    """GET lists a student's installments; POST generates them from the fee matrix."""
    student = get_object_or_404(Student.objects, pk=student_id)

    if request.method == 'POST':
        form = GenerateInstallmentsForm(parse_request_data(request))
        if not form.is_valid():
            return json_error("Invalid installment plan.", errors=form_errors(form))
        FeeService.generate_installments(student, **form.cleaned_data)
        academic_year = form.cleaned_data['academic_year']
    else:
        academic_year = get_academic_year(request)

    installments = FeeService.installments_for(student, academic_year)
    student_fee = StudentFee.objects.filter(student=student, academic_year=academic_year).first()

    return json_success(
        student={'id': str(student.pk), 'name': student.name, 'admission_number': student.admission_number},
        academic_year=academic_year,
        installments=[_installment_data(i) for i in installments],
        student_fee=serialize_instance(student_fee, exclude=['school', 'student']) if student_fee else None,
        status=201 if request.method == 'POST' else 200,
    )


@role_required(*ADMIN_ROLES)
@require_POST
@handle_json_errors
def pay_installment(request, installment_id):
    installment = get_object_or_404(FeeInstallment.objects.select_related('student'), pk=installment_id)
    form = PaymentForm(parse_request_data(request))
    if not form.is_valid():
        return json_error("Invalid payment details.", errors=form_errors(form))

    payment = FeeService.record_installment_payment(
        installment,
        paid_by=resolve_auth_context(request).user_id,
        **form.cleaned_data,
    )
    return json_success(
        "Installment payment collected successfully!",
        status=201,
        receipt=build_receipt(payment),
    )


@role_required(*ADMIN_ROLES)
@require_POST
@handle_json_errors
def collect_payment(request, pk):
    student_fee = get_object_or_404(StudentFee.objects.select_related('student'), pk=pk)
    form = PaymentForm(parse_request_data(request))
    if not form.is_valid():
        return json_error("Invalid payment details.", errors=form_errors(form))

    payment = FeeService.collect_payment(
        student_fee,
        paid_by=resolve_auth_context(request).user_id,
        **form.cleaned_data,
    )
    return json_success("Payment collected successfully!", status=201, receipt=build_receipt(payment))


@role_required(*ADMIN_ROLES)
@require_POST
@handle_json_errors
def apply_discount(request, pk):
    student_fee = get_object_or_404(StudentFee.objects, pk=pk)
    form = DiscountForm(parse_request_data(request))
    if not form.is_valid():
        return json_error("Invalid discount details.", errors=form_errors(form))

    student_fee = FeeService.apply_discount(
        student_fee,
        form.cleaned_data['discount_amount'],
        reason=form.cleaned_data['reason'],
        user_id=resolve_auth_context(request).user_id,
    )
    return json_success(
        "Discount approved successfully!",
        student_fee=serialize_instance(student_fee, exclude=['school', 'student']),
    )


@role_required(*STAFF_ROLES)
@require_GET
@handle_json_errors
def payment_receipt(request, pk):
    payment = get_object_or_404(
        FeePayment.objects.select_related('student_fee__student', 'installment', 'school'), pk=pk
    )
    return json_success(receipt=build_receipt(payment))


@role_required(*ADMIN_ROLES)
@require_POST
@handle_json_errors
def backfill_fees(request):
    data = parse_request_data(request)
    academic_year = data.get('academic_year') or get_academic_year(request)
    result = FeeService.backfill_missing_fees(request.school_id, academic_year)
    return json_success(result['message'], **result)


# =============================================================================
# FEE TYPES
# =============================================================================

@role_required(*ADMIN_ROLES)
@require_http_methods(['GET', 'POST'])
@handle_json_errors
def fee_type_list(request):
    if request.method == 'POST':
        form = FeeTypeForm(parse_request_data(request))
        if not form.is_valid():
            return json_error("Invalid fee type.", errors=form_errors(form))
        fee_type = form.save()
        log_definition_change('fee_type', fee_type, action='CREATE')
        logger.info(f"Fee type created: {fee_type.name}")
        return json_success("Fee type created.", status=201, fee_type=serialize_instance(fee_type, exclude=['school']))

    fee_types = [serialize_instance(f, exclude=['school']) for f in FeeType.objects.all()]
    return json_success(fee_types=fee_types)


@role_required(*ADMIN_ROLES)
@require_http_methods(['POST', 'DELETE'])
@handle_json_errors
def fee_type_detail(request, pk):
    fee_type = get_object_or_404(FeeType.objects, pk=pk)

    if request.method == 'DELETE':
        if fee_type.class_structures.exists():
            return json_error("Fee type is used in the fee matrix and cannot be deleted.")
        log_definition_change('fee_type', fee_type, action='DELETE')
        fee_type.delete()
        return json_success("Fee type deleted.")

    form = FeeTypeForm(parse_request_data(request), instance=fee_type)
    if not form.is_valid():
        return json_error("Invalid fee type.", errors=form_errors(form))
    fee_type = form.save(commit=False)
    changes = fee_type.tracked_changes()
    fee_type.save()
    log_definition_change('fee_type', fee_type, changes)
    return json_success("Fee type updated.", fee_type=serialize_instance(fee_type, exclude=['school']))


# =============================================================================
# FEE MATRIX
# =============================================================================

@role_required(*ADMIN_ROLES)
@require_http_methods(['GET', 'POST'])
@handle_json_errors
def fee_matrix(request):
    """GET the class x fee type amounts for a year; POST sets one cell."""
    if request.method == 'POST':
        data = parse_request_data(request)
        existing = ClassFeeStructure.objects.filter(
            school_class_id=data.get('school_class'),
            fee_type_id=data.get('fee_type'),
            academic_year=data.get('academic_year'),
        ).first()
        form = ClassFeeStructureForm(data, instance=existing)
        if not form.is_valid():
            return json_error("Invalid fee structure.", errors=form_errors(form))
        cell = form.save(commit=False)
        changes = cell.tracked_changes()
        try:
            cell.save()
        except IntegrityError:
            return json_error("This fee is already defined for the class and year.")
        log_definition_change(
            'fee_structure', cell, changes, action='UPDATE' if existing else 'CREATE',
            impact_summary=f"Affects fees of {cell.school_class.name} for {cell.academic_year}",
        )
        return json_success("Fee structure saved.", cell=serialize_instance(cell, exclude=['school']))

    academic_year = get_academic_year(request)
    cells = ClassFeeStructure.objects.filter(academic_year=academic_year).select_related('school_class', 'fee_type')
    matrix = {}
    for cell in cells:
        row = matrix.setdefault(str(cell.school_class_id), {
            'class_id': str(cell.school_class_id),
            'class_name': cell.school_class.name,
            'fees': {},
            'total': 0,
        })
        row['fees'][str(cell.fee_type_id)] = str(cell.amount)
        row['total'] += cell.amount
    return json_success(academic_year=academic_year, matrix=list(matrix.values()))


@role_required(*ADMIN_ROLES)
@require_http_methods(['DELETE'])
@handle_json_errors
def fee_matrix_delete(request, pk):
    cell = get_object_or_404(ClassFeeStructure.objects, pk=pk)
    log_definition_change('fee_structure', cell, action='DELETE')
    cell.delete()
    return json_success("Fee structure deleted.")
