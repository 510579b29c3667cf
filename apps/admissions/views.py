# admissions/views.py

from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_http_methods, require_POST
import logging

from accounts.auth import ADMIN_ROLES, ROLE_COUNSELOR, resolve_auth_context, role_required
from utils.utils import (
    form_errors, handle_json_errors, json_error, json_success,
    paginate_queryset, parse_filters, parse_request_data, serialize_instance,
)

from .forms import LeadForm, VisitForm
from .models import AdmissionApplication, AdmissionLead, FunnelStage, LeadSource
from .services import AdmissionService

logger = logging.getLogger(__name__)

ADMISSION_ROLES = ADMIN_ROLES + (ROLE_COUNSELOR,)


def _lead_data(lead):
    data = serialize_instance(lead, exclude=['school'])
    data['current_stage_name'] = lead.current_stage.name if lead.current_stage else None
    data['lead_source_name'] = lead.lead_source.name if lead.lead_source else None
    data['applying_class_name'] = lead.applying_class.name if lead.applying_class else None
    return data


# =============================================================================
# LEADS
# =============================================================================

@role_required(*ADMISSION_ROLES)
@require_http_methods(['GET', 'POST'])
@handle_json_errors
def lead_list(request):
    if request.method == 'POST':
        form = LeadForm(parse_request_data(request))
        if not form.is_valid():
            return json_error("Invalid lead details.", errors=form_errors(form))
        data = form.cleaned_data
        lead = AdmissionService.create_lead(
            request.school_id,
            parent_name=data['parent_name'],
            contact_number=data['contact_number'],
            contact_email=data['contact_email'],
            student_name=data['student_name'],
            lead_source_id=data['lead_source'].pk if data['lead_source'] else None,
            applying_class_id=data['applying_class'].pk if data['applying_class'] else None,
            academic_year=data['academic_year'] or None,
            priority=data['priority'] or 'medium',
            notes=data['notes'],
            user_id=resolve_auth_context(request).user_id,
            assigned_counselor_id=data['assigned_counselor_id'] or None,
        )
        return json_success("Lead created successfully!", status=201, lead=_lead_data(lead))

    filters = parse_filters(request, ['stage', 'status', 'source', 'academic_year', 'search'])
    leads = AdmissionLead.objects.select_related('current_stage', 'lead_source', 'applying_class')
    if filters['stage']:
        leads = leads.filter(current_stage_id=filters['stage'])
    if filters['status']:
        leads = leads.filter(status=filters['status'])
    if filters['source']:
        leads = leads.filter(lead_source_id=filters['source'])
    if filters['academic_year']:
        leads = leads.filter(academic_year=filters['academic_year'])
    if filters['search']:
        term = filters['search']
        leads = leads.filter(
            Q(lead_number__icontains=term) | Q(student_name__icontains=term)
            | Q(parent_name__icontains=term) | Q(contact_number__icontains=term)
        )

    page_obj, paginator = paginate_queryset(request, leads)
    return json_success(leads=[_lead_data(lead) for lead in page_obj], count=paginator.count)


@role_required(*ADMISSION_ROLES)
@require_GET
@handle_json_errors
def lead_detail(request, pk):
    lead = get_object_or_404(AdmissionLead.objects.select_related('current_stage', 'lead_source', 'applying_class'), pk=pk)
    return json_success(
        lead=_lead_data(lead),
        visits=[serialize_instance(v, exclude=['school']) for v in lead.visits.all()],
        applications=[serialize_instance(a, exclude=['school']) for a in lead.applications.all()],
    )


@role_required(*ADMISSION_ROLES)
@require_POST
@handle_json_errors
def lead_visit(request, pk):
    lead = get_object_or_404(AdmissionLead.objects, pk=pk)
    form = VisitForm(parse_request_data(request))
    if not form.is_valid():
        return json_error("Invalid visit details.", errors=form_errors(form))
    visit = AdmissionService.log_visit(lead, counselor_id=resolve_auth_context(request).user_id, **form.cleaned_data)
    return json_success("Visit logged successfully!", status=201, visit=serialize_instance(visit, exclude=['school']))


@role_required(*ADMISSION_ROLES)
@require_POST
@handle_json_errors
def lead_stage(request, pk):
    lead = get_object_or_404(AdmissionLead.objects, pk=pk)
    stage = get_object_or_404(FunnelStage.objects, pk=parse_request_data(request).get('stage_id'))
    lead = AdmissionService.move_stage(lead, stage)
    return json_success(f"Lead moved to {stage.name}.", lead_status=lead.status)


@role_required(*ADMISSION_ROLES)
@require_POST
@handle_json_errors
def lead_application(request, pk):
    lead = get_object_or_404(AdmissionLead.objects, pk=pk)
    application = AdmissionService.submit_application(lead)
    return json_success(
        "Application submitted.", status=201,
        application=serialize_instance(application, exclude=['school']),
    )


# =============================================================================
# APPLICATIONS
# =============================================================================

@role_required(*ADMISSION_ROLES)
@require_GET
@handle_json_errors
def application_list(request):
    applications = AdmissionApplication.objects.select_related('lead')
    if request.GET.get('decision_status'):
        applications = applications.filter(decision_status=request.GET['decision_status'])
    page_obj, paginator = paginate_queryset(request, applications)
    items = [
        {**serialize_instance(a, exclude=['school']), 'lead_number': a.lead.lead_number}
        for a in page_obj
    ]
    return json_success(applications=items, count=paginator.count)


@role_required(*ADMIN_ROLES)
@require_POST
@handle_json_errors
def application_decision(request, pk):
    get_object_or_404(AdmissionApplication.objects, pk=pk)
    status = parse_request_data(request).get('status')
    application = AdmissionService.update_application_status(
        pk, status, user_id=resolve_auth_context(request).user_id
    )
    return json_success(f"Application {application.decision_status}.", decision_status=application.decision_status)


# =============================================================================
# FUNNEL
# =============================================================================

@role_required(*ADMISSION_ROLES)
@require_GET
@handle_json_errors
def funnel(request):
    academic_year = request.GET.get('academic_year')
    return json_success(
        summary=AdmissionService.funnel_summary(academic_year),
        counsellors=AdmissionService.counsellor_summary(academic_year),
    )


@role_required(*ADMIN_ROLES)
@require_http_methods(['GET', 'POST'])
@handle_json_errors
def funnel_setup(request):
    """GET lists stages and sources; POST seeds the defaults a school is missing."""
    created = 0
    if request.method == 'POST':
        created = AdmissionService.seed_defaults(request.school_id)
    return json_success(
        f"Added {created} default(s)." if request.method == 'POST' else '',
        stages=[serialize_instance(s, exclude=['school']) for s in FunnelStage.objects.all()],
        sources=[serialize_instance(s, exclude=['school']) for s in LeadSource.objects.all()],
    )
