# documents/views.py

"""
ID card and certificate views. Card batches download as a ZIP; the
certificate preview renders HTML.
"""

from django.http import HttpResponse
from django.shortcuts import get_object_or_404, render
from django.utils import timezone
from django.views.decorators.http import require_GET, require_http_methods, require_POST
import logging

from accounts.auth import ADMIN_ROLES, STAFF_ROLES, resolve_auth_context, role_required
from utils.utils import (
    form_errors, handle_json_errors, json_error, json_success,
    paginate_queryset, parse_request_data, serialize_instance,
)

from .forms import AwardTypeForm, CertificateTemplateForm, IDCardSettingsForm, NominationForm
from .models import AwardType, CertificateTemplate, IDCardGeneration, StudentAward
from .services import AwardService, IDCardService

logger = logging.getLogger(__name__)


# =============================================================================
# ID CARDS
# =============================================================================

@role_required(*ADMIN_ROLES)
@require_http_methods(['GET', 'POST'])
@handle_json_errors
def id_card_settings(request):
    card_settings = IDCardService.settings_for(request.school_id)
    if request.method == 'POST':
        form = IDCardSettingsForm(parse_request_data(request), instance=card_settings)
        if not form.is_valid():
            return json_error("Invalid settings.", errors=form_errors(form))
        card_settings = form.save()
        return json_success("Settings updated successfully", settings=serialize_instance(card_settings, exclude=['school']))
    return json_success(settings=serialize_instance(card_settings, exclude=['school']))


@role_required(*ADMIN_ROLES)
@require_POST
@handle_json_errors
def id_card_generate(request):
    """
    POST {card_type: student|staff, entity_ids: [...], class_id, section_id}
    returns a ZIP of PNG cards.
    """
    data = parse_request_data(request)
    archive, count = IDCardService.generate(
        request.school_id,
        data.get('card_type') or 'student',
        data.get('entity_ids') or [],
        generated_by=resolve_auth_context(request).user_id,
        bulk_criteria={'class_id': data.get('class_id'), 'section_id': data.get('section_id')},
    )
    response = HttpResponse(archive, content_type='application/zip')
    response['Content-Disposition'] = f'attachment; filename="ID_Cards_{timezone.now():%Y%m%d_%H%M%S}.zip"'
    response['X-Card-Count'] = str(count)
    return response


@role_required(*ADMIN_ROLES)
@require_GET
@handle_json_errors
def id_card_history(request):
    generations = IDCardGeneration.objects.all()
    if request.GET.get('card_type') in ('student', 'staff'):
        generations = generations.filter(card_type=request.GET['card_type'])
    page_obj, paginator = paginate_queryset(request, generations, per_page=50)
    return json_success(
        generations=[serialize_instance(g, exclude=['school']) for g in page_obj],
        count=paginator.count,
    )


# =============================================================================
# AWARDS
# =============================================================================

@role_required(*STAFF_ROLES)
@require_http_methods(['GET', 'POST'])
@handle_json_errors
def award_list(request):
    if request.method == 'POST':
        data = parse_request_data(request)
        form = NominationForm(data)
        if not form.is_valid():
            return json_error("Invalid nomination.", errors=form_errors(form))
        awards = AwardService.nominate(
            data.get('student_ids') or [],
            issued_by=resolve_auth_context(request).user_id,
            **form.cleaned_data,
        )
        return json_success(
            f"Successfully awarded {len(awards)} student(s) with {awards[0].award_name}",
            status=201, created=len(awards),
        )

    awards = StudentAward.objects.select_related('student')
    if request.GET.get('status'):
        awards = awards.filter(status=request.GET['status'])
    page_obj, paginator = paginate_queryset(request, awards)
    items = [
        {
            **serialize_instance(a, exclude=['school']),
            'student_name': a.student.name,
            'admission_number': a.student.admission_number,
        }
        for a in page_obj
    ]
    return json_success(awards=items, count=paginator.count)


@role_required(*ADMIN_ROLES)
@require_POST
@handle_json_errors
def award_review(request, pk):
    award = get_object_or_404(StudentAward.objects, pk=pk)
    data = parse_request_data(request)
    approved = data.get('approved') in (True, 'true', '1', 1)
    award = AwardService.review(award, approved, resolve_auth_context(request).user_id, data.get('comments') or '')
    return json_success(f"Award {award.status} successfully", award_status=award.status)


@role_required(*ADMIN_ROLES)
@require_POST
@handle_json_errors
def award_issue(request):
    award_ids = parse_request_data(request).get('award_ids') or []
    issued = AwardService.issue_certificates(award_ids, user_id=resolve_auth_context(request).user_id)
    return json_success(f"Successfully generated certificates for {issued} award(s).", issued=issued)


@role_required(*STAFF_ROLES)
@require_GET
def award_preview(request, pk):
    award = get_object_or_404(StudentAward.objects.select_related('student', 'certificate_template'), pk=pk)
    template = None
    if request.GET.get('template_id'):
        template = get_object_or_404(CertificateTemplate.objects, pk=request.GET['template_id'])
    return render(request, 'documents/certificate_preview.html', AwardService.certificate_preview(award, template))


# =============================================================================
# DEFINITIONS
# =============================================================================

@role_required(*ADMIN_ROLES)
@require_http_methods(['GET', 'POST'])
@handle_json_errors
def award_type_list(request):
    if request.method == 'POST':
        form = AwardTypeForm(parse_request_data(request))
        if not form.is_valid():
            return json_error("Invalid award type.", errors=form_errors(form))
        award_type = form.save()
        return json_success("Award type created.", status=201, item=serialize_instance(award_type, exclude=['school']))
    return json_success(items=[serialize_instance(t, exclude=['school']) for t in AwardType.objects.all()])


@role_required(*ADMIN_ROLES)
@require_http_methods(['GET', 'POST'])
@handle_json_errors
def template_list(request):
    if request.method == 'POST':
        form = CertificateTemplateForm(parse_request_data(request))
        if not form.is_valid():
            return json_error("Invalid template.", errors=form_errors(form))
        template = form.save()
        if not AwardService.default_template():
            AwardService.set_default_template(template)
        return json_success("Template created successfully", status=201, item=serialize_instance(template, exclude=['school']))
    return json_success(items=[serialize_instance(t, exclude=['school']) for t in CertificateTemplate.objects.all()])


@role_required(*ADMIN_ROLES)
@require_POST
@handle_json_errors
def template_default(request, pk):
    template = AwardService.set_default_template(get_object_or_404(CertificateTemplate.objects, pk=pk))
    return json_success(f"{template.name} is now the default template.")
