# accounts/views.py

import logging

from django.utils import timezone
from django.views.decorators.cache import never_cache
from django.views.decorators.http import require_http_methods, require_POST

from utils.utils import (
    form_errors, handle_json_errors, json_error, json_success,
    parse_request_data, serialize_instance,
)

from .auth import ROLE_SUPERADMIN, auth_required, get_auth_provider, resolve_auth_context
from .forms import SchoolForm
from .models import School
from .session_state import SessionState

logger = logging.getLogger(__name__)


# =============================================================================
# LOGIN / LOGOUT
# =============================================================================

@never_cache
@require_POST
@handle_json_errors
def login_view(request):
    """
    Log in through the configured provider.

    Mock mode expects {"role": "ADMIN"}; profile mode expects
    {"username": ..., "password": ...}.
    """
    data = parse_request_data(request)
    provider = get_auth_provider()
    context = provider.login(request, **{k: v for k, v in data.items() if k in ('role', 'username', 'password')})
    return json_success("Logged in.", auth=context.as_dict())


@require_POST
def logout_view(request):
    """Handle user logout"""
    get_auth_provider().logout(request)
    return json_success("You have been successfully logged out.")


@auth_required
def whoami(request):
    context = resolve_auth_context(request)
    school = None
    if context.school_id:
        school = School.objects.filter(pk=context.school_id).values('id', 'name').first()
        if school:
            school['id'] = str(school['id'])
    return json_success(auth=context.as_dict(), school=school)


# =============================================================================
# SESSION STATE
# =============================================================================

@require_http_methods(['GET', 'POST'])
@handle_json_errors
def session_state(request):
    state = SessionState.load(request)
    if request.method == 'POST':
        state.update(**parse_request_data(request))
        state.save(request)
    return json_success(state=vars(state))


# =============================================================================
# SCHOOL ONBOARDING (SUPERADMIN)
# =============================================================================

@auth_required
@require_http_methods(['GET', 'POST'])
@handle_json_errors
def school_list(request):
    context = resolve_auth_context(request)
    if context.role != ROLE_SUPERADMIN:
        return json_error("Only super administrators can manage schools.", status=403)

    if request.method == 'POST':
        form = SchoolForm(parse_request_data(request))
        if not form.is_valid():
            return json_error("Invalid school details.", errors=form_errors(form))
        school = form.save(commit=False)
        if school.status == School.STATUS_ACTIVE:
            school.onboarded_at = timezone.now()
        school.save()
        logger.info(f"School onboarded: {school.name}")
        return json_success("School created.", status=201, school=serialize_instance(school, exclude=['logo']))

    schools = [serialize_instance(s, exclude=['logo']) for s in School.objects.all()]
    return json_success(schools=schools)
