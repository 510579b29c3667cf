# core/views.py

from django.conf import settings
from django.utils.crypto import constant_time_compare
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST
import logging

from accounts.auth import SERVICE_CONTEXT, resolve_auth_context
from utils.utils import handle_json_errors, json_error, json_success, parse_request_data

from .rpc import call_procedure

logger = logging.getLogger(__name__)


def _key_matches(supplied, expected):
    return bool(expected) and constant_time_compare(supplied, expected)


@csrf_exempt
@require_POST
@handle_json_errors
def rpc_call(request, name):
    """
    POST /api/rpc/<name>/ with a JSON object of p_* parameters.

    The apikey header selects the caller: the service-role key runs as the
    service role, the anonymous key runs as the signed-in session user (or
    anonymously for public procedures). Without the header the session
    user is used. An unknown key is rejected.
    """
    api_key = request.headers.get('apikey', '')
    key_verified = False
    if api_key:
        if _key_matches(api_key, settings.BACKEND_SERVICE_ROLE_KEY):
            auth = SERVICE_CONTEXT
            key_verified = True
        elif _key_matches(api_key, settings.BACKEND_ANON_KEY):
            auth = resolve_auth_context(request)
            key_verified = True
        else:
            logger.warning(f"RPC {name} rejected: invalid API key")
            return json_error("Invalid API key.", status=401)
    else:
        auth = resolve_auth_context(request)

    result = call_procedure(name, parse_request_data(request), auth, key_verified=key_verified)
    return json_success(data=result)
