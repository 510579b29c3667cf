# schooldesk/middleware.py

"""
Tenant middleware.

Resolves the AuthContext for the request (user id, role, school id) through
the configured auth provider and makes the school the active tenant for
every SchoolManager query issued while the request is processed.

Selection logic:
1. System paths (/admin/, /static/, /media/) run unscoped
2. Authenticated users run scoped to their school
3. SUPERADMIN may pick a school with ?school=<uuid> (kept in the session)
4. Anonymous requests run unscoped and see no tenant data through views
"""

import logging

from .managers import get_current_school_id, set_current_school_id, clear_current_school_id

logger = logging.getLogger(__name__)


class SchoolTenantMiddleware:

    SYSTEM_PATHS = ['/admin/', '/static/', '/media/']
    SESSION_OVERRIDE_KEY = 'school_override'

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        from accounts.auth import ANONYMOUS, resolve_auth_context

        original_school_id = get_current_school_id()

        try:
            auth_context = resolve_auth_context(request)
            auth_context = self.handle_superadmin_override(request, auth_context)
        except Exception:
            logger.exception("SchoolTenantMiddleware failure - continuing unauthenticated")
            auth_context = ANONYMOUS

        request.auth_context = auth_context
        request.school_id = auth_context.school_id

        if auth_context.school_id and not self.is_system_path(request.path):
            set_current_school_id(auth_context.school_id)
        else:
            clear_current_school_id()

        try:
            response = self.get_response(request)
        finally:
            if original_school_id:
                set_current_school_id(original_school_id)
            else:
                clear_current_school_id()

        return response

    def is_system_path(self, path):
        return any(path.startswith(p) for p in self.SYSTEM_PATHS)

    # ==========================================================================
    # SUPERADMIN OVERRIDE
    # ==========================================================================

    def handle_superadmin_override(self, request, auth_context):
        """
        SUPERADMIN users have no school of their own; they may act on a
        school by passing ?school=<id>, which is remembered in the session.
        Other roles trying to override are ignored and logged.
        """
        from accounts.auth import ROLE_SUPERADMIN
        from accounts.models import School

        requested = request.GET.get('school')

        if auth_context.role != ROLE_SUPERADMIN:
            if requested:
                logger.warning(
                    f"User {auth_context.user_id} ({auth_context.role}) attempted school override"
                )
            return auth_context

        if requested:
            if School.objects.filter(pk=requested).exists():
                request.session[self.SESSION_OVERRIDE_KEY] = str(requested)
                logger.info(f"School override set to {requested} by {auth_context.user_id}")
            else:
                request.session.pop(self.SESSION_OVERRIDE_KEY, None)

        school_id = request.session.get(self.SESSION_OVERRIDE_KEY)
        if school_id:
            return auth_context.with_school(school_id)
        return auth_context
