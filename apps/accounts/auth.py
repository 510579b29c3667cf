# accounts/auth.py

"""
Identity and tenant context.

Every view and service that needs to know who is acting, in which role
and for which school receives an AuthContext. Two providers produce it
behind the same interface:

- ProfileAuthProvider: real credential check through django.contrib.auth,
  role and school read from the user's UserProfile.
- MockRoleAuthProvider: role picked with a button on the login screen,
  no credential check; the tenant is the demo school.

settings.SCHOOLDESK_MOCK_AUTH selects the provider.
"""

from dataclasses import dataclass, replace
from functools import wraps
import logging

from django.conf import settings
from django.contrib.auth import authenticate, login as django_login, logout as django_logout
from django.core.exceptions import ValidationError

from utils.utils import json_error

from .models import School, UserProfile
from .session_state import SessionState

logger = logging.getLogger(__name__)

ROLE_SUPERADMIN = UserProfile.ROLE_SUPERADMIN
ROLE_ADMIN = UserProfile.ROLE_ADMIN
ROLE_EDUCATOR = UserProfile.ROLE_EDUCATOR
ROLE_LEARNER = UserProfile.ROLE_LEARNER
ROLE_PARENT = UserProfile.ROLE_PARENT
ROLE_COUNSELOR = UserProfile.ROLE_COUNSELOR

# Not selectable at login; granted by the service-role API key
ROLE_SERVICE = 'SERVICE'

ALL_ROLES = tuple(code for code, _label in UserProfile.USER_ROLES)
STAFF_ROLES = (ROLE_SUPERADMIN, ROLE_ADMIN, ROLE_EDUCATOR, ROLE_COUNSELOR)
ADMIN_ROLES = (ROLE_SUPERADMIN, ROLE_ADMIN)


@dataclass(frozen=True)
class AuthContext:
    user_id: str = None
    role: str = None
    school_id: str = None

    @property
    def is_authenticated(self):
        return bool(self.user_id and self.role)

    @property
    def is_privileged(self):
        return self.role in (ROLE_SERVICE, ROLE_SUPERADMIN)

    def has_role(self, *roles):
        return self.role in roles

    def with_school(self, school_id):
        return replace(self, school_id=str(school_id) if school_id else None)

    def as_dict(self):
        return {'user_id': self.user_id, 'role': self.role, 'school_id': self.school_id}


ANONYMOUS = AuthContext()
SERVICE_CONTEXT = AuthContext(user_id='service_role', role=ROLE_SERVICE)


def link_user_to_demo_school():
    """
    The school mock-authenticated users act on: the oldest active school.

    Returns:
        School or None
    """
    return School.objects.filter(status=School.STATUS_ACTIVE).order_by('created_at').first()


# =============================================================================
# PROVIDERS
# =============================================================================

class AuthProvider:
    """Interface: resolve the AuthContext of a request; log in and out."""

    def resolve(self, request):
        raise NotImplementedError

    def login(self, request, **credentials):
        raise NotImplementedError

    def logout(self, request):
        SessionState.clear(request)


class ProfileAuthProvider(AuthProvider):

    def resolve(self, request):
        user = getattr(request, 'user', None)
        if user is None or not user.is_authenticated:
            return ANONYMOUS

        profile = UserProfile.objects.filter(user=user).select_related('school').first()
        if profile is None:
            if user.is_superuser:
                return AuthContext(user_id=str(user.pk), role=ROLE_SUPERADMIN)
            logger.warning(f"User {user.username} has no profile")
            return ANONYMOUS

        if not profile.is_active:
            logger.warning(f"Inactive profile for user {user.username}")
            return ANONYMOUS

        school_id = None
        if profile.school_id:
            if profile.school.is_active:
                school_id = str(profile.school_id)
            else:
                logger.warning(f"School {profile.school} is not active; user {user.username} unscoped")

        return AuthContext(user_id=str(user.pk), role=profile.role, school_id=school_id)

    def login(self, request, username=None, password=None, **credentials):
        user = authenticate(request, username=username, password=password)
        if user is None:
            raise ValidationError("Invalid username or password.")
        if not user.is_active:
            raise ValidationError("Your account has been disabled. Please contact support.")

        django_login(request, user)
        context = self.resolve(request)
        if not context.is_authenticated:
            django_logout(request)
            raise ValidationError("Your account is not linked to a school profile.")

        state = SessionState.load(request)
        state.selected_role = context.role
        state.save(request)
        logger.info(f"User {user.username} logged in as {context.role}")
        return context

    def logout(self, request):
        super().logout(request)
        django_logout(request)


class MockRoleAuthProvider(AuthProvider):

    def resolve(self, request):
        state = SessionState.load(request)
        role = state.selected_role
        if role not in ALL_ROLES:
            return ANONYMOUS

        school_id = None
        if role != ROLE_SUPERADMIN:
            school_id = request.session.get('mock_school_id')
            if not school_id:
                school = link_user_to_demo_school()
                school_id = str(school.pk) if school else None
                if school_id:
                    request.session['mock_school_id'] = school_id

        return AuthContext(user_id=f"mock-{role.lower()}", role=role, school_id=school_id)

    def login(self, request, role=None, **credentials):
        if role not in ALL_ROLES:
            raise ValidationError(f"Unknown role: {role}")

        request.session.pop('mock_school_id', None)
        state = SessionState.load(request)
        state.selected_role = role
        state.current_view = 'dashboard'
        state.save(request)
        logger.info(f"Mock login as {role}")
        return self.resolve(request)

    def logout(self, request):
        super().logout(request)
        request.session.pop('mock_school_id', None)


def get_auth_provider():
    if getattr(settings, 'SCHOOLDESK_MOCK_AUTH', False):
        return MockRoleAuthProvider()
    return ProfileAuthProvider()


def resolve_auth_context(request):
    """AuthContext for a request: set by SchoolTenantMiddleware, else resolved now."""
    context = getattr(request, 'auth_context', None)
    if context is not None:
        return context
    return get_auth_provider().resolve(request)


# =============================================================================
# VIEW DECORATORS
# =============================================================================

def auth_required(view_func):
    """Reject anonymous requests with a 401 JSON response."""
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not resolve_auth_context(request).is_authenticated:
            return json_error("Authentication required.", status=401)
        return view_func(request, *args, **kwargs)
    return wrapper


def school_required(view_func):
    """Require an authenticated user acting on a school."""
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        context = resolve_auth_context(request)
        if not context.is_authenticated:
            return json_error("Authentication required.", status=401)
        if not context.school_id:
            return json_error("No school selected for this user.", status=403)
        return view_func(request, *args, **kwargs)
    return wrapper


def role_required(*roles):
    """Require one of the given roles (and a school)."""
    def decorator(view_func):
        @wraps(view_func)
        @school_required
        def wrapper(request, *args, **kwargs):
            context = resolve_auth_context(request)
            if not context.has_role(*roles):
                return json_error(
                    f"This action requires one of: {', '.join(roles)}.", status=403
                )
            return view_func(request, *args, **kwargs)
        return wrapper
    return decorator
