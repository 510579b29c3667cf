# core/config.py

"""
Backend connection settings read from the environment (see settings.py):
SCHOOLDESK_BACKEND_URL, SCHOOLDESK_ANON_KEY, SCHOOLDESK_SERVICE_ROLE_KEY.
"""

from dataclasses import dataclass

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured


@dataclass(frozen=True)
class BackendCredentials:
    url: str
    anon_key: str = ''
    service_role_key: str = ''

    @property
    def has_service_role(self):
        return bool(self.service_role_key)


def get_backend_credentials(require_service_role=False):
    """
    Raises:
        ImproperlyConfigured: the URL is missing, or the key the caller
        needs (service-role when required, anonymous otherwise) is missing
    """
    credentials = BackendCredentials(
        url=getattr(settings, 'BACKEND_URL', '') or '',
        anon_key=getattr(settings, 'BACKEND_ANON_KEY', '') or '',
        service_role_key=getattr(settings, 'BACKEND_SERVICE_ROLE_KEY', '') or '',
    )

    missing = []
    if not credentials.url:
        missing.append('SCHOOLDESK_BACKEND_URL')
    if require_service_role and not credentials.service_role_key:
        missing.append('SCHOOLDESK_SERVICE_ROLE_KEY')
    if not require_service_role and not credentials.anon_key:
        missing.append('SCHOOLDESK_ANON_KEY')
    if missing:
        raise ImproperlyConfigured(f"Missing required configuration: {', '.join(missing)}")
    return credentials
