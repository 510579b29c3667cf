"""WSGI config for the schooldesk project."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'schooldesk.settings')

application = get_wsgi_application()
