# tests/test_config_and_commands.py

from io import StringIO

import pytest
from django.core.exceptions import ImproperlyConfigured
from django.core.management import call_command
from django.core.management.base import CommandError

from core.config import get_backend_credentials
from fees.models import StudentFee
from schooldesk.settings import parse_backend_url

from .conftest import ACADEMIC_YEAR


# =============================================================================
# BACKEND CONFIGURATION
# =============================================================================

class TestBackendCredentials:

    @pytest.fixture(autouse=True)
    def backend(self, settings):
        settings.BACKEND_URL = 'sqlite:///db.sqlite3'
        settings.BACKEND_ANON_KEY = 'anon-key'
        settings.BACKEND_SERVICE_ROLE_KEY = ''

    def test_anonymous_credentials(self):
        credentials = get_backend_credentials()
        assert credentials.anon_key == 'anon-key'
        assert not credentials.has_service_role

    def test_service_role_required(self, settings):
        with pytest.raises(ImproperlyConfigured, match='SCHOOLDESK_SERVICE_ROLE_KEY'):
            get_backend_credentials(require_service_role=True)

        settings.BACKEND_SERVICE_ROLE_KEY = 'service-key'
        assert get_backend_credentials(require_service_role=True).has_service_role

    def test_missing_values_are_listed(self, settings):
        settings.BACKEND_URL = ''
        settings.BACKEND_ANON_KEY = ''
        with pytest.raises(ImproperlyConfigured) as excinfo:
            get_backend_credentials()
        assert str(excinfo.value) == (
            'Missing required configuration: SCHOOLDESK_BACKEND_URL, SCHOOLDESK_ANON_KEY'
        )


@pytest.mark.parametrize('url, engine, name', [
    ('sqlite:///:memory:', 'django.db.backends.sqlite3', ':memory:'),
    ('sqlite:////var/lib/schooldesk.sqlite3', 'django.db.backends.sqlite3', '/var/lib/schooldesk.sqlite3'),
    ('postgres://desk:secret@db:5433/schooldesk', 'django.db.backends.postgresql', 'schooldesk'),
])
def test_parse_backend_url(url, engine, name):
    database = parse_backend_url(url)
    assert database['ENGINE'] == engine
    assert database['NAME'] == name


def test_parse_backend_url_postgres_credentials():
    database = parse_backend_url('postgres://desk:s%40cret@db:5433/schooldesk')
    assert (database['USER'], database['PASSWORD']) == ('desk', 's@cret')
    assert (database['HOST'], database['PORT']) == ('db', '5433')


def test_parse_backend_url_rejects_unknown_scheme():
    with pytest.raises(ValueError, match='Unsupported'):
        parse_backend_url('mysql://db/schooldesk')


# =============================================================================
# backfill_student_fees
# =============================================================================

@pytest.mark.django_db
class TestBackfillCommand:

    def test_requires_service_role_key(self, settings):
        settings.BACKEND_SERVICE_ROLE_KEY = ''
        with pytest.raises(CommandError, match='SCHOOLDESK_SERVICE_ROLE_KEY'):
            call_command('backfill_student_fees')

    def test_backfills_active_schools(self, settings, school, student, fee_structure):
        settings.BACKEND_ANON_KEY = 'anon-key'
        settings.BACKEND_SERVICE_ROLE_KEY = 'service-key'
        out = StringIO()

        call_command('backfill_student_fees', '--year', ACADEMIC_YEAR, stdout=out)

        assert f'Created 1 missing fee records for {ACADEMIC_YEAR}.' in out.getvalue()
        student_fee = StudentFee.all_objects.get(student=student, academic_year=ACADEMIC_YEAR)
        assert student_fee.created_by_id == 'service_role'

    def test_reconcile_option(self, settings, school, student, fee_structure):
        settings.BACKEND_SERVICE_ROLE_KEY = 'service-key'
        out = StringIO()

        call_command('backfill_student_fees', '--school', str(school.pk), '--reconcile', stdout=out)

        assert 'Reconciled 0 payment record(s)' in out.getvalue()

    def test_unknown_school(self, settings, school):
        settings.BACKEND_SERVICE_ROLE_KEY = 'service-key'
        with pytest.raises(CommandError, match='not found'):
            call_command('backfill_student_fees', '--school', '00000000-0000-0000-0000-000000000000')
