# core/management/commands/backfill_student_fees.py

"""
Create missing student fee records for a school and year.

USAGE EXAMPLES:
===============

# 1. Backfill every active school for the default academic year
python manage.py backfill_student_fees

# 2. One school, one year
python manage.py backfill_student_fees --school <uuid> --year 2024-25

# 3. Also add BACKFILL payments where recorded payments fall short
python manage.py backfill_student_fees --school <uuid> --reconcile
"""

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.core.management.base import BaseCommand, CommandError
import logging

from accounts.auth import SERVICE_CONTEXT
from accounts.models import School
from core.config import get_backend_credentials
from fees.services import FeeService
from schooldesk.managers import SchoolContext
from utils.context import RequestContext

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Create missing student fee records (requires the service-role key)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--school', type=str, default=None,
            help='School id; defaults to every active school'
        )
        parser.add_argument(
            '--year', type=str, default=None,
            help='Academic year, e.g. 2024-25 (defaults to SCHOOLDESK_ACADEMIC_YEAR)'
        )
        parser.add_argument(
            '--reconcile', action='store_true',
            help='Add BACKFILL payments where payments recorded fall short of the paid amount'
        )

    def handle(self, *args, **options):
        try:
            get_backend_credentials(require_service_role=True)
        except ImproperlyConfigured as e:
            raise CommandError(str(e))

        year = options['year'] or settings.SCHOOLDESK_ACADEMIC_YEAR

        if options['school']:
            schools = School.objects.filter(pk=options['school'])
            if not schools.exists():
                raise CommandError(f"School '{options['school']}' not found")
        else:
            schools = School.objects.filter(status=School.STATUS_ACTIVE)

        for school in schools:
            self.stdout.write(self.style.MIGRATE_HEADING(f"\n{school.name} ({year})"))
            with SchoolContext(school), RequestContext(user_id=SERVICE_CONTEXT.user_id, role=SERVICE_CONTEXT.role):
                result = FeeService.backfill_missing_fees(school, year)
                logger.info(f"backfill_student_fees: {school.name} {year}: {result['message']}")
                self.stdout.write(self.style.SUCCESS(result['message']))
                if options['reconcile']:
                    created = FeeService.reconcile_payment_records(school, year)
                    self.stdout.write(f"Reconciled {created} payment record(s)")
