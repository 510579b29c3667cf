# tests/test_admissions.py

from datetime import timedelta

import pytest
from django.core.exceptions import ValidationError
from django.utils import timezone

from admissions.models import AdmissionApplication, AdmissionLead, FunnelStage, LeadSource
from admissions.services import (
    DEFAULT_SOURCES,
    DEFAULT_STAGES,
    AdmissionService,
    generate_next_lead_number,
)
from schooldesk.managers import SchoolContext

pytestmark = pytest.mark.django_db


def new_lead(school, **kwargs):
    kwargs.setdefault('parent_name', 'Sunita Iyer')
    kwargs.setdefault('contact_number', '9845012345')
    kwargs.setdefault('academic_year', '2025-26')
    return AdmissionService.create_lead(school.pk, **kwargs)


def stage(school, category):
    return FunnelStage.all_objects.get(school=school, stage_category=category)


class TestLeadNumbers:

    def test_format_and_sequence(self, school):
        assert generate_next_lead_number(school.pk, '2025-26') == 'LEAD-2025-0001'
        new_lead(school)
        new_lead(school)
        assert generate_next_lead_number(school.pk, '2025-26') == 'LEAD-2025-0003'

    def test_sequence_is_per_school_and_year(self, school, other_school):
        new_lead(school)
        assert generate_next_lead_number(other_school.pk, '2025-26') == 'LEAD-2025-0001'
        assert generate_next_lead_number(school.pk, '2026-27') == 'LEAD-2026-0001'

    def test_sequence_past_four_digits(self, school):
        for number in ('LEAD-2025-9999', 'LEAD-2025-10000'):
            AdmissionLead.all_objects.create(
                school=school, lead_number=number, parent_name='Sunita Iyer',
                contact_number='9845012345', academic_year='2025-26',
            )
        assert generate_next_lead_number(school.pk, '2025-26') == 'LEAD-2025-10001'

    def test_default_year_comes_from_settings(self, school, settings):
        settings.SCHOOLDESK_ACADEMIC_YEAR = '2024-25'
        assert generate_next_lead_number(school.pk) == 'LEAD-2024-0001'


class TestCreateLead:

    def test_seeds_funnel_and_starts_at_first_stage(self, school):
        lead = new_lead(school, student_name='Arav Iyer', user_id='mock-counselor')

        assert FunnelStage.all_objects.filter(school=school).count() == len(DEFAULT_STAGES)
        assert LeadSource.all_objects.filter(school=school).count() == len(DEFAULT_SOURCES)
        assert lead.current_stage.name == 'New Inquiry'
        assert lead.status == 'active'
        assert lead.assigned_counselor_id == 'mock-counselor'

    @pytest.mark.parametrize('overrides, message', [
        ({'parent_name': 'Sunita 2'}, 'Parent Name should not contain numbers'),
        ({'student_name': 'Arav 1'}, 'Student Name should not contain numbers'),
        ({'contact_number': '98450-12345'}, 'Phone number should only contain digits'),
        ({'contact_email': 'sunita@'}, 'Invalid email address'),
    ])
    def test_contact_validation(self, school, overrides, message):
        with pytest.raises(ValidationError, match=message):
            new_lead(school, **overrides)
        assert not AdmissionLead.all_objects.exists()

    def test_seeding_is_idempotent(self, school):
        AdmissionService.seed_defaults(school.pk)
        assert AdmissionService.seed_defaults(school.pk) == 0


class TestVisitsAndStages:

    def test_follow_up_visit_moves_next_follow_up(self, school):
        lead = new_lead(school)
        followup = timezone.localdate() + timedelta(days=3)

        AdmissionService.log_visit(
            lead, counselor_id='mock-counselor', visit_type='campus_tour',
            followup_required=True, next_followup_date=followup,
        )

        lead.refresh_from_db()
        assert lead.next_followup_date == followup
        assert lead.last_contacted_at is not None
        assert lead.visits.count() == 1

    def test_visit_without_follow_up_leaves_lead_alone(self, school):
        lead = new_lead(school)
        AdmissionService.log_visit(lead, visit_type='phone_call', next_followup_date=timezone.localdate())

        lead.refresh_from_db()
        assert lead.next_followup_date is None
        assert lead.last_contacted_at is None

    def test_invalid_visit_type(self, school):
        with pytest.raises(ValidationError):
            AdmissionService.log_visit(new_lead(school), visit_type='carrier_pigeon')

    def test_stage_moves_set_status(self, school):
        lead = new_lead(school)
        AdmissionService.move_stage(lead, stage(school, 'lost'))
        assert lead.status == 'lost'
        AdmissionService.move_stage(lead, FunnelStage.all_objects.get(school=school, name='Contacted'))
        assert lead.status == 'active'
        AdmissionService.move_stage(lead, stage(school, 'enrolled'))
        assert lead.status == 'converted'

    def test_stage_of_another_school_rejected(self, school, other_school):
        lead = new_lead(school)
        AdmissionService.seed_defaults(other_school.pk)
        with pytest.raises(ValidationError, match='does not belong'):
            AdmissionService.move_stage(lead, stage(other_school, 'enrolled'))


class TestApplications:

    def test_submit_requires_student_name(self, school):
        with pytest.raises(ValidationError, match='Student name is required'):
            AdmissionService.submit_application(new_lead(school))

    def test_submit_moves_lead_to_application_stage(self, school):
        lead = new_lead(school, student_name='Arav Iyer')
        application = AdmissionService.submit_application(lead)

        assert application.application_number == 'APP-2025-0001'
        assert application.decision_status == 'pending'
        lead.refresh_from_db()
        assert lead.current_stage.stage_category == 'application'

        with pytest.raises(ValidationError, match='already has a pending application'):
            AdmissionService.submit_application(lead)

    def test_approval_converts_lead(self, school):
        lead = new_lead(school, student_name='Arav Iyer')
        application = AdmissionService.submit_application(lead)

        AdmissionService.update_application_status(application.pk, 'approved', user_id='mock-admin')

        application.refresh_from_db()
        lead.refresh_from_db()
        assert (application.status, application.decision_status) == ('decided', 'approved')
        assert application.decided_by == 'mock-admin'
        assert lead.status == 'converted'
        assert lead.current_stage.stage_category == 'enrolled'

    def test_decisions_are_final(self, school):
        application = AdmissionService.submit_application(new_lead(school, student_name='Arav Iyer'))
        AdmissionService.update_application_status(application.pk, 'rejected')

        with pytest.raises(ValidationError, match='already been rejected'):
            AdmissionService.update_application_status(application.pk, 'approved')
        assert AdmissionLead.all_objects.get().status == 'active'

    def test_unknown_decision(self, school):
        application = AdmissionService.submit_application(new_lead(school, student_name='Arav Iyer'))
        with pytest.raises(ValidationError, match="Invalid decision 'maybe'"):
            AdmissionService.update_application_status(application.pk, 'maybe')

    def test_missing_application(self, school):
        with pytest.raises(AdmissionApplication.DoesNotExist):
            AdmissionService.update_application_status('00000000-0000-0000-0000-000000000000', 'approved')


class TestFunnel:

    def test_summary_counts_and_conversion(self, school):
        converted = new_lead(school, student_name='Arav Iyer', user_id='c-1')
        new_lead(school, user_id='c-1')
        lost = new_lead(school, user_id='c-2')
        due = new_lead(school, user_id='c-2')
        AdmissionService.move_stage(converted, stage(school, 'enrolled'))
        AdmissionService.move_stage(lost, stage(school, 'lost'))
        AdmissionLead.all_objects.filter(pk=due.pk).update(next_followup_date=timezone.localdate())

        with SchoolContext(school):
            summary = AdmissionService.funnel_summary('2025-26')
            counsellors = AdmissionService.counsellor_summary('2025-26')

        assert summary['total_leads'] == 4
        assert (summary['active'], summary['converted'], summary['lost']) == (2, 1, 1)
        assert str(summary['conversion_rate']) == '25.0'
        assert summary['followups_due'] == 1
        counts = {s['name']: s['count'] for s in summary['stages']}
        assert counts['New Inquiry'] == 2
        assert counts['Enrolled'] == 1

        assert [row['counselor_id'] for row in counsellors] == ['c-1', 'c-2']
        assert str(counsellors[0]['conversion_rate']) == '50.0'

    def test_funnel_is_scoped_to_school(self, school, other_school):
        new_lead(other_school)
        with SchoolContext(school):
            assert AdmissionService.funnel_summary()['total_leads'] == 0
