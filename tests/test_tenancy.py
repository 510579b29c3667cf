# tests/test_tenancy.py

import pytest
from django.core.exceptions import ValidationError

from academics.models import SchoolClass
from accounts.models import School
from accounts.session_state import SessionState
from schooldesk.managers import SchoolContext, get_current_school_id

pytestmark = pytest.mark.django_db


# =============================================================================
# SCHOOL MANAGER
# =============================================================================

class TestSchoolManager:

    @pytest.fixture
    def classes(self, school, other_school):
        SchoolClass.all_objects.create(school=school, name='Grade 5')
        SchoolClass.all_objects.create(school=other_school, name='Grade 5')
        SchoolClass.all_objects.create(school=other_school, name='Grade 6')

    def test_unscoped_without_school(self, classes):
        assert SchoolClass.objects.count() == 3

    def test_scoped_to_current_school(self, school, other_school, classes):
        with SchoolContext(school):
            assert SchoolClass.objects.count() == 1
        with SchoolContext(other_school):
            assert sorted(SchoolClass.objects.values_list('name', flat=True)) == ['Grade 5', 'Grade 6']

    def test_create_attaches_current_school(self, school):
        with SchoolContext(school):
            school_class = SchoolClass.objects.create(name='Grade 7')
        assert str(school_class.school_id) == str(school.pk)

    def test_save_attaches_current_school(self, school):
        with SchoolContext(school):
            school_class = SchoolClass(name='Grade 8')
            school_class.save()
        assert str(school_class.school_id) == str(school.pk)

    def test_save_without_school_is_rejected(self):
        with pytest.raises(ValidationError, match='SchoolClass must belong to a school'):
            SchoolClass(name='Orphan').save()

    def test_context_restores_previous_school(self, school, other_school):
        with SchoolContext(school):
            with SchoolContext(other_school):
                assert str(get_current_school_id()) == str(other_school.pk)
            assert str(get_current_school_id()) == str(school.pk)
        assert not get_current_school_id()


# =============================================================================
# SESSION STATE
# =============================================================================

class TestSessionState:

    def test_update_known_fields(self):
        state = SessionState().update(current_view='fees', selected_child_id='abc')
        assert (state.current_view, state.selected_child_id) == ('fees', 'abc')

    @pytest.mark.parametrize('changes, message', [
        ({'theme': 'dark'}, 'Unknown session field: theme'),
        ({'selected_role': 'SUPERADMIN'}, 'Unknown session field: selected_role'),
        ({'current_view': 'payroll'}, 'Unknown view: payroll'),
    ])
    def test_update_rejects(self, changes, message):
        with pytest.raises(ValidationError, match=message):
            SessionState().update(**changes)


# =============================================================================
# LOGIN & SCHOOLS
# =============================================================================

class TestAccountViews:

    def test_login_links_demo_school(self, login, school, other_school):
        client = login('EDUCATOR')
        response = client.get('/me/')

        assert response.status_code == 200
        body = response.json()
        assert body['auth'] == {'user_id': 'mock-educator', 'role': 'EDUCATOR', 'school_id': str(school.pk)}
        assert body['school']['name'] == 'Greenfield Public School'

    def test_unknown_role(self, client, school, settings):
        settings.SCHOOLDESK_MOCK_AUTH = True
        response = client.post('/login/', {'role': 'JANITOR'}, content_type='application/json')
        assert response.status_code == 400
        assert response.json()['message'] == 'Unknown role: JANITOR'

    def test_anonymous_is_401(self, client):
        assert client.get('/me/').status_code == 401

    def test_logout(self, login):
        client = login('ADMIN')
        client.post('/logout/')
        assert client.get('/me/').status_code == 401

    def test_session_state_cannot_change_role(self, login):
        client = login('PARENT')
        response = client.post('/session-state/', {'selected_role': 'ADMIN'}, content_type='application/json')
        assert response.status_code == 400
        assert client.get('/me/').json()['auth']['role'] == 'PARENT'

    def test_session_state_round_trip(self, login):
        client = login('ADMIN')
        client.post('/session-state/', {'current_view': 'reports'}, content_type='application/json')
        assert client.get('/session-state/').json()['state']['current_view'] == 'reports'

    def test_only_superadmin_manages_schools(self, login):
        client = login('ADMIN')
        assert client.get('/schools/').status_code == 403

    def test_superadmin_onboards_school(self, login, school):
        client = login('SUPERADMIN')
        response = client.post('/schools/', {
            'name': 'Hillview School', 'board': 'ICSE', 'status': 'active',
        }, content_type='application/json')

        assert response.status_code == 201
        created = School.objects.get(name='Hillview School')
        assert created.onboarded_at is not None
        names = [s['name'] for s in client.get('/schools/').json()['schools']]
        assert names == ['Greenfield Public School', 'Hillview School']

    def test_superadmin_school_override(self, login, school, other_school):
        client = login('SUPERADMIN')
        assert client.get('/me/').json()['auth']['school_id'] is None

        response = client.get('/me/', {'school': str(other_school.pk)})
        assert response.json()['auth']['school_id'] == str(other_school.pk)
        assert client.get('/me/').json()['school']['name'] == 'Riverside Academy'
