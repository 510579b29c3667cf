# tests/test_portal.py

from datetime import date

import pytest
from django.core.exceptions import PermissionDenied, ValidationError

from academics.models import Exam
from academics.services import MarksService, SubjectService
from accounts.auth import ROLE_ADMIN, ROLE_PARENT, AuthContext
from fees.services import FeeService
from portal.forms import ServiceTicketForm
from portal.models import ServiceTicket, TicketReply
from portal.services import ParentPortalService, TicketService
from students.models import Parent, Student
from students.services import StudentService

from .conftest import ACADEMIC_YEAR

pytestmark = pytest.mark.django_db

PARENT_LOGIN = 'mock-parent'


@pytest.fixture
def family(student, make_student):
    """Asha and her brother under the logged-in parent; Kiran belongs to another family."""
    brother = make_student('Rohan Verma', parent_phone='9876543210')
    neighbour = make_student('Kiran Das', parent_phone='9123456780', parent_name='Meera Das')
    StudentService.link_parent_account(student.parent, PARENT_LOGIN)
    return student, brother, neighbour


@pytest.fixture
def parent_auth(school):
    return AuthContext(user_id=PARENT_LOGIN, role=ROLE_PARENT, school_id=school.pk)


def open_ticket(student, subject='Bus timing', **data):
    form = ServiceTicketForm({
        'category': data.get('category', 'transport'), 'priority': data.get('priority', 'medium'),
        'subject': subject, 'description': 'The bus arrives late every day.',
    })
    assert form.is_valid(), form.errors
    return TicketService.open_ticket(student.parent, student, form)


# =============================================================================
# PARENT ACCOUNTS
# =============================================================================

class TestParentAccounts:

    def test_login_links_to_one_parent(self, school, family):
        _asha, _rohan, kiran = family
        with pytest.raises(ValidationError, match='already linked to another parent'):
            StudentService.link_parent_account(kiran.parent, PARENT_LOGIN)

    def test_relinking_same_parent_and_unlinking(self, family):
        asha = family[0]
        StudentService.link_parent_account(asha.parent, PARENT_LOGIN)
        assert Parent.all_objects.get(pk=asha.parent_id).user_id == PARENT_LOGIN
        StudentService.link_parent_account(asha.parent, '  ')
        assert Parent.all_objects.get(pk=asha.parent_id).user_id is None

    def test_account_view(self, login, student):
        client = login('ADMIN')
        response = client.post(
            f'/students/parents/{student.parent_id}/account/', {'user_id': 'parent-77'},
            content_type='application/json',
        )
        assert response.status_code == 200
        assert response.json()['parent']['user_id'] == 'parent-77'

    def test_account_view_is_admin_only(self, login, student):
        client = login('PARENT')
        response = client.post(
            f'/students/parents/{student.parent_id}/account/', {'user_id': PARENT_LOGIN},
            content_type='application/json',
        )
        assert response.status_code == 403


# =============================================================================
# CHILDREN
# =============================================================================

class TestChildren:

    def test_children_are_scoped_to_login(self, parent_auth, family):
        names = [s.name for s in ParentPortalService.children(parent_auth)]
        assert names == ['Asha Verma', 'Rohan Verma']

    def test_child_defaults_to_first(self, parent_auth, family):
        assert ParentPortalService.child(parent_auth).name == 'Asha Verma'

    def test_foreign_child_is_refused(self, parent_auth, family):
        with pytest.raises(PermissionDenied):
            ParentPortalService.child(parent_auth, family[2].pk)

    def test_no_children_linked(self, school, student):
        auth = AuthContext(user_id='someone-else', role=ROLE_PARENT, school_id=school.pk)
        with pytest.raises(Student.DoesNotExist):
            ParentPortalService.child(auth)

    def test_other_school_parent_with_same_login(self, other_school, family):
        auth = AuthContext(user_id=PARENT_LOGIN, role=ROLE_PARENT, school_id=other_school.pk)
        assert not ParentPortalService.children(auth).exists()

    def test_children_view(self, login, family):
        client = login('PARENT')
        response = client.get('/portal/children/')
        assert [c['name'] for c in response.json()['children']] == ['Asha Verma', 'Rohan Verma']


class TestChildFees:

    def test_fees_for_own_child(self, login, family, fee_structure):
        asha = family[0]
        installments = FeeService.generate_installments(
            asha, ACADEMIC_YEAR, number_of_installments=3, first_due_date=date(2024, 4, 10)
        )
        FeeService.record_installment_payment(installments[0], '1500', payment_mode='upi')
        client = login('PARENT')

        response = client.get('/portal/fees/', {'student_id': str(asha.pk), 'academic_year': ACADEMIC_YEAR})
        assert response.status_code == 200
        body = response.json()
        assert body['student']['name'] == 'Asha Verma'
        assert [i['installment_number'] for i in body['installments']] == [1, 2, 3]
        assert body['installments'][0]['pending_amount'] == '2500.00'
        assert len(body['payments']) == 1

    def test_child_without_fee_record(self, login, family):
        client = login('PARENT')
        response = client.get('/portal/fees/', {'academic_year': ACADEMIC_YEAR})
        assert response.status_code == 200
        assert response.json()['student_fee'] is None
        assert response.json()['installments'] == []

    def test_fees_for_another_child_forbidden(self, login, family):
        client = login('PARENT')
        response = client.get('/portal/fees/', {'student_id': str(family[2].pk)})
        assert response.status_code == 403

    def test_staff_cannot_use_parent_endpoints(self, login, family):
        client = login('ADMIN')
        assert client.get('/portal/fees/').status_code == 403


class TestChildResults:

    @pytest.fixture
    def exams(self, school, school_class, family):
        asha = family[0]
        science = SubjectService.create_subject(school.pk, 'Science', 'SCI')
        term1 = Exam.all_objects.create(
            school=school, name='Term 1', exam_type='mid_term', academic_year=ACADEMIC_YEAR,
            school_class=school_class, start_date=date(2024, 9, 10), is_published=True,
        )
        term2 = Exam.all_objects.create(
            school=school, name='Term 2', exam_type='final', academic_year=ACADEMIC_YEAR,
            school_class=school_class, start_date=date(2025, 2, 10),
        )
        for exam in (term1, term2):
            MarksService.save_marks(exam, science, [{'student_id': asha.pk, 'marks_obtained': 80}])
        return term1, term2

    def test_only_published_exams(self, family, exams):
        results = ParentPortalService.results(family[0])
        assert [r['exam_id'] for r in results] == [str(exams[0].pk)]
        assert results[0]['student_name'] == 'Asha Verma'
        assert results[0]['start_date'] == '2024-09-10'

    def test_results_view_for_another_child(self, login, family, exams):
        client = login('PARENT')
        response = client.get('/portal/results/', {'student_id': str(family[2].pk)})
        assert response.status_code == 403

    def test_results_view(self, login, family, exams):
        client = login('PARENT')
        response = client.get('/portal/results/')
        assert response.status_code == 200
        assert len(response.json()['results']) == 1


# =============================================================================
# SERVICE TICKETS
# =============================================================================

class TestTickets:

    def test_open_ticket_for_own_child(self, family):
        ticket = open_ticket(family[0])
        assert ticket.status == ServiceTicket.STATUS_OPEN
        assert ticket.parent == family[0].parent
        assert ticket.school_id == family[0].school_id

    def test_cannot_open_for_another_family(self, family):
        asha, _rohan, kiran = family
        form = ServiceTicketForm({
            'category': 'fee', 'priority': 'low', 'subject': 'Receipt', 'description': 'Need a copy.',
        })
        assert form.is_valid()
        with pytest.raises(PermissionDenied):
            TicketService.open_ticket(asha.parent, kiran, form)

    def test_staff_reply_moves_ticket_in_progress(self, school, parent_auth, family):
        ticket = open_ticket(family[0])
        TicketService.reply(ticket, parent_auth, 'Any update?')
        assert ticket.status == ServiceTicket.STATUS_OPEN

        staff = AuthContext(user_id='mock-admin', role=ROLE_ADMIN, school_id=school.pk)
        TicketService.reply(ticket, staff, 'Transport desk is checking.')

        ticket.refresh_from_db()
        assert ticket.status == ServiceTicket.STATUS_IN_PROGRESS
        assert list(ticket.replies.values_list('sender_role', flat=True)) == [ROLE_PARENT, ROLE_ADMIN]

    def test_reply_rules(self, parent_auth, family):
        ticket = open_ticket(family[0])
        with pytest.raises(ValidationError, match='Reply message is required'):
            TicketService.reply(ticket, parent_auth, '   ')

        TicketService.set_status(ticket, ServiceTicket.STATUS_CLOSED)
        with pytest.raises(ValidationError, match='This ticket is closed'):
            TicketService.reply(ticket, parent_auth, 'Reopen please')
        assert not TicketReply.all_objects.exists()

    def test_resolving_stamps_time(self, family):
        ticket = TicketService.set_status(open_ticket(family[0]), ServiceTicket.STATUS_RESOLVED)
        assert ticket.resolved_at is not None
        with pytest.raises(ValidationError, match='Unknown ticket status: lost'):
            TicketService.set_status(ticket, 'lost')


class TestTicketViews:

    def test_parent_opens_and_lists_tickets(self, login, family):
        client = login('PARENT')
        response = client.post('/portal/tickets/', {
            'student_id': str(family[1].pk), 'category': 'academic', 'priority': 'high',
            'subject': 'Homework load', 'description': 'Too much homework on weekends.',
        }, content_type='application/json')
        assert response.status_code == 201
        assert response.json()['ticket']['student_name'] == 'Rohan Verma'

        listing = client.get('/portal/tickets/', {'student_id': str(family[1].pk)}).json()
        assert [t['subject'] for t in listing['tickets']] == ['Homework load']

    def test_invalid_ticket(self, login, family):
        client = login('PARENT')
        response = client.post('/portal/tickets/', {'subject': '  '}, content_type='application/json')
        assert response.status_code == 400
        assert 'subject' in response.json()['errors']

    def test_another_parents_ticket_is_hidden(self, login, family):
        ticket = open_ticket(family[2])
        client = login('PARENT')
        assert client.get(f'/portal/tickets/{ticket.pk}/').status_code == 403

    def test_parent_reads_and_replies(self, login, family):
        ticket = open_ticket(family[0])
        client = login('PARENT')
        response = client.post(f'/portal/tickets/{ticket.pk}/', {'message': 'Thanks'}, content_type='application/json')
        assert response.status_code == 201

        detail = client.get(f'/portal/tickets/{ticket.pk}/').json()
        assert [r['message'] for r in detail['replies']] == ['Thanks']

    def test_support_queue_and_status(self, login, family):
        open_ticket(family[0], subject='Bus timing')
        ticket = open_ticket(family[2], subject='Fee receipt', category='fee')
        client = login('ADMIN')

        queue = client.get('/portal/support/').json()
        assert {t['subject'] for t in queue['tickets']} == {'Bus timing', 'Fee receipt'}

        response = client.post(f'/portal/support/{ticket.pk}/status/', {'status': 'resolved'},
                               content_type='application/json')
        assert response.status_code == 200
        assert client.get('/portal/support/', {'status': 'resolved'}).json()['count'] == 1

    def test_support_queue_is_admin_only(self, login, family):
        client = login('PARENT')
        assert client.get('/portal/support/').status_code == 403
