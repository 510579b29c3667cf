# tests/test_announcements.py

from datetime import timedelta

import pytest
from django.core.exceptions import ValidationError
from django.utils import timezone

from academics.models import SchoolClass, Section
from accounts.auth import ROLE_EDUCATOR, ROLE_LEARNER, ROLE_PARENT
from announcements.models import Announcement, AnnouncementAudience, AnnouncementTargetClass
from announcements.services import AnnouncementService
from students.models import Parent

pytestmark = pytest.mark.django_db


def publish(school, title, scope=Announcement.SCOPE_SCHOOL_WIDE, priority='normal', **targets):
    announcement = Announcement(school=school, title=title, content=f"{title} details",
                                target_scope=scope, priority=priority)
    return AnnouncementService.save(announcement, **targets)


@pytest.fixture
def grade_six(school):
    school_class = SchoolClass.all_objects.create(school=school, name='Grade 6')
    Section.all_objects.create(school=school, school_class=school_class, name='A')
    return school_class


class TestSave:

    def test_targeted_needs_a_class_or_section(self, school):
        with pytest.raises(ValidationError, match='at least one class or section'):
            publish(school, 'Sports Day', scope=Announcement.SCOPE_TARGETED)
        assert not Announcement.all_objects.exists()

    def test_new_announcement_is_published(self, school):
        announcement = publish(school, 'Holiday', audience=['parents'], published_by='mock-admin')
        assert announcement.is_active
        assert announcement.published_by == 'mock-admin'
        assert announcement.target_audience == ['parents']

    def test_targeted_audience_lives_in_rows(self, school, school_class):
        announcement = publish(school, 'Field Trip', scope=Announcement.SCOPE_TARGETED,
                               class_ids=[school_class.pk], audience=['students', 'parents'])
        assert announcement.target_audience == ['all']
        assert sorted(AnnouncementService.audiences_of(announcement)) == ['parents', 'students']

    def test_unknown_audience_rejected(self, school):
        with pytest.raises(ValidationError, match='Unknown audience: alumni'):
            publish(school, 'Reunion', audience=['alumni'])

    def test_update_replaces_targets(self, school, school_class, grade_six):
        announcement = publish(school, 'Field Trip', scope=Announcement.SCOPE_TARGETED,
                               class_ids=[school_class.pk], audience=['students'])
        AnnouncementService.save(announcement, class_ids=[grade_six.pk], audience=['parents'])

        targets = AnnouncementTargetClass.all_objects.filter(announcement=announcement)
        assert list(targets.values_list('school_class_id', flat=True)) == [grade_six.pk]
        assert list(
            AnnouncementAudience.all_objects.filter(announcement=announcement).values_list('audience_type', flat=True)
        ) == ['parents']

    def test_update_to_school_wide_drops_targets(self, school, school_class):
        announcement = publish(school, 'Field Trip', scope=Announcement.SCOPE_TARGETED,
                               class_ids=[school_class.pk])
        announcement.target_scope = Announcement.SCOPE_SCHOOL_WIDE
        AnnouncementService.save(announcement, audience=['educators'])

        assert not AnnouncementTargetClass.all_objects.filter(announcement=announcement).exists()
        assert AnnouncementService.target_preview(announcement) == {
            'scope': 'Entire School', 'classes': [], 'sections': [], 'audience': ['educators'],
        }

    def test_toggle_active(self, school):
        announcement = publish(school, 'Holiday')
        assert AnnouncementService.toggle_active(announcement).is_active is False


class TestVisibility:

    def test_student_sees_school_wide_and_own_class(self, school, student, grade_six):
        publish(school, 'Holiday')
        publish(school, 'Grade 5 Trip', scope=Announcement.SCOPE_TARGETED, class_ids=[student.school_class_id])
        publish(school, 'Grade 6 Trip', scope=Announcement.SCOPE_TARGETED, class_ids=[grade_six.pk])
        publish(school, 'Section A Quiz', scope=Announcement.SCOPE_TARGETED, section_ids=[student.section_id])

        titles = {a.title for a in AnnouncementService.visible_to(student=student)}
        assert titles == {'Holiday', 'Grade 5 Trip', 'Section A Quiz'}

    def test_inactive_and_expired_are_hidden(self, school):
        publish(school, 'Current')
        AnnouncementService.toggle_active(publish(school, 'Withdrawn'))
        expired = publish(school, 'Old News')
        Announcement.all_objects.filter(pk=expired.pk).update(expires_at=timezone.now() - timedelta(days=1))

        assert [a.title for a in AnnouncementService.visible_to()] == ['Current']

    def test_role_audience_filter(self, school):
        publish(school, 'For Parents', audience=['parents'])
        publish(school, 'For Staff', audience=['educators'])
        publish(school, 'For Everyone')

        assert {a.title for a in AnnouncementService.visible_to(role=ROLE_PARENT)} == {'For Parents', 'For Everyone'}
        assert {a.title for a in AnnouncementService.visible_to(role=ROLE_EDUCATOR)} == {'For Staff', 'For Everyone'}
        assert {a.title for a in AnnouncementService.visible_to(role=ROLE_LEARNER)} == {'For Everyone'}

    def test_urgent_only(self, school):
        publish(school, 'Closure', priority='urgent')
        publish(school, 'Newsletter')
        assert [a.title for a in AnnouncementService.visible_to(urgent_only=True)] == ['Closure']


class TestViews:

    def test_admin_publishes_announcement(self, login, school):
        client = login('ADMIN')
        response = client.post('/announcements/', {
            'title': 'PTM on Saturday', 'content': 'Parents meet class teachers.',
            'target_scope': 'school_wide', 'priority': 'high', 'audience': ['parents'],
        }, content_type='application/json')

        assert response.status_code == 201
        assert response.json()['message'] == 'Announcement published successfully!'
        assert Announcement.all_objects.get().school_id == school.pk

    def test_parent_feed_uses_selected_child(self, login, school, student):
        publish(school, 'For Parents', audience=['parents'])
        publish(school, 'For Students', audience=['students'])
        Parent.all_objects.filter(pk=student.parent_id).update(user_id='mock-parent')
        client = login('PARENT')
        client.post('/session-state/', {'selected_child_id': str(student.pk)}, content_type='application/json')

        response = client.get('/announcements/feed/')
        assert response.status_code == 200
        assert [a['title'] for a in response.json()['announcements']] == ['For Parents']

    def test_parent_feed_rejects_another_child(self, login, school, student, make_student):
        Parent.all_objects.filter(pk=student.parent_id).update(user_id='mock-parent')
        neighbour = make_student('Kiran Das', parent_phone='9123456780', parent_name='Meera Das')
        client = login('PARENT')

        response = client.get(f'/announcements/feed/?student_id={neighbour.pk}')
        assert response.status_code == 403

    def test_parent_cannot_publish(self, login):
        client = login('PARENT')
        response = client.post('/announcements/', {'title': 'x'}, content_type='application/json')
        assert response.status_code == 403
