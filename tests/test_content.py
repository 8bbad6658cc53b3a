import logging
from datetime import date, datetime

from sqlalchemy import event

from hallmark import db
from hallmark.models.news import News
from hallmark.models.notification import Notification
from hallmark.services.email_service import EmailService
from hallmark.services.notification_service import NotificationService

EVENT = {'title': 'Sports day', 'start_time': '2026-05-01T09:00:00', 'end_time': '2026-05-01T15:00:00'}


def test_general_event_notifies_the_school(client, login_as, world):
    login_as('admin')
    response = client.post('/api/events', json=EVENT)
    assert response.status_code == 201
    assert response.get_json()['data']['school_id'] == world.school_a

    login_as('parent')
    assert client.get('/api/notifications/unread-count').get_json()['count'] == 1
    events = client.get('/api/events').get_json()
    assert events['total'] == 1
    assert events['pagination']['limit'] == 10


def test_class_events_are_limited_to_that_class(client, login_as, world):
    login_as('admin_b')
    assert client.post('/api/events', json=dict(EVENT, class_id=world.class_b)).status_code == 201

    login_as('admin')
    assert client.post('/api/events', json=dict(EVENT, class_id=world.class_b)).status_code == 400
    client.post('/api/events', json=dict(EVENT, title='JSS1 trip', class_id=world.class_a))

    login_as('student')
    titles = [e['title'] for e in client.get('/api/events').get_json()['data']]
    assert titles == ['JSS1 trip']


def test_teacher_posts_only_to_own_classes(client, login_as, world):
    login_as('teacher')
    assert client.post('/api/announcements', json={'title': 'Quiz on Friday'}).status_code == 403
    response = client.post('/api/announcements', json={'title': 'Quiz on Friday', 'class_id': world.class_a})
    assert response.status_code == 201


def test_event_end_must_follow_start(client, login_as):
    login_as('admin')
    body = dict(EVENT, end_time='2026-05-01T08:00:00')
    assert client.post('/api/events', json=body).status_code == 400


def test_news_is_public_once_published(client, login_as):
    login_as('admin')
    draft = client.post('/api/news', json={'title': 'New lab', 'content': 'Opening soon', 'category': 'facilities'})
    assert draft.status_code == 201
    news_id = draft.get_json()['data']['id']
    assert draft.get_json()['data']['published_at'] is None

    published = client.put(f'/api/news/{news_id}', json={'status': 'PUBLISHED'})
    assert published.get_json()['data']['published_at'] is not None
    client.post('/api/news', json={'title': 'Unfinished', 'content': '...'})
    client.post('/api/auth/logout')

    listing = client.get('/api/news').get_json()
    assert [n['id'] for n in listing['data']] == [news_id]
    assert client.get('/api/news?category=FACILITIES').get_json()['total'] == 1


def test_gallery_is_public_and_ordered(client, login_as):
    login_as('admin')
    for title, order in (('Gate', 2), ('Hall', 1)):
        response = client.post('/api/gallery', json={'title': title, 'order': order,
                                                      'image_url': f'https://cdn.hallmark.test/{title}.jpg'})
        assert response.status_code == 201
    assert client.post('/api/gallery', json={'title': 'Bad', 'image_url': 'not a url'}).status_code == 400
    client.post('/api/auth/logout')

    titles = [g['title'] for g in client.get('/api/gallery').get_json()['data']]
    assert titles == ['Hall', 'Gate']


def test_notifications_are_private(client, login_as):
    login_as('admin')
    client.post('/api/events', json=EVENT)
    mine = client.get('/api/notifications').get_json()['data'][0]

    login_as('parent')
    assert client.post(f"/api/notifications/{mine['id']}/read").status_code == 404
    assert client.post('/api/notifications/read-all').get_json()['updated'] == 1
    assert client.get('/api/notifications/unread-count').get_json()['count'] == 0


def test_admin_stats_payload(client, login_as, world):
    login_as('teacher')
    client.post('/api/attendance', json={'student_id': world.student, 'school_id': world.school_a,
                                         'date': date.today().isoformat(), 'present': True})

    login_as('admin')
    body = client.get('/api/stats').get_json()
    assert body['success'] is True
    assert body['role'] == 'admin'
    data = body['data']
    assert (data['students'], data['teachers'], data['classes'], data['subjects']) == (1, 1, 1, 1)
    assert data['parents'] == 1
    assert data['administrations'] == 2
    assert data['superAdmins'] == 0
    assert len(body['charts']['attendance']) == 7
    assert body['charts']['attendance'][-1]['present'] == 1
    assert body['charts']['studentsByGender'] == [{'gender': 'MALE', 'count': 1}]
    assert 'timestamp' in body


def test_role_specific_stats(client, login_as):
    login_as('teacher')
    data = client.get('/api/stats').get_json()['data']
    assert data['mySubjects'] == 1
    assert data['myClasses'] == 1

    login_as('parent')
    data = client.get('/api/stats').get_json()['data']
    assert data['children'] == 1
    assert data['totalFeesPaid'] == 0.0

    login_as('student')
    data = client.get('/api/stats?role=super').get_json()
    assert data['role'] == 'student'
    assert data['data']['classmates'] == 0


def test_event_update_accepts_offset_timestamps(client, login_as):
    login_as('admin')
    event_id = client.post('/api/events', json=EVENT).get_json()['data']['id']

    response = client.put(f'/api/events/{event_id}', json={'start_time': '2026-05-01T09:00:00+01:00'})
    assert response.status_code == 200
    assert response.get_json()['data']['start_time'] == '2026-05-01T08:00:00'

    response = client.put(f'/api/events/{event_id}', json={'end_time': '2026-05-01T07:00:00Z'})
    assert response.status_code == 400
    assert client.put(f'/api/events/{event_id}', json={'start_time': None}).status_code == 400


def test_general_news_drafts_are_for_super_admins(app, client, login_as):
    with app.app_context():
        db.session.add_all([
            News(title='Founders day', content='...', status='PUBLISHED', published_at=datetime(2026, 1, 1)),
            News(title='Draft memo', content='...', status='DRAFT'),
        ])
        db.session.commit()
        draft_id = News.query.filter_by(title='Draft memo').one().id

    login_as('admin')
    titles = [n['title'] for n in client.get('/api/news').get_json()['data']]
    assert titles == ['Founders day']
    assert client.get(f'/api/news/{draft_id}').status_code == 404

    login_as('super')
    assert client.get('/api/news').get_json()['total'] == 2
    assert client.put(f'/api/news/{draft_id}', json={'status': 'PUBLISHED'}).status_code == 200


def test_broadcast_commits_once(app, world):
    with app.app_context():
        commits = []
        event.listen(db.session(), 'after_commit', lambda session: commits.append(session))

        recipients = [world.users.admin_a, world.users.parent, world.users.student, None, 9999]
        created = NotificationService.broadcast(recipients, 'Closing early', 'School closes at noon.', 'new_event',
                                                school_id=world.school_a)
        assert created == 3
        assert len(commits) == 1
        assert Notification.query.count() == 3


def test_unsent_email_is_logged_without_body(app, caplog):
    with app.app_context():
        caplog.set_level(logging.DEBUG, logger=app.logger.name)
        assert EmailService.send_account_created('new@hallmark.test', 'Ngozi', 'new@hallmark.test', 'Pa55word!')
    assert 'Your Hallmark Academy account' in caplog.text
    assert 'Pa55word!' not in caplog.text
