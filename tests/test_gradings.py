from hallmark.services.grading_service import letter_grade, rank


def _policy(client):
    response = client.post('/api/grading-policies', json={
        'title': 'Standard',
        'max_score': 100,
        'assessments': [
            {'name': 'CA', 'weight': 0.4, 'max_score': 40},
            {'name': 'Exam', 'weight': 0.6, 'max_score': 60},
        ],
        'traits': [{'name': 'Punctuality', 'category': 'affective'}],
    })
    assert response.status_code == 201
    return response.get_json()['data']


def _grading(client, policy_id=None, term='First'):
    body = {'title': 'First term results', 'session': '2025/2026', 'term': term}
    if policy_id:
        body['grading_policy_id'] = policy_id
    return client.post('/api/gradings', json=body)


def test_letter_grade_bands():
    assert letter_grade(75) == ('A', 'Excellent')
    assert letter_grade(45) == ('D', 'Fair')
    assert letter_grade(39.5) == ('F', 'Fail')
    assert letter_grade(35, max_score=50)[0] == 'A'


def test_rank_shares_positions_on_ties():
    assert rank({'a': 90, 'b': 80, 'c': 80, 'd': 70}) == {'a': 1, 'b': 2, 'c': 2, 'd': 4}


def test_policy_rejects_assessments_above_max_score(client, login_as):
    login_as('admin')
    response = client.post('/api/grading-policies', json={
        'title': 'Broken',
        'max_score': 50,
        'assessments': [{'name': 'Exam', 'weight': 1, 'max_score': 60}],
    })
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Validation failed'


def test_duplicate_grading_is_a_conflict(client, login_as):
    login_as('admin')
    first = _grading(client)
    assert first.status_code == 201
    assert first.get_json()['data']['published'] is False

    second = _grading(client)
    assert second.status_code == 409
    body = second.get_json()
    assert body['message'] == 'Grade record already exists.'
    assert body['existingId'] == first.get_json()['data']['id']


def test_students_and_parents_only_see_published_gradings(client, login_as):
    login_as('admin')
    grading_id = _grading(client).get_json()['data']['id']

    login_as('student')
    assert client.get('/api/gradings').get_json()['total'] == 0
    assert client.get(f'/api/gradings/{grading_id}').status_code == 404

    login_as('admin')
    response = client.put(f'/api/gradings/{grading_id}', json={'published': True})
    assert response.status_code == 200

    login_as('parent')
    data = client.get('/api/gradings').get_json()['data']
    assert [g['id'] for g in data] == [grading_id]


def test_other_school_cannot_see_gradings(client, login_as):
    login_as('admin')
    grading_id = _grading(client).get_json()['data']['id']

    login_as('admin_b')
    assert client.get('/api/gradings').get_json()['data'] == []
    assert client.delete(f'/api/gradings/{grading_id}').status_code == 403


def test_scores_build_grades_and_report_cards(client, login_as, world):
    login_as('admin')
    policy = _policy(client)
    grading_id = _grading(client, policy['id']).get_json()['data']['id']
    ca, exam = policy['assessments']
    trait = policy['traits'][0]

    login_as('teacher')
    response = client.post(f'/api/gradings/{grading_id}/scores', json={'scores': [{
        'student_id': world.student,
        'subject_id': world.subject_a,
        'assessments': [{'assessment_id': ca['id'], 'score': 30}, {'assessment_id': exam['id'], 'score': 45}],
        'traits': [{'trait_id': trait['id'], 'score': 4}],
    }]})
    assert response.status_code == 200
    assert response.get_json()['classes'] == [world.class_a]

    counts = client.get(f'/api/gradings/{grading_id}').get_json()['data']['_count']
    assert counts == {'studentGrades': 1, 'studentAssessments': 2, 'studentTraits': 1, 'reportCards': 1}


def test_score_above_assessment_maximum_is_rejected(client, login_as, world):
    login_as('admin')
    policy = _policy(client)
    grading_id = _grading(client, policy['id']).get_json()['data']['id']

    response = client.post(f'/api/gradings/{grading_id}/scores', json={'scores': [{
        'student_id': world.student,
        'subject_id': world.subject_a,
        'assessments': [{'assessment_id': policy['assessments'][0]['id'], 'score': 41}],
    }]})
    assert response.status_code == 400


def test_delete_cascades_and_reports_counts(client, login_as, world):
    login_as('admin')
    policy = _policy(client)
    grading_id = _grading(client, policy['id']).get_json()['data']['id']
    other_id = _grading(client, term='Second').get_json()['data']['id']
    client.post(f'/api/gradings/{grading_id}/scores', json={'scores': [{
        'student_id': world.student,
        'subject_id': world.subject_a,
        'assessments': [{'assessment_id': a['id'], 'score': 10} for a in policy['assessments']],
    }]})

    response = client.delete(f'/api/gradings?ids={grading_id}&ids={other_id}')
    assert response.status_code == 200
    assert response.get_json()['deleted'] == {
        'studentAssessments': 2,
        'studentTraits': 0,
        'reportCards': 1,
        'studentGrades': 1,
        'gradings': 2,
    }
    assert client.get('/api/gradings').get_json()['total'] == 0


def test_bulk_delete_with_unknown_id_is_not_found(client, login_as):
    login_as('admin')
    grading_id = _grading(client).get_json()['data']['id']
    response = client.delete(f'/api/gradings?ids={grading_id},404')
    assert response.status_code == 404
    assert response.get_json()['missing'] == [404]


def test_policy_in_use_cannot_be_deleted(client, login_as):
    login_as('admin')
    policy = _policy(client)
    _grading(client, policy['id'])
    assert client.delete(f"/api/grading-policies/{policy['id']}").status_code == 400


def test_report_card_pdf_for_own_child(client, login_as, world):
    login_as('admin')
    grading_id = _grading(client).get_json()['data']['id']
    client.put(f'/api/gradings/{grading_id}', json={'published': True})

    login_as('parent')
    response = client.get(f'/api/gradings/{grading_id}/report-card/{world.student}')
    assert response.status_code == 200
    assert response.mimetype == 'application/pdf'
    assert response.data.startswith(b'%PDF')
