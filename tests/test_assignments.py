from app.models.assessment_assignment import AssessmentAssignment
from app.schemas.submission import ResponseIn, SubmissionCreate
from app.services import assignments as assignment_service
from app.services import submissions as submission_engine


def test_assign_list_and_counts(client, db_session, therapist_client, make_assessment, auth_headers):
    assessment = make_assessment()
    resp = client.post(
        f"/assessments/{assessment.id}/assignments",
        json={"client_ids": [therapist_client.id, therapist_client.id], "notes": "Before Tuesday"},
        headers=auth_headers,
    )
    assert resp.status_code == 201, resp.text
    [assignment] = resp.json()
    assert assignment["status"] == "pending"
    assert assignment["notes"] == "Before Tuesday"

    resp = client.get(f"/assessments/{assessment.id}/assignments", headers=auth_headers)
    assert [a["client_id"] for a in resp.json()] == [therapist_client.id]
    resp = client.get(f"/assessments/{assessment.id}/assignments/counts", headers=auth_headers)
    assert resp.json() == {"total": 1, "pending": 1, "completed": 0, "expired": 0}


def test_reassigning_a_completed_assessment_reopens_it(db_session, therapist, therapist_client, make_assessment, add_question):
    assessment = make_assessment()
    question = add_question(assessment, text="Anything to share?")
    assignment_service.assign(db_session, assessment.id, therapist.id, [therapist_client.id])
    submission_engine.create_submission(
        db_session, therapist.id,
        SubmissionCreate(
            assessment_id=assessment.id,
            client_id=therapist_client.id,
            responses=[ResponseIn(assessment_question_id=question.assessment_question_id, value="Not today")],
        ),
    )
    assert assignment_service.assignment_counts(db_session, assessment.id, therapist.id)["completed"] == 1

    [reopened] = assignment_service.assign(db_session, assessment.id, therapist.id, [therapist_client.id])
    assert reopened.status == "pending"
    assert reopened.submission_id is None
    assert db_session.query(AssessmentAssignment).count() == 1


def test_assigning_another_therapists_client_is_forbidden(client, db_session, therapist_client, make_assessment, other_auth_headers, other_therapist):
    assessment = make_assessment(owner_id=other_therapist.id)
    resp = client.post(
        f"/assessments/{assessment.id}/assignments",
        json={"client_ids": [therapist_client.id]},
        headers=other_auth_headers,
    )
    assert resp.status_code == 403


def test_remove_assignment(client, db_session, therapist, therapist_client, make_assessment, auth_headers):
    assessment = make_assessment()
    other = make_assessment(title="Other")
    [assignment] = assignment_service.assign(db_session, assessment.id, therapist.id, [therapist_client.id])

    # the id must belong to the assessment in the path
    resp = client.delete(f"/assessments/{other.id}/assignments/{assignment.id}", headers=auth_headers)
    assert resp.status_code == 404

    resp = client.delete(f"/assessments/{assessment.id}/assignments/{assignment.id}", headers=auth_headers)
    assert resp.status_code == 200
    db_session.expire_all()
    assert db_session.query(AssessmentAssignment).count() == 0


def test_update_assignment_status_due_date_and_notes(client, db_session, therapist, therapist_client, make_assessment, auth_headers):
    assessment = make_assessment()
    [assignment] = assignment_service.assign(db_session, assessment.id, therapist.id, [therapist_client.id])
    url = f"/assessments/{assessment.id}/assignments/{assignment.id}"

    resp = client.patch(url, json={"status": "expired", "due_date": "2026-11-01T09:00:00", "notes": "Missed"}, headers=auth_headers)
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["status"] == "expired"
    assert body["notes"] == "Missed"
    assert body["due_date"].startswith("2026-11-01T09:00:00")
    resp = client.get(f"/assessments/{assessment.id}/assignments/counts", headers=auth_headers)
    assert resp.json()["expired"] == 1

    resp = client.patch(url, json={"status": "completed"}, headers=auth_headers)
    assert resp.json()["completed_at"] is not None
    resp = client.patch(url, json={"status": "in_progress"}, headers=auth_headers)
    assert resp.json()["completed_at"] is None


def test_update_assignment_rejects_unknown_status(client, db_session, therapist, therapist_client, make_assessment, auth_headers):
    assessment = make_assessment()
    [assignment] = assignment_service.assign(db_session, assessment.id, therapist.id, [therapist_client.id])
    resp = client.patch(
        f"/assessments/{assessment.id}/assignments/{assignment.id}",
        json={"status": "archived"},
        headers=auth_headers,
    )
    assert resp.status_code == 400
    assert "status" in resp.json()["errors"]
    db_session.expire_all()
    assert db_session.query(AssessmentAssignment).one().status == "pending"


def test_list_assignments_for_client(client, db_session, therapist, therapist_client, make_assessment, auth_headers, other_auth_headers):
    first = make_assessment(title="Intake")
    second = make_assessment(title="Follow-up")
    assignment_service.assign(db_session, first.id, therapist.id, [therapist_client.id])
    assignment_service.assign(db_session, second.id, therapist.id, [therapist_client.id])

    resp = client.get(f"/clients/{therapist_client.id}/assignments", headers=auth_headers)
    assert resp.status_code == 200, resp.text
    assert {a["assessment_title"] for a in resp.json()} == {"Intake", "Follow-up"}
    assert {a["assessment_id"] for a in resp.json()} == {first.id, second.id}

    assert client.get(f"/clients/{therapist_client.id}/assignments", headers=other_auth_headers).status_code == 403
