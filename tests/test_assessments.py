"""Assessment registry: CRUD, listing, cascade delete and share tokens."""
import pytest

from app.core.settings import settings
from app.exceptions import OwnershipMismatchException
from app.models.assessment import Assessment
from app.models.assessment_assignment import AssessmentAssignment
from app.models.assessment_question import AssessmentQuestion
from app.models.question import Question
from app.models.submission import AssessmentResponse, AssessmentSubmission
from app.schemas.assessment import AssessmentUpdate
from app.schemas.submission import ResponseIn, SubmissionCreate
from app.services import assessments as registry
from app.services import submissions as submission_engine


def test_create_and_get_assessment(client, auth_headers):
    resp = client.post(
        "/assessments",
        json={"title": "  Intake  ", "description": "First session", "category": "intake"},
        headers=auth_headers,
    )
    assert resp.status_code == 201, resp.text
    created = resp.json()
    assert created["title"] == "Intake"
    assert created["is_active"] is True
    assert created["share_token"] is None

    resp = client.get(f"/assessments/{created['id']}", headers=auth_headers)
    assert resp.status_code == 200
    detail = resp.json()
    assert detail["questions"] == []
    assert detail["share_url"] is None
    assert detail["question_count"] == 0


def test_authoring_view_lists_effective_questions(client, make_assessment, add_question, auth_headers):
    assessment = make_assessment()
    add_question(assessment, text="First")
    add_question(assessment, text="Second", override_question_text="Second, reworded")
    resp = client.get(f"/assessments/{assessment.id}", headers=auth_headers)
    body = resp.json()
    assert body["question_count"] == 2
    assert [q["question_text"] for q in body["questions"]] == ["First", "Second, reworded"]
    assert [q["question_order"] for q in body["questions"]] == [1, 2]
    assert body["questions"][1]["has_overrides"] is True
    assert body["therapist_id"] == "therapist-1"


def test_list_filters_search_and_counts(client, make_assessment, add_question, auth_headers, other_therapist):
    anxious = make_assessment(title="Anxiety screen", category="screening")
    make_assessment(title="Sleep diary", description="Tracks ANXIETY at night", category="diary")
    make_assessment(title="Retired form", is_active=False, category="screening")
    make_assessment(title="Other therapist anxiety", owner_id=other_therapist.id)
    add_question(anxious, text="Q1")

    resp = client.get("/assessments", params={"search": "anxiety"}, headers=auth_headers)
    titles = {a["title"] for a in resp.json()}
    assert titles == {"Anxiety screen", "Sleep diary"}

    resp = client.get("/assessments", params={"category": "screening", "is_active": True}, headers=auth_headers)
    [only] = resp.json()
    assert only["title"] == "Anxiety screen"
    assert only["question_count"] == 1
    assert only["submission_count"] == 0

    resp = client.get("/assessments", params={"limit": 1, "skip": 1}, headers=auth_headers)
    assert len(resp.json()) == 1


def test_update_assessment(db_session, therapist, make_assessment):
    assessment = make_assessment()
    updated = registry.update_assessment(
        db_session, assessment.id, therapist.id,
        AssessmentUpdate(title="Renamed", allow_multiple_submissions=False),
    )
    assert updated.title == "Renamed"
    assert updated.allow_multiple_submissions is False
    assert updated.is_active is True


def test_other_therapist_cannot_touch_assessment(client, db_session, make_assessment, other_auth_headers, other_therapist):
    assessment = make_assessment()
    assert client.get(f"/assessments/{assessment.id}", headers=other_auth_headers).status_code == 403
    assert client.delete(f"/assessments/{assessment.id}", headers=other_auth_headers).status_code == 403
    with pytest.raises(OwnershipMismatchException):
        registry.generate_share_token(db_session, assessment.id, other_therapist.id)


def test_missing_assessment_is_404(client, auth_headers):
    resp = client.get("/assessments/does-not-exist", headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Assessment not found"


def test_delete_cascades_links_but_keeps_questions(
    client, db_session, therapist, therapist_client, make_assessment, add_question, auth_headers
):
    assessment = make_assessment()
    q1 = add_question(assessment, text="Kept one")
    q2 = add_question(assessment, text="Kept two", is_required=False)
    submission_engine.create_submission(
        db_session, therapist.id,
        SubmissionCreate(
            assessment_id=assessment.id,
            client_id=therapist_client.id,
            responses=[ResponseIn(assessment_question_id=q1.assessment_question_id, value="ok")],
        ),
    )
    db_session.add(AssessmentAssignment(assessment_id=assessment.id, client_id=therapist_client.id, therapist_id=therapist.id))
    db_session.commit()

    resp = client.delete(f"/assessments/{assessment.id}", headers=auth_headers)
    assert resp.status_code == 200, resp.text

    db_session.expire_all()
    assert db_session.query(Assessment).count() == 0
    assert db_session.query(AssessmentQuestion).count() == 0
    assert db_session.query(AssessmentSubmission).count() == 0
    assert db_session.query(AssessmentResponse).count() == 0
    assert db_session.query(AssessmentAssignment).count() == 0
    kept = {q.id for q in db_session.query(Question).all()}
    assert kept == {q1.question_id, q2.question_id}


def test_toggle_active(client, make_assessment, auth_headers):
    assessment = make_assessment()
    resp = client.put(f"/assessments/{assessment.id}/active", json={"is_active": False}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False


def test_share_token_rotation_and_revocation(client, db_session, therapist, make_assessment, auth_headers):
    assessment = make_assessment()
    resp = client.post(f"/assessments/{assessment.id}/share-token", headers=auth_headers)
    assert resp.status_code == 200, resp.text
    first = resp.json()
    assert first["share_url"] == f"{settings.app_url.rstrip('/')}/assessment/{first['share_token']}"
    # 32 random bytes, url-safe base64 without padding
    assert len(first["share_token"]) >= 43

    second = client.post(f"/assessments/{assessment.id}/share-token", headers=auth_headers).json()
    assert second["share_token"] != first["share_token"]
    assert client.get(f"/assessment/{first['share_token']}").status_code == 404
    assert client.get(f"/assessment/{second['share_token']}").status_code == 200

    assert client.delete(f"/assessments/{assessment.id}/share-token", headers=auth_headers).status_code == 200
    # revoking again is a no-op
    assert client.delete(f"/assessments/{assessment.id}/share-token", headers=auth_headers).status_code == 200
    db_session.expire_all()
    assert db_session.get(Assessment, assessment.id).share_token is None
    assert client.get(f"/assessment/{second['share_token']}").status_code == 404
