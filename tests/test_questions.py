"""Question store: create/update validation, library flag, search and delete rules."""
import pytest

from app.exceptions import ConflictException, OwnershipMismatchException, ValidationException
from app.models.question import Question
from app.schemas.question import QuestionCreate, QuestionUpdate
from app.schemas.submission import ResponseIn, SubmissionCreate
from app.services import assessment_questions as linker
from app.services import questions as question_store
from app.services import submissions as submission_engine


def test_create_question_via_api(client, auth_headers):
    resp = client.post(
        "/questions",
        json={
            "question_text": "  How often do you feel anxious?  ",
            "question_type": "multiple_choice",
            "options": [
                {"label": "Never", "value": "never", "points": 0},
                {"label": "Often", "value": "often", "points": 2},
                {"label": "", "value": ""},
            ],
        },
        headers=auth_headers,
    )
    assert resp.status_code == 201, resp.text
    data = resp.json()
    assert data["question_text"] == "How often do you feel anxious?"
    assert data["therapist_id"] == "therapist-1"
    assert data["is_library_item"] is False
    # blank rows are dropped, points become numbers
    assert data["options"] == [
        {"label": "Never", "value": "never", "points": 0.0},
        {"label": "Often", "value": "often", "points": 2.0},
    ]


def test_create_question_requires_auth(client, therapist):
    resp = client.post("/questions", json={"question_text": "Q", "question_type": "text"})
    assert resp.status_code == 401
    assert "correlation_id" in resp.json()


def test_multiple_choice_needs_two_options(client, auth_headers):
    resp = client.post(
        "/questions",
        json={"question_text": "Pick one", "question_type": "multiple_choice", "options": [{"label": "A", "value": "a"}]},
        headers=auth_headers,
    )
    assert resp.status_code == 422


def test_yes_no_and_rating_defaults(db_session, therapist):
    yes_no = question_store.create_question(
        db_session, therapist.id, QuestionCreate(question_text="Slept well?", question_type="yes_no")
    )
    rating = question_store.create_question(
        db_session, therapist.id, QuestionCreate(question_text="Mood today", question_type="rating")
    )
    text = question_store.create_question(
        db_session, therapist.id, QuestionCreate(question_text="Anything else?", question_type="text", options=["x"])
    )
    assert [o["value"] for o in yes_no.options] == ["yes", "no"]
    assert rating.options["min"] == 1 and rating.options["max"] == 5
    assert text.options is None


def test_update_revalidates_options_against_type(db_session, therapist):
    q = question_store.create_question(
        db_session, therapist.id, QuestionCreate(question_text="Mood", question_type="text")
    )
    with pytest.raises(ValidationException) as exc:
        question_store.update_question(db_session, q.id, therapist.id, QuestionUpdate(question_type="multiple_choice"))
    assert "options" in exc.value.errors

    updated = question_store.update_question(
        db_session, q.id, therapist.id,
        QuestionUpdate(question_type="rating", options={"min": 0, "max": 10}),
    )
    assert updated.question_type == "rating"
    assert updated.options == {"min": 0, "max": 10}


def test_update_other_therapists_question_is_rejected(db_session, therapist, other_therapist):
    q = question_store.create_question(
        db_session, therapist.id, QuestionCreate(question_text="Mine", question_type="text")
    )
    with pytest.raises(OwnershipMismatchException):
        question_store.update_question(db_session, q.id, other_therapist.id, QuestionUpdate(question_text="Yours"))


def test_get_question_owned_by_someone_else_is_forbidden(client, db_session, therapist, other_auth_headers):
    q = question_store.create_question(
        db_session, therapist.id, QuestionCreate(question_text="Private", question_type="text")
    )
    resp = client.get(f"/questions/{q.id}", headers=other_auth_headers)
    assert resp.status_code == 403


def test_mark_library_and_search(client, db_session, therapist, auth_headers):
    q1 = question_store.create_question(
        db_session, therapist.id, QuestionCreate(question_text="How is your SLEEP lately?", question_type="text")
    )
    question_store.create_question(
        db_session, therapist.id, QuestionCreate(question_text="Sleep quality (not shared)", question_type="text")
    )
    resp = client.put(f"/questions/{q1.id}/library", json={"is_library_item": True}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["is_library_item"] is True

    resp = client.get("/questions/library", params={"search": "sleep"}, headers=auth_headers)
    assert resp.status_code == 200
    assert [q["id"] for q in resp.json()] == [q1.id]

    # marking does not copy the question
    assert db_session.query(Question).count() == 2


def test_search_is_scoped_to_owner_and_capped(db_session, therapist, other_therapist):
    for i in range(25):
        question_store.create_question(
            db_session, therapist.id,
            QuestionCreate(question_text=f"Stress item {i}", question_type="text", is_library_item=True),
        )
    question_store.create_question(
        db_session, other_therapist.id,
        QuestionCreate(question_text="Stress item theirs", question_type="text", is_library_item=True),
    )
    results = question_store.search_library(db_session, therapist.id, "STRESS")
    assert len(results) == question_store.SEARCH_LIMIT
    assert all(q.therapist_id == therapist.id for q in results)


def test_search_treats_wildcards_literally(db_session, therapist):
    question_store.create_question(
        db_session, therapist.id, QuestionCreate(question_text="100% sure?", question_type="text", is_library_item=True)
    )
    question_store.create_question(
        db_session, therapist.id, QuestionCreate(question_text="100 points", question_type="text", is_library_item=True)
    )
    results = question_store.search_library(db_session, therapist.id, "100%")
    assert [q.question_text for q in results] == ["100% sure?"]


def test_delete_linked_question_conflicts(db_session, therapist, make_assessment, add_question):
    assessment = make_assessment()
    eq = add_question(assessment, text="Linked")
    with pytest.raises(ConflictException):
        question_store.delete_question(db_session, eq.question_id, therapist.id)


def test_delete_unlinked_question(client, db_session, therapist, auth_headers):
    q = question_store.create_question(
        db_session, therapist.id, QuestionCreate(question_text="Temporary", question_type="text")
    )
    question_id = q.id
    resp = client.delete(f"/questions/{question_id}", headers=auth_headers)
    assert resp.status_code == 200
    db_session.expire_all()
    assert db_session.query(Question).filter_by(id=question_id).first() is None


def test_type_change_rejects_overrides_that_no_longer_fit(db_session, therapist, make_assessment, add_question):
    assessment = make_assessment()
    eq = add_question(
        assessment, text="Energy level", question_type="rating",
        options={"min": 1, "max": 10}, override_options={"min": 1, "max": 3},
    )
    with pytest.raises(ValidationException) as exc:
        question_store.update_question(
            db_session, eq.question_id, therapist.id,
            QuestionUpdate(question_type="multiple_choice", options=["a", "b"]),
        )
    assert eq.assessment_question_id in exc.value.errors

    db_session.rollback()
    [effective] = linker.effective_questions(db_session, assessment.id)
    assert effective.question_type == "rating"
    assert effective.options == {"min": 1, "max": 3}


def test_type_change_keeps_overrides_that_fit(db_session, therapist, make_assessment, add_question):
    assessment = make_assessment()
    eq = add_question(
        assessment, text="Sleeping well?", question_type="multiple_choice",
        options=["Yes", "No", "Unsure"], override_options=["Yes", "No"],
    )
    question_store.update_question(
        db_session, eq.question_id, therapist.id, QuestionUpdate(question_type="yes_no", options=None),
    )
    db_session.expire_all()
    [effective] = linker.effective_questions(db_session, assessment.id)
    assert effective.question_type == "yes_no"
    assert [o["value"] for o in effective.options] == ["Yes", "No"]


def test_type_change_after_responses_conflicts(db_session, therapist, therapist_client, make_assessment, add_question):
    assessment = make_assessment()
    eq = add_question(assessment, text="Anything else?")
    submission_engine.create_submission(
        db_session, therapist.id,
        SubmissionCreate(
            assessment_id=assessment.id,
            client_id=therapist_client.id,
            responses=[ResponseIn(assessment_question_id=eq.assessment_question_id, value="No")],
        ),
    )
    with pytest.raises(ConflictException):
        question_store.update_question(
            db_session, eq.question_id, therapist.id, QuestionUpdate(question_type="yes_no"),
        )
