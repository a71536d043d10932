"""Share-link resolution: token states and the anonymous payload."""
import pytest

from app.models.question import Question
from app.exceptions import InactiveAssessmentException, NotFoundException, PUBLIC_NOT_FOUND_DETAIL
from app.services import assessments as registry
from app.services import public_access


def _shared(db_session, therapist, make_assessment, **fields):
    assessment = make_assessment(**fields)
    token = registry.generate_share_token(db_session, assessment.id, therapist.id)["share_token"]
    return assessment, token


def test_resolve_returns_ordered_effective_questions(db_session, therapist, make_assessment, add_question):
    assessment, token = _shared(db_session, therapist, make_assessment, title="Check-in")
    add_question(assessment, text="First")
    add_question(assessment, text="Second", override_question_text="Second (edited)", is_required=False)

    view = public_access.resolve(db_session, token)
    assert view.id == assessment.id
    assert view.owner_id == therapist.id
    assert [q.question_text for q in view.questions] == ["First", "Second (edited)"]
    assert [q.question_order for q in view.questions] == [1, 2]
    assert [q.is_required for q in view.questions] == [True, False]


def test_public_payload_hides_owner(client, db_session, therapist, make_assessment, add_question):
    assessment, token = _shared(db_session, therapist, make_assessment, description="About you")
    add_question(assessment, text="How are you?")
    resp = client.get(f"/assessment/{token}")
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert "therapist_id" not in body and "owner_id" not in body
    assert body["description"] == "About you"
    [question] = body["questions"]
    assert set(question) == {
        "assessment_question_id", "question_id", "question_order", "question_text", "question_type",
        "options", "help_text", "placeholder_text", "is_required", "section_name", "conditional_logic",
        "allow_multiple", "min_length", "max_length",
    }


def test_public_payload_carries_answer_constraints(client, db_session, therapist, make_assessment, add_question):
    assessment, token = _shared(db_session, therapist, make_assessment)
    pick = add_question(assessment, text="Pick any", question_type="multiple_choice", options=["a", "b", "c"])
    short = add_question(assessment, text="In a few words")
    add_question(assessment, text="Anything else?")
    for effective, rules in ((pick, {"allow_multiple": True}), (short, {"min_length": 3, "max_length": 40})):
        db_session.get(Question, effective.question_id).validation_rules = rules
    db_session.commit()

    body = client.get(f"/assessment/{token}").json()
    by_text = {q["question_text"]: q for q in body["questions"]}
    assert by_text["Pick any"]["allow_multiple"] is True
    assert by_text["Pick any"]["max_length"] is None
    assert (by_text["In a few words"]["min_length"], by_text["In a few words"]["max_length"]) == (3, 40)
    assert (by_text["Anything else?"]["min_length"], by_text["Anything else?"]["max_length"]) == (0, 5000)
    assert by_text["Anything else?"]["allow_multiple"] is False


def test_revoked_token_is_indistinguishable_from_unknown(db_session, therapist, make_assessment):
    assessment, token = _shared(db_session, therapist, make_assessment)
    registry.revoke_share_token(db_session, assessment.id, therapist.id)

    with pytest.raises(NotFoundException) as revoked:
        public_access.resolve(db_session, token)
    with pytest.raises(NotFoundException) as unknown:
        public_access.resolve(db_session, "never-issued")
    assert type(revoked.value) is type(unknown.value) is InactiveAssessmentException
    assert revoked.value.detail == unknown.value.detail == PUBLIC_NOT_FOUND_DETAIL


def test_inactive_assessment_is_hidden_immediately(client, db_session, therapist, make_assessment, add_question):
    assessment, token = _shared(db_session, therapist, make_assessment)
    add_question(assessment, text="Q")
    assert client.get(f"/assessment/{token}").status_code == 200

    registry.toggle_active(db_session, assessment.id, therapist.id, False)
    inactive = client.get(f"/assessment/{token}")
    unknown = client.get("/assessment/not-a-token")
    assert inactive.status_code == unknown.status_code == 404
    assert inactive.json()["detail"] == unknown.json()["detail"] == PUBLIC_NOT_FOUND_DETAIL

    registry.toggle_active(db_session, assessment.id, therapist.id, True)
    assert client.get(f"/assessment/{token}").status_code == 200
