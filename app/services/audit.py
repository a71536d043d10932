"""Audit logging helper functions for key domain events.

Standard JSON-ish single-line logs so they are easy to index.
"""
from __future__ import annotations
import logging
from typing import Optional, Any

from app.utils.datetime import isoformat_z

_logger = logging.getLogger("app.audit")


def _emit(event: str, user_id: Optional[str] = None, **data: Any):
    payload = {"ts": isoformat_z(), "event": event}
    if user_id:
        payload["user_id"] = user_id
    payload.update(data)
    parts = [f"{k}={repr(v)}" for k, v in payload.items()]
    _logger.info("AUDIT " + " ".join(parts))

# Public convenience wrappers

def log_assessment_create(user_id: str, assessment_id: str, title: str):
    _emit("assessment.create", user_id=user_id, assessment_id=assessment_id, title=title)

def log_assessment_delete(user_id: str, assessment_id: str, links_removed: int, submissions_removed: int):
    _emit("assessment.delete", user_id=user_id, assessment_id=assessment_id,
          links_removed=links_removed, submissions_removed=submissions_removed)

def log_assessment_active(user_id: str, assessment_id: str, is_active: bool):
    _emit("assessment.active", user_id=user_id, assessment_id=assessment_id, is_active=is_active)

def log_share_token_rotate(user_id: str, assessment_id: str, replaced_existing: bool):
    # never log the token itself
    _emit("assessment.share_token.rotate", user_id=user_id, assessment_id=assessment_id, replaced_existing=replaced_existing)

def log_share_token_revoke(user_id: str, assessment_id: str, had_token: bool):
    _emit("assessment.share_token.revoke", user_id=user_id, assessment_id=assessment_id, had_token=had_token)

def log_question_delete(user_id: str, question_id: str, reason: str):
    _emit("question.delete", user_id=user_id, question_id=question_id, reason=reason)

def log_submission_create(user_id: str, submission_id: str, assessment_id: str, client_id: str,
                          response_count: int, channel: str):
    _emit(
        "submission.create",
        user_id=user_id,
        submission_id=submission_id,
        assessment_id=assessment_id,
        client_id=client_id,
        response_count=response_count,
        channel=channel,
    )

def log_submission_rejected(assessment_id: str, reason: str, channel: str):
    _emit("submission.rejected", assessment_id=assessment_id, reason=reason, channel=channel)

def log_client_created(therapist_id: str, client_id: str, source: str):
    _emit("client.create", user_id=therapist_id, client_id=client_id, source=source)
