"""Client lookups for the submission paths."""
from typing import Optional, Tuple
import logging
import secrets
import uuid

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.exceptions import NotFoundException, OwnershipMismatchException
from app.models.client import Client

logger = logging.getLogger("app.clients")


def new_client_code() -> str:
    return f"CL-{secrets.token_hex(5).upper()}"


def get_owned_client(db: Session, client_id: str, therapist_id: str) -> Client:
    client = db.query(Client).filter_by(id=client_id).first()
    if not client:
        raise NotFoundException("Client not found")
    if client.therapist_id != therapist_id:
        raise OwnershipMismatchException("You can only submit for your own clients")
    return client


def find_client_by_email(db: Session, therapist_id: str, email: str) -> Optional[Client]:
    return (
        db.query(Client)
        .filter(Client.therapist_id == therapist_id, func.lower(Client.email) == email.strip().lower())
        .order_by(Client.created_at)
        .first()
    )


def find_or_build_client(db: Session, therapist_id: str, full_name: str, email: Optional[str]) -> Tuple[Client, bool]:
    """Existing client matched by email under the therapist, or an unsaved new one.

    The new row is not added to the session; the caller writes it in the
    same transaction as the submission. Returns ``(client, created)``.
    """
    if email:
        existing = find_client_by_email(db, therapist_id, email)
        if existing:
            return existing, False
    client = Client(
        id=str(uuid.uuid4()),
        therapist_id=therapist_id,
        client_code=new_client_code(),
        full_name=full_name.strip(),
        email=email.strip().lower() if email else None,
        status="Active",
    )
    return client, True
