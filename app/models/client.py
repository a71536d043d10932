from sqlalchemy import Column, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime, UTC
import uuid

from app.db import Base


class Client(Base):
    """Minimal client record.

    Clients are managed by the wider practice application; this service only
    reads them and creates bare records for anonymous public respondents.
    """

    __tablename__ = "clients"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    therapist_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    # opaque system code, never shown as a name
    client_code = Column(String(32), nullable=False, unique=True)
    full_name = Column(String(200), nullable=False)
    email = Column(String, nullable=True)
    status = Column(String, nullable=False, default="Active")
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))

    therapist = relationship("User", back_populates="clients")

    __table_args__ = (
        Index("ix_clients_therapist_email", "therapist_id", "email"),
    )
