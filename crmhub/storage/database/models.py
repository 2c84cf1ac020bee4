"""SQLAlchemy models for contacts and their activity logs."""

import datetime
import enum
import uuid
from typing import List, Optional

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crmhub.storage.database.base import Base, CreatedAtMixin, TimestampMixin


class ContactStatus(str, enum.Enum):
    """Pipeline stage of a contact."""

    LEAD = "Lead"
    PROSPECT = "Prospect"
    CUSTOMER = "Customer"
    LOST = "Lost"


class ActivityAction(str, enum.Enum):
    """Commonly used activity labels. The column itself is free text."""

    CALLED = "Called"
    SENT_EMAIL = "Sent Email"
    MEETING = "Meeting"
    NOTE = "Note"
    CREATED = "Created"
    UPDATED = "Updated"


class Contact(Base, TimestampMixin):
    """CRM contact model."""

    __tablename__ = "contacts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    company: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[Optional[ContactStatus]] = mapped_column(
        Enum(
            ContactStatus,
            name="contact_status",
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=True,
        index=True,
    )
    source: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    tags: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    activities: Mapped[List["ActivityLog"]] = relationship(
        "ActivityLog",
        back_populates="contact",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (Index("ix_contacts_user_created", "user_id", "created_at"),)

    def __repr__(self) -> str:
        return f"<Contact(id={self.id}, name='{self.name}', email='{self.email}')>"


class ActivityLog(Base, CreatedAtMixin):
    """Activity logged against a contact."""

    __tablename__ = "activity_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    contact_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False
    )
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reminder_at: Mapped[Optional[datetime.datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    contact: Mapped["Contact"] = relationship("Contact", back_populates="activities")

    __table_args__ = (Index("ix_activity_logs_contact_created", "contact_id", "created_at"),)

    def __repr__(self) -> str:
        return f"<ActivityLog(id={self.id}, contact_id={self.contact_id}, action='{self.action}')>"
