from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy import TIMESTAMP, Boolean, Date, ForeignKey, String, types
from sqlalchemy.orm import Mapped, mapped_column

from nlcore_fhir.db.entities.base import Base
from nlcore_fhir.db.entities.fhir_resource import utc_now


class CareRelationship(Base):
    __tablename__ = "care_relationships"

    id: Mapped[UUID] = mapped_column(
        "id", types.Uuid, primary_key=True, nullable=False, default=uuid4
    )
    tenant_id: Mapped[str] = mapped_column(
        "tenant_id",
        String,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    patient_id: Mapped[UUID] = mapped_column(
        "patient_id",
        types.Uuid,
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    practitioner_id: Mapped[UUID] = mapped_column(
        "practitioner_id",
        types.Uuid,
        ForeignKey("practitioners.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    organization_id: Mapped[UUID | None] = mapped_column(
        "organization_id",
        types.Uuid,
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
    )
    relationship_type: Mapped[str] = mapped_column(
        "relationship_type", String, nullable=False, default="treating"
    )
    start_date: Mapped[date] = mapped_column(
        "start_date", Date, nullable=False, default=date.today
    )
    end_date: Mapped[date | None] = mapped_column("end_date", Date, nullable=True)
    active: Mapped[bool] = mapped_column(
        "active", Boolean, nullable=False, default=True
    )
    created_at: Mapped[datetime] = mapped_column(
        "created_at", TIMESTAMP(timezone=True), nullable=False, default=utc_now
    )
