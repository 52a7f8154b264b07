from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import TIMESTAMP, ForeignKey, String, UniqueConstraint, types
from sqlalchemy.orm import Mapped, mapped_column

from nlcore_fhir.db.entities.base import Base
from nlcore_fhir.db.entities.fhir_resource import utc_now


class UserMapping(Base):
    """
    Links a gateway user to a tenant role and, for patients and
    practitioners, to the row holding their own FHIR resource.
    """

    __tablename__ = "user_mappings"
    __table_args__ = (UniqueConstraint("tenant_id", "gateway_user_id"),)

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
    gateway_user_id: Mapped[str] = mapped_column(
        "gateway_user_id", String, nullable=False, index=True
    )
    role: Mapped[str] = mapped_column("role", String, nullable=False)
    patient_id: Mapped[UUID | None] = mapped_column(
        "patient_id",
        types.Uuid,
        ForeignKey("patients.id", ondelete="SET NULL"),
        nullable=True,
    )
    practitioner_id: Mapped[UUID | None] = mapped_column(
        "practitioner_id",
        types.Uuid,
        ForeignKey("practitioners.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        "created_at", TIMESTAMP(timezone=True), nullable=False, default=utc_now
    )
