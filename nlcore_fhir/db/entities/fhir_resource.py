from datetime import datetime, timezone
from typing import Any, Dict
from uuid import UUID, uuid4

from sqlalchemy import JSON, TIMESTAMP, Boolean, ForeignKey, Integer, String, types
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

JsonType = JSON().with_variant(JSONB(), "postgresql")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FhirResourceMixin:
    """
    Columns shared by every table that stores a FHIR resource: the full JSON
    resource next to a version counter, soft deactivation flag and tenant.
    """

    id: Mapped[UUID] = mapped_column(
        "id", types.Uuid, primary_key=True, nullable=False, default=uuid4
    )
    resource_id: Mapped[str] = mapped_column("resource_id", String, nullable=False)
    version_id: Mapped[int] = mapped_column(
        "version_id", Integer, nullable=False, default=1
    )
    active: Mapped[bool] = mapped_column(
        "active", Boolean, nullable=False, default=True
    )
    resource: Mapped[Dict[str, Any]] = mapped_column(
        "resource", JsonType, nullable=False
    )
    last_updated: Mapped[datetime] = mapped_column(
        "last_updated", TIMESTAMP(timezone=True), nullable=False, default=utc_now
    )
    created_at: Mapped[datetime] = mapped_column(
        "created_at", TIMESTAMP(timezone=True), nullable=False, default=utc_now
    )

    @declared_attr
    def tenant_id(cls) -> Mapped[str]:
        return mapped_column(
            "tenant_id",
            String,
            ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )


class PatientLinkedMixin(FhirResourceMixin):
    @declared_attr
    def patient_id(cls) -> Mapped[UUID]:
        return mapped_column(
            "patient_id",
            types.Uuid,
            ForeignKey("patients.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
