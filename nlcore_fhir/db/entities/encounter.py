from datetime import datetime

from sqlalchemy import TIMESTAMP, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from nlcore_fhir.db.entities.base import Base
from nlcore_fhir.db.entities.fhir_resource import PatientLinkedMixin


class Encounter(PatientLinkedMixin, Base):
    __tablename__ = "encounters"
    __table_args__ = (UniqueConstraint("tenant_id", "resource_id"),)

    status: Mapped[str] = mapped_column("status", String, nullable=False)
    class_code: Mapped[str | None] = mapped_column(
        "class_code", String, nullable=True
    )
    period_start: Mapped[datetime | None] = mapped_column(
        "period_start", TIMESTAMP(timezone=True), nullable=True, index=True
    )
    period_end: Mapped[datetime | None] = mapped_column(
        "period_end", TIMESTAMP(timezone=True), nullable=True
    )
