from datetime import date, datetime

from sqlalchemy import TIMESTAMP, Date, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from nlcore_fhir.db.entities.base import Base
from nlcore_fhir.db.entities.fhir_resource import PatientLinkedMixin


class Condition(PatientLinkedMixin, Base):
    __tablename__ = "conditions"
    __table_args__ = (UniqueConstraint("tenant_id", "resource_id"),)

    code_system: Mapped[str | None] = mapped_column(
        "code_system", String, nullable=True
    )
    code_code: Mapped[str | None] = mapped_column(
        "code_code", String, nullable=True, index=True
    )
    clinical_status: Mapped[str | None] = mapped_column(
        "clinical_status", String, nullable=True
    )
    verification_status: Mapped[str | None] = mapped_column(
        "verification_status", String, nullable=True
    )
    category: Mapped[str | None] = mapped_column("category", String, nullable=True)
    onset_datetime: Mapped[datetime | None] = mapped_column(
        "onset_datetime", TIMESTAMP(timezone=True), nullable=True
    )
    recorded_date: Mapped[date | None] = mapped_column(
        "recorded_date", Date, nullable=True
    )
