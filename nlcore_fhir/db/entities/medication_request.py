from datetime import datetime

from sqlalchemy import TIMESTAMP, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from nlcore_fhir.db.entities.base import Base
from nlcore_fhir.db.entities.fhir_resource import PatientLinkedMixin


class MedicationRequest(PatientLinkedMixin, Base):
    __tablename__ = "medication_requests"
    __table_args__ = (UniqueConstraint("tenant_id", "resource_id"),)

    medication_code_system: Mapped[str | None] = mapped_column(
        "medication_code_system", String, nullable=True
    )
    medication_code_code: Mapped[str | None] = mapped_column(
        "medication_code_code", String, nullable=True, index=True
    )
    status: Mapped[str] = mapped_column("status", String, nullable=False)
    intent: Mapped[str] = mapped_column("intent", String, nullable=False)
    authored_on: Mapped[datetime | None] = mapped_column(
        "authored_on", TIMESTAMP(timezone=True), nullable=True
    )
