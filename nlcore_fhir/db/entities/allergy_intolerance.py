from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from nlcore_fhir.db.entities.base import Base
from nlcore_fhir.db.entities.fhir_resource import PatientLinkedMixin


class AllergyIntolerance(PatientLinkedMixin, Base):
    __tablename__ = "allergy_intolerances"
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
    type: Mapped[str | None] = mapped_column("type", String, nullable=True)
    criticality: Mapped[str | None] = mapped_column(
        "criticality", String, nullable=True
    )
