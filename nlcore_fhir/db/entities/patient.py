from datetime import date

from sqlalchemy import Boolean, Date, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from nlcore_fhir.db.entities.base import Base
from nlcore_fhir.db.entities.fhir_resource import FhirResourceMixin


class Patient(FhirResourceMixin, Base):
    __tablename__ = "patients"
    __table_args__ = (UniqueConstraint("tenant_id", "resource_id"),)

    # Salted SHA-256 of the BSN, the plain value is never stored in a column
    bsn_hash: Mapped[str | None] = mapped_column(
        "bsn_hash", String, nullable=True, index=True
    )
    family_name: Mapped[str | None] = mapped_column(
        "family_name", String, nullable=True, index=True
    )
    given_name: Mapped[str | None] = mapped_column("given_name", String, nullable=True)
    birth_date: Mapped[date | None] = mapped_column(
        "birth_date", Date, nullable=True, index=True
    )
    gender: Mapped[str | None] = mapped_column("gender", String, nullable=True)
    deceased: Mapped[bool] = mapped_column(
        "deceased", Boolean, nullable=False, default=False
    )
    # Patient.active from the resource, the active column marks deleted rows
    fhir_active: Mapped[bool] = mapped_column(
        "fhir_active", Boolean, nullable=False, default=True
    )
