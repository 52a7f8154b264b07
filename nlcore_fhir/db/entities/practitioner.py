from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from nlcore_fhir.db.entities.base import Base
from nlcore_fhir.db.entities.fhir_resource import FhirResourceMixin


class Practitioner(FhirResourceMixin, Base):
    __tablename__ = "practitioners"
    __table_args__ = (UniqueConstraint("tenant_id", "resource_id"),)

    agb_code: Mapped[str | None] = mapped_column(
        "agb_code", String, nullable=True, index=True
    )
    big_code: Mapped[str | None] = mapped_column(
        "big_code", String, nullable=True, index=True
    )
    family_name: Mapped[str | None] = mapped_column(
        "family_name", String, nullable=True
    )
    given_name: Mapped[str | None] = mapped_column("given_name", String, nullable=True)
    specialty_code: Mapped[str | None] = mapped_column(
        "specialty_code", String, nullable=True
    )
