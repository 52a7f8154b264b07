from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from nlcore_fhir.db.entities.base import Base
from nlcore_fhir.db.entities.fhir_resource import FhirResourceMixin


class Organization(FhirResourceMixin, Base):
    __tablename__ = "organizations"
    __table_args__ = (UniqueConstraint("tenant_id", "resource_id"),)

    ura_code: Mapped[str | None] = mapped_column(
        "ura_code", String, nullable=True, index=True
    )
    agb_code: Mapped[str | None] = mapped_column(
        "agb_code", String, nullable=True, index=True
    )
    name: Mapped[str | None] = mapped_column("name", String, nullable=True)
    type_code: Mapped[str | None] = mapped_column("type_code", String, nullable=True)
