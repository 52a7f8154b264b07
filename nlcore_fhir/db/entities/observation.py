from datetime import datetime

from sqlalchemy import TIMESTAMP, Float, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from nlcore_fhir.db.entities.base import Base
from nlcore_fhir.db.entities.fhir_resource import PatientLinkedMixin


class Observation(PatientLinkedMixin, Base):
    __tablename__ = "observations"
    __table_args__ = (UniqueConstraint("tenant_id", "resource_id"),)

    code_system: Mapped[str | None] = mapped_column(
        "code_system", String, nullable=True
    )
    code_code: Mapped[str | None] = mapped_column(
        "code_code", String, nullable=True, index=True
    )
    code_display: Mapped[str | None] = mapped_column(
        "code_display", String, nullable=True
    )
    category: Mapped[str | None] = mapped_column("category", String, nullable=True)
    status: Mapped[str] = mapped_column("status", String, nullable=False)
    effective_datetime: Mapped[datetime | None] = mapped_column(
        "effective_datetime", TIMESTAMP(timezone=True), nullable=True, index=True
    )
    value_quantity_value: Mapped[float | None] = mapped_column(
        "value_quantity_value", Float, nullable=True
    )
    value_quantity_unit: Mapped[str | None] = mapped_column(
        "value_quantity_unit", String, nullable=True
    )
