from datetime import datetime
from typing import Any, Dict

from sqlalchemy import TIMESTAMP, String
from sqlalchemy.orm import Mapped, mapped_column

from nlcore_fhir.db.entities.base import Base
from nlcore_fhir.db.entities.fhir_resource import JsonType, utc_now


class Tenant(Base):
    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column("id", String, primary_key=True)
    name: Mapped[str] = mapped_column("name", String, nullable=False)
    slug: Mapped[str] = mapped_column("slug", String, nullable=False, unique=True)
    settings: Mapped[Dict[str, Any]] = mapped_column(
        "settings", JsonType, nullable=False, default=dict
    )
    created_at: Mapped[datetime] = mapped_column(
        "created_at", TIMESTAMP(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        "updated_at",
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )
