from datetime import datetime
from typing import Any, Dict
from uuid import UUID, uuid4

from sqlalchemy import TIMESTAMP, ForeignKey, Integer, String, types
from sqlalchemy.orm import Mapped, mapped_column

from nlcore_fhir.db.entities.base import Base
from nlcore_fhir.db.entities.fhir_resource import JsonType, utc_now


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[UUID] = mapped_column(
        "id", types.Uuid, primary_key=True, nullable=False, default=uuid4
    )
    tenant_id: Mapped[str | None] = mapped_column(
        "tenant_id",
        String,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    gateway_user_id: Mapped[str | None] = mapped_column(
        "gateway_user_id", String, nullable=True, index=True
    )
    user_role: Mapped[str | None] = mapped_column("user_role", String, nullable=True)
    action: Mapped[str] = mapped_column("action", String, nullable=False)
    resource_type: Mapped[str | None] = mapped_column(
        "resource_type", String, nullable=True
    )
    resource_id: Mapped[str | None] = mapped_column(
        "resource_id", String, nullable=True
    )
    request_method: Mapped[str | None] = mapped_column(
        "request_method", String, nullable=True
    )
    request_url: Mapped[str | None] = mapped_column(
        "request_url", String, nullable=True
    )
    ip_address: Mapped[str | None] = mapped_column("ip_address", String, nullable=True)
    user_agent: Mapped[str | None] = mapped_column("user_agent", String, nullable=True)
    response_status: Mapped[int | None] = mapped_column(
        "response_status", Integer, nullable=True
    )
    outcome: Mapped[str] = mapped_column("outcome", String, nullable=False)
    details: Mapped[Dict[str, Any]] = mapped_column(
        "details", JsonType, nullable=False, default=dict
    )
    timestamp: Mapped[datetime] = mapped_column(
        "timestamp", TIMESTAMP(timezone=True), nullable=False, default=utc_now, index=True
    )
