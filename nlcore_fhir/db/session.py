import logging
from types import TracebackType
from typing import Any, Type, TypeVar

from sqlalchemy import Engine, text
from sqlalchemy.orm import Session

from nlcore_fhir.models.auth import AccessContext

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Session variables read by the row level security helper functions
RLS_SETTINGS = {
    "tenant_id": "app.tenant_id",
    "user_role": "app.user_role",
    "gateway_user_id": "app.gateway_user_id",
}


class DbSession:
    def __init__(self, engine: Engine, access: AccessContext | None = None) -> None:
        self.session = Session(engine, expire_on_commit=False)
        self.access = access
        self.__uses_rls = engine.dialect.name == "postgresql"
        if access is not None and self.__uses_rls:
            self.apply_access_settings(access)

    def __enter__(self) -> "DbSession":
        return self

    def __exit__(
        self,
        exc_type: Type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.session.close()

    def apply_access_settings(self, access: AccessContext) -> None:
        """
        Sets the transaction local settings used by the RLS policies. They
        have to be re-applied after each commit since is_local is true.
        """
        values = {
            "tenant_id": access.tenant_id,
            "user_role": access.role.value,
            "gateway_user_id": access.user.id,
        }
        for key, setting in RLS_SETTINGS.items():
            self.session.execute(
                text("SELECT set_config(:setting, :value, true)"),
                {"setting": setting, "value": values[key]},
            )

    def get_repository(self, repository_class: Type[T]) -> T:
        return repository_class(self)  # type: ignore[call-arg]

    def add(self, entry: Any) -> None:
        self.session.add(entry)

    def commit(self) -> None:
        self.session.commit()
        if self.access is not None and self.__uses_rls:
            self.apply_access_settings(self.access)

    def rollback(self) -> None:
        self.session.rollback()
