from nlcore_fhir.db.session import DbSession


class RepositoryBase:
    def __init__(self, db_session: DbSession) -> None:
        self.db_session = db_session
