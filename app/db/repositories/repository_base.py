from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.db.session import DbSession


class RepositoryBase:
    def __init__(self, db_session: "DbSession") -> None:
        self.db_session = db_session
