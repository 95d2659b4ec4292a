"""Read/write access to the legacy key/value preference store (SQLite)."""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import Column, LargeBinary, String, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

Base = declarative_base()


class Preference(Base):
    __tablename__ = "preferences"

    key = Column(String, primary_key=True)
    value = Column(LargeBinary, nullable=False)  # serialized payload, usually JSON bytes


class LegacyPreferences:
    """
    Key/value preference store kept in a single SQLite table.

    Reads never create the database file: a missing file simply means
    nothing is stored.
    """

    def __init__(self, sqlite_path: Path | str):
        self.sqlite_path = Path(sqlite_path)
        self._engine: Optional[Engine] = None

    def _get_engine(self) -> Engine:
        if self._engine is None:
            self.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
            self._engine = create_engine(f"sqlite:///{self.sqlite_path}", future=True)
            Base.metadata.create_all(self._engine)
        return self._engine

    @contextmanager
    def session_context(self) -> Generator[Session, None, None]:
        """Session bound to the preference database; rolls back on error."""
        session = sessionmaker(bind=self._get_engine(), autoflush=False)()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get(self, key: str) -> Optional[bytes]:
        if not self.sqlite_path.exists():
            return None
        with self.session_context() as session:
            row = session.get(Preference, key)
            return bytes(row.value) if row is not None else None

    def set(self, key: str, value: bytes | str) -> None:
        if isinstance(value, str):
            value = value.encode("utf-8")
        with self.session_context() as session:
            session.merge(Preference(key=key, value=value))
            session.commit()

    def delete(self, key: str) -> bool:
        """Remove key; returns True if something was deleted."""
        if not self.sqlite_path.exists():
            return False
        with self.session_context() as session:
            row = session.get(Preference, key)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
