"""
Durable key-value backends for visitor storage.

Values are raw strings, the same contract as browser localStorage, so the
JSON handling lives in one place (StoreAdapter) no matter which backend is used.
"""
from datetime import datetime
from typing import Dict, Optional, Protocol

from sqlmodel import Session, select

from app.models.storage import StoredValue


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryKeyValueStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class SqlKeyValueStore:
    """One namespace (visitor session) inside the shared stored_value table."""

    def __init__(self, engine, namespace: str):
        self.engine = engine
        self.namespace = namespace

    def _find(self, session: Session, key: str) -> Optional[StoredValue]:
        return session.exec(
            select(StoredValue).where(
                StoredValue.namespace == self.namespace,
                StoredValue.key == key,
            )
        ).first()

    def get(self, key: str) -> Optional[str]:
        with Session(self.engine) as session:
            row = self._find(session, key)
            return row.value if row else None

    def set(self, key: str, value: str) -> None:
        with Session(self.engine) as session:
            row = self._find(session, key)
            if row:
                row.value = value
                row.updated_at = datetime.utcnow()
            else:
                row = StoredValue(namespace=self.namespace, key=key, value=value)
            session.add(row)
            session.commit()

    def delete(self, key: str) -> None:
        with Session(self.engine) as session:
            row = self._find(session, key)
            if row:
                session.delete(row)
                session.commit()
