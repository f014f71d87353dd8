from __future__ import annotations

from sqlalchemy import delete, select

from spa_manager.db import SavedFilter, SessionLocal


def list_saved_filters(scope: str | None = None) -> list[SavedFilter]:
    stmt = select(SavedFilter).order_by(SavedFilter.created_at.desc())
    if scope:
        stmt = stmt.where(SavedFilter.scope == scope)
    with SessionLocal() as session:
        return list(session.scalars(stmt))


def create_saved_filter(name: str, scope: str, definition_json: dict) -> SavedFilter:
    with SessionLocal() as session:
        row = SavedFilter(name=name, scope=scope, definition_json=definition_json)
        session.add(row)
        session.commit()
        session.refresh(row)
        return row


def get_saved_filter(filter_id: str) -> SavedFilter | None:
    with SessionLocal() as session:
        return session.scalar(select(SavedFilter).where(SavedFilter.id == filter_id))


def update_saved_filter(filter_id: str, name: str, scope: str, definition_json: dict) -> SavedFilter | None:
    with SessionLocal() as session:
        row = session.scalar(select(SavedFilter).where(SavedFilter.id == filter_id))
        if row is None:
            return None
        row.name = name
        row.scope = scope
        row.definition_json = definition_json
        session.commit()
        session.refresh(row)
        return row


def delete_saved_filter(filter_id: str) -> bool:
    with SessionLocal() as session:
        result = session.execute(delete(SavedFilter).where(SavedFilter.id == filter_id))
        session.commit()
        return bool(result.rowcount)
