"""Read helpers for survey themes."""
from __future__ import annotations

from typing import List, Optional, Sequence

from .models import Theme
from .sqlite import get_conn


def insert_theme(theme: Theme, *, survey_id: Optional[str] = None, position: int = 0) -> None:
    with get_conn() as conn:
        conn.execute(
            """INSERT OR REPLACE INTO survey_themes
               (id, survey_id, name, description, survey_type, position)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (theme.id, survey_id, theme.name, theme.description, theme.survey_type, position),
        )


def fetch_themes_for_survey(survey_id: str) -> List[Theme]:
    with get_conn() as conn:
        rows = conn.execute(
            """SELECT id, name, description, survey_type FROM survey_themes
               WHERE survey_id = ? ORDER BY position, id""",
            (survey_id,),
        ).fetchall()
    return [Theme(**dict(row)) for row in rows]


def fetch_themes_by_ids(theme_ids: Sequence[str]) -> List[Theme]:
    """Return themes in the order the ids were requested, skipping unknown ids."""

    ids = [theme_id for theme_id in theme_ids if theme_id]
    if not ids:
        return []
    placeholders = ", ".join("?" for _ in ids)
    with get_conn() as conn:
        rows = conn.execute(
            f"SELECT id, name, description, survey_type FROM survey_themes WHERE id IN ({placeholders})",
            tuple(ids),
        ).fetchall()
    by_id = {row["id"]: Theme(**dict(row)) for row in rows}
    return [by_id[theme_id] for theme_id in ids if theme_id in by_id]
