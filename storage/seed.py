"""Load a demo survey, its themes, an owned session and a caller token."""
from __future__ import annotations

import argparse
from typing import List, Optional

from .migrate import migrate
from .models import ConversationSession, Survey, Theme
from .sessions import insert_api_token, insert_session, insert_survey
from .themes import insert_theme

DEMO_SURVEY_ID = "demo-survey"
DEMO_TOKEN = "demo-token"
DEMO_USER = "demo-employee"

DEMO_THEMES: List[Theme] = [
    Theme(id="theme-wlb", name="Work-Life Balance", description="Workload, hours and time to recharge"),
    Theme(id="theme-growth", name="Career Growth", description="Learning, promotion and development paths"),
    Theme(id="theme-team", name="Team Dynamics", description="Collaboration and relationships with colleagues"),
    Theme(id="theme-leadership", name="Leadership", description="Direction, support and communication from managers"),
]


def seed(db_path: Optional[str] = None, *, pacing: str = "duration") -> None:
    if db_path is not None:
        from config.settings import settings

        settings.DB_PATH = db_path
    migrate(db_path)
    insert_survey(Survey(id=DEMO_SURVEY_ID, title="Quarterly pulse", pacing=pacing))
    for position, theme in enumerate(DEMO_THEMES):
        insert_theme(theme, survey_id=DEMO_SURVEY_ID, position=position)
    insert_api_token(DEMO_TOKEN, DEMO_USER)
    insert_session(
        ConversationSession(
            id="demo-conversation",
            owner_kind="employee",
            employee_id=DEMO_USER,
            survey_id=DEMO_SURVEY_ID,
        )
    )
    insert_session(
        ConversationSession(
            id="demo-public-conversation",
            owner_kind="public_link",
            public_link_id="demo-link",
            survey_id=DEMO_SURVEY_ID,
        )
    )


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--db", help="Database path (defaults to DB_PATH)")
    parser.add_argument("--pacing", choices=["duration", "coverage"], default="duration")
    args = parser.parse_args()
    seed(args.db, pacing=args.pacing)
    print(f"seeded survey={DEMO_SURVEY_ID} token={DEMO_TOKEN}")


if __name__ == "__main__":
    main()
