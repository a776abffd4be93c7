"""Lightweight CLI helpers for inspecting escalation and audit tables."""
from __future__ import annotations

import argparse
import sqlite3

from config.settings import settings


def tail_escalations(limit: int = 20) -> None:
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT e.escalated_at, r.conversation_session_id, e.response_id, e.escalation_type,
                   r.urgency_score, r.content
            FROM escalation_log e
            LEFT JOIN responses r ON r.id = e.response_id
            ORDER BY e.id DESC
            LIMIT ?
            """,
            (limit,),
        )
        for row in cursor.fetchall():
            ts, conversation_id, response_id, escalation_type, urgency_score, content = row
            excerpt = (content or "")[:60]
            print(
                f"[{ts}] {conversation_id} response={response_id} type={escalation_type} "
                f"urgency={urgency_score} text={excerpt!r}"
            )
    finally:
        conn.close()


def tail_audit(limit: int = 20) -> None:
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT created_at, user_id, action_type, resource_type, resource_id, response_id, metadata
            FROM audit_logs
            ORDER BY id DESC
            LIMIT ?
            """,
            (limit,),
        )
        for row in cursor.fetchall():
            ts, user_id, action_type, resource_type, resource_id, response_id, metadata = row
            print(
                f"[{ts}] {user_id} {action_type} {resource_type}:{resource_id} response={response_id} meta={metadata}"
            )
    finally:
        conn.close()


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--tail-escalations", type=int, help="Show the latest urgent-turn escalations")
    parser.add_argument("--tail-audit", type=int, help="Show the latest audit log entries")
    args = parser.parse_args()

    if args.tail_escalations:
        tail_escalations(args.tail_escalations)
    if args.tail_audit:
        tail_audit(args.tail_audit)


if __name__ == "__main__":
    main()
