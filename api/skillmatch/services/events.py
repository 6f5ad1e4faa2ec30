import json
import uuid
from typing import Any

from sqlalchemy import text


def log_generation_stats(db, stats: dict[str, Any]) -> None:
    db.execute(
        text(
            """
            INSERT INTO match_generation_stats
            (id, run_date, total_matches, users_with_matches, total_active_users, failed_users,
             average_matches_per_user, match_generation_rate, payload)
            VALUES (:id, :run_date, :total_matches, :users_with_matches, :total_active_users, :failed_users,
                    :average_matches_per_user, :match_generation_rate, CAST(:payload AS jsonb))
            """
        ),
        {
            "id": str(uuid.uuid4()),
            "run_date": stats.get("run_date"),
            "total_matches": int(stats.get("total_matches") or 0),
            "users_with_matches": int(stats.get("users_with_matches") or 0),
            "total_active_users": int(stats.get("total_active_users") or 0),
            "failed_users": int(stats.get("failed_users") or 0),
            "average_matches_per_user": float(stats.get("average_matches_per_user") or 0.0),
            "match_generation_rate": float(stats.get("match_generation_rate") or 0.0),
            "payload": json.dumps(stats),
        },
    )


def enqueue_notification(
    db,
    *,
    user_id: str,
    kind: str,
    payload: dict[str, Any] | None = None,
) -> None:
    payload = payload or {}
    db.execute(
        text(
            """
            INSERT INTO notification_outbox (id, user_id, kind, payload, status)
            VALUES (:id, :user_id, :kind, CAST(:payload AS jsonb), 'pending')
            """
        ),
        {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "kind": kind,
            "payload": json.dumps(payload),
        },
    )
