import logging
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy import bindparam, text
from sqlalchemy.exc import SQLAlchemyError

from skillmatch.database import SessionLocal
from skillmatch.domain import (
    AvailabilitySlot,
    GenerationStats,
    InteractionType,
    MatchInteraction,
    MatchStatistics,
    Person,
    Skill,
    SkillDeclaration,
)
from skillmatch.errors import TransientLookupError
from skillmatch.services.candidates import CandidateFilters
from skillmatch.services.events import log_generation_stats

logger = logging.getLogger(__name__)

_PERSON_SELECT = """
    SELECT
      ua.id,
      ua.display_name,
      ua.is_verified,
      ua.rating,
      ua.total_sessions,
      ua.location,
      ua.last_active_at,
      COALESCE(pref.match_suggestions, TRUE) AS match_suggestions
    FROM user_account ua
    LEFT JOIN user_preferences pref
      ON pref.user_id = ua.id
"""

_INTERACTION_COLUMNS = "user_id, target_user_id, type, match_score, explanation, created_at, decided_at"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _like_pattern(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _hhmm(minute: int) -> str:
    return f"{minute // 60:02d}:{minute % 60:02d}"


def _interaction_from_row(row: Any) -> MatchInteraction:
    return MatchInteraction(
        user_id=str(row["user_id"]),
        target_user_id=str(row["target_user_id"]),
        type=InteractionType(str(row["type"])),
        score=float(row["match_score"]) if row.get("match_score") is not None else None,
        explanation=row.get("explanation"),
        created_at=row.get("created_at"),
        decided_at=row.get("decided_at"),
    )


def _load_details(db, user_ids: list[str]) -> tuple[dict[str, list[SkillDeclaration]], dict[str, list[AvailabilitySlot]], set[str]]:
    """Skills and active slots per user, plus the ids whose stored rows failed validation."""
    skills: dict[str, list[SkillDeclaration]] = defaultdict(list)
    slots: dict[str, list[AvailabilitySlot]] = defaultdict(list)
    invalid: set[str] = set()
    if not user_ids:
        return skills, slots, invalid

    skill_rows = db.execute(
        text(
            """
            SELECT us.user_id, us.skill_id, s.name, s.category, us.proficiency_level,
                   us.can_teach, us.wants_to_learn, us.is_verified
            FROM user_skill us
            JOIN skill s ON s.id = us.skill_id
            WHERE us.user_id IN :user_ids
            ORDER BY us.user_id, s.name
            """
        ).bindparams(bindparam("user_ids", expanding=True)),
        {"user_ids": user_ids},
    ).mappings().all()
    for r in skill_rows:
        uid = str(r["user_id"])
        try:
            declaration = SkillDeclaration(
                skill=Skill(id=str(r["skill_id"]), name=str(r["name"]), category=str(r["category"]).lower()),
                proficiency=int(r["proficiency_level"]),
                can_teach=bool(r["can_teach"]),
                wants_to_learn=bool(r["wants_to_learn"]),
                verified=bool(r["is_verified"]),
            )
        except (TypeError, ValueError) as exc:
            logger.warning("[matching] invalid skill row user_id=%s skill_id=%s: %s", uid, r.get("skill_id"), exc)
            invalid.add(uid)
            continue
        skills[uid].append(declaration)

    slot_rows = db.execute(
        text(
            """
            SELECT user_id, day_of_week, start_time, end_time, timezone, is_active
            FROM availability
            WHERE user_id IN :user_ids
              AND is_active = TRUE
            ORDER BY user_id, day_of_week, start_time
            """
        ).bindparams(bindparam("user_ids", expanding=True)),
        {"user_ids": user_ids},
    ).mappings().all()
    for r in slot_rows:
        uid = str(r["user_id"])
        try:
            slot = AvailabilitySlot(
                day_of_week=int(r["day_of_week"]),
                start_time=str(r["start_time"]),
                end_time=str(r["end_time"]),
                timezone=str(r["timezone"] or "UTC"),
                is_active=bool(r["is_active"]),
            )
        except (TypeError, ValueError) as exc:
            logger.warning("[matching] invalid availability row user_id=%s: %s", uid, exc)
            invalid.add(uid)
            continue
        slots[uid].append(slot)
    return skills, slots, invalid


def _person_from_row(row: Any, skills: list[SkillDeclaration], slots: list[AvailabilitySlot]) -> Person:
    return Person(
        id=str(row["id"]),
        display_name=str(row.get("display_name") or ""),
        is_verified=bool(row.get("is_verified")),
        rating=float(row.get("rating") or 0),
        total_sessions=int(row.get("total_sessions") or 0),
        location=row.get("location"),
        last_active_at=row.get("last_active_at"),
        match_suggestions=bool(row.get("match_suggestions")),
        skills=skills,
        availability=slots,
    )


class SqlMatchStore:
    """MatchStore over the PostgreSQL schema in models.py, written as plain SQL."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or SessionLocal

    def get_person(self, person_id: str) -> Person | None:
        try:
            with self._session_factory() as db:
                row = db.execute(text(_PERSON_SELECT + " WHERE ua.id = :id"), {"id": str(person_id)}).mappings().first()
                if not row:
                    return None
                skills, slots, invalid = _load_details(db, [str(row["id"])])
            if invalid:
                raise ValueError("stored skill or availability rows failed validation")
            return _person_from_row(row, skills.get(str(row["id"]), []), slots.get(str(row["id"]), []))
        except (SQLAlchemyError, ValueError) as exc:
            raise TransientLookupError(f"failed to load person {person_id}: {exc}") from exc

    def get_blocked_targets(self, user_id: str) -> set[str]:
        with self._session_factory() as db:
            rows = db.execute(
                text(
                    """
                    SELECT target_user_id
                    FROM match_interaction
                    WHERE user_id = :user_id
                      AND type = 'BLOCK'
                    """
                ),
                {"user_id": user_id},
            ).mappings().all()
        return {str(r["target_user_id"]) for r in rows}

    def query_candidates(self, filters: CandidateFilters, exclude_ids: set[str], limit: int) -> list[Person]:
        conditions = ["ua.is_verified = TRUE"]
        params: dict[str, Any] = {"limit": int(limit)}
        expanding: list[str] = []

        if exclude_ids:
            conditions.append("ua.id NOT IN :exclude_ids")
            params["exclude_ids"] = sorted(exclude_ids)
            expanding.append("exclude_ids")
        if filters.location:
            conditions.append("ua.location ILIKE :location")
            params["location"] = _like_pattern(filters.location)
        if filters.min_rating is not None:
            conditions.append("ua.rating >= :min_rating")
            params["min_rating"] = float(filters.min_rating)

        skill_clauses = []
        if filters.skill_categories:
            skill_clauses.append("LOWER(s.category) IN :categories")
            params["categories"] = list(filters.skill_categories)
            expanding.append("categories")
        if filters.proficiency_levels:
            skill_clauses.append("us.proficiency_level IN :levels")
            params["levels"] = list(filters.proficiency_levels)
            expanding.append("levels")
        if skill_clauses:
            conditions.append(
                "EXISTS (SELECT 1 FROM user_skill us JOIN skill s ON s.id = us.skill_id "
                "WHERE us.user_id = ua.id AND " + " AND ".join(skill_clauses) + ")"
            )

        slot_clauses = []
        if filters.availability_days:
            slot_clauses.append("av.day_of_week IN :days")
            params["days"] = list(filters.availability_days)
            expanding.append("days")
        if filters.availability_times:
            covers = []
            for i, minute in enumerate(filters.time_minutes):
                params[f"t{i}"] = _hhmm(minute)
                covers.append(
                    f"(CAST(av.start_time AS time) <= CAST(:t{i} AS time) "
                    f"AND CAST(av.end_time AS time) > CAST(:t{i} AS time))"
                )
            slot_clauses.append("(" + " OR ".join(covers) + ")")
        if slot_clauses:
            conditions.append(
                "EXISTS (SELECT 1 FROM availability av WHERE av.user_id = ua.id AND av.is_active = TRUE AND "
                + " AND ".join(slot_clauses)
                + ")"
            )

        stmt = text(
            _PERSON_SELECT
            + " WHERE "
            + " AND ".join(conditions)
            + " ORDER BY ua.last_active_at DESC NULLS LAST, ua.id LIMIT :limit"
        )
        if expanding:
            stmt = stmt.bindparams(*[bindparam(name, expanding=True) for name in expanding])

        with self._session_factory() as db:
            rows = db.execute(stmt, params).mappings().all()
            ids = [str(r["id"]) for r in rows]
            skills, slots, invalid = _load_details(db, ids)

        people: list[Person] = []
        for row in rows:
            pid = str(row["id"])
            if pid in invalid:
                logger.warning("[matching] skipping candidate with invalid profile data id=%s", pid)
                continue
            try:
                people.append(_person_from_row(row, skills.get(pid, []), slots.get(pid, [])))
            except ValueError:
                logger.warning("[matching] skipping candidate with invalid profile data id=%s", pid, exc_info=True)
        return people

    def get_recent_interactions(self, user_id: str, since: datetime) -> list[MatchInteraction]:
        try:
            with self._session_factory() as db:
                rows = db.execute(
                    text(
                        f"""
                        SELECT {_INTERACTION_COLUMNS}
                        FROM match_interaction
                        WHERE user_id = :user_id
                          AND decided_at >= :since
                        """
                    ),
                    {"user_id": user_id, "since": since},
                ).mappings().all()
        except SQLAlchemyError as exc:
            raise TransientLookupError(f"failed to load interactions for {user_id}: {exc}") from exc
        return [_interaction_from_row(r) for r in rows]

    def upsert_interaction(
        self,
        user_id: str,
        target_user_id: str,
        interaction_type: InteractionType,
        score: float | None = None,
        explanation: str | None = None,
        now: datetime | None = None,
    ) -> MatchInteraction:
        now = now or _now_utc()
        with self._session_factory() as db:
            row = db.execute(
                text(
                    f"""
                    INSERT INTO match_interaction
                    (id, user_id, target_user_id, type, match_score, explanation, created_at, decided_at)
                    VALUES (:id, :user_id, :target_user_id, :type, :score, :explanation, :now, :now)
                    ON CONFLICT (user_id, target_user_id)
                    DO UPDATE SET
                      type = EXCLUDED.type,
                      match_score = EXCLUDED.match_score,
                      explanation = EXCLUDED.explanation,
                      decided_at = EXCLUDED.decided_at
                    RETURNING {_INTERACTION_COLUMNS}
                    """
                ),
                {
                    "id": str(uuid.uuid4()),
                    "user_id": user_id,
                    "target_user_id": target_user_id,
                    "type": interaction_type.value,
                    "score": score,
                    "explanation": explanation,
                    "now": now,
                },
            ).mappings().first()
            db.commit()
        return _interaction_from_row(row)

    def insert_interaction_if_absent(
        self,
        user_id: str,
        target_user_id: str,
        interaction_type: InteractionType,
        score: float | None = None,
        now: datetime | None = None,
    ) -> bool:
        now = now or _now_utc()
        with self._session_factory() as db:
            res = db.execute(
                text(
                    """
                    INSERT INTO match_interaction
                    (id, user_id, target_user_id, type, match_score, created_at, decided_at)
                    VALUES (:id, :user_id, :target_user_id, :type, :score, :now, :now)
                    ON CONFLICT (user_id, target_user_id) DO NOTHING
                    """
                ),
                {
                    "id": str(uuid.uuid4()),
                    "user_id": user_id,
                    "target_user_id": target_user_id,
                    "type": interaction_type.value,
                    "score": score,
                    "now": now,
                },
            )
            db.commit()
        return int(res.rowcount or 0) > 0

    def get_interaction(self, user_id: str, target_user_id: str) -> MatchInteraction | None:
        with self._session_factory() as db:
            row = db.execute(
                text(
                    f"""
                    SELECT {_INTERACTION_COLUMNS}
                    FROM match_interaction
                    WHERE user_id = :user_id
                      AND target_user_id = :target_user_id
                    """
                ),
                {"user_id": user_id, "target_user_id": target_user_id},
            ).mappings().first()
        return _interaction_from_row(row) if row else None

    def delete_interaction(self, user_id: str, target_user_id: str, only_type: InteractionType | None = None) -> bool:
        with self._session_factory() as db:
            res = db.execute(
                text(
                    """
                    DELETE FROM match_interaction
                    WHERE user_id = :user_id
                      AND target_user_id = :target_user_id
                      AND (:only_type IS NULL OR type = :only_type)
                    """
                ),
                {
                    "user_id": user_id,
                    "target_user_id": target_user_id,
                    "only_type": only_type.value if only_type else None,
                },
            )
            db.commit()
        return int(res.rowcount or 0) > 0

    def list_interactions(self, user_id: str, interaction_type: InteractionType) -> list[MatchInteraction]:
        with self._session_factory() as db:
            rows = db.execute(
                text(
                    f"""
                    SELECT {_INTERACTION_COLUMNS}
                    FROM match_interaction
                    WHERE user_id = :user_id
                      AND type = :type
                    ORDER BY decided_at DESC
                    """
                ),
                {"user_id": user_id, "type": interaction_type.value},
            ).mappings().all()
        return [_interaction_from_row(r) for r in rows]

    def list_batch_eligible_ids(self, active_since: datetime) -> list[str]:
        with self._session_factory() as db:
            rows = db.execute(
                text(
                    """
                    SELECT ua.id
                    FROM user_account ua
                    LEFT JOIN user_preferences pref
                      ON pref.user_id = ua.id
                    WHERE ua.is_verified = TRUE
                      AND ua.last_active_at >= :active_since
                      AND COALESCE(pref.match_suggestions, TRUE) = TRUE
                    ORDER BY ua.id
                    """
                ),
                {"active_since": active_since},
            ).mappings().all()
        return [str(r["id"]) for r in rows]

    def delete_interactions_before(self, cutoff: datetime, types: Iterable[InteractionType]) -> int:
        type_values = [t.value for t in types]
        if not type_values:
            return 0
        with self._session_factory() as db:
            res = db.execute(
                text(
                    """
                    DELETE FROM match_interaction
                    WHERE decided_at < :cutoff
                      AND type IN :types
                    """
                ).bindparams(bindparam("types", expanding=True)),
                {"cutoff": cutoff, "types": type_values},
            )
            db.commit()
        return int(res.rowcount or 0)

    def save_generation_stats(self, stats: GenerationStats) -> None:
        with self._session_factory() as db:
            log_generation_stats(db, stats.to_dict())
            db.commit()

    def get_match_statistics(self, since: datetime) -> MatchStatistics:
        with self._session_factory() as db:
            totals = db.execute(
                text(
                    """
                    SELECT
                      COUNT(*) AS total,
                      COUNT(*) FILTER (WHERE type = 'FAVORITE') AS favorites,
                      COUNT(*) FILTER (WHERE type = 'PASS') AS passes,
                      COUNT(*) FILTER (WHERE type = 'BLOCK') AS blocks,
                      AVG(match_score) AS average_score
                    FROM match_interaction
                    WHERE created_at >= :since
                    """
                ),
                {"since": since},
            ).mappings().first()
            category_rows = db.execute(
                text(
                    """
                    SELECT LOWER(s.category) AS category, COUNT(*) AS n
                    FROM user_skill us
                    JOIN skill s ON s.id = us.skill_id
                    WHERE us.user_id IN (
                      SELECT DISTINCT user_id
                      FROM match_interaction
                      WHERE created_at >= :since
                    )
                    GROUP BY LOWER(s.category)
                    ORDER BY n DESC, category
                    LIMIT 10
                    """
                ),
                {"since": since},
            ).mappings().all()
        totals = totals or {}
        average = totals.get("average_score")
        return MatchStatistics(
            total_interactions=int(totals.get("total") or 0),
            favorite_count=int(totals.get("favorites") or 0),
            pass_count=int(totals.get("passes") or 0),
            block_count=int(totals.get("blocks") or 0),
            average_match_score=float(average) if average is not None else 0.0,
            top_skill_categories=[(str(r["category"]), int(r["n"])) for r in category_rows],
        )
