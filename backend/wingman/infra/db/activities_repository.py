from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy import insert, or_, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from wingman.domain.canonical import activity_from_row, to_utc
from wingman.domain.models import Activity, ActivityDraft, Expense

from .tables import activities_table, activity_expenses_table, activity_participants_table

logger = logging.getLogger(__name__)


class ActivityNotFoundError(LookupError):
    pass


class JoinError(ValueError):
    pass


class ActivitiesRepository:
    def __init__(self, engine: Engine):
        if engine is None:
            raise ValueError("engine is required")
        self.engine = engine

    def create_activity(self, draft: ActivityDraft, host_id: str) -> Activity:
        if not host_id:
            raise ValueError("host_id is required")
        now = datetime.now(timezone.utc)
        values = {
            "name": draft.name,
            "description": draft.description,
            "lat": draft.location.lat,
            "lng": draft.location.lng,
            "host_id": host_id,
            "types": list(draft.types),
            "tags": list(draft.tags),
            "budget": draft.budget.value if draft.budget else None,
            "duration": draft.duration.value if draft.duration else None,
            "location_type": draft.location_type.value if draft.location_type else None,
            "social_vibe": draft.social_vibe.value if draft.social_vibe else None,
            "date_time": draft.date_time,
            "created_at": now,
        }
        with self.engine.begin() as conn:
            activity_id = conn.execute(insert(activities_table).values(**values)).inserted_primary_key[0]
            if draft.shared_expenses:
                conn.execute(
                    insert(activity_expenses_table),
                    [
                        {
                            "activity_id": activity_id,
                            "user_id": host_id,
                            "label": expense.label.strip(),
                            "amount": float(expense.amount),
                            "created_at": now,
                        }
                        for expense in draft.shared_expenses
                    ],
                )
        logger.info("Activity %s created by %s", activity_id, host_id)
        return activity_from_row({**values, "id": activity_id})

    def get_activity(self, activity_id: int) -> Optional[Activity]:
        with self.engine.begin() as conn:
            row = conn.execute(
                select(activities_table).where(activities_table.c.id == activity_id)
            ).mappings().first()
            if row is None:
                return None
            participants = self._participants_for(conn, [activity_id])
        return activity_from_row(dict(row), participants.get(activity_id, ()))

    def list_activities(self, user_id: Optional[str] = None) -> List[Activity]:
        """Newest first. With ``user_id`` only activities hosted or joined by that user."""
        stmt = select(activities_table).order_by(
            activities_table.c.created_at.desc(), activities_table.c.id.desc()
        )
        if user_id is not None:
            joined = select(activity_participants_table.c.activity_id).where(
                activity_participants_table.c.user_id == user_id
            )
            stmt = stmt.where(
                or_(activities_table.c.host_id == user_id, activities_table.c.id.in_(joined))
            )
        with self.engine.begin() as conn:
            rows = conn.execute(stmt).mappings().all()
            participants = self._participants_for(conn, [row["id"] for row in rows])
        return [activity_from_row(dict(row), participants.get(row["id"], ())) for row in rows]

    def join_activity(self, activity_id: int, user_id: str) -> bool:
        """Add ``user_id`` to the participants. Returns False when already joined."""
        with self.engine.begin() as conn:
            host_id = conn.execute(
                select(activities_table.c.host_id).where(activities_table.c.id == activity_id)
            ).scalar_one_or_none()
            if host_id is None:
                raise ActivityNotFoundError(f"Activity {activity_id} not found")
            if host_id == user_id:
                raise JoinError("Host cannot join their own activity")
            if self._is_participant(conn, activity_id, user_id):
                return False
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    insert(activity_participants_table).values(
                        activity_id=activity_id,
                        user_id=user_id,
                        joined_at=datetime.now(timezone.utc),
                    )
                )
        except IntegrityError:
            # concurrent join by the same user hit the unique constraint
            return False
        logger.info("User %s joined activity %s", user_id, activity_id)
        return True

    def list_expenses(self, activity_id: int) -> List[Expense]:
        with self.engine.begin() as conn:
            self._ensure_exists(conn, activity_id)
            rows = conn.execute(
                select(activity_expenses_table)
                .where(activity_expenses_table.c.activity_id == activity_id)
                .order_by(activity_expenses_table.c.id)
            ).mappings().all()
        return [
            Expense(
                user_id=row["user_id"],
                label=row["label"],
                amount=row["amount"],
                created_at=to_utc(row["created_at"]),
            )
            for row in rows
        ]

    def add_expense(self, activity_id: int, user_id: str, label: str, amount: float) -> Expense:
        label = (label or "").strip()
        if not label or not amount > 0:
            raise ValueError("Invalid expense")
        now = datetime.now(timezone.utc)
        with self.engine.begin() as conn:
            self._ensure_exists(conn, activity_id)
            conn.execute(
                insert(activity_expenses_table).values(
                    activity_id=activity_id,
                    user_id=user_id,
                    label=label,
                    amount=float(amount),
                    created_at=now,
                )
            )
        return Expense(user_id=user_id, label=label, amount=float(amount), created_at=now)

    @staticmethod
    def _ensure_exists(conn: Connection, activity_id: int) -> None:
        found = conn.execute(
            select(activities_table.c.id).where(activities_table.c.id == activity_id)
        ).scalar_one_or_none()
        if found is None:
            raise ActivityNotFoundError(f"Activity {activity_id} not found")

    @staticmethod
    def _is_participant(conn: Connection, activity_id: int, user_id: str) -> bool:
        existing = conn.execute(
            select(activity_participants_table.c.id).where(
                (activity_participants_table.c.activity_id == activity_id)
                & (activity_participants_table.c.user_id == user_id)
            )
        ).scalar_one_or_none()
        return existing is not None

    @staticmethod
    def _participants_for(conn: Connection, activity_ids: Iterable[int]) -> Dict[int, List[str]]:
        ids = list(activity_ids)
        grouped: Dict[int, List[str]] = defaultdict(list)
        if not ids:
            return grouped
        rows = conn.execute(
            select(activity_participants_table.c.activity_id, activity_participants_table.c.user_id)
            .where(activity_participants_table.c.activity_id.in_(ids))
            .order_by(activity_participants_table.c.id)
        ).all()
        for activity_id, user_id in rows:
            grouped[activity_id].append(user_id)
        return grouped
