from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.engine import Engine

from wingman.api.deps import get_current_user_id, get_engine, get_optional_user_id
from wingman.api.schemas import ActivityCreate, ExpenseIn
from wingman.domain.canonical import activity_to_dict, expense_to_dict
from wingman.infra.db.activities_repository import (
    ActivitiesRepository,
    ActivityNotFoundError,
    JoinError,
)

router = APIRouter(tags=["activities"])


@router.get("/activities")
def list_activities(
    mine: bool = Query(False),
    user_id: Optional[str] = Depends(get_optional_user_id),
    engine: Engine = Depends(get_engine),
):
    if mine and user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    repo = ActivitiesRepository(engine)
    activities = repo.list_activities(user_id if mine else None)
    return {"activities": [activity_to_dict(activity) for activity in activities]}


@router.post("/activities", status_code=201)
def create_activity(
    payload: ActivityCreate,
    user_id: str = Depends(get_current_user_id),
    engine: Engine = Depends(get_engine),
):
    repo = ActivitiesRepository(engine)
    activity = repo.create_activity(payload.to_draft(), host_id=user_id)
    return {"id": activity.id, "activity": activity_to_dict(activity)}


@router.get("/activities/my-activities")
def my_activities(
    user_id: str = Depends(get_current_user_id),
    engine: Engine = Depends(get_engine),
):
    """Activities the caller hosts or has joined, split by role."""
    repo = ActivitiesRepository(engine)
    created, joined = [], []
    for activity in repo.list_activities(user_id):
        target = created if activity.is_host(user_id) else joined
        target.append(activity_to_dict(activity))
    return {"created": created, "joined": joined}


@router.patch("/activities/{activity_id}/join")
def join_activity(
    activity_id: str,
    user_id: str = Depends(get_current_user_id),
    engine: Engine = Depends(get_engine),
):
    repo = ActivitiesRepository(engine)
    try:
        joined = repo.join_activity(_parse_id(activity_id), user_id)
    except ActivityNotFoundError:
        raise HTTPException(status_code=404, detail="Activity not found")
    except JoinError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    if not joined:
        return {"message": "Already joined", "joined": False}
    return {"message": "Joined activity", "joined": True}


@router.get("/activities/{activity_id}/expenses")
def list_expenses(activity_id: str, engine: Engine = Depends(get_engine)):
    repo = ActivitiesRepository(engine)
    try:
        expenses = repo.list_expenses(_parse_id(activity_id))
    except ActivityNotFoundError:
        raise HTTPException(status_code=404, detail="Activity not found")
    return {"expenses": [expense_to_dict(expense) for expense in expenses]}


@router.post("/activities/{activity_id}/expenses", status_code=201)
def add_expense(
    activity_id: str,
    payload: ExpenseIn,
    user_id: str = Depends(get_current_user_id),
    engine: Engine = Depends(get_engine),
):
    repo = ActivitiesRepository(engine)
    try:
        expense = repo.add_expense(_parse_id(activity_id), user_id, payload.label, payload.amount)
    except ActivityNotFoundError:
        raise HTTPException(status_code=404, detail="Activity not found")
    return {"ok": True, "expense": expense_to_dict(expense)}


def _parse_id(raw: str) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="Invalid activity id")
    if value <= 0:
        raise HTTPException(status_code=400, detail="Invalid activity id")
    return value
