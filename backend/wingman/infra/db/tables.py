from __future__ import annotations

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

activities_table = Table(
    "activities",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False),
    Column("description", Text),
    Column("lat", Float, nullable=False),
    Column("lng", Float, nullable=False),
    Column("host_id", Text, nullable=False, index=True),
    Column("types", JSON),
    Column("tags", JSON),
    Column("budget", Text),
    Column("duration", Text),
    Column("location_type", Text),
    Column("social_vibe", Text),
    Column("date_time", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True), nullable=False, index=True),
)

activity_participants_table = Table(
    "activity_participants",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("activity_id", Integer, ForeignKey("activities.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("user_id", Text, nullable=False, index=True),
    Column("joined_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("activity_id", "user_id", name="uq_participant_activity_user"),
)

activity_expenses_table = Table(
    "activity_expenses",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("activity_id", Integer, ForeignKey("activities.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("user_id", Text, nullable=False),
    Column("label", Text, nullable=False),
    Column("amount", Float, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)
