from sqlalchemy.sql.schema import ForeignKey
import sqlalchemy as sa
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
)
from datetime import datetime


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__: str = "users"

    user_id: Mapped[str] = mapped_column(sa.String(255), primary_key=True)
    username: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime,
        nullable=False,
        server_default=sa.func.now(),
        onupdate=sa.func.now(),
    )


class Schedule(Base):
    __tablename__: str = "schedules"

    schedule_id: Mapped[str] = mapped_column(sa.String(26), primary_key=True)
    schedule_name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    memo: Mapped[str] = mapped_column(sa.Text, nullable=False)
    created_by: Mapped[str] = mapped_column(
        sa.String(255), ForeignKey("users.user_id"), nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(sa.DateTime, nullable=False)


class Candidate(Base):
    __tablename__: str = "candidates"
    # Ids are never reused, even after the newest candidate is deleted.
    __table_args__ = {"sqlite_autoincrement": True}

    candidate_id: Mapped[int] = mapped_column(
        sa.Integer, primary_key=True, autoincrement=True
    )
    candidate_name: Mapped[str] = mapped_column(sa.Text, nullable=False)
    schedule_id: Mapped[str] = mapped_column(
        sa.String(26), ForeignKey("schedules.schedule_id"), nullable=False, index=True
    )


class Availability(Base):
    __tablename__: str = "availabilities"

    schedule_id: Mapped[str] = mapped_column(
        sa.String(26), ForeignKey("schedules.schedule_id"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(
        sa.String(255), ForeignKey("users.user_id"), primary_key=True
    )
    candidate_id: Mapped[int] = mapped_column(
        sa.Integer, ForeignKey("candidates.candidate_id"), primary_key=True
    )
    availability: Mapped[int] = mapped_column(
        sa.Integer, nullable=False, server_default=sa.text("0")
    )


class Comment(Base):
    __tablename__: str = "comments"

    schedule_id: Mapped[str] = mapped_column(
        sa.String(26), ForeignKey("schedules.schedule_id"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(
        sa.String(255), ForeignKey("users.user_id"), primary_key=True
    )
    comment: Mapped[str] = mapped_column(sa.String(255), nullable=False)
