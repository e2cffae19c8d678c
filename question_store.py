"""
Relational question bank: questions, attempts and per-domain totals.

Backed by SQLAlchemy so the same code runs against a hosted Postgres or a
local SQLite file (``DATABASE_URL``). Every failure surfaces as StoreError.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text, create_engine, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column

from quiz_models import ALL_DOMAINS, LETTERS, Question

logger = logging.getLogger(__name__)

FETCH_LIMIT = 500


class StoreError(Exception):
    pass


def _now():
    return datetime.now(timezone.utc)


# ─────────────────────────────────────────────────────────────────────────────
# TABLES
# ─────────────────────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    pass


class QuestionRow(Base):
    __tablename__ = "questions"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    domain: Mapped[str] = mapped_column(String(120), index=True)
    difficulty: Mapped[str] = mapped_column(String(10))
    mode: Mapped[str] = mapped_column(String(10), index=True)
    question: Mapped[str] = mapped_column(Text)
    choice_a: Mapped[str] = mapped_column(Text)
    choice_b: Mapped[str] = mapped_column(Text)
    choice_c: Mapped[str] = mapped_column(Text)
    choice_d: Mapped[str] = mapped_column(Text)
    correct_choice: Mapped[str] = mapped_column(String(1))
    explanation: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)

    def as_dict(self):
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}


class AttemptRow(Base):
    __tablename__ = "attempts"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question_id: Mapped[str] = mapped_column(String(36), index=True)
    domain: Mapped[str] = mapped_column(String(120))
    mode: Mapped[str] = mapped_column(String(10))
    difficulty: Mapped[str] = mapped_column(String(10))
    selected_choice: Mapped[Optional[str]] = mapped_column(String(1), nullable=True)
    correct_choice: Mapped[str] = mapped_column(String(1))
    is_correct: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    session_id: Mapped[str] = mapped_column(String(64), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)


class DomainStatRow(Base):
    __tablename__ = "domain_stats"
    domain: Mapped[str] = mapped_column(String(120), primary_key=True)
    total_attempts: Mapped[int] = mapped_column(Integer, default=0)
    total_correct: Mapped[int] = mapped_column(Integer, default=0)
    last_mode: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)


@dataclass(frozen=True)
class DomainStat:
    domain:         str
    total_attempts: int
    total_correct:  int
    last_mode:      Optional[str]
    updated_at:     Optional[datetime]


# ─────────────────────────────────────────────────────────────────────────────
# STORE
# ─────────────────────────────────────────────────────────────────────────────
class QuestionStore:
    def __init__(self, engine):
        self.engine = engine

    @classmethod
    def from_url(cls, url, **engine_kwargs):
        try:
            engine = create_engine(url, **engine_kwargs)
            Base.metadata.create_all(engine)
        except SQLAlchemyError as exc:
            raise StoreError(f"could not open question bank: {exc}") from exc
        return cls(engine)

    def fetch_questions(self, mode, domain=None, limit=FETCH_LIMIT):
        stmt = select(QuestionRow).where(QuestionRow.mode == mode)
        if domain and domain != ALL_DOMAINS:
            stmt = stmt.where(QuestionRow.domain == domain)
        stmt = stmt.limit(limit)
        try:
            with Session(self.engine) as db:
                rows = db.scalars(stmt).all()
                return [Question.from_row(r.as_dict()) for r in rows]
        except SQLAlchemyError as exc:
            logger.error("questions select failed: %s", exc)
            raise StoreError(str(exc)) from exc

    def fetch_domains(self):
        stmt = select(QuestionRow.domain).distinct()
        try:
            with Session(self.engine) as db:
                return sorted(d for d in db.scalars(stmt).all() if d)
        except SQLAlchemyError as exc:
            logger.error("domain list select failed: %s", exc)
            raise StoreError(str(exc)) from exc

    def record_attempt(self, question_id, domain, mode, difficulty, selected_choice,
                       correct_choice, is_correct, session_id):
        row = AttemptRow(
            question_id=question_id, domain=domain, mode=mode, difficulty=difficulty,
            selected_choice=selected_choice, correct_choice=correct_choice,
            is_correct=is_correct, session_id=session_id,
        )
        try:
            with Session(self.engine) as db:
                db.add(row)
                db.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"attempts insert failed: {exc}") from exc

    def upsert_domain_stats(self, domain, attempts_inc, correct_inc, mode):
        """Atomically add to a domain's running totals, creating the row on first use."""
        bump = (
            update(DomainStatRow)
            .where(DomainStatRow.domain == domain)
            .values(
                total_attempts=DomainStatRow.total_attempts + attempts_inc,
                total_correct=DomainStatRow.total_correct + correct_inc,
                last_mode=mode,
                updated_at=_now(),
            )
            .execution_options(synchronize_session=False)
        )
        try:
            with Session(self.engine) as db:
                if db.execute(bump).rowcount:
                    db.commit()
                    return
                db.add(DomainStatRow(domain=domain, total_attempts=attempts_inc,
                                     total_correct=correct_inc, last_mode=mode))
                try:
                    db.commit()
                except IntegrityError:
                    # another writer created the row first
                    db.rollback()
                    db.execute(bump)
                    db.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"domain_stats upsert failed: {exc}") from exc

    def fetch_domain_stats(self):
        try:
            with Session(self.engine) as db:
                rows = db.scalars(select(DomainStatRow)).all()
                return [
                    DomainStat(r.domain, r.total_attempts, r.total_correct, r.last_mode, r.updated_at)
                    for r in rows
                ]
        except SQLAlchemyError as exc:
            logger.error("domain_stats select failed: %s", exc)
            raise StoreError(str(exc)) from exc

    def add_questions(self, rows):
        """Insert question rows (dicts shaped like the ``questions`` table). Returns the count."""
        objs = []
        for r in rows:
            if r["correct_choice"] not in LETTERS:
                raise ValueError(f"correct_choice must be one of A-D, got {r['correct_choice']!r}")
            objs.append(QuestionRow(**r))
        try:
            with Session(self.engine) as db:
                db.add_all(objs)
                db.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"questions insert failed: {exc}") from exc
        logger.info("added %d questions", len(objs))
        return len(objs)
