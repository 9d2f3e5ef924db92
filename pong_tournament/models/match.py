import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pong_tournament.database import Base
from pong_tournament.utils.timestamps import utcnow


class MatchStatus(str, enum.Enum):
    pending = "pending"
    completed = "completed"


class Match(Base):
    """One pairing in a single-elimination bracket.

    Rows are created one round at a time and updated exactly once, when the
    result is recorded. The (tournament_id, round, match_number) constraint
    keeps a round from being generated twice.
    """
    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint(
            "tournament_id", "round", "match_number", name="uq_match_tournament_round_number"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tournament_id: Mapped[int] = mapped_column(
        ForeignKey("tournaments.id", ondelete="CASCADE"), index=True, nullable=False
    )
    round: Mapped[int] = mapped_column(Integer, nullable=False)
    match_number: Mapped[int] = mapped_column(Integer, nullable=False)
    player1_alias: Mapped[str] = mapped_column(String(100), nullable=False)
    player2_alias: Mapped[str] = mapped_column(String(100), nullable=False)
    player1_id: Mapped[int | None] = mapped_column(Integer)
    player2_id: Mapped[int | None] = mapped_column(Integer)
    winner_alias: Mapped[str | None] = mapped_column(String(100))
    winner_id: Mapped[int | None] = mapped_column(Integer)
    player1_score: Mapped[int | None] = mapped_column(Integer)
    player2_score: Mapped[int | None] = mapped_column(Integer)
    status: Mapped[MatchStatus] = mapped_column(
        Enum(MatchStatus, native_enum=False, length=20),
        nullable=False,
        default=MatchStatus.pending,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)

    tournament: Mapped["Tournament"] = relationship("Tournament", back_populates="matches")
