import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pong_tournament.database import Base
from pong_tournament.utils.timestamps import utcnow

ALLOWED_MAX_PLAYERS = (2, 4, 8, 16)
MAX_NAME_LENGTH = 255


class TournamentStatus(str, enum.Enum):
    """Lifecycle flag; transitions only move forward."""
    waiting = "waiting"
    in_progress = "in_progress"
    completed = "completed"


class Tournament(Base):
    __tablename__ = "tournaments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(MAX_NAME_LENGTH), nullable=False)
    max_players: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[TournamentStatus] = mapped_column(
        Enum(TournamentStatus, native_enum=False, length=20),
        nullable=False,
        default=TournamentStatus.waiting,
        index=True,
    )
    champion_alias: Mapped[str | None] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Relationships
    players: Mapped[list["TournamentPlayer"]] = relationship(
        "TournamentPlayer", back_populates="tournament", order_by="TournamentPlayer.joined_at"
    )
    matches: Mapped[list["Match"]] = relationship("Match", back_populates="tournament")
