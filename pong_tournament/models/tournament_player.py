from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pong_tournament.database import Base
from pong_tournament.utils.timestamps import utcnow

MAX_ALIAS_LENGTH = 100


class TournamentPlayer(Base):
    """A participant registered under an alias for one tournament.

    ``user_id`` is a weak reference to an account owned by the user service;
    anonymous players leave it empty.
    """
    __tablename__ = "tournament_players"
    __table_args__ = (
        UniqueConstraint("tournament_id", "alias", name="uq_tournament_player_alias"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tournament_id: Mapped[int] = mapped_column(
        ForeignKey("tournaments.id", ondelete="CASCADE"), index=True, nullable=False
    )
    alias: Mapped[str] = mapped_column(String(MAX_ALIAS_LENGTH), nullable=False)
    user_id: Mapped[int | None] = mapped_column(Integer, index=True)
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    tournament: Mapped["Tournament"] = relationship("Tournament", back_populates="players")
