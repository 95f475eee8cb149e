import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from geoboard.db.base import Base

class GameResult(Base):
    __tablename__ = "game_results"

    id: Mapped[str] = mapped_column(sa.Text, primary_key=True)
    game_id: Mapped[str] = mapped_column(sa.Text, nullable=False, unique=True)
    player_id: Mapped[str | None] = mapped_column(sa.Text, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    guest_id: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    game_type: Mapped[str] = mapped_column(sa.Text, nullable=False)

    total_score: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    average_score: Mapped[float] = mapped_column(sa.Float, nullable=False)
    total_distance: Mapped[float] = mapped_column(sa.Float, nullable=False)

    completed_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), nullable=False)

    __table_args__ = (
        sa.CheckConstraint(
            "(player_id IS NULL AND guest_id IS NOT NULL) OR (player_id IS NOT NULL AND guest_id IS NULL)",
            name="ck_game_results_single_identity",
        ),
        sa.Index("ix_game_results_type_score", "game_type", sa.text("total_score DESC"), "completed_at"),
        sa.Index("ix_game_results_player", "player_id", "game_type"),
        sa.Index("ix_game_results_guest", "guest_id"),
    )
