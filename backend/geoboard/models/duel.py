import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from geoboard.db.base import Base

class DuelResult(Base):
    __tablename__ = "duel_results"

    id: Mapped[str] = mapped_column(sa.Text, primary_key=True)
    duel_seed: Mapped[str] = mapped_column(sa.Text, nullable=False)
    game_type: Mapped[str] = mapped_column(sa.Text, nullable=False)

    challenger_id: Mapped[str] = mapped_column(sa.Text, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    challenger_game_id: Mapped[str] = mapped_column(sa.Text, nullable=False)
    challenger_score: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    challenger_time: Mapped[int] = mapped_column(sa.Integer, nullable=False)  # seconds

    accepter_id: Mapped[str] = mapped_column(sa.Text, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    accepter_game_id: Mapped[str] = mapped_column(sa.Text, nullable=False)
    accepter_score: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    accepter_time: Mapped[int] = mapped_column(sa.Integer, nullable=False)

    winner_id: Mapped[str] = mapped_column(sa.Text, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    points_earned: Mapped[int] = mapped_column(sa.Integer, nullable=False)

    completed_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), nullable=False)

    __table_args__ = (
        sa.UniqueConstraint("duel_seed", "challenger_game_id", "accepter_game_id", name="uq_duel_results_games"),
        sa.Index("ix_duel_results_challenger", "challenger_id", sa.text("completed_at DESC")),
        sa.Index("ix_duel_results_accepter", "accepter_id", sa.text("completed_at DESC")),
    )


class DuelStat(Base):
    __tablename__ = "duel_stats"

    player_id: Mapped[str] = mapped_column(sa.Text, sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    game_type: Mapped[str] = mapped_column(sa.Text, primary_key=True)

    wins: Mapped[int] = mapped_column(sa.Integer, nullable=False, server_default="0")
    losses: Mapped[int] = mapped_column(sa.Integer, nullable=False, server_default="0")
    total_duels: Mapped[int] = mapped_column(sa.Integer, nullable=False, server_default="0")
    win_rate: Mapped[float] = mapped_column(sa.Float, nullable=False, server_default="0")
    duel_points: Mapped[int] = mapped_column(sa.Integer, nullable=False, server_default="0")

    rank: Mapped[int | None] = mapped_column(sa.Integer, nullable=True)

    updated_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())

    __table_args__ = (
        sa.CheckConstraint("total_duels = wins + losses", name="ck_duel_stats_totals"),
        sa.CheckConstraint("duel_points >= 0", name="ck_duel_stats_points"),
        sa.Index("ix_duel_stats_partition_rank", "game_type", "rank"),
    )
