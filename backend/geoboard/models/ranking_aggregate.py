import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from geoboard.db.base import Base

class RankingAggregate(Base):
    __tablename__ = "ranking_aggregates"

    player_id: Mapped[str] = mapped_column(sa.Text, sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    game_type: Mapped[str] = mapped_column(sa.Text, primary_key=True)  # variant or "overall"
    period: Mapped[str] = mapped_column(sa.Text, primary_key=True)
    period_key: Mapped[str] = mapped_column(sa.Text, primary_key=True)

    total_score: Mapped[int] = mapped_column(sa.BigInteger, nullable=False, server_default="0")
    total_games: Mapped[int] = mapped_column(sa.Integer, nullable=False, server_default="0")
    average_score: Mapped[float] = mapped_column(sa.Float, nullable=False, server_default="0")
    best_score: Mapped[int] = mapped_column(sa.Integer, nullable=False, server_default="0")

    # Snapshot refreshed on every write
    player_name: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    player_image: Mapped[str | None] = mapped_column(sa.Text, nullable=True)

    rank: Mapped[int | None] = mapped_column(sa.Integer, nullable=True)

    updated_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())

    __table_args__ = (
        sa.CheckConstraint("period IN ('daily','weekly','monthly','alltime')", name="ck_ranking_aggregates_period"),
        sa.Index("ix_ranking_aggregates_partition_rank", "game_type", "period", "period_key", "rank"),
        sa.Index("ix_ranking_aggregates_partition_total", "game_type", "period", "period_key", sa.text("total_score DESC")),
        sa.Index("ix_ranking_aggregates_player", "player_id", "period"),
    )
