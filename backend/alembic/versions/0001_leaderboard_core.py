"""leaderboard core: game results, ranking aggregates, duels

Revision ID: 0001_leaderboard_core
Revises: 
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

revision = "0001_leaderboard_core"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # users is owned by the account service; created here only when absent
    bind = op.get_bind()
    if not sa.inspect(bind).has_table("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.Text, primary_key=True),
            sa.Column("name", sa.Text, nullable=True),
            sa.Column("nickname", sa.Text, nullable=True),
            sa.Column("image", sa.Text, nullable=True),
            sa.Column("email", sa.Text, nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        )

    op.create_table(
        "game_results",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("game_id", sa.Text, nullable=False, unique=True),
        sa.Column("player_id", sa.Text, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=True),
        sa.Column("guest_id", sa.Text, nullable=True),
        sa.Column("game_type", sa.Text, nullable=False),
        sa.Column("total_score", sa.Integer, nullable=False),
        sa.Column("average_score", sa.Float, nullable=False),
        sa.Column("total_distance", sa.Float, nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "(player_id IS NULL AND guest_id IS NOT NULL) OR (player_id IS NOT NULL AND guest_id IS NULL)",
            name="ck_game_results_single_identity",
        ),
    )
    op.create_index("ix_game_results_type_score", "game_results", ["game_type", sa.text("total_score DESC"), "completed_at"])
    op.create_index("ix_game_results_player", "game_results", ["player_id", "game_type"])
    op.create_index("ix_game_results_guest", "game_results", ["guest_id"])

    op.create_table(
        "ranking_aggregates",
        sa.Column("player_id", sa.Text, sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("game_type", sa.Text, primary_key=True),
        sa.Column("period", sa.Text, primary_key=True),
        sa.Column("period_key", sa.Text, primary_key=True),
        sa.Column("total_score", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("total_games", sa.Integer, nullable=False, server_default="0"),
        sa.Column("average_score", sa.Float, nullable=False, server_default="0"),
        sa.Column("best_score", sa.Integer, nullable=False, server_default="0"),
        sa.Column("player_name", sa.Text, nullable=True),
        sa.Column("player_image", sa.Text, nullable=True),
        sa.Column("rank", sa.Integer, nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("period IN ('daily','weekly','monthly','alltime')", name="ck_ranking_aggregates_period"),
    )
    op.create_index(
        "ix_ranking_aggregates_partition_rank",
        "ranking_aggregates",
        ["game_type", "period", "period_key", "rank"],
    )
    op.create_index(
        "ix_ranking_aggregates_partition_total",
        "ranking_aggregates",
        ["game_type", "period", "period_key", sa.text("total_score DESC")],
    )
    op.create_index("ix_ranking_aggregates_player", "ranking_aggregates", ["player_id", "period"])

    op.create_table(
        "duel_results",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("duel_seed", sa.Text, nullable=False),
        sa.Column("game_type", sa.Text, nullable=False),
        sa.Column("challenger_id", sa.Text, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("challenger_game_id", sa.Text, nullable=False),
        sa.Column("challenger_score", sa.Integer, nullable=False),
        sa.Column("challenger_time", sa.Integer, nullable=False),
        sa.Column("accepter_id", sa.Text, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("accepter_game_id", sa.Text, nullable=False),
        sa.Column("accepter_score", sa.Integer, nullable=False),
        sa.Column("accepter_time", sa.Integer, nullable=False),
        sa.Column("winner_id", sa.Text, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("points_earned", sa.Integer, nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("duel_seed", "challenger_game_id", "accepter_game_id", name="uq_duel_results_games"),
    )
    op.create_index("ix_duel_results_challenger", "duel_results", ["challenger_id", sa.text("completed_at DESC")])
    op.create_index("ix_duel_results_accepter", "duel_results", ["accepter_id", sa.text("completed_at DESC")])

    op.create_table(
        "duel_stats",
        sa.Column("player_id", sa.Text, sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("game_type", sa.Text, primary_key=True),
        sa.Column("wins", sa.Integer, nullable=False, server_default="0"),
        sa.Column("losses", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_duels", sa.Integer, nullable=False, server_default="0"),
        sa.Column("win_rate", sa.Float, nullable=False, server_default="0"),
        sa.Column("duel_points", sa.Integer, nullable=False, server_default="0"),
        sa.Column("rank", sa.Integer, nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("total_duels = wins + losses", name="ck_duel_stats_totals"),
        sa.CheckConstraint("duel_points >= 0", name="ck_duel_stats_points"),
    )
    op.create_index("ix_duel_stats_partition_rank", "duel_stats", ["game_type", "rank"])


def downgrade():
    op.drop_index("ix_duel_stats_partition_rank", table_name="duel_stats")
    op.drop_table("duel_stats")
    op.drop_index("ix_duel_results_accepter", table_name="duel_results")
    op.drop_index("ix_duel_results_challenger", table_name="duel_results")
    op.drop_table("duel_results")
    op.drop_index("ix_ranking_aggregates_player", table_name="ranking_aggregates")
    op.drop_index("ix_ranking_aggregates_partition_total", table_name="ranking_aggregates")
    op.drop_index("ix_ranking_aggregates_partition_rank", table_name="ranking_aggregates")
    op.drop_table("ranking_aggregates")
    op.drop_index("ix_game_results_guest", table_name="game_results")
    op.drop_index("ix_game_results_player", table_name="game_results")
    op.drop_index("ix_game_results_type_score", table_name="game_results")
    op.drop_table("game_results")
