from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("display_name", sa.String(), nullable=False),
        sa.Column("avatar_url", sa.String(), nullable=True),
        sa.Column("home_address", sa.String(), nullable=True),
        sa.Column("home_lat", sa.Float(), nullable=True),
        sa.Column("home_lng", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "commute_preferences",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("direction", sa.String(), nullable=False),
        sa.Column("earliest_time", sa.String(), nullable=False),
        sa.Column("latest_time", sa.String(), nullable=False),
        sa.Column("days_of_week", sa.String(), nullable=False, server_default="[]"),
        sa.Column("role", sa.String(), nullable=False),
        sa.UniqueConstraint("user_id", "direction", name="uq_commute_preferences_user_direction"),
        sa.CheckConstraint("direction IN ('TO_WORK', 'FROM_WORK')", name="ck_commute_preferences_direction"),
        sa.CheckConstraint("role IN ('DRIVER', 'RIDER', 'EITHER')", name="ck_commute_preferences_role"),
    )
    op.create_index("ix_commute_preferences_user_id", "commute_preferences", ["user_id"], unique=False)

    op.create_table(
        "match_results",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_a_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_b_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("direction", sa.String(), nullable=False),
        sa.Column("detour_minutes", sa.Float(), nullable=False),
        sa.Column("time_overlap_minutes", sa.Float(), nullable=False),
        sa.Column("rank_score", sa.Float(), nullable=False),
        sa.Column("computed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_match_results_user_a_id", "match_results", ["user_a_id"], unique=False)
    op.create_index("ix_match_results_user_b_id", "match_results", ["user_b_id"], unique=False)


def downgrade():
    op.drop_index("ix_match_results_user_b_id", table_name="match_results")
    op.drop_index("ix_match_results_user_a_id", table_name="match_results")
    op.drop_table("match_results")
    op.drop_index("ix_commute_preferences_user_id", table_name="commute_preferences")
    op.drop_table("commute_preferences")
    op.drop_table("users")
