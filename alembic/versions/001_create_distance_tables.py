"""Create distance cache and API usage tables.

Revision ID: 001_create_distance_tables
Revises:
Create Date: 2026-10-19

Creates distance_cache and kakao_api_usage. address_change_logs belongs to
the address management schema; it is only created here when missing so the
service can run against a standalone database.
"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "001_create_distance_tables"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def _json() -> sa.types.TypeEngine:
    return sa.JSON()


def upgrade() -> None:
    """Create tables and indexes."""
    op.create_table(
        "distance_cache",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("pickup_address_id", sa.String(64), nullable=False),
        sa.Column("delivery_address_id", sa.String(64), nullable=False),
        sa.Column("pickup_lat", sa.Float(), nullable=False),
        sa.Column("pickup_lng", sa.Float(), nullable=False),
        sa.Column("delivery_lat", sa.Float(), nullable=False),
        sa.Column("delivery_lng", sa.Float(), nullable=False),
        sa.Column("distance_km", sa.Numeric(10, 2), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column(
            "route_priority",
            sa.String(20),
            server_default="RECOMMEND",
            nullable=False,
        ),
        sa.Column("provider_response", _json(), nullable=True),
        sa.Column("is_valid", sa.Boolean(), server_default=sa.true(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index(
        "ix_distance_cache_address_pair",
        "distance_cache",
        ["pickup_address_id", "delivery_address_id", "route_priority"],
    )
    op.create_index(
        "ix_distance_cache_latest",
        "distance_cache",
        ["pickup_address_id", "delivery_address_id", "created_at"],
    )
    op.create_index("ix_distance_cache_valid", "distance_cache", ["is_valid", "created_at"])

    op.create_table(
        "kakao_api_usage",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("api_type", sa.String(30), nullable=False),
        sa.Column("endpoint", sa.String(200), nullable=True),
        sa.Column("request_params", _json(), nullable=False),
        sa.Column("response_status", sa.Integer(), nullable=False),
        sa.Column("response_time_ms", sa.Integer(), nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("error_message", sa.String(500), nullable=True),
        sa.Column("result_count", sa.Integer(), nullable=True),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column(
            "ip_address",
            sa.String(45),
            server_default="127.0.0.1",
            nullable=False,
        ),
        sa.Column("user_agent", sa.String(500), nullable=True),
        sa.Column("estimated_cost", sa.Integer(), server_default="0", nullable=True),
        _timestamp("created_at"),
    )
    op.create_index("ix_kakao_api_usage_type_date", "kakao_api_usage", ["api_type", "created_at"])
    op.create_index("ix_kakao_api_usage_user_date", "kakao_api_usage", ["user_id", "created_at"])
    op.create_index(
        "ix_kakao_api_usage_success_date", "kakao_api_usage", ["success", "created_at"]
    )
    op.create_index(
        "ix_kakao_api_usage_performance",
        "kakao_api_usage",
        ["response_time_ms", "created_at"],
    )

    inspector = sa.inspect(op.get_bind())
    if not inspector.has_table("address_change_logs"):
        op.create_table(
            "address_change_logs",
            sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
            sa.Column("address_id", sa.String(64), nullable=False),
            sa.Column("change_type", sa.String(20), server_default="update", nullable=False),
            sa.Column("changes", _json(), nullable=False),
            sa.Column("changed_by", sa.String(64), nullable=True),
            sa.Column("reason", sa.Text(), nullable=True),
            _timestamp("created_at"),
        )
        op.create_index(
            "ix_address_change_logs_address_created",
            "address_change_logs",
            ["address_id", "created_at"],
        )


def downgrade() -> None:
    """Drop the tables owned by this service."""
    op.drop_table("kakao_api_usage")
    op.drop_table("distance_cache")
