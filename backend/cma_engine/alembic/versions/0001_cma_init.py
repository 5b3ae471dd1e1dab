"""cma reports, children, and local sales history

Revision ID: 0001_cma_init
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_cma_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "cma_reports",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=True),
        sa.Column("zip_code", sa.String(length=10), nullable=False),
        sa.Column("property_type", sa.String(length=60), nullable=False),
        sa.Column("bedrooms", sa.Integer(), nullable=False),
        sa.Column("bathrooms", sa.Float(), nullable=False),
        sa.Column("sqft", sa.Integer(), nullable=False),
        sa.Column("year_built", sa.Integer(), nullable=True),
        sa.Column("lot_size", sa.Integer(), nullable=True),
        sa.Column("estimated_value", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("confidence_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="processing"),
        sa.Column("pricing_tier", sa.String(length=20), nullable=False, server_default="basic"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("report_date", sa.DateTime(), nullable=False),
        sa.Column("last_updated", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_cma_reports_user_id", "cma_reports", ["user_id"])
    op.create_index("ix_cma_reports_status", "cma_reports", ["status"])
    op.create_index("ix_cma_reports_user_report_date", "cma_reports", ["user_id", "report_date"])

    op.create_table(
        "cma_comparables",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "cma_report_id",
            sa.Integer(),
            sa.ForeignKey("cma_reports.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("state", sa.String(length=2), nullable=False, server_default=""),
        sa.Column("zip_code", sa.String(length=10), nullable=False),
        sa.Column("sale_price", sa.Integer(), nullable=False),
        sa.Column("sale_date", sa.Date(), nullable=False),
        sa.Column("bedrooms", sa.Integer(), nullable=False),
        sa.Column("bathrooms", sa.Float(), nullable=False),
        sa.Column("sqft", sa.Integer(), nullable=False),
        sa.Column("price_per_sqft", sa.Float(), nullable=False),
        sa.Column("year_built", sa.Integer(), nullable=True),
        sa.Column("lot_size", sa.Integer(), nullable=True),
        sa.Column("distance_from_subject", sa.Float(), nullable=False, server_default="0"),
        sa.Column("adjusted_price", sa.Integer(), nullable=False),
        sa.Column("similarity", sa.Float(), nullable=False),
        sa.Column("image_url", sa.String(length=500), nullable=True),
    )
    op.create_index("ix_cma_comparables_cma_report_id", "cma_comparables", ["cma_report_id"])

    op.create_table(
        "cma_market_insights",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "cma_report_id",
            sa.Integer(),
            sa.ForeignKey("cma_reports.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("insight_type", sa.String(length=40), nullable=False),
        sa.Column("title", sa.String(length=160), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("data_json", sa.Text(), nullable=True),
        sa.Column("importance", sa.Integer(), nullable=False, server_default="3"),
    )
    op.create_index("ix_cma_market_insights_cma_report_id", "cma_market_insights", ["cma_report_id"])

    op.create_table(
        "cma_pricing_adjustments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "cma_report_id",
            sa.Integer(),
            sa.ForeignKey("cma_reports.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("factor", sa.String(length=20), nullable=False),
        sa.Column("per_unit_value", sa.Integer(), nullable=False),
        sa.Column("direction", sa.String(length=10), nullable=False, server_default="positive"),
        sa.Column("description", sa.String(length=255), nullable=False),
    )
    op.create_index(
        "ix_cma_pricing_adjustments_cma_report_id", "cma_pricing_adjustments", ["cma_report_id"]
    )

    op.create_table(
        "property_sales",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("state", sa.String(length=2), nullable=False, server_default=""),
        sa.Column("zip_code", sa.String(length=10), nullable=False),
        sa.Column("property_type", sa.String(length=60), nullable=False),
        sa.Column("sale_price", sa.Integer(), nullable=False),
        sa.Column("sale_date", sa.Date(), nullable=False),
        sa.Column("bedrooms", sa.Integer(), nullable=False),
        sa.Column("bathrooms", sa.Float(), nullable=False),
        sa.Column("square_feet", sa.Integer(), nullable=False),
        sa.Column("year_built", sa.Integer(), nullable=True),
        sa.Column("lot_size", sa.Integer(), nullable=True),
        sa.Column("days_on_market", sa.Integer(), nullable=True),
        sa.Column("image_url", sa.String(length=500), nullable=True),
        sa.Column("source", sa.String(length=40), nullable=False, server_default="csv"),
        sa.Column("fingerprint", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("fingerprint", name="uq_property_sales_fingerprint"),
    )
    op.create_index(
        "ix_property_sales_zip_type_date", "property_sales", ["zip_code", "property_type", "sale_date"]
    )


def downgrade():
    op.drop_index("ix_property_sales_zip_type_date", table_name="property_sales")
    op.drop_table("property_sales")
    op.drop_index("ix_cma_pricing_adjustments_cma_report_id", table_name="cma_pricing_adjustments")
    op.drop_table("cma_pricing_adjustments")
    op.drop_index("ix_cma_market_insights_cma_report_id", table_name="cma_market_insights")
    op.drop_table("cma_market_insights")
    op.drop_index("ix_cma_comparables_cma_report_id", table_name="cma_comparables")
    op.drop_table("cma_comparables")
    op.drop_index("ix_cma_reports_user_report_date", table_name="cma_reports")
    op.drop_index("ix_cma_reports_status", table_name="cma_reports")
    op.drop_index("ix_cma_reports_user_id", table_name="cma_reports")
    op.drop_table("cma_reports")
