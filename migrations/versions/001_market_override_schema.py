"""Markets, products, keywords and user override tables

Revision ID: 001_market_override_schema
Revises: 
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import List, Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_market_override_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> List[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def _product_metric_columns() -> List[sa.Column]:
    """Columns shared by products and user_product_overrides (all nullable)."""
    return [
        sa.Column('asin', sa.String(length=20), nullable=True),
        sa.Column('title', sa.Text(), nullable=True),
        sa.Column('brand', sa.String(length=255), nullable=True),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('reviews', sa.Integer(), nullable=True),
        sa.Column('rating', sa.Numeric(precision=3, scale=2), nullable=True),
        sa.Column('bsr', sa.Integer(), nullable=True),
        sa.Column('monthly_sales', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('monthly_revenue', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('cogs', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('margin', sa.Numeric(precision=8, scale=4), nullable=True),
        sa.Column('profit_estimate', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('daily_revenue', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('fulfillment_fee', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('launch_budget', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('profit_per_unit', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('weight', sa.Numeric(precision=10, scale=3), nullable=True),
        sa.Column('variations', sa.Integer(), nullable=True),
        sa.Column('risk_classification', sa.String(length=50), nullable=True),
        sa.Column('consistency_rating', sa.String(length=50), nullable=True),
        sa.Column('opportunity_score', sa.Numeric(precision=4, scale=2), nullable=True),
        sa.Column('grade', sa.String(length=3), nullable=True),
    ]


def upgrade() -> None:
    # Create markets table
    op.create_table(
        'markets',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('keyword', sa.String(length=500), nullable=False),
        sa.Column('research_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('avg_price', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('avg_monthly_sales', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('avg_monthly_revenue', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('avg_daily_revenue', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('avg_profit_margin', sa.Numeric(precision=8, scale=4), nullable=True),
        sa.Column('avg_profit_per_unit', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('avg_reviews', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('avg_rating', sa.Numeric(precision=3, scale=2), nullable=True),
        sa.Column('avg_bsr', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('avg_cpc', sa.Numeric(precision=8, scale=2), nullable=True),
        sa.Column('avg_launch_budget', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('avg_cogs', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('market_grade', sa.String(length=3), nullable=True),
        sa.Column('market_risk_classification', sa.String(length=50), nullable=True),
        sa.Column('market_consistency_rating', sa.String(length=50), nullable=True),
        sa.Column('opportunity_score', sa.Integer(), nullable=True),
        sa.Column('total_products_analyzed', sa.Integer(), nullable=True),
        sa.Column('products_verified', sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_markets_user_id', 'markets', ['user_id'])
    op.create_index('idx_markets_user_keyword', 'markets', ['user_id', 'keyword'])

    # Create products table
    op.create_table(
        'products',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('market_id', postgresql.UUID(as_uuid=True), nullable=True),
        *_product_metric_columns(),
        *_timestamps(),
        sa.ForeignKeyConstraint(['market_id'], ['markets.id'], ondelete='CASCADE'),
        sa.CheckConstraint('price IS NULL OR price >= 0', name='check_product_price_non_negative'),
    )
    op.create_index('ix_products_user_id', 'products', ['user_id'])
    op.create_index('ix_products_market_id', 'products', ['market_id'])
    op.create_index('ix_products_asin', 'products', ['asin'])

    # Create keywords and product_keywords tables
    op.create_table(
        'keywords',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('keyword', sa.String(length=500), nullable=False),
        sa.Column('cpc', sa.Numeric(precision=8, scale=2), nullable=True),
        sa.Column('search_volume', sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_keywords_user_id', 'keywords', ['user_id'])

    op.create_table(
        'product_keywords',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('keyword_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['keyword_id'], ['keywords.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('product_id', 'keyword_id', name='uq_product_keywords_product_keyword'),
    )
    op.create_index('ix_product_keywords_product_id', 'product_keywords', ['product_id'])
    op.create_index('ix_product_keywords_keyword_id', 'product_keywords', ['keyword_id'])

    # Create user_product_overrides table (one row per user and product)
    op.create_table(
        'user_product_overrides',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), nullable=False),
        *_product_metric_columns(),
        sa.Column('avg_cpc', sa.Numeric(precision=8, scale=2), nullable=True),
        sa.Column('override_reason', sa.Text(), nullable=False, server_default=''),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', 'product_id', name='uq_user_product_overrides_user_product'),
    )
    op.create_index('ix_user_product_overrides_user_id', 'user_product_overrides', ['user_id'])
    op.create_index('ix_user_product_overrides_product_id', 'user_product_overrides', ['product_id'])

    # Create user_market_overrides table (one row per user and market)
    op.create_table(
        'user_market_overrides',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('market_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('keyword', sa.String(length=500), nullable=False, server_default=''),
        sa.Column('avg_price', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('avg_monthly_sales', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('avg_monthly_revenue', sa.Numeric(precision=14, scale=2), nullable=False, server_default='0'),
        sa.Column('avg_daily_revenue', sa.Numeric(precision=14, scale=2), nullable=False, server_default='0'),
        sa.Column('avg_profit_margin', sa.Numeric(precision=8, scale=4), nullable=False, server_default='0'),
        sa.Column('avg_profit_per_unit', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('avg_reviews', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('avg_rating', sa.Numeric(precision=3, scale=2), nullable=False, server_default='0'),
        sa.Column('avg_bsr', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('avg_cpc', sa.Numeric(precision=8, scale=2), nullable=False, server_default='0'),
        sa.Column('avg_launch_budget', sa.Numeric(precision=14, scale=2), nullable=False, server_default='0'),
        sa.Column('avg_cogs', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('market_grade', sa.String(length=3), nullable=False, server_default='F1'),
        sa.Column('market_risk_classification', sa.String(length=50), nullable=False, server_default='NoRisk'),
        sa.Column('market_consistency_rating', sa.String(length=50), nullable=False, server_default='Consistent'),
        sa.Column('opportunity_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_products_analyzed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('products_verified', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('override_reason', sa.Text(), nullable=False, server_default=''),
        sa.Column('recalculation_date', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['market_id'], ['markets.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', 'market_id', name='uq_user_market_overrides_user_market'),
    )
    op.create_index('ix_user_market_overrides_user_id', 'user_market_overrides', ['user_id'])
    op.create_index('ix_user_market_overrides_market_id', 'user_market_overrides', ['market_id'])


def downgrade() -> None:
    # Drop tables in reverse order
    op.drop_table('user_market_overrides')
    op.drop_table('user_product_overrides')
    op.drop_table('product_keywords')
    op.drop_table('keywords')
    op.drop_table('products')
    op.drop_table('markets')
