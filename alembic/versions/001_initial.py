# alembic/versions/001_initial.py

"""Initial schema: stocks and mutual funds

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Create stocks table
    op.create_table('stocks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ticker', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('exchange', sa.String(length=8), nullable=False),
        sa.Column('sector', sa.String(length=100), nullable=False),
        sa.Column('industry', sa.String(length=100), nullable=False),
        sa.Column('current_price', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('previous_close', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('day_change', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('day_change_percent', sa.Numeric(precision=8, scale=2), nullable=False),
        sa.Column('volume', sa.BigInteger(), nullable=False),
        sa.Column('high_52_week', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('low_52_week', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('market_cap', sa.Numeric(precision=20, scale=2), nullable=True),
        sa.Column('price_history', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_penny_stock', sa.Boolean(), nullable=False),
        sa.Column('last_updated', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_stocks_ticker', 'stocks', ['ticker'], unique=True)
    op.create_index('ix_stocks_is_penny_stock', 'stocks', ['is_penny_stock'])
    op.create_index('ix_stocks_active_sector', 'stocks', ['is_active', 'sector'])

    # Create mutual_funds table
    op.create_table('mutual_funds',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('scheme_code', sa.String(length=32), nullable=False),
        sa.Column('scheme_name', sa.String(length=255), nullable=False),
        sa.Column('fund_house', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False),
        sa.Column('sub_category', sa.String(length=50), nullable=False),
        sa.Column('nav', sa.Numeric(precision=14, scale=4), nullable=False),
        sa.Column('previous_nav', sa.Numeric(precision=14, scale=4), nullable=False),
        sa.Column('nav_change', sa.Numeric(precision=14, scale=4), nullable=False),
        sa.Column('nav_change_percent', sa.Numeric(precision=8, scale=2), nullable=False),
        sa.Column('nav_date', sa.Date(), nullable=False),
        sa.Column('nav_date_estimated', sa.Boolean(), nullable=False),
        sa.Column('nav_history', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_updated', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_mutual_funds_scheme_code', 'mutual_funds', ['scheme_code'], unique=True)
    op.create_index('ix_mutual_funds_category', 'mutual_funds', ['category'])


def downgrade():
    op.drop_index('ix_mutual_funds_category', table_name='mutual_funds')
    op.drop_index('ix_mutual_funds_scheme_code', table_name='mutual_funds')
    op.drop_table('mutual_funds')
    op.drop_index('ix_stocks_active_sector', table_name='stocks')
    op.drop_index('ix_stocks_is_penny_stock', table_name='stocks')
    op.drop_index('ix_stocks_ticker', table_name='stocks')
    op.drop_table('stocks')
