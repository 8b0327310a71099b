"""create billing_metrics table

Revision ID: 20260302_metrics
Revises: 20260302_1030
Create Date: 2026-03-02 11:00:00

Create billing_metrics table holding one pre-calculated snapshot per
calendar month (period YYYY-MM).
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '20260302_metrics'
down_revision = '20260302_1030'
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create billing_metrics table."""
    op.create_table(
        'billing_metrics',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            'period',
            sa.String(length=7),
            nullable=False,
            comment='Calendar month key YYYY-MM'
        ),
        sa.Column('mrr', sa.Numeric(precision=15, scale=2), nullable=False, comment='Monthly recurring revenue'),
        sa.Column('arr', sa.Numeric(precision=15, scale=2), nullable=False, comment='Annual recurring revenue (mrr * 12)'),
        sa.Column(
            'monthly_revenue',
            sa.Numeric(precision=15, scale=2),
            nullable=False,
            comment='Payments received in the period'
        ),
        sa.Column(
            'churn_rate',
            sa.Numeric(precision=9, scale=4),
            nullable=True,
            comment='Cancelled / active at period start (%)'
        ),
        sa.Column('arpu', sa.Numeric(precision=15, scale=2), nullable=True, comment='Average revenue per active customer'),
        sa.Column('ltv', sa.Numeric(precision=15, scale=2), nullable=True, comment='Lifetime value from the latest snapshot'),
        sa.Column('cac', sa.Numeric(precision=15, scale=2), nullable=True, comment='Customer acquisition cost'),
        sa.Column('pending_invoice_count', sa.Integer(), nullable=False),
        sa.Column('pending_amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('overdue_invoice_count', sa.Integer(), nullable=False),
        sa.Column('overdue_amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column(
            'collection_rate',
            sa.Numeric(precision=9, scale=4),
            nullable=True,
            comment='Paid / issued invoices in the period (%)'
        ),
        sa.Column(
            'created_at',
            sa.DateTime(),
            server_default=sa.text('CURRENT_TIMESTAMP'),
            nullable=False,
            comment='First computation timestamp'
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(),
            server_default=sa.text('CURRENT_TIMESTAMP'),
            nullable=False,
            comment='Last computation timestamp'
        ),
        sa.CheckConstraint('mrr >= 0', name='ck_billing_metrics_mrr_non_negative'),
        sa.CheckConstraint('arr >= 0', name='ck_billing_metrics_arr_non_negative'),
        sa.CheckConstraint('monthly_revenue >= 0', name='ck_billing_metrics_revenue_non_negative'),
        sa.CheckConstraint('pending_invoice_count >= 0', name='ck_billing_metrics_pending_count_non_negative'),
        sa.CheckConstraint('overdue_invoice_count >= 0', name='ck_billing_metrics_overdue_count_non_negative'),
        sa.PrimaryKeyConstraint('id')
    )

    # One snapshot per period
    op.create_index(
        'ix_billing_metrics_period',
        'billing_metrics',
        ['period'],
        unique=True
    )


def downgrade() -> None:
    """Drop billing_metrics table."""
    op.drop_index('ix_billing_metrics_period', table_name='billing_metrics')
    op.drop_table('billing_metrics')
