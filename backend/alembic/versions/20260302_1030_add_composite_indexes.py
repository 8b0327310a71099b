"""Add composite indexes for metric aggregate queries

Revision ID: 20260302_1030
Revises: 4be1c07a9d52
Create Date: 2026-03-02 10:30:00.000000

"""
from alembic import op


# revision identifiers, used by Alembic.
revision = '20260302_1030'
down_revision = '4be1c07a9d52'
branch_labels = None
depends_on = None


def upgrade():
    """Add composite indexes for metric aggregate queries."""

    # Tenants: status + created_at (active at period start, new customers)
    op.create_index(
        'ix_tenants_status_created_at',
        'tenants',
        ['status', 'created_at'],
        unique=False
    )

    # Tenants: status + updated_at (cancellations within a period)
    op.create_index(
        'ix_tenants_status_updated_at',
        'tenants',
        ['status', 'updated_at'],
        unique=False
    )

    # Invoices: status + paid_at (monthly revenue)
    op.create_index(
        'ix_invoices_status_paid_at',
        'invoices',
        ['status', 'paid_at'],
        unique=False
    )

    # Invoices: status + due_date (overdue sweep)
    op.create_index(
        'ix_invoices_status_due_date',
        'invoices',
        ['status', 'due_date'],
        unique=False
    )


def downgrade():
    """Remove composite indexes."""
    op.drop_index('ix_invoices_status_due_date', table_name='invoices')
    op.drop_index('ix_invoices_status_paid_at', table_name='invoices')
    op.drop_index('ix_tenants_status_updated_at', table_name='tenants')
    op.drop_index('ix_tenants_status_created_at', table_name='tenants')
