"""Initial schema: tenants, invoices

Revision ID: 4be1c07a9d52
Revises:
Create Date: 2026-03-02 09:15:42.318004

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '4be1c07a9d52'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the source tables read by the metrics engine."""
    # Enable UUID extension
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # Create enums
    op.execute("CREATE TYPE tenantplan AS ENUM ('basic', 'premium', 'enterprise')")
    op.execute("CREATE TYPE tenantstatus AS ENUM ('active', 'inactive', 'suspended', 'cancelled')")
    op.execute("CREATE TYPE invoicestatus AS ENUM ('pending', 'paid', 'overdue', 'cancelled')")

    # 1. Tenants table (no dependencies)
    op.create_table(
        'tenants',
        sa.Column('id', sa.UUID(), server_default=sa.text('uuid_generate_v4()'), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('tenant_code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('city', sa.String(), nullable=True),
        sa.Column('state', sa.String(length=2), nullable=True),
        sa.Column(
            'plan',
            postgresql.ENUM('basic', 'premium', 'enterprise', name='tenantplan', create_type=False),
            nullable=False,
            server_default='basic',
        ),
        sa.Column(
            'status',
            postgresql.ENUM('active', 'inactive', 'suspended', 'cancelled', name='tenantstatus', create_type=False),
            nullable=False,
            server_default='active',
        ),
        sa.Column('monthly_price', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_tenants_id'), 'tenants', ['id'])
    op.create_index(op.f('ix_tenants_created_at'), 'tenants', ['created_at'])
    op.create_index(op.f('ix_tenants_tenant_code'), 'tenants', ['tenant_code'], unique=True)
    op.create_index(op.f('ix_tenants_plan'), 'tenants', ['plan'])
    op.create_index(op.f('ix_tenants_status'), 'tenants', ['status'])

    # 2. Invoices table (depends on tenants)
    op.create_table(
        'invoices',
        sa.Column('id', sa.UUID(), server_default=sa.text('uuid_generate_v4()'), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('tenant_id', sa.UUID(), nullable=False),
        sa.Column('number', sa.String(), nullable=False),
        sa.Column('billing_period', sa.String(length=7), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column(
            'status',
            postgresql.ENUM('pending', 'paid', 'overdue', 'cancelled', name='invoicestatus', create_type=False),
            nullable=False,
            server_default='pending',
        ),
        sa.Column('due_date', sa.DateTime(), nullable=False),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('payment_method', sa.String(), nullable=True),
        sa.Column(
            'plan',
            postgresql.ENUM('basic', 'premium', 'enterprise', name='tenantplan', create_type=False),
            nullable=False,
            server_default='basic',
        ),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_invoices_id'), 'invoices', ['id'])
    op.create_index(op.f('ix_invoices_created_at'), 'invoices', ['created_at'])
    op.create_index(op.f('ix_invoices_tenant_id'), 'invoices', ['tenant_id'])
    op.create_index(op.f('ix_invoices_number'), 'invoices', ['number'], unique=True)
    op.create_index(op.f('ix_invoices_status'), 'invoices', ['status'])
    op.create_index(op.f('ix_invoices_due_date'), 'invoices', ['due_date'])


def downgrade() -> None:
    """Drop all tables."""
    # Drop tables in reverse dependency order
    op.drop_table('invoices')
    op.drop_table('tenants')

    # Drop enums
    op.execute("DROP TYPE IF EXISTS invoicestatus")
    op.execute("DROP TYPE IF EXISTS tenantstatus")
    op.execute("DROP TYPE IF EXISTS tenantplan")
