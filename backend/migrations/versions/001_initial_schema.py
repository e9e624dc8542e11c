"""
Alembic migration: Initial marketplace schema.

Creates the districts, users, products and orders tables with their foreign
keys, check constraints and indexes, and seeds the initial district list.

Revision ID: 001
Revises:
Create Date: 2024-01-05 10:12:31.503118
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SEED_DISTRICTS = (
    'Dhaka',
    'Chittagong',
    'Rajshahi',
    'Khulna',
    'Barisal',
    'Sylhet',
    'Rangpur',
    'Mymensingh',
    'Comilla',
    'Gazipur',
    'Narayanganj',
    'Bogra',
    'Jessore',
    'Dinajpur',
    'Kushtia',
    'Faridpur',
    'Pabna',
    'Noakhali',
    'Brahmanbaria',
    'Tangail',
)


def _id_column() -> sa.Column:
    return sa.Column(
        'id',
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text('gen_random_uuid()'),
        nullable=False,
        comment='Unique identifier for the record',
    )


def _timestamp_columns() -> list[sa.Column]:
    return [
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()'),
            comment='Timestamp when record was created',
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()'),
            comment='Timestamp when record was last updated',
        ),
    ]


def upgrade() -> None:
    """
    Create the marketplace tables and seed districts.
    """
    op.create_table(
        'districts',
        _id_column(),
        sa.Column('name', sa.String(100), nullable=False, comment='District name'),
        *_timestamp_columns(),
        sa.UniqueConstraint('name', name='uq_districts_name'),
        sa.CheckConstraint('length(name) >= 2', name='ck_districts_name_min_length'),
        comment='Administrative districts scoping products and agents',
    )

    op.create_table(
        'users',
        _id_column(),
        sa.Column('name', sa.String(255), nullable=False, comment='User display name'),
        sa.Column(
            'phone',
            sa.String(20),
            nullable=False,
            comment='Phone number used for OTP sign-in',
        ),
        sa.Column('role', sa.String(20), nullable=False, comment='Marketplace role'),
        sa.Column(
            'language',
            sa.String(10),
            nullable=False,
            server_default='bn',
            comment='Preferred language',
        ),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('nid', sa.String(20), nullable=True, comment='National ID number'),
        sa.Column(
            'district_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('districts.id', ondelete='SET NULL'),
            nullable=True,
            comment='Home district',
        ),
        sa.Column(
            'registration_date',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()'),
        ),
        sa.Column(
            'is_active',
            sa.Boolean(),
            nullable=False,
            server_default=sa.text('true'),
            comment='Account active status',
        ),
        *_timestamp_columns(),
        sa.UniqueConstraint('phone', name='uq_users_phone'),
        sa.CheckConstraint(
            "role IN ('farmer', 'agent', 'customer', 'admin')",
            name='ck_users_role_valid',
        ),
        comment='Marketplace users registered through phone OTP',
    )
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_district_id', 'users', ['district_id'])
    op.create_index('ix_users_is_active', 'users', ['is_active'])
    op.create_index(
        'ix_users_role_district_active',
        'users',
        ['role', 'district_id', 'is_active'],
    )

    op.create_table(
        'products',
        _id_column(),
        sa.Column(
            'farmer_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=False,
            comment='Owning farmer',
        ),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False, comment='Unit price'),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column(
            'district_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('districts.id', ondelete='RESTRICT'),
            nullable=False,
            comment='District the product is sold in',
        ),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('unit', sa.String(50), nullable=False, server_default='kg'),
        sa.Column(
            'available_quantity',
            sa.Numeric(10, 2),
            nullable=False,
            server_default='0',
            comment='Stock available for ordering',
        ),
        sa.Column(
            'is_active',
            sa.Boolean(),
            nullable=False,
            server_default=sa.text('true'),
            comment='Soft-delete marker',
        ),
        *_timestamp_columns(),
        sa.CheckConstraint('price > 0', name='ck_products_price_positive'),
        sa.CheckConstraint(
            'available_quantity >= 0',
            name='ck_products_available_quantity_non_negative',
        ),
        comment='Farmer product listings',
    )
    op.create_index('ix_products_farmer_id', 'products', ['farmer_id'])
    op.create_index('ix_products_district_id', 'products', ['district_id'])
    op.create_index('ix_products_is_active', 'products', ['is_active'])
    op.create_index(
        'ix_products_district_active',
        'products',
        ['district_id', 'is_active'],
    )

    op.create_table(
        'orders',
        _id_column(),
        sa.Column(
            'product_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('products.id', ondelete='RESTRICT'),
            nullable=False,
            comment='Ordered product',
        ),
        sa.Column(
            'customer_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=False,
            comment='Customer who placed the order',
        ),
        sa.Column(
            'agent_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='SET NULL'),
            nullable=True,
            comment='Assigned delivery agent',
        ),
        sa.Column('quantity', sa.Numeric(10, 2), nullable=False),
        sa.Column(
            'unit_price',
            sa.Numeric(10, 2),
            nullable=False,
            comment='Product price snapshot at booking time',
        ),
        sa.Column('total_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('commission', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column(
            'commission_rate',
            sa.Numeric(5, 2),
            nullable=False,
            server_default='5.00',
            comment='Commission percentage',
        ),
        sa.Column('status', sa.String(20), nullable=False, server_default='booked'),
        sa.Column('delivery_address', sa.Text(), nullable=True),
        sa.Column('customer_notes', sa.Text(), nullable=True),
        sa.Column('agent_notes', sa.Text(), nullable=True),
        *_timestamp_columns(),
        sa.CheckConstraint('quantity > 0', name='ck_orders_quantity_positive'),
        sa.CheckConstraint(
            "status IN ('booked', 'confirmed', 'picked', 'delivered', 'cancelled')",
            name='ck_orders_status_valid',
        ),
        sa.CheckConstraint(
            'agent_id IS NOT NULL OR commission = 0',
            name='ck_orders_commission_requires_agent',
        ),
        comment='Customer orders with price snapshot and agent commission',
    )
    op.create_index('ix_orders_product_id', 'orders', ['product_id'])
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'])
    op.create_index('ix_orders_agent_id', 'orders', ['agent_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])

    districts = sa.table('districts', sa.column('name', sa.String))
    op.bulk_insert(districts, [{'name': name} for name in SEED_DISTRICTS])


def downgrade() -> None:
    """
    Drop the marketplace tables.
    """
    op.drop_table('orders')
    op.drop_table('products')
    op.drop_table('users')
    op.drop_table('districts')
