"""create_products_and_carts

Revision ID: 3f1a9c2d7b10
Revises:
Create Date: 2026-10-19 10:12:44.518203

"""
from alembic import op
import sqlalchemy as sa


revision = '3f1a9c2d7b10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'products',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_products_slug', 'products', ['slug'], unique=True)

    op.create_table(
        'carts',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('owner_user_id', sa.String(length=255), nullable=True),
        sa.Column('session_cart_id', sa.String(length=255), nullable=True),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('items_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('shipping_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('tax_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_carts_owner_user_id', 'carts', ['owner_user_id'], unique=True)
    op.create_index('ix_carts_session_cart_id', 'carts', ['session_cart_id'], unique=False)
    op.create_index(
        'uq_carts_session_cart_id_unowned',
        'carts',
        ['session_cart_id'],
        unique=True,
        postgresql_where=sa.text('owner_user_id IS NULL'),
        sqlite_where=sa.text('owner_user_id IS NULL'),
    )


def downgrade() -> None:
    op.drop_index('uq_carts_session_cart_id_unowned', table_name='carts')
    op.drop_index('ix_carts_session_cart_id', table_name='carts')
    op.drop_index('ix_carts_owner_user_id', table_name='carts')
    op.drop_table('carts')
    op.drop_index('ix_products_slug', table_name='products')
    op.drop_table('products')
