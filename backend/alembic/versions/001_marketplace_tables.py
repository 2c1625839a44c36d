"""Add marketplace tables

Revision ID: 001_marketplace_tables
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_marketplace_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create users table (directory entries synced from the identity provider)
    op.create_table(
        'users',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # Create product_listings table
    op.create_table(
        'product_listings',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('farmer_id', sa.String(), nullable=False),
        sa.Column('crop_name', sa.String(), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit', sa.String(length=7), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('quality', sa.String(length=7), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('location', sa.String(), nullable=False),
        sa.Column('harvest_date', sa.Date(), nullable=True),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.Column('organic_certified', sa.Boolean(), nullable=False),
        sa.Column('status', sa.String(length=9), nullable=False),
        sa.Column('version', sa.Integer(), server_default='1', nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity >= 0', name='ck_listing_quantity_non_negative'),
        sa.CheckConstraint('price > 0', name='ck_listing_price_positive')
    )
    op.create_index('ix_product_listings_farmer_id', 'product_listings', ['farmer_id'], unique=False)
    op.create_index('ix_product_listings_status', 'product_listings', ['status'], unique=False)
    op.create_index('ix_product_listings_created_at', 'product_listings', ['created_at'], unique=False)

    # Create purchase_offers table
    op.create_table(
        'purchase_offers',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('listing_id', sa.String(), nullable=False),
        sa.Column('buyer_id', sa.String(), nullable=False),
        sa.Column('offer_price', sa.Float(), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('status', sa.String(length=9), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('contact_details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('responded_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['listing_id'], ['product_listings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity > 0', name='ck_offer_quantity_positive'),
        sa.CheckConstraint('offer_price > 0', name='ck_offer_price_positive')
    )
    op.create_index('ix_purchase_offers_listing_id', 'purchase_offers', ['listing_id'], unique=False)
    op.create_index('ix_purchase_offers_buyer_id', 'purchase_offers', ['buyer_id'], unique=False)
    op.create_index('ix_purchase_offers_created_at', 'purchase_offers', ['created_at'], unique=False)


def downgrade() -> None:
    # Drop tables in reverse order
    op.drop_index('ix_purchase_offers_created_at', table_name='purchase_offers')
    op.drop_index('ix_purchase_offers_buyer_id', table_name='purchase_offers')
    op.drop_index('ix_purchase_offers_listing_id', table_name='purchase_offers')
    op.drop_table('purchase_offers')

    op.drop_index('ix_product_listings_created_at', table_name='product_listings')
    op.drop_index('ix_product_listings_status', table_name='product_listings')
    op.drop_index('ix_product_listings_farmer_id', table_name='product_listings')
    op.drop_table('product_listings')

    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
