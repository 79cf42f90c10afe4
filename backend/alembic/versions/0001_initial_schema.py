"""Initial TradeLink schema: accounts, OTPs, profiles, catalog and orders

Revision ID: 0001_initial_schema
Revises:
Create Date: 2025-02-10

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def upgrade():
    op.create_table('accounts',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone_number', sa.String(length=10), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('is_phone_verified', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('has_shop_detail', sa.Boolean(), nullable=False),
        *timestamps(),
        sa.CheckConstraint("role IN ('Retailer', 'Wholesaler')", name='account_role_check'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_index('ix_accounts_phone_number', 'accounts', ['phone_number'], unique=True)

    op.create_table('phone_otps',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('phone_number', sa.String(length=10), nullable=False),
        sa.Column('otp', sa.String(length=6), nullable=False),
        sa.Column('issued_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_phone_otps_phone_number', 'phone_otps', ['phone_number'], unique=True)

    op.create_table('retailer_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('retailer_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=True),
        sa.Column('phone_number', sa.String(length=10), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        *timestamps(),
        sa.ForeignKeyConstraint(['retailer_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('retailer_id')
    )

    op.create_table('shop_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('wholesaler_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('full_name', sa.String(length=100), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone_number', sa.String(length=10), nullable=True),
        sa.Column('business_name', sa.String(length=200), nullable=True),
        sa.Column('business_type', sa.String(length=50), nullable=True),
        sa.Column('gst_number', sa.String(length=15), nullable=True),
        sa.Column('apmc_region', sa.String(length=100), nullable=True),
        sa.Column('business_address', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('location', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('business_hours', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('is_shop_open', sa.Boolean(), nullable=False),
        sa.Column('business_certificate', sa.String(length=500), nullable=True),
        sa.Column('id_proof', sa.String(length=500), nullable=True),
        sa.Column('business_registration', sa.String(length=500), nullable=True),
        sa.Column('upi_id', sa.String(length=100), nullable=True),
        sa.Column('account_holder_name', sa.String(length=100), nullable=True),
        sa.Column('account_number', sa.String(length=30), nullable=True),
        sa.Column('ifsc_code', sa.String(length=11), nullable=True),
        sa.Column('bank_name', sa.String(length=100), nullable=True),
        sa.Column('kyc_status', sa.String(length=20), nullable=False),
        sa.Column('is_wholesaler_verified', sa.Boolean(), nullable=False),
        *timestamps(),
        sa.ForeignKeyConstraint(['wholesaler_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('wholesaler_id'),
        sa.UniqueConstraint('gst_number', name='shop_profiles_gst_number_key')
    )

    op.create_table('categories',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=False),
        *timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    op.create_table('products',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('wholesaler_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('product_name', sa.String(length=100), nullable=False),
        sa.Column('category_name', sa.String(length=50), nullable=False),
        sa.Column('product_description', sa.Text(), nullable=False),
        sa.Column('product_image', sa.String(length=500), nullable=False),
        sa.Column('price_before_gst', sa.Float(), nullable=False),
        sa.Column('gst_category', sa.String(length=20), nullable=False),
        sa.Column('gst_percent', sa.Float(), nullable=False),
        sa.Column('price_after_gst', sa.Float(), nullable=False),
        sa.Column('price_unit', sa.String(length=20), nullable=False),
        sa.Column('last_price_update', sa.DateTime(), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('minimum_required', sa.Integer(), nullable=False),
        sa.Column('approval_status', sa.String(length=20), nullable=False),
        *timestamps(),
        sa.CheckConstraint('price_before_gst >= 0', name='price_before_gst_non_negative_check'),
        sa.CheckConstraint('gst_percent >= 0 AND gst_percent <= 100', name='gst_percent_range_check'),
        sa.CheckConstraint('stock >= 0', name='stock_non_negative_check'),
        sa.CheckConstraint('minimum_required >= 0', name='minimum_required_non_negative_check'),
        sa.ForeignKeyConstraint(['wholesaler_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('wholesaler_id', 'product_name', name='unique_wholesaler_product_name')
    )
    op.create_index('products_product_name_idx', 'products', ['product_name'])

    op.create_table('product_filters',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(length=100), nullable=False),
        sa.Column('value', sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_product_filters_product_id', 'product_filters', ['product_id'])

    op.create_table('orders',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('retailer_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('wholesaler_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('payment_status', sa.String(length=20), nullable=False),
        sa.Column('payment_method', sa.String(length=20), nullable=False),
        sa.Column('delivery_address', sa.Text(), nullable=False),
        sa.Column('delivery_date', sa.DateTime(), nullable=True),
        sa.Column('vehicle_number', sa.String(length=20), nullable=True),
        sa.Column('order_total', sa.Float(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        *timestamps(),
        sa.CheckConstraint('order_total >= 0', name='order_total_non_negative_check'),
        sa.ForeignKeyConstraint(['retailer_id'], ['accounts.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['wholesaler_id'], ['accounts.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_orders_retailer_id', 'orders', ['retailer_id'])
    op.create_index('ix_orders_wholesaler_id', 'orders', ['wholesaler_id'])

    op.create_table('order_items',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=100), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Float(), nullable=False),
        sa.Column('total', sa.Float(), nullable=False),
        sa.CheckConstraint('quantity >= 1', name='order_item_quantity_positive_check'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])


def downgrade():
    op.drop_index('ix_order_items_order_id', table_name='order_items')
    op.drop_table('order_items')
    op.drop_index('ix_orders_wholesaler_id', table_name='orders')
    op.drop_index('ix_orders_retailer_id', table_name='orders')
    op.drop_table('orders')
    op.drop_index('ix_product_filters_product_id', table_name='product_filters')
    op.drop_table('product_filters')
    op.drop_index('products_product_name_idx', table_name='products')
    op.drop_table('products')
    op.drop_table('categories')
    op.drop_table('shop_profiles')
    op.drop_table('retailer_profiles')
    op.drop_index('ix_phone_otps_phone_number', table_name='phone_otps')
    op.drop_table('phone_otps')
    op.drop_index('ix_accounts_phone_number', table_name='accounts')
    op.drop_table('accounts')
