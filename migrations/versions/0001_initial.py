"""initial tables

Revision ID: 0001
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('role', sa.String(16), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(32), nullable=True),
        sa.Column('is_active_flag', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table('addresses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('address_line1', sa.String(255), nullable=False),
        sa.Column('address_line2', sa.String(255), nullable=True),
        sa.Column('landmark', sa.String(255), nullable=True),
        sa.Column('city', sa.String(100), nullable=False),
        sa.Column('state', sa.String(100), nullable=False),
        sa.Column('pincode', sa.String(12), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE',
                                name='fk_addresses_user_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_addresses'),
    )
    op.create_index('ix_addresses_user_id', 'addresses', ['user_id'])
    op.create_index('ix_addresses_pincode', 'addresses', ['pincode'])

    op.create_table('service_areas',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('pincodes', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('delivery_fee', sa.Numeric(10, 2), nullable=False),
        sa.Column('min_order_free_delivery', sa.Numeric(10, 2), nullable=False),
        sa.Column('delivery_time_minutes', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_service_areas'),
        sa.UniqueConstraint('name', name='uq_service_areas_name'),
    )

    op.create_table('delivery_slots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('service_area_id', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('max_orders', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.CheckConstraint('max_orders >= 0', name='ck_delivery_slots_max_orders_non_negative'),
        sa.ForeignKeyConstraint(['service_area_id'], ['service_areas.id'], ondelete='CASCADE',
                                name='fk_delivery_slots_service_area_id_service_areas'),
        sa.PrimaryKeyConstraint('id', name='pk_delivery_slots'),
    )
    op.create_index('ix_delivery_slots_service_area_id', 'delivery_slots', ['service_area_id'])

    # счётчик занятых мест на (слот, дата); уникальность нужна для ON CONFLICT
    op.create_table('slot_bookings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('delivery_slot_id', sa.Integer(), nullable=False),
        sa.Column('delivery_date', sa.Date(), nullable=False),
        sa.Column('orders_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('orders_count >= 0', name='ck_slot_bookings_orders_count_non_negative'),
        sa.ForeignKeyConstraint(['delivery_slot_id'], ['delivery_slots.id'], ondelete='CASCADE',
                                name='fk_slot_bookings_delivery_slot_id_delivery_slots'),
        sa.PrimaryKeyConstraint('id', name='pk_slot_bookings'),
        sa.UniqueConstraint('delivery_slot_id', 'delivery_date', name='uq_slot_bookings_slot_date'),
    )

    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('product_code', sa.String(64), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('sale_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('unit', sa.String(32), nullable=False),
        sa.Column('in_stock', sa.Boolean(), nullable=False),
        sa.Column('stock_quantity', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_products'),
        sa.UniqueConstraint('product_code', name='uq_products_product_code'),
    )

    op.create_table('offers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('code', sa.String(64), nullable=False),
        sa.Column('discount_type', sa.String(16), nullable=False),
        sa.Column('discount_value', sa.Numeric(10, 2), nullable=False),
        sa.Column('min_order_value', sa.Numeric(10, 2), nullable=False),
        sa.Column('max_discount_value', sa.Numeric(10, 2), nullable=True),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_offers'),
    )
    op.create_index('ix_offers_code', 'offers', ['code'], unique=True)

    op.create_table('fees',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(64), nullable=False),
        sa.Column('fee_type', sa.String(16), nullable=False),
        sa.Column('fee_value', sa.Numeric(10, 2), nullable=False),
        sa.Column('min_order_value', sa.Numeric(10, 2), nullable=False),
        sa.Column('max_fee_value', sa.Numeric(10, 2), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_fees'),
        sa.UniqueConstraint('name', name='uq_fees_name'),
    )

    op.create_table('orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('address_id', sa.Integer(), nullable=True),
        sa.Column('delivery_slot_id', sa.Integer(), nullable=False),
        sa.Column('delivery_date', sa.Date(), nullable=False),
        sa.Column('subtotal', sa.Numeric(10, 2), nullable=False),
        sa.Column('discount_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('coupon_code', sa.String(64), nullable=True),
        sa.Column('platform_fee', sa.Numeric(10, 2), nullable=False),
        sa.Column('handling_fee', sa.Numeric(10, 2), nullable=False),
        sa.Column('packaging_fee', sa.Numeric(10, 2), nullable=False),
        sa.Column('delivery_fee', sa.Numeric(10, 2), nullable=False),
        sa.Column('tax', sa.Numeric(10, 2), nullable=False),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('status', sa.String(24), nullable=False),
        sa.Column('payment_method', sa.String(16), nullable=False),
        sa.Column('payment_status', sa.String(16), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL',
                                name='fk_orders_user_id_users'),
        sa.ForeignKeyConstraint(['address_id'], ['addresses.id'], ondelete='SET NULL',
                                name='fk_orders_address_id_addresses'),
        sa.ForeignKeyConstraint(['delivery_slot_id'], ['delivery_slots.id'], ondelete='RESTRICT',
                                name='fk_orders_delivery_slot_id_delivery_slots'),
        sa.PrimaryKeyConstraint('id', name='pk_orders'),
    )
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_slot_date', 'orders', ['delivery_slot_id', 'delivery_date'])

    op.create_table('order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('product_name', sa.String(255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_order_items_quantity_positive'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE',
                                name='fk_order_items_order_id_orders'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='SET NULL',
                                name='fk_order_items_product_id_products'),
        sa.PrimaryKeyConstraint('id', name='pk_order_items'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])


def downgrade():
    op.drop_index('ix_order_items_order_id', table_name='order_items')
    op.drop_table('order_items')
    op.drop_index('ix_orders_slot_date', table_name='orders')
    op.drop_index('ix_orders_status', table_name='orders')
    op.drop_index('ix_orders_user_id', table_name='orders')
    op.drop_table('orders')
    op.drop_table('fees')
    op.drop_index('ix_offers_code', table_name='offers')
    op.drop_table('offers')
    op.drop_table('products')
    op.drop_table('slot_bookings')
    op.drop_index('ix_delivery_slots_service_area_id', table_name='delivery_slots')
    op.drop_table('delivery_slots')
    op.drop_table('service_areas')
    op.drop_index('ix_addresses_pincode', table_name='addresses')
    op.drop_index('ix_addresses_user_id', table_name='addresses')
    op.drop_table('addresses')
    op.drop_index('ix_users_role', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
