"""initial schema

Revision ID: 3b9e2c71d4a0
Revises:
Create Date: 2026-10-18 12:04:51.118302

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3b9e2c71d4a0'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('user',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('sid', sa.String(length=22), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('role', sa.Enum('ADMIN', 'CUSTOMER', name='userrole'), nullable=False),
        sa.Column('points_enabled', sa.Boolean(), nullable=False),
        sa.Column('total_points', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_user_sid'), 'user', ['sid'], unique=True)
    op.create_index(op.f('ix_user_email'), 'user', ['email'], unique=True)

    op.create_table('emailverification',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('sid', sa.String(length=22), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('code', sa.String(length=6), nullable=False),
        sa.Column('attempts', sa.Integer(), nullable=False),
        sa.Column('verified', sa.Boolean(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_emailverification_sid'), 'emailverification', ['sid'], unique=True)
    op.create_index(op.f('ix_emailverification_email'), 'emailverification', ['email'], unique=False)

    op.create_table('notificationpreference',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('sid', sa.String(length=22), nullable=False),
        sa.Column('user_sid', sa.String(length=22), nullable=False),
        sa.Column('push_enabled', sa.Boolean(), nullable=False),
        sa.Column('push_token', sa.Text(), nullable=True),
        sa.Column('permission_status', sa.Enum('DEFAULT', 'GRANTED', 'DENIED', name='pushpermission'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_sid'], ['user.sid'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_sid')
    )
    op.create_index(op.f('ix_notificationpreference_sid'), 'notificationpreference', ['sid'], unique=True)

    op.create_table('orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('sid', sa.String(length=22), nullable=False),
        sa.Column('user_sid', sa.String(length=22), nullable=False),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('subtotal', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('tax', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('total', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('client_total', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('payment_status', sa.Enum('PENDING', 'PROCESSING', 'COMPLETED', 'FAILED', name='paymentstatus'), nullable=False),
        sa.Column('transaction_id', sa.String(), nullable=True),
        sa.Column('payment_method', sa.Enum('CARD', 'APPLE_PAY', 'GOOGLE_PAY', name='paymentmethod'), nullable=True),
        sa.Column('payment_amount', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('payment_currency', sa.String(length=3), nullable=False),
        sa.Column('payment_attempts', sa.Integer(), nullable=False),
        sa.Column('payment_updated_at', sa.DateTime(), nullable=True),
        sa.Column('delivery_method', sa.Enum('PICKUP', 'GRUBHUB', 'DOORDASH', name='deliverymethod'), nullable=False),
        sa.Column('delivery_data', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_sid'], ['user.sid'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_orders_sid'), 'orders', ['sid'], unique=True)
    op.create_index(op.f('ix_orders_user_sid'), 'orders', ['user_sid'], unique=False)

    op.create_table('item',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('sid', sa.String(length=22), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('image_url', sa.String(), nullable=True),
        sa.Column('available', sa.Boolean(), nullable=False),
        sa.Column('tax_rate', sa.Numeric(precision=5, scale=4), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_item_sid'), 'item', ['sid'], unique=True)

    op.create_table('localevent',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('sid', sa.String(length=22), nullable=False),
        sa.Column('event_name', sa.String(), nullable=False),
        sa.Column('date_time', sa.DateTime(), nullable=False),
        sa.Column('location', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image_url', sa.String(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_localevent_sid'), 'localevent', ['sid'], unique=True)

    op.create_table('ad',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('sid', sa.String(length=22), nullable=False),
        sa.Column('biz_name', sa.String(), nullable=False),
        sa.Column('image_url', sa.String(), nullable=True),
        sa.Column('location', sa.String(), nullable=False),
        sa.Column('link', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_ad_sid'), 'ad', ['sid'], unique=True)

    op.create_table('trucklocation',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('sid', sa.String(length=22), nullable=False),
        sa.Column('latitude', sa.Numeric(precision=10, scale=8), nullable=True),
        sa.Column('longitude', sa.Numeric(precision=11, scale=8), nullable=True),
        sa.Column('radius', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('gps_enabled', sa.Boolean(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_trucklocation_sid'), 'trucklocation', ['sid'], unique=True)

    op.create_table('setting',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('sid', sa.String(length=22), nullable=False),
        sa.Column('key', sa.String(), nullable=False),
        sa.Column('value', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key')
    )
    op.create_index(op.f('ix_setting_sid'), 'setting', ['sid'], unique=True)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_setting_sid'), table_name='setting')
    op.drop_table('setting')
    op.drop_index(op.f('ix_trucklocation_sid'), table_name='trucklocation')
    op.drop_table('trucklocation')
    op.drop_index(op.f('ix_ad_sid'), table_name='ad')
    op.drop_table('ad')
    op.drop_index(op.f('ix_localevent_sid'), table_name='localevent')
    op.drop_table('localevent')
    op.drop_index(op.f('ix_item_sid'), table_name='item')
    op.drop_table('item')
    op.drop_index(op.f('ix_orders_user_sid'), table_name='orders')
    op.drop_index(op.f('ix_orders_sid'), table_name='orders')
    op.drop_table('orders')
    op.drop_index(op.f('ix_notificationpreference_sid'), table_name='notificationpreference')
    op.drop_table('notificationpreference')
    op.drop_index(op.f('ix_emailverification_email'), table_name='emailverification')
    op.drop_index(op.f('ix_emailverification_sid'), table_name='emailverification')
    op.drop_table('emailverification')
    op.drop_index(op.f('ix_user_email'), table_name='user')
    op.drop_index(op.f('ix_user_sid'), table_name='user')
    op.drop_table('user')

    sa.Enum(name='deliverymethod').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='paymentmethod').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='paymentstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='pushpermission').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='userrole').drop(op.get_bind(), checkfirst=True)
