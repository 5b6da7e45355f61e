"""initial schema: users, events, bookings, pricing packages

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None

user_role = sa.Enum('USER', 'ADMIN', 'SUPER_ADMIN', name='userrole')
event_status = sa.Enum('DRAFT', 'PUBLISHED', 'ARCHIVED', 'CANCELLED', 'COMPLETED', name='eventstatus')
booking_type = sa.Enum('CAFE', 'SENSORY_ROOM', 'PLAYGROUND', 'PARTY', 'EVENT', name='bookingtype')
booking_status = sa.Enum('PENDING', 'APPROVED', 'REJECTED', 'CANCELLED', 'COMPLETED', name='bookingstatus')
pricing_category = sa.Enum('PLAYGROUND', 'SENSORY_ROOM', 'CAFE', 'PARTY', name='pricingcategory')
pricing_status = sa.Enum('DRAFT', 'PUBLISHED', 'ARCHIVED', name='pricingstatus')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=True),
        sa.Column('role', user_role, nullable=False, server_default='USER'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_name', 'users', ['name'])
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_is_active', 'users', ['is_active'])
    op.create_index('ix_users_created_at', 'users', ['created_at'])
    op.create_index('idx_user_active_role', 'users', ['is_active', 'role'])

    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('slug', sa.String(length=200), nullable=False, unique=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('time', sa.String(length=5), nullable=False),
        sa.Column('image', sa.String(length=500), nullable=True),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.Column('status', event_status, nullable=False),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_events_id', 'events', ['id'])
    op.create_index('ix_events_date', 'events', ['date'])
    op.create_index('ix_events_status', 'events', ['status'])
    op.create_index('idx_event_status_date', 'events', ['status', 'date'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('time', sa.String(length=5), nullable=False),
        sa.Column('type', booking_type, nullable=False),
        sa.Column('guest_count', sa.Integer(), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('status', booking_status, nullable=False, server_default='PENDING'),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('total_amount', sa.Float(), nullable=True),
        sa.Column('paid_amount', sa.Float(), nullable=True),
        sa.Column('is_paid', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='RSD'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_bookings_id', 'bookings', ['id'])
    op.create_index('ix_bookings_user_id', 'bookings', ['user_id'])
    op.create_index('ix_bookings_date', 'bookings', ['date'])
    op.create_index('ix_bookings_type', 'bookings', ['type'])
    op.create_index('ix_bookings_email', 'bookings', ['email'])
    op.create_index('ix_bookings_status', 'bookings', ['status'])
    op.create_index('ix_bookings_is_paid', 'bookings', ['is_paid'])
    op.create_index('ix_bookings_created_at', 'bookings', ['created_at'])
    op.create_index('idx_booking_status_date', 'bookings', ['status', 'date'])
    op.create_index('idx_booking_status_created', 'bookings', ['status', 'created_at'])
    op.create_index('idx_booking_type_date', 'bookings', ['type', 'date'])
    op.create_index('idx_booking_date_time', 'bookings', ['date', 'time'])

    op.create_table(
        'pricing_packages',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='RSD'),
        sa.Column('category', pricing_category, nullable=False),
        sa.Column('status', pricing_status, nullable=False, server_default='DRAFT'),
        sa.Column('popular', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_pricing_packages_id', 'pricing_packages', ['id'])
    op.create_index('ix_pricing_packages_category', 'pricing_packages', ['category'])
    op.create_index('ix_pricing_packages_status', 'pricing_packages', ['status'])
    op.create_index('idx_pricing_category_status', 'pricing_packages', ['category', 'status'])


def downgrade() -> None:
    op.drop_table('pricing_packages')
    op.drop_table('bookings')
    op.drop_table('events')
    op.drop_table('users')

    bind = op.get_bind()
    for enum_type in (
        pricing_status,
        pricing_category,
        booking_status,
        booking_type,
        event_status,
        user_role,
    ):
        enum_type.drop(bind, checkfirst=True)
