"""initial marketplace schema

Revision ID: 20261019_01
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = '20261019_01'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('password', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('role', sa.String(32), nullable=False, server_default='CLIENT'),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'technician_profiles',
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('status', sa.String(32), nullable=False, server_default='PENDING'),
        sa.Column('specialties', sa.JSON(), nullable=True),
        sa.Column('rating', sa.Numeric(3, 1), nullable=False, server_default='0'),
        sa.Column('review_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('completed_jobs', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('internal_notes', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_technician_profiles_user_id', 'technician_profiles', ['user_id'], unique=True)

    op.create_table(
        'services',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_services_id', 'services', ['id'])
    op.create_index('ix_services_name', 'services', ['name'])
    op.create_index('ix_services_category', 'services', ['category'])

    op.create_table(
        'pricing_options',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('service_id', sa.Integer(), sa.ForeignKey('services.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('price', sa.Numeric(10, 3), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_pricing_options_id', 'pricing_options', ['id'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('booking_number', sa.String(), nullable=False),
        sa.Column('client_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('technician_id', sa.Integer(), sa.ForeignKey('technician_profiles.user_id'), nullable=True),
        sa.Column('service_id', sa.Integer(), sa.ForeignKey('services.id'), nullable=False),
        sa.Column('pricing_option_id', sa.Integer(), sa.ForeignKey('pricing_options.id'), nullable=True),
        sa.Column('status', sa.String(32), nullable=False, server_default='PENDING'),
        sa.Column('scheduled_date', sa.DateTime(), nullable=False),
        sa.Column('time_slot', sa.String(), nullable=True),
        sa.Column('estimated_price', sa.Numeric(10, 3), nullable=True),
        sa.Column('final_price', sa.Numeric(10, 3), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('internal_notes', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_bookings_id', 'bookings', ['id'])
    op.create_index('ix_bookings_booking_number', 'bookings', ['booking_number'], unique=True)
    op.create_index('ix_bookings_client_id', 'bookings', ['client_id'])
    op.create_index('ix_bookings_technician_id', 'bookings', ['technician_id'])
    op.create_index('ix_bookings_status', 'bookings', ['status'])
    op.create_index('ix_bookings_scheduled_date', 'bookings', ['scheduled_date'])

    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id'), nullable=False),
        sa.Column('amount', sa.Numeric(10, 3), nullable=False),
        sa.Column('method', sa.String(32), nullable=False),
        sa.Column('status', sa.String(32), nullable=False, server_default='PENDING'),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('booking_id', name='uq_payments_booking_id'),
    )
    op.create_index('ix_payments_id', 'payments', ['id'])

    op.create_table(
        'reviews',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id'), nullable=False),
        sa.Column('client_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('overall_rating', sa.Integer(), nullable=False),
        sa.Column('quality_rating', sa.Integer(), nullable=True),
        sa.Column('timeliness_rating', sa.Integer(), nullable=True),
        sa.Column('communication_rating', sa.Integer(), nullable=True),
        sa.Column('value_rating', sa.Integer(), nullable=True),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('positives', sa.Text(), nullable=True),
        sa.Column('improvements', sa.Text(), nullable=True),
        sa.Column('photos', sa.JSON(), nullable=False),
        sa.Column('published', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('verified_job', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('moderation_notes', sa.Text(), nullable=True),
        sa.Column('helpful', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.UniqueConstraint('booking_id', name='uq_reviews_booking_id'),
    )
    op.create_index('ix_reviews_id', 'reviews', ['id'])
    op.create_index('ix_reviews_client_id', 'reviews', ['client_id'])

    op.create_table(
        'job_assignments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id'), nullable=False),
        sa.Column('technician_id', sa.Integer(), sa.ForeignKey('technician_profiles.user_id'), nullable=False),
        sa.Column('assigned_by_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('assigned_at', sa.DateTime(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_job_assignments_id', 'job_assignments', ['id'])
    op.create_index('ix_job_assignments_booking_id', 'job_assignments', ['booking_id'])


def downgrade() -> None:
    op.drop_table('job_assignments')
    op.drop_table('reviews')
    op.drop_table('payments')
    op.drop_table('bookings')
    op.drop_table('pricing_options')
    op.drop_table('services')
    op.drop_table('technician_profiles')
    op.drop_table('users')
