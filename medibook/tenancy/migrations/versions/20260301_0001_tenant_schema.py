"""tenant schema

Revision ID: 0001
Revises:
Create Date: 2026-03-01

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'doctor',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=160), nullable=False),
        sa.Column('specialty', sa.String(length=120), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('patients_count', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_doctor_name', 'doctor', ['name'])

    op.create_table(
        'services',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=160), nullable=False),
        sa.Column('fees', sa.Numeric(10, 2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )

    # clinic copy of the directory's default hours
    op.create_table(
        'working_hours',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('day', sa.String(length=9), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=True),
        sa.Column('start_time', sa.String(length=8), nullable=False),
        sa.Column('end_time', sa.String(length=8), nullable=False),
        sa.Column('range_order', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_working_hours_day', 'working_hours', ['day'])

    op.create_table(
        'break_hours',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('day', sa.String(length=9), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=True),
        sa.Column('start_time', sa.String(length=8), nullable=False),
        sa.Column('end_time', sa.String(length=8), nullable=False),
        sa.Column('break_order', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_break_hours_day', 'break_hours', ['day'])

    op.create_table(
        'doctor_working_hours',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('doctor_id', sa.Integer(), nullable=False),
        sa.Column('day', sa.String(length=9), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=True),
        sa.Column('start_time', sa.String(length=8), nullable=False),
        sa.Column('end_time', sa.String(length=8), nullable=False),
        sa.Column('session_time', sa.String(length=8), nullable=True),
        sa.Column('waterfall', sa.Boolean(), nullable=False),
        sa.Column('patients_limit', sa.Integer(), nullable=True),
        sa.Column('busy', sa.Boolean(), nullable=False),
        sa.Column('fees', sa.Numeric(10, 2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['doctor_id'], ['doctor.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_doctor_working_hours_doctor_day', 'doctor_working_hours', ['doctor_id', 'day'])
    op.create_index('ix_doctor_working_hours_branch', 'doctor_working_hours', ['branch_id'])

    op.create_table(
        'doctor_working_hour_services',
        sa.Column('doctor_working_hour_id', sa.Integer(), nullable=False),
        sa.Column('service_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['doctor_working_hour_id'], ['doctor_working_hours.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['service_id'], ['services.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('doctor_working_hour_id', 'service_id'),
    )

    op.create_table(
        'reservations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('doctor_id', sa.Integer(), nullable=False),
        sa.Column('patient_id', sa.Integer(), nullable=True),
        sa.Column('doctor_working_hour_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('date_time', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('fees', sa.Numeric(10, 2), nullable=False),
        sa.Column('paid', sa.Boolean(), nullable=False),
        sa.Column('medical_status', sa.String(length=64), nullable=True),
        sa.Column('waterfall', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['doctor_id'], ['doctor.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['doctor_working_hour_id'], ['doctor_working_hours.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_reservations_doctor_id', 'reservations', ['doctor_id'])
    op.create_index('ix_reservations_doctor_working_hour_id', 'reservations', ['doctor_working_hour_id'])


def downgrade() -> None:
    op.drop_index('ix_reservations_doctor_working_hour_id', table_name='reservations')
    op.drop_index('ix_reservations_doctor_id', table_name='reservations')
    op.drop_table('reservations')
    op.drop_table('doctor_working_hour_services')
    op.drop_index('ix_doctor_working_hours_branch', table_name='doctor_working_hours')
    op.drop_index('ix_doctor_working_hours_doctor_day', table_name='doctor_working_hours')
    op.drop_table('doctor_working_hours')
    op.drop_index('ix_break_hours_day', table_name='break_hours')
    op.drop_table('break_hours')
    op.drop_index('ix_working_hours_day', table_name='working_hours')
    op.drop_table('working_hours')
    op.drop_table('services')
    op.drop_index('ix_doctor_name', table_name='doctor')
    op.drop_table('doctor')
