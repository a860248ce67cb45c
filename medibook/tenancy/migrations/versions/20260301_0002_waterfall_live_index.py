"""waterfall live reservation index

At most one scheduled/taken reservation per waterfall working hour.

Revision ID: 0002
Revises: 0001
Create Date: 2026-03-01

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0002'
down_revision = '0001'
branch_labels = None
depends_on = None

_LIVE = "waterfall AND status IN ('scheduled', 'taken')"


def upgrade() -> None:
    op.create_index(
        'uq_reservations_waterfall_live',
        'reservations',
        ['doctor_working_hour_id'],
        unique=True,
        postgresql_where=sa.text(_LIVE),
        sqlite_where=sa.text(_LIVE),
    )


def downgrade() -> None:
    op.drop_index('uq_reservations_waterfall_live', table_name='reservations')
