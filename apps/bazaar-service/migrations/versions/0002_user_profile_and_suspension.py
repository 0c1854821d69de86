"""user profile fields and suspension bookkeeping

Revision ID: 0002_user_profile
Revises: 0001_initial
Create Date: 2025-11-02 10:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0002_user_profile'
down_revision: Union[str, None] = '0001_initial'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.add_column('users', sa.Column('bio', sa.Text(), nullable=True))
    op.add_column('users', sa.Column('location_id', sa.Integer(), nullable=True))
    op.add_column('users', sa.Column('suspended_at', sa.DateTime(timezone=True), nullable=True))
    op.add_column('users', sa.Column('suspended_by', sa.Integer(), nullable=True))
    op.create_foreign_key(
        'fk_users_location_id', 'users', 'locations', ['location_id'], ['id'], ondelete='SET NULL'
    )
    op.create_foreign_key(
        'fk_users_suspended_by', 'users', 'users', ['suspended_by'], ['id'], ondelete='SET NULL'
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_constraint('fk_users_suspended_by', 'users', type_='foreignkey')
    op.drop_constraint('fk_users_location_id', 'users', type_='foreignkey')
    op.drop_column('users', 'suspended_by')
    op.drop_column('users', 'suspended_at')
    op.drop_column('users', 'location_id')
    op.drop_column('users', 'bio')
