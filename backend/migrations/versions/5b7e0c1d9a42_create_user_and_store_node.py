"""create user and store_node tables

Revision ID: 5b7e0c1d9a42
Revises:
Create Date: 2026-10-18 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5b7e0c1d9a42'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
            sa.Column('role', sa.String(length=16), nullable=False, server_default='user'),
            sa.Column('can_create_rooms', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('can_join_rooms', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('can_manage_users', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('can_delete_rooms', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('last_login', sa.DateTime(), nullable=True),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)

    if 'store_node' not in existing_tables:
        op.create_table(
            'store_node',
            sa.Column('path', sa.String(length=512), primary_key=True),
            sa.Column('value', sa.JSON(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
        )


def downgrade():
    op.drop_table('store_node')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
