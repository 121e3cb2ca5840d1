"""create user, friendship and score tables

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-17 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1a2b3c4d5e6f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa.inspect(bind).get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('google_id', sa.String(length=128), nullable=True),
            sa.Column('display_name', sa.String(length=128), nullable=False),
            sa.Column('custom_username', sa.String(length=64), nullable=True),
            sa.Column('wins', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('socket_id', sa.String(length=64), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
        )
        op.create_index('ix_user_google_id', 'user', ['google_id'], unique=True)

    if 'friendship' not in existing_tables:
        op.create_table(
            'friendship',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('requester_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
            sa.Column('recipient_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
            sa.Column('status', sa.String(length=16), nullable=False, server_default='accepted'),
            sa.Column('created_at', sa.DateTime(), nullable=False),
        )
        op.create_index('ix_friendship_requester_id', 'friendship', ['requester_id'])
        op.create_index('ix_friendship_recipient_id', 'friendship', ['recipient_id'])

    if 'score' not in existing_tables:
        op.create_table(
            'score',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
            sa.Column('username', sa.String(length=128), nullable=False),
            sa.Column('score', sa.Integer(), nullable=False),
            sa.Column('mode', sa.String(length=16), nullable=False, server_default='single'),
            sa.Column('created_at', sa.DateTime(), nullable=False),
        )
        op.create_index('ix_score_user_id', 'score', ['user_id'])
        op.create_index('ix_score_score', 'score', ['score'])


def downgrade():
    op.drop_table('score')
    op.drop_table('friendship')
    op.drop_index('ix_user_google_id', table_name='user')
    op.drop_table('user')
