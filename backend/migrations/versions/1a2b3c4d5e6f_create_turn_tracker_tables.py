"""create game_session, player_status and subscription tables

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-18 00:00:00

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
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'game_session' not in existing_tables:
        op.create_table(
            'game_session',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=128), nullable=False),
            sa.Column('code', sa.String(length=6), nullable=False),
            sa.Column('player1_steam_id', sa.String(length=64), nullable=False),
            sa.Column('player2_steam_id', sa.String(length=64), nullable=False),
            sa.Column('current_turn', sa.String(length=16), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_game_session_code', 'game_session', ['code'], unique=True)

    if 'player_status' not in existing_tables:
        op.create_table(
            'player_status',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('game_session_id', sa.Integer(), nullable=False),
            sa.Column('steam_id', sa.String(length=64), nullable=False),
            sa.Column('status', sa.String(length=16), nullable=False),
            sa.Column('message', sa.Text(), nullable=True),
            sa.Column('last_turn_completed', sa.DateTime(timezone=True), nullable=True),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(['game_session_id'], ['game_session.id']),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('game_session_id', 'steam_id', name='uq_player_status_session_steam'),
        )
        op.create_index('ix_player_status_game_session_id', 'player_status', ['game_session_id'])

    if 'subscription' not in existing_tables:
        op.create_table(
            'subscription',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('steam_id', sa.String(length=64), nullable=False),
            sa.Column('endpoint', sa.Text(), nullable=False),
            sa.Column('p256dh', sa.String(length=256), nullable=False),
            sa.Column('auth', sa.String(length=128), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_subscription_steam_id', 'subscription', ['steam_id'], unique=True)


def downgrade():
    op.drop_index('ix_subscription_steam_id', table_name='subscription')
    op.drop_table('subscription')
    op.drop_index('ix_player_status_game_session_id', table_name='player_status')
    op.drop_table('player_status')
    op.drop_index('ix_game_session_code', table_name='game_session')
    op.drop_table('game_session')
