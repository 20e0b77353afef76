"""create user, game and score tables

Revision ID: 3c9d41e7a2b0
Revises:
Create Date: 2026-10-17 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c9d41e7a2b0'
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
            sa.Column('id', sa.String(length=64), nullable=False),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('email', sa.String(length=255), nullable=False, server_default=''),
            sa.Column('password_hash', sa.String(length=256), nullable=True),
            sa.Column('is_guest', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)

    if 'game' not in existing_tables:
        op.create_table(
            'game',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('game_name', sa.String(length=128), nullable=True),
            sa.Column('host_user_id', sa.String(length=64), nullable=False),
            sa.Column('player_ids', sa.Text(), nullable=False, server_default='[]'),
            sa.Column('rounds', sa.Integer(), nullable=False, server_default='1'),
            sa.Column('custom_rules', sa.Text(), nullable=True),
            sa.Column('final_scores', sa.Text(), nullable=False, server_default='[]'),
            sa.Column('game_status', sa.String(length=16), nullable=False, server_default='ACTIVE'),
            sa.Column('win_condition', sa.String(length=16), nullable=True),
            sa.Column('max_score', sa.Integer(), nullable=True),
            sa.Column('max_rounds', sa.Integer(), nullable=True),
            sa.Column('player_hierarchy', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_game_host_user_id', 'game', ['host_user_id'], unique=False)

    if 'score' not in existing_tables:
        op.create_table(
            'score',
            sa.Column('id', sa.String(length=512), nullable=False),
            sa.Column('game_id', sa.String(length=36), nullable=False),
            sa.Column('player_id', sa.String(length=256), nullable=False),
            sa.Column('round_number', sa.Integer(), nullable=False),
            sa.Column('score', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['game_id'], ['game.id']),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('game_id', 'player_id', 'round_number', name='uq_score_game_player_round'),
        )
        op.create_index('ix_score_game_id', 'score', ['game_id'], unique=False)
        op.create_index('ix_score_player_id', 'score', ['player_id'], unique=False)


def downgrade():
    op.drop_index('ix_score_player_id', table_name='score')
    op.drop_index('ix_score_game_id', table_name='score')
    op.drop_table('score')
    op.drop_index('ix_game_host_user_id', table_name='game')
    op.drop_table('game')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
