"""Initial tournament tables

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Tournaments
    op.create_table(
        'tournaments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('max_players', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='waiting'),
        sa.Column('champion_alias', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_tournaments_status', 'tournaments', ['status'])

    # Players (tournament-scoped aliases)
    op.create_table(
        'tournament_players',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tournament_id', sa.Integer(), nullable=False),
        sa.Column('alias', sa.String(length=100), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['tournament_id'], ['tournaments.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tournament_id', 'alias', name='uq_tournament_player_alias')
    )
    op.create_index('ix_tournament_players_tournament_id', 'tournament_players', ['tournament_id'])
    op.create_index('ix_tournament_players_user_id', 'tournament_players', ['user_id'])

    # Matches
    op.create_table(
        'matches',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tournament_id', sa.Integer(), nullable=False),
        sa.Column('round', sa.Integer(), nullable=False),
        sa.Column('match_number', sa.Integer(), nullable=False),
        sa.Column('player1_alias', sa.String(length=100), nullable=False),
        sa.Column('player2_alias', sa.String(length=100), nullable=False),
        sa.Column('player1_id', sa.Integer(), nullable=True),
        sa.Column('player2_id', sa.Integer(), nullable=True),
        sa.Column('winner_alias', sa.String(length=100), nullable=True),
        sa.Column('winner_id', sa.Integer(), nullable=True),
        sa.Column('player1_score', sa.Integer(), nullable=True),
        sa.Column('player2_score', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['tournament_id'], ['tournaments.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'tournament_id', 'round', 'match_number', name='uq_match_tournament_round_number'
        )
    )
    op.create_index('ix_matches_tournament_id', 'matches', ['tournament_id'])

    # Session tokens (hash only)
    op.create_table(
        'tournament_sessions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('token_hash', sa.String(length=128), nullable=False),
        sa.Column('tournament_id', sa.Integer(), nullable=False),
        sa.Column('alias', sa.String(length=100), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['tournament_id'], ['tournaments.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_tournament_sessions_token_hash', 'tournament_sessions', ['token_hash'], unique=True)
    op.create_index('ix_tournament_sessions_tournament_id', 'tournament_sessions', ['tournament_id'])
    op.create_index('ix_tournament_sessions_expires_at', 'tournament_sessions', ['expires_at'])


def downgrade() -> None:
    op.drop_table('tournament_sessions')
    op.drop_table('matches')
    op.drop_table('tournament_players')
    op.drop_table('tournaments')
