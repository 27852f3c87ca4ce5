"""Initial tables

Revision ID: 001
Revises:
Create Date: 2025-10-08

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

fixture_status = sa.Enum(
    'scheduled', 'live', 'finished', 'postponed', 'suspended', 'canceled',
    name='fixturestatus',
)
provider_type = sa.Enum('television', 'streaming', 'radio', 'blackout', name='providertype')
sync_status = sa.Enum('SUCCESS', 'PARTIAL', 'FAILED', name='syncstatus')


def upgrade() -> None:
    # Competitions
    op.create_table(
        'competitions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('sportmonks_league_id', sa.Integer(), nullable=True),
        sa.Column('is_visible', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('sync_enabled', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
    )
    op.create_index('ix_competitions_sportmonks_league_id', 'competitions', ['sportmonks_league_id'], unique=True)

    # Teams
    op.create_table(
        'teams',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('sportmonks_team_id', sa.Integer(), nullable=True),
        sa.Column('competition_id', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['competition_id'], ['competitions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
    )
    op.create_index('ix_teams_sportmonks_team_id', 'teams', ['sportmonks_team_id'])
    op.create_index('ix_teams_competition_id', 'teams', ['competition_id'])

    # Fixtures
    op.create_table(
        'fixtures',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('sportmonks_fixture_id', sa.Integer(), nullable=True),
        sa.Column('home_team_id', sa.Integer(), nullable=False),
        sa.Column('away_team_id', sa.Integer(), nullable=False),
        sa.Column('utc_kickoff', sa.DateTime(timezone=True), nullable=False),
        sa.Column('competition_id', sa.Integer(), nullable=True),
        sa.Column('status', fixture_status, server_default='scheduled', nullable=False),
        sa.Column('home_score', sa.Integer(), nullable=True),
        sa.Column('away_score', sa.Integer(), nullable=True),
        sa.Column('matchday', sa.Integer(), nullable=True),
        sa.Column('round_name', sa.String(length=100), nullable=True),
        sa.Column('stage_name', sa.String(length=100), nullable=True),
        sa.Column('venue', sa.String(length=255), nullable=True),
        sa.Column('broadcaster', sa.String(length=255), nullable=True),
        sa.Column('broadcaster_id', sa.Integer(), nullable=True),
        sa.Column('data_source', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('home_team_id <> away_team_id', name='ck_fixtures_distinct_teams'),
        sa.ForeignKeyConstraint(['home_team_id'], ['teams.id'], ),
        sa.ForeignKeyConstraint(['away_team_id'], ['teams.id'], ),
        sa.ForeignKeyConstraint(['competition_id'], ['competitions.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_fixtures_sportmonks_fixture_id', 'fixtures', ['sportmonks_fixture_id'], unique=True)
    op.create_index('ix_fixtures_home_team_id', 'fixtures', ['home_team_id'])
    op.create_index('ix_fixtures_away_team_id', 'fixtures', ['away_team_id'])
    op.create_index('ix_fixtures_competition_kickoff', 'fixtures', ['competition_id', 'utc_kickoff'])
    op.create_index('ix_fixtures_teams_kickoff', 'fixtures', ['home_team_id', 'away_team_id', 'utc_kickoff'])

    # Providers (broadcasters)
    op.create_table(
        'providers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('type', provider_type, nullable=False),
        sa.Column('rights_tier', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
    )

    # Broadcasts
    op.create_table(
        'broadcasts',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('fixture_id', sa.BigInteger(), nullable=False),
        sa.Column('provider_id', sa.Integer(), nullable=True),
        sa.Column('sportmonks_tv_station_id', sa.Integer(), nullable=True),
        sa.Column('channel_name', sa.String(length=255), nullable=True),
        sa.Column('broadcaster_type', sa.String(length=32), nullable=True),
        sa.Column('country_code', sa.String(length=8), nullable=True),
        sa.Column('data_source', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['fixture_id'], ['fixtures.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['provider_id'], ['providers.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('fixture_id', 'sportmonks_tv_station_id', name='uq_broadcast_fixture_station'),
    )
    op.create_index('ix_broadcasts_fixture_id', 'broadcasts', ['fixture_id'])
    op.create_index('ix_broadcasts_provider_id', 'broadcasts', ['provider_id'])
    op.create_index('ix_broadcasts_sportmonks_tv_station_id', 'broadcasts', ['sportmonks_tv_station_id'])

    # TV station -> provider mappings
    op.create_table(
        'tv_station_mappings',
        sa.Column('sportmonks_tv_station_id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('provider_id', sa.Integer(), nullable=False),
        sa.Column('station_name', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['provider_id'], ['providers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('sportmonks_tv_station_id'),
    )
    op.create_index('ix_tv_station_mappings_provider_id', 'tv_station_mappings', ['provider_id'])

    # Sync logs
    op.create_table(
        'sync_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('sync_type', sa.String(length=32), nullable=False),
        sa.Column('competition_id', sa.Integer(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sync_status, nullable=False),
        sa.Column('fixtures_processed', sa.Integer(), server_default='0', nullable=False),
        sa.Column('fixtures_inserted', sa.Integer(), server_default='0', nullable=False),
        sa.Column('fixtures_updated', sa.Integer(), server_default='0', nullable=False),
        sa.Column('fixtures_unchanged', sa.Integer(), server_default='0', nullable=False),
        sa.Column('fixtures_skipped', sa.Integer(), server_default='0', nullable=False),
        sa.Column('fixtures_failed', sa.Integer(), server_default='0', nullable=False),
        sa.Column('api_calls', sa.Integer(), server_default='0', nullable=False),
        sa.Column('windows_failed', sa.Integer(), server_default='0', nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['competition_id'], ['competitions.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade() -> None:
    op.drop_table('sync_logs')
    op.drop_index('ix_tv_station_mappings_provider_id', table_name='tv_station_mappings')
    op.drop_table('tv_station_mappings')
    op.drop_index('ix_broadcasts_sportmonks_tv_station_id', table_name='broadcasts')
    op.drop_index('ix_broadcasts_provider_id', table_name='broadcasts')
    op.drop_index('ix_broadcasts_fixture_id', table_name='broadcasts')
    op.drop_table('broadcasts')
    op.drop_table('providers')
    op.drop_index('ix_fixtures_teams_kickoff', table_name='fixtures')
    op.drop_index('ix_fixtures_competition_kickoff', table_name='fixtures')
    op.drop_index('ix_fixtures_away_team_id', table_name='fixtures')
    op.drop_index('ix_fixtures_home_team_id', table_name='fixtures')
    op.drop_index('ix_fixtures_sportmonks_fixture_id', table_name='fixtures')
    op.drop_table('fixtures')
    op.drop_index('ix_teams_competition_id', table_name='teams')
    op.drop_index('ix_teams_sportmonks_team_id', table_name='teams')
    op.drop_table('teams')
    op.drop_index('ix_competitions_sportmonks_league_id', table_name='competitions')
    op.drop_table('competitions')
    sync_status.drop(op.get_bind(), checkfirst=True)
    provider_type.drop(op.get_bind(), checkfirst=True)
    fixture_status.drop(op.get_bind(), checkfirst=True)
