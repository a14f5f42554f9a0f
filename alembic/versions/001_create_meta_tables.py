"""Create OAuth state, Facebook page, Instagram account and profile tables

Revision ID: 001
Revises:
Create Date: 2026-10-19

This migration adds:
1. oauth_states table for single-use OAuth CSRF tokens
2. facebook_pages table for page access tokens
3. instagram_business_accounts table
4. instagram_profiles snapshot table
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'oauth_states',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('state', sa.String(length=128), nullable=False),
        sa.Column('service', sa.String(length=20), nullable=False),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_oauth_states_id', 'oauth_states', ['id'])
    op.create_index('ix_oauth_states_state', 'oauth_states', ['state'], unique=True)
    op.create_index('ix_oauth_states_service', 'oauth_states', ['service'])

    op.create_table(
        'facebook_pages',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('page_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('access_token', sa.Text(), nullable=False),
        sa.Column('tasks', sa.JSON(), nullable=True),
        sa.Column('instagram_business_account_id', sa.String(length=64), nullable=True),
        sa.Column('token_obtained_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_facebook_pages_id', 'facebook_pages', ['id'])
    op.create_index('ix_facebook_pages_page_id', 'facebook_pages', ['page_id'], unique=True)
    op.create_index(
        'ix_facebook_pages_instagram_business_account_id',
        'facebook_pages',
        ['instagram_business_account_id'],
    )

    op.create_table(
        'instagram_business_accounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('instagram_business_account_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('access_token', sa.Text(), nullable=False),
        sa.Column('permissions', sa.Text(), nullable=True),
        sa.Column('tasks', sa.JSON(), nullable=True),
        sa.Column('facebook_page_id', sa.String(length=64), nullable=True),
        sa.Column('token_obtained_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_instagram_business_accounts_id', 'instagram_business_accounts', ['id'])
    op.create_index(
        'ix_instagram_business_accounts_instagram_business_account_id',
        'instagram_business_accounts',
        ['instagram_business_account_id'],
        unique=True,
    )
    op.create_index(
        'ix_instagram_business_accounts_facebook_page_id',
        'instagram_business_accounts',
        ['facebook_page_id'],
    )

    op.create_table(
        'instagram_profiles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('instagram_business_account_id', sa.String(length=64), nullable=False),
        sa.Column('profile_name', sa.String(length=255), nullable=True),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('username', sa.String(length=255), nullable=True),
        sa.Column('profile_picture', sa.Text(), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('account_type', sa.String(length=50), nullable=True),
        sa.Column('followers_count', sa.Integer(), nullable=True),
        sa.Column('follows_count', sa.Integer(), nullable=True),
        sa.Column('media_count', sa.Integer(), nullable=True),
        sa.Column('website', sa.Text(), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('raw_api_response', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_instagram_profiles_id', 'instagram_profiles', ['id'])
    op.create_index(
        'ix_instagram_profiles_instagram_business_account_id',
        'instagram_profiles',
        ['instagram_business_account_id'],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index('ix_instagram_profiles_instagram_business_account_id', table_name='instagram_profiles')
    op.drop_index('ix_instagram_profiles_id', table_name='instagram_profiles')
    op.drop_table('instagram_profiles')

    op.drop_index('ix_instagram_business_accounts_facebook_page_id', table_name='instagram_business_accounts')
    op.drop_index(
        'ix_instagram_business_accounts_instagram_business_account_id',
        table_name='instagram_business_accounts',
    )
    op.drop_index('ix_instagram_business_accounts_id', table_name='instagram_business_accounts')
    op.drop_table('instagram_business_accounts')

    op.drop_index('ix_facebook_pages_instagram_business_account_id', table_name='facebook_pages')
    op.drop_index('ix_facebook_pages_page_id', table_name='facebook_pages')
    op.drop_index('ix_facebook_pages_id', table_name='facebook_pages')
    op.drop_table('facebook_pages')

    op.drop_index('ix_oauth_states_service', table_name='oauth_states')
    op.drop_index('ix_oauth_states_state', table_name='oauth_states')
    op.drop_index('ix_oauth_states_id', table_name='oauth_states')
    op.drop_table('oauth_states')
