"""Add campaign ratings and client issue reports

Revision ID: add_campaign_ratings_002
Revises: create_campaign_lifecycle_001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'add_campaign_ratings_002'
down_revision = 'create_campaign_lifecycle_001'
branch_labels = None
depends_on = None


def upgrade():
    # Agency running average
    op.add_column('agency_profiles', sa.Column('average_rating', sa.Numeric(3, 1), nullable=False, server_default='0'))
    op.add_column('agency_profiles', sa.Column('total_reviews', sa.Integer(), nullable=False, server_default='0'))

    # Client rating on the campaign
    op.add_column('campaigns', sa.Column('is_rated', sa.Boolean(), nullable=False, server_default=sa.false()))
    op.add_column('campaigns', sa.Column('rating', sa.Integer()))
    op.add_column('campaigns', sa.Column('client_review', sa.Text()))
    op.add_column('campaigns', sa.Column('rated_at', sa.DateTime()))

    op.create_table('campaign_reports',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('campaign_id', sa.String(36), sa.ForeignKey('campaigns.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('reporter_user_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('status', sa.Enum('pending', 'resolved', 'dismissed', name='reportstatus'), nullable=False, server_default='pending', index=True),
        sa.Column('resolution_note', sa.Text()),
        sa.Column('resolved_at', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )


def downgrade():
    op.drop_table('campaign_reports')
    op.execute('DROP TYPE IF EXISTS reportstatus')

    op.drop_column('campaigns', 'rated_at')
    op.drop_column('campaigns', 'client_review')
    op.drop_column('campaigns', 'rating')
    op.drop_column('campaigns', 'is_rated')
    op.drop_column('agency_profiles', 'total_reviews')
    op.drop_column('agency_profiles', 'average_rating')
