"""Create campaign lifecycle tables

This migration adds:
1. users table and the client/agency/influencer profile tables
2. notifications table
3. campaigns table (optimistic version column)
4. influencer preference association tables
5. campaign_milestones table
6. campaign_assets table
7. campaign_negotiations table
8. campaign_assignments table

Revision ID: create_campaign_lifecycle_001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = 'create_campaign_lifecycle_001'
down_revision = None
branch_labels = None
depends_on = None


def _enum(name, *values):
    return sa.Enum(*values, name=name)


negotiation_party = _enum('negotiationparty', 'client', 'admin', 'agency')
# second reference to the same type, created with the campaigns table
negotiation_party_existing = postgresql.ENUM('client', 'admin', 'agency', name='negotiationparty', create_type=False)


def upgrade():
    # 1. Users and profiles
    op.create_table('users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('password_hash', sa.String(255)),
        sa.Column('name', sa.String(255)),
        sa.Column('user_type', _enum('usertypedb', 'client', 'agency', 'influencer', 'admin'), nullable=False),
        sa.Column('is_active', sa.Boolean, default=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )

    op.create_table('client_profiles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), unique=True, nullable=False),
        sa.Column('company_name', sa.String(255)),
        sa.Column('contact_phone', sa.String(50)),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )

    op.create_table('agency_profiles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), unique=True, nullable=False),
        sa.Column('agency_name', sa.String(255), nullable=False),
        sa.Column('contact_phone', sa.String(50)),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )

    op.create_table('influencer_profiles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), unique=True, nullable=False),
        sa.Column('display_name', sa.String(100), nullable=False),
        sa.Column('niche', sa.String(100)),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )

    # 2. Notifications
    op.create_table('notifications',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('role', sa.String(20)),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text),
        sa.Column('data', sa.JSON),
        sa.Column('read', sa.Boolean, default=False),
        sa.Column('read_at', sa.DateTime),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )

    # 3. Campaigns
    op.create_table('campaigns',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('client_id', sa.String(36), sa.ForeignKey('client_profiles.id'), nullable=False, index=True),
        sa.Column('agency_id', sa.String(36), sa.ForeignKey('agency_profiles.id')),
        sa.Column('assigned_admin_id', sa.String(36), sa.ForeignKey('users.id')),

        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('campaign_type', _enum('campaigntype', 'paid_ad', 'influencer_promotion'), nullable=False),
        sa.Column('product_type', sa.String(100)),
        sa.Column('niche', sa.String(100)),

        sa.Column('goals', sa.Text),
        sa.Column('product_service_details', sa.Text),
        sa.Column('dos', sa.JSON),
        sa.Column('donts', sa.JSON),
        sa.Column('reporting_requirements', sa.Text),
        sa.Column('usage_rights', sa.Text),
        sa.Column('starting_date', sa.DateTime),
        sa.Column('duration_days', sa.Integer),
        sa.Column('need_sample_product', sa.Boolean, nullable=False, server_default=sa.false()),

        sa.Column('status', _enum(
            'campaignstatus', 'draft', 'needs_quote', 'quoted', 'negotiating', 'accepted',
            'partial_paid', 'paid', 'pending_assignment', 'active', 'in_review',
            'completed', 'cancelled', 'declined',
        ), nullable=False, index=True),
        sa.Column('current_step', sa.Integer, nullable=False, server_default='1'),
        sa.Column('is_placed', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('placed_at', sa.DateTime),
        sa.Column('completed_at', sa.DateTime),
        sa.Column('cancelled_at', sa.DateTime),

        sa.Column('base_budget', sa.Numeric(12, 2)),
        sa.Column('vat_amount', sa.Numeric(12, 2)),
        sa.Column('total_budget', sa.Numeric(12, 2)),
        sa.Column('net_payable_amount', sa.Numeric(12, 2)),
        sa.Column('quoted_base_budget', sa.Numeric(12, 2)),
        sa.Column('quoted_vat_amount', sa.Numeric(12, 2)),
        sa.Column('quoted_total_budget', sa.Numeric(12, 2)),
        sa.Column('agency_fee_percent', sa.Numeric(5, 2)),
        sa.Column('platform_fee_amount', sa.Numeric(12, 2)),
        sa.Column('available_for_execution', sa.Numeric(12, 2)),

        sa.Column('payment_status', _enum('paymentstatus', 'pending', 'partial', 'full'), nullable=False),
        sa.Column('paid_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('due_amount', sa.Numeric(12, 2)),

        sa.Column('negotiation_turn', negotiation_party),
        sa.Column('negotiation_count', sa.Integer, nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer, nullable=False),

        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )

    # 4. Influencer preferences
    for table in ('campaign_preferred_influencers', 'campaign_excluded_influencers'):
        op.create_table(table,
            sa.Column('campaign_id', sa.String(36), sa.ForeignKey('campaigns.id', ondelete='CASCADE'), primary_key=True),
            sa.Column('influencer_id', sa.String(36), sa.ForeignKey('influencer_profiles.id', ondelete='CASCADE'), primary_key=True),
        )

    # 5. Milestones
    op.create_table('campaign_milestones',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('campaign_id', sa.String(36), sa.ForeignKey('campaigns.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('order', sa.Integer, nullable=False),
        sa.Column('content_title', sa.String(255), nullable=False),
        sa.Column('platform', sa.String(50)),
        sa.Column('content_quantity', sa.Integer),
        sa.Column('delivery_days', sa.Integer),
        sa.Column('expected_reach', sa.Integer),
        sa.Column('expected_views', sa.Integer),
        sa.Column('expected_likes', sa.Integer),
        sa.Column('expected_comments', sa.Integer),
        sa.Column('actual_reach', sa.Integer),
        sa.Column('actual_views', sa.Integer),
        sa.Column('actual_likes', sa.Integer),
        sa.Column('actual_comments', sa.Integer),
        sa.Column('status', _enum('milestonestatus', 'pending', 'in_review', 'accepted', 'declined'), nullable=False),
        sa.Column('payment_status', _enum('milestonepaymentstatus', 'unpaid', 'partial', 'paid'), nullable=False),
        sa.Column('submission_description', sa.Text),
        sa.Column('submission_attachments', sa.JSON),
        sa.Column('live_links', sa.JSON),
        sa.Column('requested_amount', sa.Numeric(12, 2)),
        sa.Column('paid_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('rejection_reason', sa.Text),
        sa.Column('submitted_by_user_id', sa.String(36), sa.ForeignKey('users.id')),
        sa.Column('submitted_at', sa.DateTime),
        sa.Column('reviewed_at', sa.DateTime),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint('campaign_id', 'order', name='uq_campaign_milestone_order'),
    )

    # 6. Assets
    op.create_table('campaign_assets',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('campaign_id', sa.String(36), sa.ForeignKey('campaigns.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('category', _enum('assetcategory', 'brand', 'content'), nullable=False),
        sa.Column('asset_type', sa.String(50)),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('file_url', sa.String(1000), nullable=False),
        sa.Column('file_size', sa.Integer),
        sa.Column('mime_type', sa.String(100)),
        sa.Column('description', sa.Text),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )

    # 7. Negotiation log
    op.create_table('campaign_negotiations',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('campaign_id', sa.String(36), sa.ForeignKey('campaigns.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('sequence', sa.Integer, nullable=False),
        sa.Column('sender', negotiation_party_existing, nullable=False),
        sa.Column('sender_user_id', sa.String(36), sa.ForeignKey('users.id')),
        sa.Column('action', _enum('negotiationaction', 'request', 'counter_offer', 'accept', 'reject', 'message'), nullable=False),
        sa.Column('proposed_base_budget', sa.Numeric(12, 2)),
        sa.Column('proposed_vat_amount', sa.Numeric(12, 2)),
        sa.Column('proposed_total_budget', sa.Numeric(12, 2)),
        sa.Column('proposed_service_fee_percent', sa.Numeric(5, 2)),
        sa.Column('message', sa.Text),
        sa.Column('is_read', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint('campaign_id', 'sequence', name='uq_campaign_negotiation_sequence'),
    )

    # 8. Assignments
    op.create_table('campaign_assignments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('campaign_id', sa.String(36), sa.ForeignKey('campaigns.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('party_type', _enum('partytype', 'influencer', 'agency'), nullable=False),
        sa.Column('influencer_id', sa.String(36), sa.ForeignKey('influencer_profiles.id'), index=True),
        sa.Column('agency_id', sa.String(36), sa.ForeignKey('agency_profiles.id'), index=True),
        sa.Column('assigned_by_user_id', sa.String(36), sa.ForeignKey('users.id')),
        sa.Column('status', _enum(
            'assignmentstatus', 'new_offer', 'accepted', 'in_progress', 'completed',
            'declined', 'cancelled', 'expired',
        ), nullable=False),
        sa.Column('percentage', sa.Numeric(5, 2)),
        sa.Column('offered_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('vat_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('message', sa.Text),
        sa.Column('decline_reason', sa.Text),
        sa.Column('offer_expires_at', sa.DateTime),
        sa.Column('accepted_at', sa.DateTime),
        sa.Column('started_at', sa.DateTime),
        sa.Column('completed_at', sa.DateTime),
        sa.Column('declined_at', sa.DateTime),
        sa.Column('cancelled_at', sa.DateTime),
        sa.Column('delivery_address', sa.Text),
        sa.Column('delivery_city', sa.String(100)),
        sa.Column('delivery_phone', sa.String(50)),
        sa.Column('delivery_status', _enum('deliverystatus', 'pending', 'shipped', 'delivered')),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )


def downgrade():
    op.drop_table('campaign_assignments')
    op.drop_table('campaign_negotiations')
    op.drop_table('campaign_assets')
    op.drop_table('campaign_milestones')
    op.drop_table('campaign_excluded_influencers')
    op.drop_table('campaign_preferred_influencers')
    op.drop_table('campaigns')
    op.drop_table('notifications')
    op.drop_table('influencer_profiles')
    op.drop_table('agency_profiles')
    op.drop_table('client_profiles')
    op.drop_table('users')

    bind = op.get_bind()
    for name in (
        'deliverystatus', 'assignmentstatus', 'partytype', 'negotiationaction', 'assetcategory',
        'milestonepaymentstatus', 'milestonestatus', 'negotiationparty', 'paymentstatus',
        'campaignstatus', 'campaigntype', 'usertypedb',
    ):
        sa.Enum(name=name).drop(bind, checkfirst=True)
