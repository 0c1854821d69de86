"""initial marketplace schema

Revision ID: 0001_initial
Revises:
Create Date: 2025-10-01 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql')

# type -> duration -> (individual, individual_verified, business), default tier
DEFAULT_PROMOTION_PRICES = {
    'featured': {3: (1000, 800, 600), 7: (2000, 1600, 1200), 15: (3500, 2800, 2100)},
    'urgent': {3: (500, 400, 300), 7: (1000, 800, 600), 15: (1750, 1400, 1050)},
    'sticky': {3: (100, 85, 70), 7: (200, 170, 140), 15: (350, 297, 245)},
}
ACCOUNT_TYPES = ('individual', 'individual_verified', 'business')


def _timestamps():
    return [
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='user'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_suspended', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('suspended_until', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('suspension_reason', sa.Text(), nullable=True),
        sa.Column('individual_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('individual_verified_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('individual_verification_expires_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('verified_seller_name', sa.String(255), nullable=True),
        sa.Column('business_name', sa.String(255), nullable=True),
        sa.Column('business_verification_status', sa.String(20), nullable=True),
        sa.Column('business_verified_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('business_verification_expires_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('shop_slug', sa.String(255), nullable=True, unique=True),
        sa.Column('last_login_at', sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'access_tokens',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('token_id', sa.String(64), nullable=False, unique=True),
        sa.Column('token_hash', sa.Text(), nullable=False),
        sa.Column('name', sa.String(100), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('last_used_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('revoked_at', sa.TIMESTAMP(timezone=True), nullable=True),
    )
    op.create_index('idx_access_tokens_user_created', 'access_tokens', ['user_id', 'created_at'], unique=False)

    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(120), nullable=False, unique=True),
        sa.Column('parent_id', sa.Integer(), sa.ForeignKey('categories.id', ondelete='CASCADE'), nullable=True),
        sa.Column('icon', sa.String(50), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
    )
    op.create_index(op.f('ix_categories_parent_id'), 'categories', ['parent_id'], unique=False)

    op.create_table(
        'locations',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(120), nullable=True),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('parent_id', sa.Integer(), sa.ForeignKey('locations.id', ondelete='CASCADE'), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
    )
    op.create_index(op.f('ix_locations_parent_id'), 'locations', ['parent_id'], unique=False)

    op.create_table(
        'ads',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('condition', sa.String(20), nullable=True),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('categories.id'), nullable=True),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('locations.id'), nullable=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('seller_name', sa.String(255), nullable=True),
        sa.Column('seller_phone', sa.String(20), nullable=True),
        sa.Column('slug', sa.String(300), nullable=True, unique=True),
        sa.Column('custom_fields', JSON_TYPE, nullable=True),
        sa.Column('view_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(20), nullable=False, server_default='approved'),
        sa.Column('status_reason', sa.Text(), nullable=True),
        sa.Column('reviewed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('reviewed_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('suspended_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('suspended_until', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('suspended_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('suspension_reason', sa.Text(), nullable=True),
        sa.Column('is_featured', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('featured_until', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('is_urgent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('urgent_until', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('is_sticky', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('sticky_until', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('is_bumped', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('bump_expires_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('deleted_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('deleted_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('deletion_reason', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_ads_status_created', 'ads', ['status', 'created_at'], unique=False)
    op.create_index('idx_ads_user_id', 'ads', ['user_id'], unique=False)
    op.create_index('idx_ads_category_id', 'ads', ['category_id'], unique=False)

    op.create_table(
        'ad_images',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('ad_id', sa.Integer(), sa.ForeignKey('ads.id', ondelete='CASCADE'), nullable=False),
        sa.Column('filename', sa.String(255), nullable=False),
        sa.Column('file_path', sa.String(500), nullable=False),
        sa.Column('original_name', sa.String(255), nullable=True),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('mime_type', sa.String(100), nullable=True),
        sa.Column('is_primary', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
    )
    op.create_index(op.f('ix_ad_images_ad_id'), 'ad_images', ['ad_id'], unique=False)

    op.create_table(
        'ad_review_history',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('ad_id', sa.Integer(), sa.ForeignKey('ads.id', ondelete='CASCADE'), nullable=False),
        sa.Column('action', sa.String(30), nullable=False),
        sa.Column('actor_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('actor_type', sa.String(20), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
    )
    op.create_index(op.f('ix_ad_review_history_ad_id'), 'ad_review_history', ['ad_id'], unique=False)

    op.create_table(
        'ad_reports',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('ad_id', sa.Integer(), sa.ForeignKey('ads.id', ondelete='CASCADE'), nullable=False),
        sa.Column('reporter_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('reason', sa.String(30), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('reviewed_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(),
    )
    op.create_index(op.f('ix_ad_reports_ad_id'), 'ad_reports', ['ad_id'], unique=False)

    promotion_pricing = op.create_table(
        'promotion_pricing',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('promotion_type', sa.String(20), nullable=False),
        sa.Column('duration_days', sa.Integer(), nullable=False),
        sa.Column('account_type', sa.String(30), nullable=False),
        sa.Column('pricing_tier', sa.String(30), nullable=False, server_default='default'),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('discount_percentage', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint(
            'promotion_type', 'duration_days', 'account_type', 'pricing_tier',
            name='uq_promotion_pricing_combo',
        ),
    )

    op.create_table(
        'category_pricing_tiers',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('categories.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('pricing_tier', sa.String(30), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'ad_promotions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('ad_id', sa.Integer(), sa.ForeignKey('ads.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('promotion_type', sa.String(20), nullable=False),
        sa.Column('duration_days', sa.Integer(), nullable=False),
        sa.Column('price_paid', sa.Numeric(10, 2), nullable=False),
        sa.Column('account_type', sa.String(30), nullable=False),
        sa.Column('payment_reference', sa.String(100), nullable=True),
        sa.Column('payment_method', sa.String(30), nullable=True),
        sa.Column('starts_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
    )
    op.create_index('idx_ad_promotions_active_expires', 'ad_promotions', ['is_active', 'expires_at'], unique=False)
    op.create_index('idx_ad_promotions_ad_id', 'ad_promotions', ['ad_id'], unique=False)

    op.create_table(
        'payment_transactions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('payment_type', sa.String(40), nullable=False),
        sa.Column('payment_gateway', sa.String(20), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('transaction_id', sa.String(100), nullable=False, unique=True),
        sa.Column('reference_id', sa.String(100), nullable=True),
        sa.Column('related_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('metadata', JSON_TYPE, nullable=True),
        sa.Column('verified_at', sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_payment_transactions_user_created', 'payment_transactions', ['user_id', 'created_at'], unique=False)
    op.create_index('idx_payment_transactions_status', 'payment_transactions', ['status'], unique=False)

    op.create_table(
        'individual_verification_requests',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('id_document_type', sa.String(30), nullable=False),
        sa.Column('id_document_number', sa.String(100), nullable=True),
        sa.Column('id_document_front', sa.String(500), nullable=False),
        sa.Column('id_document_back', sa.String(500), nullable=True),
        sa.Column('selfie_with_id', sa.String(500), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('reviewed_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('reviewed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('duration_days', sa.Integer(), nullable=False, server_default='365'),
        sa.Column('payment_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('payment_reference', sa.String(100), nullable=True),
        sa.Column('payment_status', sa.String(20), nullable=False, server_default='pending'),
        *_timestamps(),
    )
    op.create_index(
        op.f('ix_individual_verification_requests_user_id'),
        'individual_verification_requests', ['user_id'], unique=False,
    )

    op.create_table(
        'business_verification_requests',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('business_name', sa.String(255), nullable=False),
        sa.Column('business_license_document', sa.String(500), nullable=False),
        sa.Column('business_category', sa.String(100), nullable=True),
        sa.Column('business_description', sa.Text(), nullable=True),
        sa.Column('business_website', sa.String(255), nullable=True),
        sa.Column('business_phone', sa.String(20), nullable=True),
        sa.Column('business_address', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('reviewed_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('reviewed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('duration_days', sa.Integer(), nullable=False, server_default='365'),
        sa.Column('payment_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('payment_reference', sa.String(100), nullable=True),
        sa.Column('payment_status', sa.String(20), nullable=False, server_default='pending'),
        *_timestamps(),
    )
    op.create_index(
        op.f('ix_business_verification_requests_user_id'),
        'business_verification_requests', ['user_id'], unique=False,
    )

    op.create_table(
        'verification_pricing',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('verification_type', sa.String(20), nullable=False),
        sa.Column('duration_days', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('discount_percentage', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint('verification_type', 'duration_days', name='uq_verification_pricing_type_duration'),
    )

    op.create_table(
        'verification_campaigns',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('discount_percentage', sa.Integer(), nullable=False),
        sa.Column('banner_text', sa.Text(), nullable=True),
        sa.Column('banner_emoji', sa.String(10), nullable=True),
        sa.Column('start_date', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('end_date', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('applies_to_types', JSON_TYPE, nullable=True),
        sa.Column('min_duration_days', sa.Integer(), nullable=True),
        sa.Column('max_uses', sa.Integer(), nullable=True),
        sa.Column('current_uses', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
    )

    op.create_table(
        'site_settings',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('setting_key', sa.String(100), nullable=False, unique=True),
        sa.Column('setting_value', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
    )

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('actor_user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('action_type', sa.Text(), nullable=False),
        sa.Column('target_type', sa.Text(), nullable=True),
        sa.Column('target_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('metadata', JSON_TYPE, nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    )
    op.create_index('ix_audit_logs_actor_user_id_created_at', 'audit_logs', ['actor_user_id', 'created_at'], unique=False)
    op.create_index('ix_audit_logs_action_type', 'audit_logs', ['action_type'], unique=False)

    op.bulk_insert(
        promotion_pricing,
        [
            {
                'promotion_type': promotion_type,
                'duration_days': days,
                'account_type': account_type,
                'pricing_tier': 'default',
                'price': price,
                'discount_percentage': 0,
                'is_active': True,
            }
            for promotion_type, durations in DEFAULT_PROMOTION_PRICES.items()
            for days, prices in durations.items()
            for account_type, price in zip(ACCOUNT_TYPES, prices)
        ],
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_audit_logs_action_type', table_name='audit_logs')
    op.drop_index('ix_audit_logs_actor_user_id_created_at', table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_table('site_settings')
    op.drop_table('verification_campaigns')
    op.drop_table('verification_pricing')
    op.drop_index(op.f('ix_business_verification_requests_user_id'), table_name='business_verification_requests')
    op.drop_table('business_verification_requests')
    op.drop_index(op.f('ix_individual_verification_requests_user_id'), table_name='individual_verification_requests')
    op.drop_table('individual_verification_requests')
    op.drop_index('idx_payment_transactions_status', table_name='payment_transactions')
    op.drop_index('idx_payment_transactions_user_created', table_name='payment_transactions')
    op.drop_table('payment_transactions')
    op.drop_index('idx_ad_promotions_ad_id', table_name='ad_promotions')
    op.drop_index('idx_ad_promotions_active_expires', table_name='ad_promotions')
    op.drop_table('ad_promotions')
    op.drop_table('category_pricing_tiers')
    op.drop_table('promotion_pricing')
    op.drop_index(op.f('ix_ad_reports_ad_id'), table_name='ad_reports')
    op.drop_table('ad_reports')
    op.drop_index(op.f('ix_ad_review_history_ad_id'), table_name='ad_review_history')
    op.drop_table('ad_review_history')
    op.drop_index(op.f('ix_ad_images_ad_id'), table_name='ad_images')
    op.drop_table('ad_images')
    op.drop_index('idx_ads_category_id', table_name='ads')
    op.drop_index('idx_ads_user_id', table_name='ads')
    op.drop_index('idx_ads_status_created', table_name='ads')
    op.drop_table('ads')
    op.drop_index(op.f('ix_locations_parent_id'), table_name='locations')
    op.drop_table('locations')
    op.drop_index(op.f('ix_categories_parent_id'), table_name='categories')
    op.drop_table('categories')
    op.drop_index('idx_access_tokens_user_created', table_name='access_tokens')
    op.drop_table('access_tokens')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
