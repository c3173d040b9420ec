"""Add asset health scores and failure predictions

Revision ID: 001_add_asset_health_scores
Revises:
Create Date: 2026-10-17 02:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001_add_asset_health_scores'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # One row per asset, replaced on every recalculation
    op.create_table(
        'asset_health_scores',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('asset_id', sa.String(36), sa.ForeignKey('hsse_assets.id'), nullable=False),
        sa.Column('tenant_id', sa.String(36), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('risk_level', sa.String(16), nullable=False),
        sa.Column('age_factor', sa.Float(), nullable=False),
        sa.Column('condition_factor', sa.Float(), nullable=False),
        sa.Column('usage_factor', sa.Float(), nullable=False),
        sa.Column('environment_factor', sa.Float(), nullable=False),
        sa.Column('maintenance_compliance_pct', sa.Float(), nullable=False),
        sa.Column('failure_probability', sa.Float(), nullable=False),
        sa.Column('days_until_predicted_failure', sa.Integer(), nullable=True),
        sa.Column('trend', sa.String(16), nullable=False),
        sa.Column('contributing_factors', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('last_calculated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('calculation_model_version', sa.String(16), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.UniqueConstraint('asset_id', name='uq_asset_health_scores_asset_id'),
    )
    op.create_index('ix_asset_health_scores_tenant_id', 'asset_health_scores', ['tenant_id'])
    op.create_index('ix_asset_health_scores_risk_level', 'asset_health_scores', ['risk_level'])

    op.create_table(
        'asset_failure_predictions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('asset_id', sa.String(36), sa.ForeignKey('hsse_assets.id'), nullable=False),
        sa.Column('tenant_id', sa.String(36), nullable=False),
        sa.Column('predicted_failure_type', sa.String(64), nullable=False),
        sa.Column('predicted_date', sa.Date(), nullable=False),
        sa.Column('confidence_pct', sa.Integer(), nullable=False),
        sa.Column('severity', sa.String(16), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='active'),
        sa.Column('recommended_action', sa.Text(), nullable=False),
        sa.Column('model_inputs', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('prediction_model_version', sa.String(16), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False),
        sa.Column('estimated_repair_cost', sa.Float(), nullable=True),
        sa.Column('cost_if_ignored', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_asset_failure_predictions_asset_id', 'asset_failure_predictions', ['asset_id'])
    op.create_index('ix_asset_failure_predictions_tenant_id', 'asset_failure_predictions', ['tenant_id'])


def downgrade():
    op.drop_index('ix_asset_failure_predictions_tenant_id', table_name='asset_failure_predictions')
    op.drop_index('ix_asset_failure_predictions_asset_id', table_name='asset_failure_predictions')
    op.drop_table('asset_failure_predictions')

    op.drop_index('ix_asset_health_scores_risk_level', table_name='asset_health_scores')
    op.drop_index('ix_asset_health_scores_tenant_id', table_name='asset_health_scores')
    op.drop_table('asset_health_scores')
