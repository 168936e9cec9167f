"""create attestation table

Revision ID: 5b7e0c91a2d4
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5b7e0c91a2d4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'attestation' in insp.get_table_names():
        return
    op.create_table(
        'attestation',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('proof_hash', sa.String(length=80), nullable=False),
        sa.Column('mode', sa.String(length=16), nullable=False),
        sa.Column('backend', sa.String(length=32), nullable=False),
        sa.Column('moves', sa.BigInteger(), nullable=False),
        sa.Column('elapsed_seconds', sa.BigInteger(), nullable=False),
        sa.Column('matched_pairs', sa.BigInteger(), nullable=False),
        sa.Column('final_score', sa.BigInteger(), nullable=False),
        sa.Column('is_complete', sa.Boolean(), nullable=False),
        sa.Column('public_values', sa.String(length=64), nullable=False),
        sa.Column('artifact_path', sa.Text(), nullable=True),
        sa.Column('verified', sa.Boolean(), nullable=False),
        sa.Column('game_code', sa.String(length=4), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    with op.batch_alter_table('attestation') as batch_op:
        batch_op.create_index('ix_attestation_proof_hash', ['proof_hash'], unique=True)


def downgrade():
    with op.batch_alter_table('attestation') as batch_op:
        batch_op.drop_index('ix_attestation_proof_hash')
    op.drop_table('attestation')
