"""Create tags and scan_events tables"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '3f9a1c7d2e10'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        'tags',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('nfc_uid', sa.String(20), nullable=False),
        sa.Column('product_id', sa.String(100), nullable=False, unique=True),
        sa.Column('product_name', sa.String(200), nullable=True),
        sa.Column('batch_number', sa.String(100), nullable=True),
        sa.Column('manufacturing_date', sa.DateTime(), nullable=True),
        sa.Column('manufacturing_date_time', sa.DateTime(), nullable=True),
        sa.Column('expiry_date', sa.DateTime(), nullable=True),
        sa.Column('manufacturing_location', sa.String(200), nullable=True),
        sa.Column('secret_key', sa.String(128), nullable=True),
        sa.Column('scan_count', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('trusted_source', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_tags_nfc_uid', 'tags', ['nfc_uid'], unique=True)

    # Historial de lecturas: sólo inserciones
    op.create_table(
        'scan_events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tag_id', sa.Integer(), sa.ForeignKey('tags.id'), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('location', sa.String(200), nullable=True),
        sa.Column('ip_address', sa.String(100), nullable=True),
        sa.Column('user_agent', sa.String(500), nullable=True),
    )
    op.create_index('ix_scan_events_tag_id', 'scan_events', ['tag_id'])
    op.create_index('ix_scan_events_tag_id_timestamp', 'scan_events', ['tag_id', 'timestamp'])

def downgrade():
    op.drop_index('ix_scan_events_tag_id_timestamp', table_name='scan_events')
    op.drop_index('ix_scan_events_tag_id', table_name='scan_events')
    op.drop_table('scan_events')
    op.drop_index('ix_tags_nfc_uid', table_name='tags')
    op.drop_table('tags')
