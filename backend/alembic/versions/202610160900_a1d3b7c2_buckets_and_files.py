from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "202610160900_a1d3b7c2"
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        'buckets',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('folder_name', sa.String(), nullable=False),
        sa.Column('pin', sa.String(length=6), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='ACTIVE'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_buckets_folder_name', 'buckets', ['folder_name'])
    op.create_index('ix_buckets_expires_at', 'buckets', ['expires_at'])
    op.create_index('ix_buckets_pin_status', 'buckets', ['pin', 'status'])

    op.create_table(
        'files',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('bucket_id', sa.String(length=36), sa.ForeignKey('buckets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('object_name', sa.String(), nullable=False),
        sa.Column('filename', sa.String(), nullable=False),
        sa.Column('size', sa.Integer(), nullable=False),
        sa.Column('content_type', sa.String(), nullable=False, server_default='application/octet-stream'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_files_bucket_id', 'files', ['bucket_id'])

def downgrade() -> None:
    op.drop_index('ix_files_bucket_id', table_name='files')
    op.drop_table('files')
    op.drop_index('ix_buckets_pin_status', table_name='buckets')
    op.drop_index('ix_buckets_expires_at', table_name='buckets')
    op.drop_index('ix_buckets_folder_name', table_name='buckets')
    op.drop_table('buckets')
