from alembic import op
import sqlalchemy as sa

from digital_download.core.database import UTCDateTime

# revision identifiers, used by Alembic.
revision = "202610190900_a1d3c7e2"
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(), nullable=True, unique=True, index=True),
        sa.Column('created_at', UTCDateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.text('1')),
    )

    op.create_table(
        'user_groups',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('handle', sa.String(), nullable=False, unique=True, index=True),
        sa.Column('name', sa.String(), nullable=True),
    )

    op.create_table(
        'user_group_members',
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('group_id', sa.Integer(), sa.ForeignKey('user_groups.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table(
        'volumes',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('handle', sa.String(), nullable=False, unique=True, index=True),
        sa.Column('fs_type', sa.String(), nullable=False, server_default='local'),
        sa.Column('path', sa.String(), nullable=True),
        sa.Column('url', sa.String(), nullable=True),
        sa.Column('bucket', sa.String(), nullable=True),
    )

    op.create_table(
        'assets',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('volume_id', sa.Integer(), sa.ForeignKey('volumes.id'), nullable=False, index=True),
        sa.Column('folder_path', sa.String(), nullable=False, server_default=''),
        sa.Column('filename', sa.String(), nullable=False),
        sa.Column('size', sa.BigInteger(), nullable=True),
        sa.Column('url', sa.String(), nullable=True),
        sa.Column('created_at', UTCDateTime(), nullable=True),
    )

    op.create_table(
        'tokens',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('token', sa.String(length=64), nullable=False, unique=True, index=True),
        sa.Column('asset_id', sa.Integer(), sa.ForeignKey('assets.id'), nullable=True, index=True),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('expires', UTCDateTime(), nullable=True),
        sa.Column('max_downloads', sa.Integer(), nullable=True),
        sa.Column('total_downloads', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_downloaded', UTCDateTime(), nullable=True),
        sa.Column('require_user', sa.Text(), nullable=True),
        sa.Column('headers', sa.Text(), nullable=True),
        sa.Column('created_at', UTCDateTime(), nullable=True),
    )

    op.create_table(
        'download_log',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('token_id', sa.Integer(), sa.ForeignKey('tokens.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('asset_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('created_at', UTCDateTime(), nullable=True),
    )

def downgrade() -> None:
    op.drop_table('download_log')
    op.drop_table('tokens')
    op.drop_table('assets')
    op.drop_table('volumes')
    op.drop_table('user_group_members')
    op.drop_table('user_groups')
    op.drop_table('users')
