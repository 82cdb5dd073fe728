"""initial_schema

Revision ID: 4b1d7e2a9c30
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4b1d7e2a9c30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Users, profiles, hosted sites and Boongle Mail tables."""
    op.create_table('users',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('idx_users_email', 'users', ['email'], unique=True)

    op.create_table('profiles',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('credits', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
        sa.CheckConstraint('credits >= 0', name='ck_profiles_credits'),
        sa.ForeignKeyConstraint(['id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table('hosted_sites',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('site_name', sa.String(length=256), nullable=False),
        sa.Column('public_link_slug', sa.String(length=300), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_hosted_sites_user', 'hosted_sites', ['user_id'], unique=False)
    op.create_index('idx_hosted_sites_slug', 'hosted_sites', ['public_link_slug'], unique=True)

    op.create_table('site_files',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('site_id', sa.String(length=64), nullable=False),
        sa.Column('file_name', sa.String(length=256), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(['site_id'], ['hosted_sites.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('site_id', 'file_name', name='uq_site_files_name'),
    )
    op.create_index('idx_site_files_site', 'site_files', ['site_id'], unique=False)

    op.create_table('boongle_mail_identities',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('email_address', sa.String(length=320), nullable=False),
        sa.Column('display_name', sa.String(length=256), nullable=True),
        sa.Column('slot', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'slot', name='uq_mail_identities_slot'),
    )
    op.create_index('idx_mail_identities_address', 'boongle_mail_identities', ['email_address'], unique=True)

    op.create_table('emails',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('sender_email_address', sa.String(length=320), nullable=False),
        sa.Column('recipient_email_address', sa.String(length=320), nullable=False),
        sa.Column('subject', sa.Text(), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('sent_at', sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table('email_user_mailbox',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('email_id', sa.String(length=64), nullable=False),
        sa.Column('boongle_identity_id', sa.String(length=64), nullable=False),
        sa.Column('folder', sa.String(length=16), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('associated_at', sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(['email_id'], ['emails.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['boongle_identity_id'], ['boongle_mail_identities.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_mailbox_identity_folder', 'email_user_mailbox', ['boongle_identity_id', 'folder'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_mailbox_identity_folder', table_name='email_user_mailbox')
    op.drop_table('email_user_mailbox')
    op.drop_table('emails')
    op.drop_index('idx_mail_identities_address', table_name='boongle_mail_identities')
    op.drop_table('boongle_mail_identities')
    op.drop_index('idx_site_files_site', table_name='site_files')
    op.drop_table('site_files')
    op.drop_index('idx_hosted_sites_slug', table_name='hosted_sites')
    op.drop_index('idx_hosted_sites_user', table_name='hosted_sites')
    op.drop_table('hosted_sites')
    op.drop_table('profiles')
    op.drop_index('idx_users_email', table_name='users')
    op.drop_table('users')
