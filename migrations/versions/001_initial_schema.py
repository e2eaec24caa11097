"""Annotations and tracked issue state

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Visible annotations, one row per marker
    op.create_table(
        'annotations',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('resource', sa.String(length=1000), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('tracked_id', sa.String(length=36), nullable=True),
        sa.Column('rule_key', sa.String(length=255), nullable=False),
        sa.Column('severity', sa.String(length=20), nullable=True),
        sa.Column('priority', sa.Integer(), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('line_number', sa.Integer(), nullable=True),
        sa.Column('char_start', sa.Integer(), nullable=True),
        sa.Column('char_end', sa.Integer(), nullable=True),
        sa.Column('checksum', sa.BigInteger(), nullable=True),
        sa.Column('flows', sa.Text(), nullable=True),
        sa.Column('impacts', sa.Text(), nullable=True),
        sa.Column('server_issue_key', sa.String(length=255), nullable=True),
        sa.Column('creation_date', sa.String(length=20), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_annotations_resource_category', 'annotations', ['resource', 'category'])

    # Files analyzed at least once
    op.create_table(
        'tracked_files',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('project', sa.String(length=255), nullable=False),
        sa.Column('resource', sa.String(length=1000), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_tracked_files_project', 'tracked_files', ['project'])

    # Tracked annotations per file
    op.create_table(
        'tracked_issues',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('tracked_file_id', sa.Integer(), sa.ForeignKey('tracked_files.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=True),
        sa.Column('uuid', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('rule_key', sa.String(length=255), nullable=False),
        sa.Column('severity', sa.String(length=20), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('line', sa.Integer(), nullable=True),
        sa.Column('char_start', sa.Integer(), nullable=True),
        sa.Column('char_end', sa.Integer(), nullable=True),
        sa.Column('checksum', sa.BigInteger(), nullable=True),
        sa.Column('flows', sa.Text(), nullable=True),
        sa.Column('impacts', sa.Text(), nullable=True),
        sa.Column('server_issue_key', sa.String(length=255), nullable=True),
        sa.Column('marker_id', sa.Integer(), nullable=True),
        sa.Column('resolved', sa.Boolean(), server_default=sa.false()),
    )


def downgrade() -> None:
    op.drop_table('tracked_issues')
    op.drop_index('ix_tracked_files_project', table_name='tracked_files')
    op.drop_table('tracked_files')
    op.drop_index('ix_annotations_resource_category', table_name='annotations')
    op.drop_table('annotations')
