"""create user, room, room_player, category and word tables

Revision ID: 5c2d9e7a1b30
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2d9e7a1b30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa.inspect(bind).get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('display_name', sa.String(length=64), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)

    op.create_table(
        'room',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('code', sa.String(length=4), nullable=False),
        sa.Column('admin_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('language', sa.String(length=8), nullable=False),
        sa.Column('current_word', sa.String(length=128), nullable=True),
        sa.Column('impostor_ids', sa.Text(), nullable=True),
        sa.Column('turn_order', sa.Text(), nullable=True),
        sa.Column('current_round', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(length=128), nullable=True),
        sa.Column('win_condition', sa.String(length=32), nullable=True),
        sa.Column('submitted_words', sa.Text(), nullable=True),
        sa.Column('requested_impostors', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_activity', sa.DateTime(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
    )
    op.create_index('ix_room_code', 'room', ['code'], unique=True)
    op.create_index('ix_room_last_activity', 'room', ['last_activity'])

    op.create_table(
        'room_player',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('room_id', sa.String(length=36), sa.ForeignKey('room.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('display_name', sa.String(length=64), nullable=False),
        sa.Column('is_connected', sa.Boolean(), nullable=False),
        sa.Column('is_eliminated', sa.Boolean(), nullable=False),
        sa.Column('has_voted', sa.Boolean(), nullable=False),
        sa.Column('voted_for', sa.String(length=64), nullable=True),
    )
    op.create_index('ix_room_player_room_id', 'room_player', ['room_id'])
    op.create_index('ix_room_player_user_id', 'room_player', ['user_id'], unique=True)

    op.create_table(
        'category',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('slug', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
    )
    op.create_index('ix_category_slug', 'category', ['slug'], unique=True)

    op.create_table(
        'word',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('word', sa.String(length=128), nullable=False),
        sa.Column('language', sa.String(length=8), nullable=False),
        sa.Column('approved', sa.Boolean(), nullable=False),
        sa.Column('suggested_by', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('category.id'), nullable=False),
    )
    op.create_index('ix_word_language', 'word', ['language'])
    op.create_index('ix_word_approved', 'word', ['approved'])


def downgrade():
    op.drop_table('word')
    op.drop_table('category')
    op.drop_table('room_player')
    op.drop_table('room')
    op.drop_table('user')
