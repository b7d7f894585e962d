"""create courtroom schema

Revision ID: 4c2a9e7b1d30
Revises:
Create Date: 2025-09-02 10:20:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c2a9e7b1d30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('email', sa.String(length=120), nullable=False),
            sa.Column('name', sa.String(length=64), nullable=True),
            sa.Column('password_hash', sa.String(length=256), nullable=True),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_user_email', 'user', ['email'], unique=True)

    if 'task' not in existing_tables:
        op.create_table(
            'task',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('title', sa.String(length=128), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('code', sa.Text(), nullable=False),
            sa.Column('solution', sa.Text(), nullable=False),
            sa.Column('violation', sa.String(length=64), nullable=False),
            sa.Column('difficulty', sa.String(length=16), nullable=False),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('title'),
        )

    if 'session' not in existing_tables:
        op.create_table(
            'session',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=True),
            sa.Column('phase', sa.String(length=32), nullable=True),
            sa.Column('difficulty', sa.String(length=16), nullable=True),
            sa.Column('duration', sa.Integer(), nullable=True),
            sa.Column('score', sa.Integer(), nullable=True),
            sa.Column('penalties', sa.Integer(), nullable=True),
            sa.Column('completed', sa.Integer(), nullable=True),
            sa.Column('ignored', sa.Integer(), nullable=True),
            sa.Column('start_time', sa.DateTime(timezone=True), nullable=True),
            sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(['user_id'], ['user.id']),
            sa.PrimaryKeyConstraint('id'),
        )

    if 'session_task' not in existing_tables:
        op.create_table(
            'session_task',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('session_id', sa.Integer(), nullable=False),
            sa.Column('task_id', sa.Integer(), nullable=False),
            sa.Column('output', sa.Text(), nullable=True),
            sa.Column('status', sa.String(length=16), nullable=True),
            sa.Column('penalty', sa.Integer(), nullable=True),
            sa.ForeignKeyConstraint(['session_id'], ['session.id']),
            sa.ForeignKeyConstraint(['task_id'], ['task.id']),
            sa.PrimaryKeyConstraint('id'),
        )

    if 'message' not in existing_tables:
        op.create_table(
            'message',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('session_id', sa.Integer(), nullable=True),
            sa.Column('sender', sa.String(length=32), nullable=False),
            sa.Column('content', sa.Text(), nullable=False),
            sa.Column('timestamp', sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(['session_id'], ['session.id']),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_message_timestamp', 'message', ['timestamp'], unique=False)

    if 'verdict' not in existing_tables:
        op.create_table(
            'verdict',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('session_id', sa.Integer(), nullable=False),
            sa.Column('task_id', sa.Integer(), nullable=True),
            sa.Column('violation', sa.String(length=64), nullable=False),
            sa.Column('penalty', sa.Integer(), nullable=True),
            sa.Column('reason', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(['session_id'], ['session.id']),
            sa.ForeignKeyConstraint(['task_id'], ['task.id']),
            sa.PrimaryKeyConstraint('id'),
        )

    if 'game_result' not in existing_tables:
        op.create_table(
            'game_result',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('session_id', sa.Integer(), nullable=True),
            sa.Column('difficulty', sa.String(length=16), nullable=True),
            sa.Column('outcome', sa.String(length=16), nullable=True),
            sa.Column('game_state', sa.String(length=16), nullable=True),
            sa.Column('time_taken', sa.Integer(), nullable=True),
            sa.Column('completed_tasks', sa.Text(), nullable=True),
            sa.Column('total_tasks', sa.Integer(), nullable=True),
            sa.Column('penalties', sa.Text(), nullable=True),
            sa.Column('final_code', sa.Text(), nullable=True),
            sa.Column('generated_code', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(['session_id'], ['session.id']),
            sa.PrimaryKeyConstraint('id'),
        )


def downgrade():
    op.drop_table('game_result')
    op.drop_table('verdict')
    op.drop_index('ix_message_timestamp', table_name='message')
    op.drop_table('message')
    op.drop_table('session_task')
    op.drop_table('session')
    op.drop_table('task')
    op.drop_index('ix_user_email', table_name='user')
    op.drop_table('user')
