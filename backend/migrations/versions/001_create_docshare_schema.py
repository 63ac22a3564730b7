"""Create DocShare schema: user, category, tag, file, file_tag, file_like, audit_record

Revision ID: 001
Revises:
Create Date: 2026-01-02 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Shared trigger function for updated_at columns
    op.execute("""
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)

    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.Text(), nullable=False),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=False),
        sa.Column('role', sa.Text(), server_default='NORMAL', nullable=False),
        sa.Column('upload_status', sa.Text(), server_default='NORMAL', nullable=False),
        sa.Column('upload_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('banned_file_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('last_status_actor_id', sa.Integer(), nullable=True),
        sa.Column('last_status_changed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('last_status_remark', sa.Text(), nullable=True),
        sa.Column('last_login_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_user'),
        sa.UniqueConstraint('username', name='uq_user_username'),
        sa.UniqueConstraint('email', name='uq_user_email'),
        sa.CheckConstraint("role IN ('NORMAL', 'VOLUNTEER', 'ADMIN')", name='ck_user_role'),
        sa.CheckConstraint("upload_status IN ('NORMAL', 'BANNED')", name='ck_user_upload_status'),
        sa.CheckConstraint('upload_count >= 0', name='ck_user_upload_count_non_negative'),
        sa.CheckConstraint('banned_file_count >= 0', name='ck_user_banned_file_count_non_negative'),
    )

    op.create_table(
        'category',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column('sort_order', sa.Integer(), server_default='0', nullable=False),
        sa.Column('enabled', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_category'),
        sa.UniqueConstraint('name', name='uq_category_name'),
        sa.ForeignKeyConstraint(['parent_id'], ['category.id'], ondelete='RESTRICT',
                                name='fk_category_parent_id_category'),
    )
    op.create_index('ix_category_parent_id', 'category', ['parent_id'])

    op.create_table(
        'tag',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('enabled', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('usage_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_tag'),
        sa.UniqueConstraint('name', name='uq_tag_name'),
        sa.CheckConstraint('usage_count >= 0', name='ck_tag_usage_count_non_negative'),
    )

    op.create_table(
        'file',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('original_name', sa.Text(), nullable=False),
        sa.Column('blob_key', sa.Text(), nullable=False),
        sa.Column('file_type', sa.Text(), nullable=False),
        sa.Column('file_ext', sa.Text(), nullable=False),
        sa.Column('size_bytes', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('cover_key', sa.Text(), nullable=True),
        sa.Column('audit_status', sa.Text(), server_default='PENDING', nullable=False),
        sa.Column('audit_user_id', sa.Integer(), nullable=True),
        sa.Column('audit_time', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('audit_remark', sa.Text(), nullable=True),
        sa.Column('view_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('download_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('like_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_file'),
        sa.UniqueConstraint('blob_key', name='uq_file_blob_key'),
        sa.ForeignKeyConstraint(['owner_id'], ['user.id'], ondelete='RESTRICT', name='fk_file_owner_id_user'),
        sa.ForeignKeyConstraint(['category_id'], ['category.id'], ondelete='RESTRICT',
                                name='fk_file_category_id_category'),
        sa.CheckConstraint("audit_status IN ('PENDING', 'APPROVED', 'REJECTED', 'BANNED')",
                           name='ck_file_audit_status'),
        sa.CheckConstraint('view_count >= 0', name='ck_file_view_count_non_negative'),
        sa.CheckConstraint('download_count >= 0', name='ck_file_download_count_non_negative'),
        sa.CheckConstraint('like_count >= 0', name='ck_file_like_count_non_negative'),
    )
    op.create_index('ix_file_owner_status', 'file', ['owner_id', 'audit_status'])
    op.create_index('ix_file_status_created', 'file', ['audit_status', 'created_at'])

    op.create_table(
        'file_tag',
        sa.Column('file_id', sa.Integer(), nullable=False),
        sa.Column('tag_id', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('file_id', 'tag_id', name='pk_file_tag'),
        sa.ForeignKeyConstraint(['file_id'], ['file.id'], ondelete='CASCADE', name='fk_file_tag_file_id_file'),
        sa.ForeignKeyConstraint(['tag_id'], ['tag.id'], ondelete='RESTRICT', name='fk_file_tag_tag_id_tag'),
    )
    op.create_index('ix_file_tag_tag_id', 'file_tag', ['tag_id'])

    op.create_table(
        'file_like',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('file_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_file_like'),
        sa.UniqueConstraint('user_id', 'file_id', name='uq_file_like_user_file'),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE', name='fk_file_like_user_id_user'),
        sa.ForeignKeyConstraint(['file_id'], ['file.id'], ondelete='CASCADE', name='fk_file_like_file_id_file'),
    )
    op.create_index('ix_file_like_user_id', 'file_like', ['user_id'])
    op.create_index('ix_file_like_file_id', 'file_like', ['file_id'])

    # No foreign keys: ledger rows must outlive the files and users they describe
    op.create_table(
        'audit_record',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('subject_type', sa.Text(), nullable=False),
        sa.Column('subject_id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=False),
        sa.Column('old_value', sa.Text(), nullable=True),
        sa.Column('new_value', sa.Text(), nullable=True),
        sa.Column('operation_type', sa.Text(), nullable=False),
        sa.Column('remark', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_audit_record'),
        sa.CheckConstraint("subject_type IN ('FILE', 'USER')", name='ck_audit_record_subject_type'),
    )
    op.create_index('ix_audit_record_subject', 'audit_record', ['subject_type', 'subject_id', 'created_at'])
    op.create_index('ix_audit_record_actor', 'audit_record', ['actor_id', 'created_at'])
    op.create_index('ix_audit_record_operation', 'audit_record', ['operation_type', 'created_at'])

    # Ledger is append-only at the database level too
    op.execute("""
        CREATE OR REPLACE FUNCTION reject_audit_record_change()
        RETURNS TRIGGER AS $$
        BEGIN
            RAISE EXCEPTION 'audit_record is append-only';
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TRIGGER audit_record_append_only
        BEFORE UPDATE OR DELETE ON audit_record
        FOR EACH ROW
        EXECUTE FUNCTION reject_audit_record_change();
    """)

    for table in ('user', 'category', 'tag', 'file'):
        op.execute(f"""
            CREATE TRIGGER update_{table}_updated_at
            BEFORE UPDATE ON "{table}"
            FOR EACH ROW
            EXECUTE FUNCTION update_updated_at_column();
        """)


def downgrade():
    for table in ('file', 'tag', 'category', 'user'):
        op.execute(f'DROP TRIGGER IF EXISTS update_{table}_updated_at ON "{table}"')
    op.execute('DROP TRIGGER IF EXISTS audit_record_append_only ON audit_record')
    op.execute('DROP FUNCTION IF EXISTS reject_audit_record_change()')

    op.drop_index('ix_audit_record_operation', table_name='audit_record')
    op.drop_index('ix_audit_record_actor', table_name='audit_record')
    op.drop_index('ix_audit_record_subject', table_name='audit_record')
    op.drop_table('audit_record')

    op.drop_index('ix_file_like_file_id', table_name='file_like')
    op.drop_index('ix_file_like_user_id', table_name='file_like')
    op.drop_table('file_like')

    op.drop_index('ix_file_tag_tag_id', table_name='file_tag')
    op.drop_table('file_tag')

    op.drop_index('ix_file_status_created', table_name='file')
    op.drop_index('ix_file_owner_status', table_name='file')
    op.drop_table('file')

    op.drop_table('tag')

    op.drop_index('ix_category_parent_id', table_name='category')
    op.drop_table('category')

    op.drop_table('user')

    op.execute('DROP FUNCTION IF EXISTS update_updated_at_column()')
