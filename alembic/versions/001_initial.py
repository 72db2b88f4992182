"""initial schema: posts, members, emails

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "posts",
        sa.Column("id", sa.String(length=24), primary_key=True),
        sa.Column("uuid", sa.String(length=36), nullable=False, unique=True, index=True),
        sa.Column("title", sa.String(length=2000), nullable=False),
        sa.Column("slug", sa.String(length=191), nullable=False, unique=True, index=True),
        sa.Column("html", sa.Text(), nullable=True),
        sa.Column("plaintext", sa.Text(), nullable=True),
        sa.Column("feature_image", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="draft"),
        sa.Column("visibility", sa.Text(), nullable=False, server_default="public"),
        sa.Column("email_recipient_filter", sa.Text(), nullable=False, server_default="none"),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
    )
    op.create_table(
        "labels",
        sa.Column("id", sa.String(length=24), primary_key=True),
        sa.Column("name", sa.String(length=191), nullable=False, unique=True),
        sa.Column("slug", sa.String(length=191), nullable=False, unique=True, index=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
    )
    op.create_table(
        "members",
        sa.Column("id", sa.String(length=24), primary_key=True),
        sa.Column("uuid", sa.String(length=36), nullable=True, unique=True, index=True),
        sa.Column("email", sa.String(length=191), nullable=False, unique=True, index=True),
        sa.Column("name", sa.String(length=191), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="free"),
        sa.Column("subscribed", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
    )
    op.create_table(
        "members_labels",
        sa.Column("member_id", sa.String(length=24), sa.ForeignKey("members.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("label_id", sa.String(length=24), sa.ForeignKey("labels.id", ondelete="CASCADE"), primary_key=True),
    )
    op.create_table(
        "emails",
        sa.Column("id", sa.String(length=24), primary_key=True),
        sa.Column("post_id", sa.String(length=24), sa.ForeignKey("posts.id"), nullable=False, unique=True, index=True),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="pending"),
        sa.Column("recipient_filter", sa.Text(), nullable=False),
        sa.Column("error", sa.String(length=2000), nullable=True),
        sa.Column("email_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("delivered_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("failed_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("subject", sa.String(length=300), nullable=True),
        sa.Column("from_address", sa.String(length=2000), nullable=True),
        sa.Column("reply_to", sa.String(length=2000), nullable=True),
        sa.Column("html", sa.Text(), nullable=True),
        sa.Column("plaintext", sa.Text(), nullable=True),
        sa.Column("track_opens", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("submitted_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
    )
    op.create_table(
        "email_batches",
        sa.Column("id", sa.String(length=24), primary_key=True),
        sa.Column("email_id", sa.String(length=24), sa.ForeignKey("emails.id"), nullable=False, index=True),
        sa.Column("member_segment", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="pending"),
        sa.Column("error", sa.String(length=2000), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
    )
    op.create_table(
        "email_recipients",
        sa.Column("id", sa.String(length=24), primary_key=True),
        sa.Column("email_id", sa.String(length=24), sa.ForeignKey("emails.id"), nullable=False, index=True),
        sa.Column("member_id", sa.String(length=24), nullable=False, index=True),
        sa.Column("batch_id", sa.String(length=24), sa.ForeignKey("email_batches.id"), nullable=False, index=True),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
        sa.Column("failed_at", sa.DateTime(), nullable=True),
        sa.Column("member_uuid", sa.String(length=36), nullable=False),
        sa.Column("member_email", sa.String(length=191), nullable=False),
        sa.Column("member_name", sa.String(length=191), nullable=True),
    )
    op.create_index("ix_email_recipients_email_member", "email_recipients", ["email_id", "member_id"])
    op.create_table(
        "host_limits",
        sa.Column("resource", sa.String(length=64), primary_key=True),
        sa.Column("max_value", sa.Integer(), nullable=True),
        sa.Column("disabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
    )
    op.create_table(
        "app_settings",
        sa.Column("key", sa.Text(), primary_key=True),
        sa.Column("value_json", JSONB(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_table(
        "staff_users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True, index=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()")),
    )


def downgrade() -> None:
    op.drop_table("staff_users")
    op.drop_table("app_settings")
    op.drop_table("host_limits")
    op.drop_index("ix_email_recipients_email_member", table_name="email_recipients")
    op.drop_table("email_recipients")
    op.drop_table("email_batches")
    op.drop_table("emails")
    op.drop_table("members_labels")
    op.drop_table("members")
    op.drop_table("labels")
    op.drop_table("posts")
