"""Initial roastery schema

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_initial"
down_revision = None
branch_labels = None
depends_on = None


def _created_at():
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False)


def upgrade():
    op.create_table(
        "shops",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("desired_small_bags", sa.Integer(), nullable=False, server_default=sa.text("20")),
        sa.Column("desired_large_bags", sa.Integer(), nullable=False, server_default=sa.text("10")),
        sa.Column("default_order_quantity", sa.Integer(), nullable=False, server_default=sa.text("10")),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("shops", schema=None) as batch_op:
        batch_op.create_index("ix_shops_active_name", ["is_active", "name"], unique=False)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(32), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("is_pending_approval", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("default_shop_id", sa.Integer(), nullable=True),
        _created_at(),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["default_shop_id"], ["shops.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.create_index("ix_users_username", ["username"], unique=True)
        batch_op.create_index("ix_users_role_active", ["role", "is_active"], unique=False)

    op.create_table(
        "user_shops",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("shop_id", sa.Integer(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "shop_id", name="uq_user_shops_user_shop"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("user_shops", schema=None) as batch_op:
        batch_op.create_index("ix_user_shops_user_id", ["user_id"], unique=False)
        batch_op.create_index("ix_user_shops_shop", ["shop_id"], unique=False)

    op.create_table(
        "user_capability_grants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("capability", sa.String(64), nullable=False),
        sa.Column("granted_by_id", sa.Integer(), nullable=True),
        sa.Column("granted_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["granted_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "capability", name="uq_user_capability_grants"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("user_capability_grants", schema=None) as batch_op:
        batch_op.create_index("ix_user_capability_grants_user_id", ["user_id"], unique=False)

    op.create_table(
        "session_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_revoked", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_reason", sa.String(255), nullable=True),
        sa.Column("user_agent", sa.String(255), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("session_tokens", schema=None) as batch_op:
        batch_op.create_index("ix_session_tokens_user_id", ["user_id"], unique=False)
        batch_op.create_index("ix_session_tokens_token_hash", ["token_hash"], unique=True)

    op.create_table(
        "green_coffee",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("producer", sa.String(255), nullable=False),
        sa.Column("country", sa.String(120), nullable=False),
        sa.Column("altitude", sa.String(64), nullable=True),
        sa.Column("cupping_notes", sa.Text(), nullable=True),
        sa.Column("current_stock", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("min_threshold", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("grade", sa.String(32), nullable=False, server_default="Specialty"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("green_coffee", schema=None) as batch_op:
        batch_op.create_index("ix_green_coffee_grade_active", ["grade", "is_active"], unique=False)

    op.create_table(
        "coffee_large_bag_targets",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("shop_id", sa.Integer(), nullable=False),
        sa.Column("green_coffee_id", sa.Integer(), nullable=False),
        sa.Column("desired_large_bags", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
        sa.ForeignKeyConstraint(["green_coffee_id"], ["green_coffee.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("shop_id", "green_coffee_id", name="uq_large_bag_targets_shop_coffee"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("coffee_large_bag_targets", schema=None) as batch_op:
        batch_op.create_index("ix_coffee_large_bag_targets_shop_id", ["shop_id"], unique=False)

    op.create_table(
        "roasting_batches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("green_coffee_id", sa.Integer(), nullable=False),
        sa.Column("roaster_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="completed"),
        sa.Column("planned_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("roasted_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("roasting_loss", sa.Numeric(10, 2), nullable=True),
        sa.Column("small_bags_produced", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("large_bags_produced", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _created_at(),
        sa.ForeignKeyConstraint(["green_coffee_id"], ["green_coffee.id"]),
        sa.ForeignKeyConstraint(["roaster_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("roasting_batches", schema=None) as batch_op:
        batch_op.create_index("ix_roasting_batches_coffee_created", ["green_coffee_id", "created_at"], unique=False)

    op.create_table(
        "billing_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("cycle_start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("cycle_end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("primary_split_percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("secondary_split_percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("created_by_id", sa.Integer(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("billing_events", schema=None) as batch_op:
        batch_op.create_index("ix_billing_events_cycle_end", ["cycle_end_date"], unique=False)

    op.create_table(
        "billing_event_details",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("billing_event_id", sa.Integer(), nullable=False),
        sa.Column("grade", sa.String(32), nullable=False),
        sa.Column("small_bags_quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("large_bags_quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["billing_event_id"], ["billing_events.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("billing_event_id", "grade", name="uq_billing_event_details_event_grade"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("billing_event_details", schema=None) as batch_op:
        batch_op.create_index("ix_billing_event_details_grade", ["grade"], unique=False)

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("shop_id", sa.Integer(), nullable=False),
        sa.Column("green_coffee_id", sa.Integer(), nullable=False),
        sa.Column("small_bags", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("large_bags", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("created_by_id", sa.Integer(), nullable=False),
        sa.Column("updated_by_id", sa.Integer(), nullable=True),
        sa.Column("billing_event_id", sa.Integer(), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
        sa.ForeignKeyConstraint(["green_coffee_id"], ["green_coffee.id"]),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["updated_by_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["billing_event_id"], ["billing_events.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("orders", schema=None) as batch_op:
        batch_op.create_index("ix_orders_shop_status", ["shop_id", "status"], unique=False)
        batch_op.create_index("ix_orders_status_created", ["status", "created_at"], unique=False)
        batch_op.create_index("ix_orders_billing_event_id", ["billing_event_id"], unique=False)

    op.create_table(
        "retail_inventory",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("shop_id", sa.Integer(), nullable=False),
        sa.Column("green_coffee_id", sa.Integer(), nullable=False),
        sa.Column("small_bags", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("large_bags", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("updated_by_id", sa.Integer(), nullable=True),
        sa.Column("update_type", sa.String(16), nullable=False, server_default="manual"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
        sa.ForeignKeyConstraint(["green_coffee_id"], ["green_coffee.id"]),
        sa.ForeignKeyConstraint(["updated_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("shop_id", "green_coffee_id", name="uq_retail_inventory_shop_coffee"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("retail_inventory", schema=None) as batch_op:
        batch_op.create_index("ix_retail_inventory_shop_id", ["shop_id"], unique=False)

    op.create_table(
        "retail_inventory_history",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("retail_inventory_id", sa.Integer(), nullable=False),
        sa.Column("shop_id", sa.Integer(), nullable=False),
        sa.Column("green_coffee_id", sa.Integer(), nullable=False),
        sa.Column("previous_small_bags", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("previous_large_bags", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("new_small_bags", sa.Integer(), nullable=False),
        sa.Column("new_large_bags", sa.Integer(), nullable=False),
        sa.Column("update_type", sa.String(16), nullable=False),
        sa.Column("updated_by_id", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["retail_inventory_id"], ["retail_inventory.id"]),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
        sa.ForeignKeyConstraint(["green_coffee_id"], ["green_coffee.id"]),
        sa.ForeignKeyConstraint(["updated_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("retail_inventory_history", schema=None) as batch_op:
        batch_op.create_index("ix_retail_inventory_history_shop_updated", ["shop_id", "updated_at"], unique=False)

    op.create_table(
        "dispatch_confirmations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("shop_id", sa.Integer(), nullable=False),
        sa.Column("green_coffee_id", sa.Integer(), nullable=False),
        sa.Column("dispatched_small_bags", sa.Integer(), nullable=False),
        sa.Column("dispatched_large_bags", sa.Integer(), nullable=False),
        sa.Column("received_small_bags", sa.Integer(), nullable=True),
        sa.Column("received_large_bags", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="pending"),
        sa.Column("confirmed_by_id", sa.Integer(), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
        sa.ForeignKeyConstraint(["green_coffee_id"], ["green_coffee.id"]),
        sa.ForeignKeyConstraint(["confirmed_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("dispatch_confirmations", schema=None) as batch_op:
        batch_op.create_index("ix_dispatch_confirmations_shop_status", ["shop_id", "status"], unique=False)

    op.create_table(
        "inventory_discrepancies",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("confirmation_id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("shop_id", sa.Integer(), nullable=False),
        sa.Column("green_coffee_id", sa.Integer(), nullable=False),
        sa.Column("dispatched_small_bags", sa.Integer(), nullable=False),
        sa.Column("dispatched_large_bags", sa.Integer(), nullable=False),
        sa.Column("received_small_bags", sa.Integer(), nullable=False),
        sa.Column("received_large_bags", sa.Integer(), nullable=False),
        sa.Column("small_bags_difference", sa.Integer(), nullable=False),
        sa.Column("large_bags_difference", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="open"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resolved_by_id", sa.Integer(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["confirmation_id"], ["dispatch_confirmations.id"]),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
        sa.ForeignKeyConstraint(["green_coffee_id"], ["green_coffee.id"]),
        sa.ForeignKeyConstraint(["resolved_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("inventory_discrepancies", schema=None) as batch_op:
        batch_op.create_index("ix_inventory_discrepancies_order_id", ["order_id"], unique=False)
        batch_op.create_index("ix_inventory_discrepancies_shop_status", ["shop_id", "status"], unique=False)


def downgrade():
    op.drop_table("inventory_discrepancies")
    op.drop_table("dispatch_confirmations")
    op.drop_table("retail_inventory_history")
    op.drop_table("retail_inventory")
    op.drop_table("orders")
    op.drop_table("billing_event_details")
    op.drop_table("billing_events")
    op.drop_table("roasting_batches")
    op.drop_table("coffee_large_bag_targets")
    op.drop_table("green_coffee")
    op.drop_table("session_tokens")
    op.drop_table("user_capability_grants")
    op.drop_table("user_shops")
    op.drop_table("users")
    op.drop_table("shops")
