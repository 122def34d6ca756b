"""Initial schema: sites, packaging, loads, planner and alerts.

Revision ID: 0001
Revises: (none)
Create Date: 2026-10-17
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa

USER_ROLES = ("admin", "dispatcher", "farm_user", "depot_user", "readonly")


def _timestamps(updated: bool = True) -> list[sa.Column]:
    cols = [sa.Column("created_at", sa.DateTime(), server_default=sa.func.now())]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()))
    return cols


def upgrade() -> None:
    # ── Network ──────────────────────────────────────────────

    op.create_table(
        "site_types",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(50), unique=True, nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(updated=False),
    )

    op.create_table(
        "sites",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("code", sa.String(20), unique=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("site_type_id", sa.String(36), sa.ForeignKey("site_types.id"), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("region", sa.String(100), nullable=True),
        sa.Column("country", sa.String(100), server_default="Zimbabwe"),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("contact_name", sa.String(255), nullable=True),
        sa.Column("contact_phone", sa.String(50), nullable=True),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true"),
        *_timestamps(),
    )
    op.create_index("ix_sites_code", "sites", ["code"])
    op.create_index("ix_sites_is_active", "sites", ["is_active"])

    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column(
            "role", sa.Enum(*USER_ROLES, name="user_role"),
            nullable=False, server_default="readonly",
        ),
        sa.Column("is_active", sa.Boolean(), server_default="true"),
        sa.Column("assigned_site_id", sa.String(36), sa.ForeignKey("sites.id"), nullable=True),
        sa.Column("token_version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"])

    # ── Reference data ───────────────────────────────────────

    op.create_table(
        "packaging_types",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("code", sa.String(30), unique=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("capacity_kg", sa.Float(), nullable=True),
        sa.Column("capacity_liters", sa.Float(), nullable=True),
        sa.Column("weight_empty_kg", sa.Float(), nullable=True),
        sa.Column("dimensions_cm", sa.String(50), nullable=True),
        sa.Column("expected_turnaround_days", sa.Integer(), server_default="14"),
        sa.Column("is_returnable", sa.Boolean(), server_default="true"),
        sa.Column("is_active", sa.Boolean(), server_default="true"),
        *_timestamps(),
    )
    op.create_index("ix_packaging_types_code", "packaging_types", ["code"])

    op.create_table(
        "product_types",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("code", sa.String(30), unique=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true"),
        *_timestamps(updated=False),
    )

    op.create_table(
        "product_varieties",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("product_type_id", sa.String(36), sa.ForeignKey("product_types.id"), nullable=False),
        sa.Column("code", sa.String(30), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true"),
        *_timestamps(updated=False),
    )
    op.create_index("ix_product_varieties_product_type_id", "product_varieties", ["product_type_id"])

    op.create_table(
        "product_grades",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("code", sa.String(20), unique=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("sort_order", sa.Integer(), server_default="0"),
        sa.Column("is_active", sa.Boolean(), server_default="true"),
        *_timestamps(updated=False),
    )

    op.create_table(
        "vehicles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("registration", sa.String(30), unique=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=True),
        sa.Column("vehicle_type", sa.String(50), nullable=True),
        sa.Column("capacity_kg", sa.Float(), nullable=True),
        sa.Column("telematics_asset_id", sa.Integer(), nullable=True),
        sa.Column("telematics_asset_code", sa.String(50), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true"),
        *_timestamps(),
    )

    op.create_index("ix_vehicles_telematics_asset_id", "vehicles", ["telematics_asset_id"])

    op.create_table(
        "drivers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("employee_id", sa.String(50), unique=True, nullable=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("license_number", sa.String(50), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true"),
        *_timestamps(),
    )

    op.create_table(
        "channels",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("code", sa.String(30), unique=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true"),
        *_timestamps(updated=False),
    )

    # ── Loads ────────────────────────────────────────────────

    op.create_table(
        "loads",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("load_number", sa.String(30), unique=True, nullable=False),
        sa.Column("origin_site_id", sa.String(36), sa.ForeignKey("sites.id"), nullable=False),
        sa.Column("destination_site_id", sa.String(36), sa.ForeignKey("sites.id"), nullable=False),
        sa.Column("channel_id", sa.String(36), sa.ForeignKey("channels.id"), nullable=True),
        sa.Column("vehicle_id", sa.String(36), sa.ForeignKey("vehicles.id"), nullable=True),
        sa.Column("driver_id", sa.String(36), sa.ForeignKey("drivers.id"), nullable=True),
        sa.Column("dispatch_date", sa.Date(), nullable=False),
        sa.Column("expected_arrival_date", sa.Date(), nullable=True),
        sa.Column("scheduled_departure_time", sa.Time(), nullable=True),
        sa.Column("actual_departure_time", sa.DateTime(), nullable=True),
        sa.Column("estimated_arrival_time", sa.Time(), nullable=True),
        sa.Column("actual_arrival_time", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(20), server_default="scheduled"),
        sa.Column("on_time_status", sa.String(10), nullable=True),
        sa.Column("expected_farm_arrival_time", sa.Time(), nullable=True),
        sa.Column("expected_farm_departure_time", sa.Time(), nullable=True),
        sa.Column("actual_farm_arrival_time", sa.DateTime(), nullable=True),
        sa.Column("actual_farm_departure_time", sa.DateTime(), nullable=True),
        sa.Column("farm_arrival_overtime_minutes", sa.Integer(), server_default="0"),
        sa.Column("farm_departure_overtime_minutes", sa.Integer(), server_default="0"),
        sa.Column("has_overtime", sa.Boolean(), server_default="false"),
        sa.Column("arrived_depot_at", sa.DateTime(), nullable=True),
        sa.Column("departed_depot_at", sa.DateTime(), nullable=True),
        sa.Column("has_discrepancy", sa.Boolean(), server_default="false"),
        sa.Column("discrepancy_notes", sa.Text(), nullable=True),
        sa.Column("backload_site_id", sa.String(36), sa.ForeignKey("sites.id"), nullable=True),
        sa.Column("backload_notes", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("confirmed_dispatch_by", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("confirmed_dispatch_at", sa.DateTime(), nullable=True),
        sa.Column("confirmed_receipt_by", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("confirmed_receipt_at", sa.DateTime(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
    )
    op.create_index("ix_loads_load_number", "loads", ["load_number"])
    op.create_index("ix_loads_origin_site_id", "loads", ["origin_site_id"])
    op.create_index("ix_loads_destination_site_id", "loads", ["destination_site_id"])
    op.create_index("ix_loads_dispatch_date", "loads", ["dispatch_date"])
    op.create_index("ix_loads_status", "loads", ["status"])
    op.create_index("ix_loads_has_overtime", "loads", ["has_overtime"])
    op.create_index("ix_loads_has_discrepancy", "loads", ["has_discrepancy"])
    op.create_index("ix_loads_created_at", "loads", ["created_at"])

    op.create_table(
        "load_packaging",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "load_id", sa.String(36),
            sa.ForeignKey("loads.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("packaging_type_id", sa.String(36), sa.ForeignKey("packaging_types.id"), nullable=False),
        sa.Column("quantity_dispatched", sa.Integer(), nullable=False),
        sa.Column("quantity_received", sa.Integer(), nullable=True),
        sa.Column("quantity_damaged", sa.Integer(), server_default="0"),
        sa.Column("quantity_missing", sa.Integer(), server_default="0"),
        sa.Column("product_type_id", sa.String(36), sa.ForeignKey("product_types.id"), nullable=True),
        sa.Column("product_variety_id", sa.String(36), sa.ForeignKey("product_varieties.id"), nullable=True),
        sa.Column("product_grade_id", sa.String(36), sa.ForeignKey("product_grades.id"), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_load_packaging_load_id", "load_packaging", ["load_id"])

    op.create_table(
        "backload_packaging",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "load_id", sa.String(36),
            sa.ForeignKey("loads.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("packaging_type_id", sa.String(36), sa.ForeignKey("packaging_types.id"), nullable=False),
        sa.Column("quantity_returned", sa.Integer(), server_default="0"),
        sa.Column("quantity_damaged", sa.Integer(), server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_backload_packaging_load_id", "backload_packaging", ["load_id"])

    # ── Inventory ledger ─────────────────────────────────────

    op.create_table(
        "site_packaging_inventory",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("site_id", sa.String(36), sa.ForeignKey("sites.id"), nullable=False),
        sa.Column("packaging_type_id", sa.String(36), sa.ForeignKey("packaging_types.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), server_default="0"),
        sa.Column("quantity_damaged", sa.Integer(), server_default="0"),
        sa.Column("last_counted_at", sa.DateTime(), nullable=True),
        sa.Column("last_counted_by", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("handling_count", sa.Integer(), server_default="0"),
        sa.Column("total_dispatched", sa.Integer(), server_default="0"),
        sa.Column("total_received", sa.Integer(), server_default="0"),
        sa.Column("total_returned", sa.Integer(), server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint("site_id", "packaging_type_id", name="uq_inventory_site_type"),
    )
    op.create_index("ix_site_packaging_inventory_site_id", "site_packaging_inventory", ["site_id"])
    op.create_index(
        "ix_site_packaging_inventory_packaging_type_id",
        "site_packaging_inventory", ["packaging_type_id"],
    )

    op.create_table(
        "packaging_movements",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("site_id", sa.String(36), sa.ForeignKey("sites.id"), nullable=False),
        sa.Column("packaging_type_id", sa.String(36), sa.ForeignKey("packaging_types.id"), nullable=False),
        sa.Column("load_id", sa.String(36), sa.ForeignKey("loads.id"), nullable=True),
        sa.Column("movement_type", sa.String(30), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("quantity_damaged", sa.Integer(), server_default="0"),
        sa.Column("direction", sa.String(3), nullable=False),
        sa.Column("reference_number", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("recorded_by", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("recorded_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_packaging_movements_site_id", "packaging_movements", ["site_id"])
    op.create_index(
        "ix_packaging_movements_packaging_type_id", "packaging_movements", ["packaging_type_id"]
    )
    op.create_index("ix_packaging_movements_load_id", "packaging_movements", ["load_id"])
    op.create_index("ix_packaging_movements_movement_type", "packaging_movements", ["movement_type"])
    op.create_index("ix_packaging_movements_recorded_at", "packaging_movements", ["recorded_at"])

    op.create_table(
        "site_packaging_thresholds",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("site_id", sa.String(36), sa.ForeignKey("sites.id"), nullable=False),
        sa.Column("packaging_type_id", sa.String(36), sa.ForeignKey("packaging_types.id"), nullable=False),
        sa.Column("min_threshold", sa.Integer(), server_default="0"),
        sa.Column("max_threshold", sa.Integer(), nullable=True),
        sa.Column("alert_enabled", sa.Boolean(), server_default="true"),
        *_timestamps(),
        sa.UniqueConstraint("site_id", "packaging_type_id", name="uq_threshold_site_type"),
    )
    op.create_index("ix_site_packaging_thresholds_site_id", "site_packaging_thresholds", ["site_id"])

    # ── Planner ──────────────────────────────────────────────

    op.create_table(
        "dispatch_schedules",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("dispatch_date", sa.Date(), nullable=False),
        sa.Column("dispatch_time", sa.Time(), nullable=True),
        sa.Column("expected_arrival_date", sa.Date(), nullable=True),
        sa.Column("expected_arrival_time", sa.Time(), nullable=True),
        sa.Column("origin_site_id", sa.String(36), sa.ForeignKey("sites.id"), nullable=False),
        sa.Column("destination_site_id", sa.String(36), sa.ForeignKey("sites.id"), nullable=False),
        sa.Column("channel_id", sa.String(36), sa.ForeignKey("channels.id"), nullable=True),
        sa.Column("vehicle_id", sa.String(36), sa.ForeignKey("vehicles.id"), nullable=True),
        sa.Column("driver_id", sa.String(36), sa.ForeignKey("drivers.id"), nullable=True),
        sa.Column("crates", sa.Integer(), server_default="0"),
        sa.Column("bins", sa.Integer(), server_default="0"),
        sa.Column("boxes", sa.Integer(), server_default="0"),
        sa.Column("pallets", sa.Integer(), server_default="0"),
        sa.Column("packaging_eta_farm", sa.Date(), nullable=True),
        sa.Column("packaging_supplied_date", sa.Date(), nullable=True),
        sa.Column("ripening_start_date", sa.Date(), nullable=True),
        sa.Column("sales_despatch_date", sa.Date(), nullable=True),
        sa.Column("packaging_collection_date", sa.Date(), nullable=True),
        sa.Column("packaging_delivery_farm_date", sa.Date(), nullable=True),
        sa.Column("is_recurring", sa.Boolean(), server_default="false"),
        sa.Column("recurrence_pattern", sa.String(20), nullable=True),
        sa.Column("recurrence_day_of_week", sa.Integer(), nullable=True),
        sa.Column(
            "parent_schedule_id", sa.String(36),
            sa.ForeignKey("dispatch_schedules.id"), nullable=True,
        ),
        sa.Column("customer_name", sa.String(255), nullable=True),
        sa.Column("product_type", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), server_default="planned"),
        sa.Column("load_id", sa.String(36), sa.ForeignKey("loads.id"), unique=True, nullable=True),
        sa.Column("created_by", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
    )
    op.create_index("ix_dispatch_schedules_dispatch_date", "dispatch_schedules", ["dispatch_date"])
    op.create_index("ix_dispatch_schedules_origin_site_id", "dispatch_schedules", ["origin_site_id"])
    op.create_index("ix_dispatch_schedules_status", "dispatch_schedules", ["status"])

    # ── Alerts ───────────────────────────────────────────────

    op.create_table(
        "alerts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("alert_type", sa.String(30), nullable=False),
        sa.Column("severity", sa.String(10), nullable=False, server_default="warning"),
        sa.Column("site_id", sa.String(36), sa.ForeignKey("sites.id"), nullable=True),
        sa.Column("load_id", sa.String(36), sa.ForeignKey("loads.id"), nullable=True),
        sa.Column("packaging_type_id", sa.String(36), sa.ForeignKey("packaging_types.id"), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_acknowledged", sa.Boolean(), server_default="false"),
        sa.Column("acknowledged_by", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("acknowledged_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_alerts_alert_type", "alerts", ["alert_type"])
    op.create_index("ix_alerts_site_id", "alerts", ["site_id"])
    op.create_index("ix_alerts_is_acknowledged", "alerts", ["is_acknowledged"])
    op.create_index("ix_alerts_created_at", "alerts", ["created_at"])


def downgrade() -> None:
    for table in (
        "alerts",
        "dispatch_schedules",
        "site_packaging_thresholds",
        "packaging_movements",
        "site_packaging_inventory",
        "backload_packaging",
        "load_packaging",
        "loads",
        "channels",
        "drivers",
        "vehicles",
        "product_grades",
        "product_varieties",
        "product_types",
        "packaging_types",
        "users",
        "sites",
        "site_types",
    ):
        op.drop_table(table)
    sa.Enum(name="user_role").drop(op.get_bind(), checkfirst=True)
