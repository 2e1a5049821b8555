"""Initial schema: users, vehicles, legacy driver set and bookings.

Revision ID: 001
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "role",
            sa.Enum("admin", "owner", "driver", "customer", name="userrole"),
            nullable=False,
        ),
        sa.Column("total_revenue", sa.Float, default=0.0, nullable=False),
        sa.Column("is_deleted", sa.Boolean, default=False, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_users_role", "users", ["role", "is_deleted"])

    # ── vehicles ──────────────────────────────────────────────────────
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "owner_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("make", sa.String(80), nullable=False),
        sa.Column("model", sa.String(80), nullable=False),
        sa.Column("year", sa.Integer, nullable=False),
        sa.Column(
            "registration_number", sa.String(32), unique=True, nullable=False
        ),
        sa.Column("revenue", sa.Float, default=0.0, nullable=False),
        sa.Column(
            "driver_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True
        ),
        sa.Column("is_deleted", sa.Boolean, default=False, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_vehicles_owner", "vehicles", ["owner_id"])
    op.create_index("idx_vehicles_driver", "vehicles", ["driver_id"])

    # ── vehicle_drivers ───────────────────────────────────────────────
    op.create_table(
        "vehicle_drivers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "vehicle_id", sa.Integer, sa.ForeignKey("vehicles.id"), nullable=False
        ),
        sa.Column(
            "driver_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column(
            "assigned_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("vehicle_id", "driver_id", name="uq_vehicle_driver"),
    )

    # ── bookings ──────────────────────────────────────────────────────
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "customer_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column(
            "driver_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True
        ),
        sa.Column(
            "vehicle_id", sa.Integer, sa.ForeignKey("vehicles.id"), nullable=False
        ),
        sa.Column(
            "status",
            sa.Enum(
                "pending",
                "accepted",
                "ongoing",
                "completed",
                "cancelled",
                name="bookingstatus",
            ),
            default="pending",
            nullable=False,
        ),
        sa.Column(
            "booking_date",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column("source", sa.String(255), nullable=True),
        sa.Column("destination", sa.String(255), nullable=True),
        sa.Column("source_lat", sa.Float, nullable=True),
        sa.Column("source_lng", sa.Float, nullable=True),
        sa.Column("destination_lat", sa.Float, nullable=True),
        sa.Column("destination_lng", sa.Float, nullable=True),
        sa.Column("distance_km", sa.Float, nullable=True),
        sa.Column("fare", sa.Float, nullable=True),
        sa.Column("revenue_applied", sa.Boolean, default=False, nullable=False),
        sa.Column("is_deleted", sa.Boolean, default=False, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_bookings_customer", "bookings", ["customer_id"])
    op.create_index("idx_bookings_driver", "bookings", ["driver_id"])
    op.create_index("idx_bookings_vehicle", "bookings", ["vehicle_id"])
    op.create_index(
        "idx_bookings_status", "bookings", ["status", "revenue_applied"]
    )


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("vehicle_drivers")
    op.drop_table("vehicles")
    op.drop_table("users")
    op.execute("DROP TYPE IF EXISTS bookingstatus")
    op.execute("DROP TYPE IF EXISTS userrole")
