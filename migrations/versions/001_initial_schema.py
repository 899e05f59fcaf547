"""Initial schema: clinics, clinic_availability, booked_slots.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "clinics",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("location", sa.String(), nullable=False),
        sa.Column("address", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False, server_default="0"),
        sa.Column("longitude", sa.Float(), nullable=False, server_default="0"),
        sa.Column("weekday_open", sa.String(), nullable=True),
        sa.Column("weekday_close", sa.String(), nullable=True),
        sa.Column("weekend_open", sa.String(), nullable=True),
        sa.Column("weekend_close", sa.String(), nullable=True),
        sa.Column("emergency", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("services", sa.JSON(), nullable=False),
        sa.Column("service_names", sa.String(), nullable=False, server_default=""),
        sa.Column("consultation_fee", sa.Float(), nullable=False, server_default="0"),
        sa.Column("minimum_charge", sa.Float(), nullable=True),
        sa.Column("rating_average", sa.Float(), nullable=False, server_default="0"),
        sa.Column("rating_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("image_url", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("verification_status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_clinics_name"), "clinics", ["name"], unique=False)
    op.create_index(op.f("ix_clinics_type"), "clinics", ["type"], unique=False)
    op.create_index(op.f("ix_clinics_location"), "clinics", ["location"], unique=False)
    op.create_index(op.f("ix_clinics_email"), "clinics", ["email"], unique=True)
    op.create_index(op.f("ix_clinics_emergency"), "clinics", ["emergency"], unique=False)
    op.create_index(op.f("ix_clinics_is_active"), "clinics", ["is_active"], unique=False)
    op.create_index(op.f("ix_clinics_verification_status"), "clinics", ["verification_status"], unique=False)

    op.create_table(
        "clinic_availability",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("clinic_id", sa.Integer(), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.String(), nullable=False),
        sa.Column("end_time", sa.String(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default="true"),
        sa.ForeignKeyConstraint(["clinic_id"], ["clinics.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("clinic_id", "day_of_week", name="uq_clinic_availability_day"),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_clinic_availability_day_range"),
    )
    op.create_index(op.f("ix_clinic_availability_clinic_id"), "clinic_availability", ["clinic_id"], unique=False)

    op.create_table(
        "booked_slots",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("clinic_id", sa.Integer(), nullable=False),
        sa.Column("slot_date", sa.Date(), nullable=False),
        sa.Column("slot_time", sa.String(), nullable=False),
        sa.Column("pet_id", sa.String(), nullable=False),
        sa.Column("service", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="booked"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["clinic_id"], ["clinics.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_booked_slots_clinic_id"), "booked_slots", ["clinic_id"], unique=False)
    op.create_index(op.f("ix_booked_slots_slot_date"), "booked_slots", ["slot_date"], unique=False)
    # no two active bookings for the same clinic slot
    op.create_index(
        "uq_booked_slots_active",
        "booked_slots",
        ["clinic_id", "slot_date", "slot_time"],
        unique=True,
        postgresql_where=sa.text("status = 'booked'"),
        sqlite_where=sa.text("status = 'booked'"),
    )


def downgrade() -> None:
    op.drop_index("uq_booked_slots_active", table_name="booked_slots")
    op.drop_index(op.f("ix_booked_slots_slot_date"), table_name="booked_slots")
    op.drop_index(op.f("ix_booked_slots_clinic_id"), table_name="booked_slots")
    op.drop_table("booked_slots")
    op.drop_index(op.f("ix_clinic_availability_clinic_id"), table_name="clinic_availability")
    op.drop_table("clinic_availability")
    for column in ("verification_status", "is_active", "emergency", "email", "location", "type", "name"):
        op.drop_index(op.f(f"ix_clinics_{column}"), table_name="clinics")
    op.drop_table("clinics")
