from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    Integer,
    Float,
    Boolean,
    DateTime,
    ForeignKey,
    func,
    UniqueConstraint,
    Index,
)


class Base(DeclarativeBase):
    pass


class Drone(Base):
    __tablename__ = "drones"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    model: Mapped[str] = mapped_column(String(255), nullable=False)
    serial_number: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    status: Mapped[str] = mapped_column(String(32), default="idle", nullable=False)
    battery_level: Mapped[int] = mapped_column(Integer, default=100, nullable=False)

    current_latitude: Mapped[Optional[float]] = mapped_column(Float)
    current_longitude: Mapped[Optional[float]] = mapped_column(Float)
    current_altitude: Mapped[Optional[float]] = mapped_column(Float)

    max_flight_time: Mapped[int] = mapped_column(Integer, default=30, nullable=False)  # minutes
    max_speed: Mapped[float] = mapped_column(Float, default=15, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    waypoints: Mapped[list["Waypoint"]] = relationship(
        back_populates="drone",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Waypoint.sequence_number",
    )


class Waypoint(Base):
    __tablename__ = "waypoints"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    drone_id: Mapped[int] = mapped_column(
        ForeignKey("drones.id", ondelete="CASCADE"), index=True, nullable=False
    )
    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)
    command: Mapped[int] = mapped_column(Integer, nullable=False)
    param1: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    param2: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    param3: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    param4: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    altitude: Mapped[float] = mapped_column(Float, nullable=False)
    auto_continue: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    source_file: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    drone: Mapped["Drone"] = relationship(back_populates="waypoints")

    __table_args__ = (
        # one mission per drone: sequence numbers never repeat within it
        UniqueConstraint("drone_id", "sequence_number", name="uq_waypoint_drone_seq"),
        Index("idx_waypoint_drone_created", "drone_id", "created_at"),
    )
