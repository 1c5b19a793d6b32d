"""
Table definitions mirroring the Supabase (public schema) tables.

Supabase owns these tables, their constraints and RLS policies; the
definitions here are used to generate SQL for maintenance scripts.
"""
from sqlalchemy import (
    BigInteger, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Profile(Base):
    """One row per auth user; ``role`` is driver, commuter or admin."""

    __tablename__ = "profiles"

    id = Column(UUID(as_uuid=False), primary_key=True)
    email = Column(String(255))
    username = Column(String(64))
    role = Column(String(16), nullable=False, default="commuter")
    is_active = Column(Boolean, nullable=False, default=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Driver(Base):
    __tablename__ = "drivers"

    driver_id = Column(BigInteger, primary_key=True)
    user_id = Column(UUID(as_uuid=False), ForeignKey("profiles.id"), unique=True, nullable=False)
    plate_number = Column(String(16))


class Commuter(Base):
    __tablename__ = "commuters"

    commuter_id = Column(BigInteger, primary_key=True)
    user_id = Column(UUID(as_uuid=False), ForeignKey("profiles.id"), unique=True, nullable=False)


class JeepneyTerminal(Base):
    __tablename__ = "jeepney_terminals"

    terminal_id = Column(BigInteger, primary_key=True)
    name = Column(String(128), unique=True, nullable=False)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)


class Route(Base):
    __tablename__ = "routes"

    route_id = Column(BigInteger, primary_key=True)
    name = Column(String(128), nullable=False)
    color = Column(String(16))
    origin_terminal_id = Column(BigInteger, ForeignKey("jeepney_terminals.terminal_id"))
    destination_terminal_id = Column(BigInteger, ForeignKey("jeepney_terminals.terminal_id"))


class JeepneyLocation(Base):
    """Latest fix per driver (upserted on every accepted GPS update)."""

    __tablename__ = "jeepney_locations"

    driver_id = Column(BigInteger, ForeignKey("drivers.driver_id"), primary_key=True)
    route_id = Column(BigInteger, ForeignKey("routes.route_id"))
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    speed = Column(Float)
    heading = Column(Float)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class CommuterLocation(Base):
    __tablename__ = "commuter_locations"

    commuter_id = Column(BigInteger, ForeignKey("commuters.commuter_id"), primary_key=True)
    route_id = Column(BigInteger, ForeignKey("routes.route_id"))
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True)
    user_id = Column(UUID(as_uuid=False), ForeignKey("profiles.id"), nullable=False)
    storage_path = Column(Text, nullable=False)
    file_type = Column(String(128))
    size = Column(BigInteger)
    document_type = Column(String(32), default="id")
