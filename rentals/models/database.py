from sqlalchemy import (
    Column, Integer, String, Text, DECIMAL, Float, DateTime, ForeignKey, SmallInteger,
    PrimaryKeyConstraint,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class Manager(Base):
    __tablename__ = "manager"

    id = Column(Integer, primary_key=True)
    cognito_id = Column(String(64), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone_number = Column(String(50), nullable=False)


class Tenant(Base):
    __tablename__ = "tenant"

    id = Column(Integer, primary_key=True)
    cognito_id = Column(String(64), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone_number = Column(String(50), nullable=False)


class Location(Base):
    __tablename__ = "location"

    id = Column(Integer, primary_key=True)
    address = Column(String(255), nullable=False)
    city = Column(String(120), nullable=False)
    state = Column(String(120), nullable=False)
    country = Column(String(120), nullable=False)
    postal_code = Column(String(20), nullable=False)
    latitude = Column(Float, nullable=False, default=0)
    longitude = Column(Float, nullable=False, default=0)


class Property(Base):
    __tablename__ = "property"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    price_per_month = Column(DECIMAL(10, 2), nullable=False)
    security_deposit = Column(DECIMAL(10, 2), nullable=False)
    application_fee = Column(DECIMAL(10, 2), nullable=False)
    # JSON arrays stored as text
    photo_urls = Column(Text, nullable=False, default="[]")
    amenities = Column(Text, nullable=False, default="[]")
    highlights = Column(Text, nullable=False, default="[]")
    is_pets_allowed = Column(SmallInteger, nullable=False, default=0)
    is_parking_included = Column(SmallInteger, nullable=False, default=0)
    beds = Column(Integer, nullable=False)
    baths = Column(Float, nullable=False)
    square_feet = Column(Integer, nullable=False)
    property_type = Column(String(50), nullable=False)
    posted_date = Column(DateTime, nullable=False, server_default=func.now())
    average_rating = Column(Float, default=0)
    number_of_reviews = Column(Integer, default=0)
    location_id = Column(Integer, ForeignKey("location.id"), nullable=False, unique=True)
    manager_cognito_id = Column(String(64), ForeignKey("manager.cognito_id"), nullable=False)


class Lease(Base):
    __tablename__ = "lease"

    id = Column(Integer, primary_key=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    rent = Column(DECIMAL(10, 2), nullable=False)
    deposit = Column(DECIMAL(10, 2), nullable=False)
    property_id = Column(Integer, ForeignKey("property.id"), nullable=False)
    tenant_cognito_id = Column(String(64), ForeignKey("tenant.cognito_id"), nullable=False)


class Application(Base):
    __tablename__ = "application"

    id = Column(Integer, primary_key=True)
    application_date = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, default="Pending")
    property_id = Column(Integer, ForeignKey("property.id"), nullable=False)
    tenant_cognito_id = Column(String(64), ForeignKey("tenant.cognito_id"), nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone_number = Column(String(50), nullable=False)
    message = Column(Text)
    # one application, one lease
    lease_id = Column(Integer, ForeignKey("lease.id"), unique=True)


class Payment(Base):
    __tablename__ = "payment"

    id = Column(Integer, primary_key=True)
    amount_due = Column(DECIMAL(10, 2), nullable=False)
    amount_paid = Column(DECIMAL(10, 2), nullable=False)
    due_date = Column(DateTime, nullable=False)
    payment_date = Column(DateTime, nullable=False)
    payment_status = Column(String(20), nullable=False)
    lease_id = Column(Integer, ForeignKey("lease.id"), nullable=False)


class TenantProperty(Base):
    """Current residences, written on approval"""

    __tablename__ = "tenant_properties"
    __table_args__ = (PrimaryKeyConstraint("tenant_cognito_id", "property_id"),)

    tenant_cognito_id = Column(String(64), ForeignKey("tenant.cognito_id"), nullable=False)
    property_id = Column(Integer, ForeignKey("property.id"), nullable=False)


class TenantFavorite(Base):
    __tablename__ = "tenant_favorites"
    __table_args__ = (PrimaryKeyConstraint("tenant_cognito_id", "property_id"),)

    tenant_cognito_id = Column(String(64), ForeignKey("tenant.cognito_id"), nullable=False)
    property_id = Column(Integer, ForeignKey("property.id"), nullable=False)
