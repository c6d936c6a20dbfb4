from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List, Any


class ApplicationStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    DENIED = "Denied"


class CamelModel(BaseModel):
    """Serialized with camelCase keys, populated from either spelling"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# Contacts

class ContactBase(CamelModel):
    name: str = Field(..., description="Full name")
    email: str = Field(..., description="Contact email")
    phone_number: str = Field(..., description="Contact phone number")


class ContactCreate(ContactBase):
    cognito_id: str = Field(..., description="Identity provider user id")


class ContactUpdate(ContactBase):
    pass


class Manager(ContactBase):
    id: Optional[int] = None
    cognito_id: str


class Tenant(ContactBase):
    id: Optional[int] = None
    cognito_id: str


# Properties

class Coordinates(CamelModel):
    latitude: float
    longitude: float


class Location(CamelModel):
    id: int
    address: str
    city: str
    state: str
    country: str
    postal_code: str
    coordinates: Coordinates


class Property(CamelModel):
    id: int
    name: str
    description: str
    price_per_month: Decimal
    security_deposit: Decimal
    application_fee: Decimal
    photo_urls: List[str] = []
    amenities: List[str] = []
    highlights: List[str] = []
    is_pets_allowed: bool = False
    is_parking_included: bool = False
    beds: int
    baths: float
    square_feet: int
    property_type: str
    posted_date: Optional[datetime] = None
    average_rating: float = 0
    number_of_reviews: int = 0
    location_id: int
    manager_cognito_id: str
    location: Optional[Location] = None
    manager: Optional[Manager] = None


class PropertyCreate(CamelModel):
    """Raw property form; numbers, flags and lists are coerced on insert"""

    name: str = Field(..., description="Listing title")
    description: str = ""
    price_per_month: Any = None
    security_deposit: Any = None
    application_fee: Any = None
    amenities: Any = None
    highlights: Any = None
    is_pets_allowed: Any = None
    is_parking_included: Any = None
    beds: Any = None
    baths: Any = None
    square_feet: Any = None
    property_type: str = Field(..., description="Apartment, Villa, ...")
    address: str
    city: str
    state: str = ""
    country: str
    postal_code: str
    manager_cognito_id: str


class TenantDetail(Tenant):
    favorites: List[Property] = []


# Leases

class LeaseTenant(CamelModel):
    cognito_id: str
    name: str
    email: str
    phone_number: str


class LeaseProperty(CamelModel):
    id: int
    name: str
    description: str


class Lease(CamelModel):
    id: int
    start_date: datetime
    end_date: datetime
    rent: Decimal
    deposit: Decimal
    property_id: int
    tenant_cognito_id: str
    next_payment_date: Optional[datetime] = None
    tenant: Optional[LeaseTenant] = None
    property: Optional[LeaseProperty] = None


class Payment(CamelModel):
    id: int
    amount_due: Decimal
    amount_paid: Decimal
    due_date: datetime
    payment_date: datetime
    payment_status: str
    lease_id: int


# Applications

class ApplicationCreate(CamelModel):
    application_date: Optional[datetime] = None
    property_id: int
    tenant_cognito_id: str
    name: str
    email: str
    phone_number: str
    message: Optional[str] = None


class ApplicationStatusUpdate(CamelModel):
    status: str = Field(..., description="Approved or Denied")


class Application(CamelModel):
    id: int
    application_date: datetime
    status: str
    property_id: int
    tenant_cognito_id: str
    name: str
    email: str
    phone_number: str
    message: Optional[str] = None
    lease_id: Optional[int] = None
    property: Property
    manager: Manager
    tenant: Tenant
    lease: Optional[Lease] = None


class HealthResponse(BaseModel):
    status: str
    message: str
