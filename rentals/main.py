from contextlib import asynccontextmanager
from fastapi import APIRouter, FastAPI, File, Form, HTTPException, Depends, Query, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from typing import Optional, List
import uvicorn

from rentals.capabilities.geocoding import Geocoder, NominatimGeocoder
from rentals.capabilities.storage import ObjectStorage, S3ObjectStorage
from rentals.config.settings import Settings, settings as default_settings
from rentals.errors import NotFoundError, RentalsError
from rentals.models import schemas
from rentals.pool import PoolHandle
from rentals.repositories.leases import LeaseRepository
from rentals.repositories.managers import ManagerRepository
from rentals.repositories.properties import PropertyRepository
from rentals.repositories.tenants import TenantRepository
from rentals.services.applications import ApplicationService
from rentals.services.approval import ApprovalWorkflow
from rentals.services.property_creation import PropertyCreationWorkflow, UploadedFile

# Configure logging
logging.basicConfig(
    level=getattr(logging, default_settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, pool: Optional[PoolHandle] = None,
               storage: Optional[ObjectStorage] = None,
               geocoder: Optional[Geocoder] = None) -> FastAPI:
    """Build the API with its pool and external capabilities wired in"""
    settings = settings or default_settings
    pool = pool or PoolHandle(settings=settings)
    storage = storage or S3ObjectStorage.from_settings(settings)
    geocoder = geocoder or NominatimGeocoder.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Initializing application components...")
        await pool.initialize()
        if not await pool.health_check():
            logger.warning("Database health check failed at startup")
        logger.info("Application startup completed successfully")
        try:
            yield
        finally:
            await pool.close()

    app = FastAPI(
        title=settings.app_name,
        description="Property listings, rental applications and leases",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.pool = pool
    app.state.properties = PropertyRepository(pool)
    app.state.leases = LeaseRepository(pool)
    app.state.managers = ManagerRepository(pool)
    app.state.tenants = TenantRepository(pool)
    app.state.applications = ApplicationService(pool)
    app.state.approval = ApprovalWorkflow(pool)
    app.state.property_creation = PropertyCreationWorkflow(pool, storage, geocoder)

    register_error_handlers(app)
    app.include_router(router)
    return app


def register_error_handlers(app: FastAPI):
    @app.exception_handler(RentalsError)
    async def rentals_error_handler(request: Request, exc: RentalsError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"detail": "Invalid request", "errors": jsonable_encoder(exc.errors())},
        )


# Dependency functions
def get_pool(request: Request) -> PoolHandle:
    return request.app.state.pool


def get_properties(request: Request) -> PropertyRepository:
    return request.app.state.properties


def get_leases(request: Request) -> LeaseRepository:
    return request.app.state.leases


def get_managers(request: Request) -> ManagerRepository:
    return request.app.state.managers


def get_tenants(request: Request) -> TenantRepository:
    return request.app.state.tenants


def get_applications(request: Request) -> ApplicationService:
    return request.app.state.applications


def get_approval(request: Request) -> ApprovalWorkflow:
    return request.app.state.approval


def get_property_creation(request: Request) -> PropertyCreationWorkflow:
    return request.app.state.property_creation


def server_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Error {action}: {e}")
    return HTTPException(status_code=500, detail=f"Error {action}: {str(e)}")


router = APIRouter()


@router.get("/health", response_model=schemas.HealthResponse)
async def health_check(pool: PoolHandle = Depends(get_pool)):
    if await pool.health_check():
        return schemas.HealthResponse(status="healthy", message="All systems operational")
    return schemas.HealthResponse(status="degraded", message="Database unreachable")


# Properties

@router.get("/properties", response_model=List[schemas.Property])
async def list_properties(
    favorite_ids: Optional[str] = Query(None, alias="favoriteIds"),
    properties: PropertyRepository = Depends(get_properties),
):
    """All listings, or only the ones in a comma-separated id list"""
    ids = None
    if favorite_ids:
        ids = [int(part) for part in favorite_ids.split(",") if part.strip().isdigit()]
    try:
        return await properties.list(property_ids=ids or None)
    except RentalsError:
        raise
    except Exception as e:
        raise server_error("retrieving properties", e)


@router.get("/properties/{property_id}", response_model=schemas.Property)
async def get_property(property_id: int, properties: PropertyRepository = Depends(get_properties)):
    try:
        prop = await properties.get(property_id)
    except Exception as e:
        raise server_error("retrieving property", e)
    if prop is None:
        raise NotFoundError("Property not found")
    return prop


@router.post("/properties", response_model=schemas.Property, status_code=201)
async def create_property(
    name: str = Form(...),
    description: str = Form(""),
    property_type: str = Form(..., alias="propertyType"),
    price_per_month: Optional[str] = Form(None, alias="pricePerMonth"),
    security_deposit: Optional[str] = Form(None, alias="securityDeposit"),
    application_fee: Optional[str] = Form(None, alias="applicationFee"),
    amenities: Optional[str] = Form(None),
    highlights: Optional[str] = Form(None),
    is_pets_allowed: Optional[str] = Form(None, alias="isPetsAllowed"),
    is_parking_included: Optional[str] = Form(None, alias="isParkingIncluded"),
    beds: Optional[str] = Form(None),
    baths: Optional[str] = Form(None),
    square_feet: Optional[str] = Form(None, alias="squareFeet"),
    address: str = Form(...),
    city: str = Form(...),
    state: str = Form(""),
    country: str = Form(...),
    postal_code: str = Form(..., alias="postalCode"),
    manager_cognito_id: str = Form(..., alias="managerCognitoId"),
    photos: List[UploadFile] = File(default=[]),
    workflow: PropertyCreationWorkflow = Depends(get_property_creation),
):
    """Create a listing from a multipart form with 0..N photos"""
    data = schemas.PropertyCreate(
        name=name,
        description=description,
        property_type=property_type,
        price_per_month=price_per_month,
        security_deposit=security_deposit,
        application_fee=application_fee,
        amenities=amenities,
        highlights=highlights,
        is_pets_allowed=is_pets_allowed,
        is_parking_included=is_parking_included,
        beds=beds,
        baths=baths,
        square_feet=square_feet,
        address=address,
        city=city,
        state=state,
        country=country,
        postal_code=postal_code,
        manager_cognito_id=manager_cognito_id,
    )
    files = [
        UploadedFile(
            filename=photo.filename or "photo",
            content_type=photo.content_type or "application/octet-stream",
            data=await photo.read(),
        )
        for photo in photos
    ]
    try:
        return await workflow.create(data, files)
    except RentalsError:
        raise
    except Exception as e:
        raise server_error("creating property", e)


# Applications

@router.get("/applications", response_model=List[schemas.Application])
async def list_applications(
    user_id: Optional[str] = Query(None, alias="userId"),
    user_type: Optional[str] = Query(None, alias="userType"),
    service: ApplicationService = Depends(get_applications),
):
    try:
        return await service.list(user_id=user_id, user_type=user_type)
    except RentalsError:
        raise
    except Exception as e:
        raise server_error("retrieving applications", e)


@router.post("/applications", response_model=schemas.Application, status_code=201)
async def create_application(
    request: schemas.ApplicationCreate,
    service: ApplicationService = Depends(get_applications),
):
    try:
        return await service.create(request)
    except RentalsError:
        raise
    except Exception as e:
        raise server_error("creating application", e)


@router.put("/applications/{application_id}/status", response_model=schemas.Application)
async def update_application_status(
    application_id: int,
    request: schemas.ApplicationStatusUpdate,
    workflow: ApprovalWorkflow = Depends(get_approval),
):
    try:
        return await workflow.update_status(application_id, request.status)
    except RentalsError:
        raise
    except Exception as e:
        raise server_error("updating application status", e)


# Leases

@router.get("/leases", response_model=List[schemas.Lease])
async def list_leases(leases: LeaseRepository = Depends(get_leases)):
    try:
        return await leases.list()
    except Exception as e:
        raise server_error("retrieving leases", e)


@router.get("/leases/{lease_id}/payments", response_model=List[schemas.Payment])
async def get_lease_payments(lease_id: int, leases: LeaseRepository = Depends(get_leases)):
    try:
        return await leases.payments(lease_id)
    except Exception as e:
        raise server_error("retrieving lease payments", e)


# Managers

@router.get("/managers/{cognito_id}", response_model=schemas.Manager)
async def get_manager(cognito_id: str, managers: ManagerRepository = Depends(get_managers)):
    manager = await managers.get(cognito_id)
    if manager is None:
        raise NotFoundError("Manager not found")
    return manager


@router.post("/managers", response_model=schemas.Manager, status_code=201)
async def create_manager(request: schemas.ContactCreate, managers: ManagerRepository = Depends(get_managers)):
    try:
        return await managers.create(request)
    except Exception as e:
        raise server_error("creating manager", e)


@router.put("/managers/{cognito_id}", response_model=schemas.Manager)
async def update_manager(cognito_id: str, request: schemas.ContactUpdate,
                         managers: ManagerRepository = Depends(get_managers)):
    try:
        manager = await managers.update(cognito_id, request)
    except Exception as e:
        raise server_error("updating manager", e)
    if manager is None:
        raise NotFoundError("Manager not found")
    return manager


@router.get("/managers/{cognito_id}/properties", response_model=List[schemas.Property])
async def get_manager_properties(cognito_id: str, properties: PropertyRepository = Depends(get_properties)):
    try:
        return await properties.list_by_manager(cognito_id)
    except Exception as e:
        raise server_error("retrieving manager properties", e)


# Tenants

async def _tenant_detail(tenants: TenantRepository, cognito_id: str) -> schemas.TenantDetail:
    tenant = await tenants.get(cognito_id)
    if tenant is None:
        raise NotFoundError("Tenant not found")
    favorites = await tenants.favorites(cognito_id)
    return schemas.TenantDetail(**tenant.model_dump(), favorites=favorites)


@router.get("/tenants/{cognito_id}", response_model=schemas.TenantDetail)
async def get_tenant(cognito_id: str, tenants: TenantRepository = Depends(get_tenants)):
    return await _tenant_detail(tenants, cognito_id)


@router.post("/tenants", response_model=schemas.Tenant, status_code=201)
async def create_tenant(request: schemas.ContactCreate, tenants: TenantRepository = Depends(get_tenants)):
    try:
        return await tenants.create(request)
    except Exception as e:
        raise server_error("creating tenant", e)


@router.put("/tenants/{cognito_id}", response_model=schemas.Tenant)
async def update_tenant(cognito_id: str, request: schemas.ContactUpdate,
                        tenants: TenantRepository = Depends(get_tenants)):
    try:
        tenant = await tenants.update(cognito_id, request)
    except Exception as e:
        raise server_error("updating tenant", e)
    if tenant is None:
        raise NotFoundError("Tenant not found")
    return tenant


@router.get("/tenants/{cognito_id}/current-residences", response_model=List[schemas.Property])
async def get_current_residences(cognito_id: str, tenants: TenantRepository = Depends(get_tenants)):
    try:
        return await tenants.current_residences(cognito_id)
    except Exception as e:
        raise server_error("retrieving current residences", e)


@router.post("/tenants/{cognito_id}/favorites/{property_id}", response_model=schemas.TenantDetail)
async def add_favorite_property(
    cognito_id: str,
    property_id: int,
    tenants: TenantRepository = Depends(get_tenants),
    properties: PropertyRepository = Depends(get_properties),
):
    if await tenants.get(cognito_id) is None:
        raise NotFoundError("Tenant not found")
    if not await properties.exists(property_id):
        raise NotFoundError("Property not found")
    await tenants.add_favorite(cognito_id, property_id)
    return await _tenant_detail(tenants, cognito_id)


@router.delete("/tenants/{cognito_id}/favorites/{property_id}", response_model=schemas.TenantDetail)
async def remove_favorite_property(cognito_id: str, property_id: int,
                                   tenants: TenantRepository = Depends(get_tenants)):
    await tenants.remove_favorite(cognito_id, property_id)
    return await _tenant_detail(tenants, cognito_id)


# Development server
if __name__ == "__main__":
    uvicorn.run(
        "rentals.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=default_settings.log_level.lower()
    )
