from typing import List, Optional

from rentals.errors import InvalidInputError, NotFoundError
from rentals.models import schemas
from rentals.pool import PoolHandle
from rentals.repositories.applications import ApplicationRepository
from rentals.repositories.leases import LeaseRepository
from rentals.repositories.properties import PropertyRepository
from rentals.repositories.tenants import TenantRepository
from rentals.utils.dates import utcnow


class ApplicationService:
    """Submitting and listing applications; decisions go through ApprovalWorkflow"""

    def __init__(self, pool: PoolHandle):
        self.applications = ApplicationRepository(pool)
        self.leases = LeaseRepository(pool)
        self.properties = PropertyRepository(pool)
        self.tenants = TenantRepository(pool)

    async def list(self, user_id: Optional[str] = None,
                   user_type: Optional[str] = None) -> List[schemas.Application]:
        tenant_id = manager_id = None
        if user_id and user_type:
            if user_type == "tenant":
                tenant_id = user_id
            elif user_type == "manager":
                manager_id = user_id
            else:
                raise InvalidInputError(f"Unknown user type: {user_type!r}")

        applications = await self.applications.list(
            tenant_cognito_id=tenant_id, manager_cognito_id=manager_id
        )
        # one query for every (tenant, property) pair in the listing
        leases = await self.leases.latest_for_each(
            [(app.tenant_cognito_id, app.property_id) for app in applications]
        )
        return [
            app.model_copy(update={"lease": leases.get((app.tenant_cognito_id, app.property_id))})
            for app in applications
        ]

    async def create(self, data: schemas.ApplicationCreate) -> schemas.Application:
        if not await self.properties.exists(data.property_id):
            raise NotFoundError("Property not found")
        if await self.tenants.get(data.tenant_cognito_id) is None:
            raise NotFoundError("Tenant not found")

        application_id = await self.applications.create(
            data, application_date=data.application_date or utcnow()
        )
        created = await self.applications.get_detail(application_id)
        if created is None:
            raise NotFoundError("Application not found after creation.")
        return created
