from datetime import datetime
from typing import Optional
import logging

from rentals.errors import ConflictError, InvalidInputError, NotFoundError
from rentals.models import schemas
from rentals.models.schemas import ApplicationStatus
from rentals.pool import PoolHandle
from rentals.repositories.applications import ApplicationRepository
from rentals.repositories.leases import LeaseRepository
from rentals.repositories.tenants import TenantRepository
from rentals.utils.dates import one_year_after, utcnow

logger = logging.getLogger(__name__)


class ApprovalWorkflow:
    """Decides Pending applications.

    Approving writes three things in one transaction: a lease whose rent and
    deposit are copied from the property, the tenant's current-residence link
    and the application's status and lease id. Any other decision only
    updates the status. Only Pending applications can be decided; the status
    update is conditional on the row still being Pending, so when two
    decisions race the loser is rolled back with a ConflictError and never
    leaves a second lease behind.
    """

    def __init__(self, pool: PoolHandle,
                 applications: Optional[ApplicationRepository] = None,
                 leases: Optional[LeaseRepository] = None,
                 tenants: Optional[TenantRepository] = None):
        self.pool = pool
        self.applications = applications or ApplicationRepository(pool)
        self.leases = leases or LeaseRepository(pool)
        self.tenants = tenants or TenantRepository(pool)

    @staticmethod
    def _parse_status(status: str) -> ApplicationStatus:
        try:
            target = ApplicationStatus(status)
        except ValueError:
            raise InvalidInputError(f"Unknown application status: {status!r}") from None
        if target is ApplicationStatus.PENDING:
            raise InvalidInputError("Applications cannot be moved back to Pending")
        return target

    async def update_status(self, application_id: int, status: str,
                            now: Optional[datetime] = None) -> schemas.Application:
        target = self._parse_status(status)

        # snapshot read, outside the write transaction
        application = await self.applications.get_detail(application_id)
        if application is None:
            raise NotFoundError("Application not found.")
        if application.status != ApplicationStatus.PENDING.value:
            raise ConflictError(f"Application {application_id} is already {application.status}.")

        now = now or utcnow()
        async with self.pool.transaction() as conn:
            lease_id = None
            if target is ApplicationStatus.APPROVED:
                lease_id = await self.leases.create(
                    start_date=now,
                    end_date=one_year_after(now),
                    rent=application.property.price_per_month,
                    deposit=application.property.security_deposit,
                    property_id=application.property_id,
                    tenant_cognito_id=application.tenant_cognito_id,
                    conn=conn,
                )
                await self.tenants.add_residence(
                    application.tenant_cognito_id, application.property_id, conn=conn
                )

            updated = await self.applications.transition(
                application_id,
                from_status=ApplicationStatus.PENDING.value,
                to_status=target.value,
                lease_id=lease_id,
                conn=conn,
            )
            if updated == 0:
                raise ConflictError(f"Application {application_id} was decided concurrently.")

        logger.info(f"Application {application_id} {target.value.lower()}"
                    + (f" with lease {lease_id}" if lease_id else ""))
        return await self.get(application_id, now)

    async def get(self, application_id: int, now: Optional[datetime] = None) -> schemas.Application:
        """Fully joined application with its lease, when it has one"""
        application = await self.applications.get_detail(application_id)
        if application is None:
            raise NotFoundError("Application not found.")
        if application.lease_id is not None:
            lease = await self.leases.get(application.lease_id, now=now)
            application = application.model_copy(update={"lease": lease})
        return application
