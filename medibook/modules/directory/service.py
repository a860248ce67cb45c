import logging
from sqlalchemy.ext.asyncio import AsyncSession
from medibook.core.errors import ConflictError, NotFoundError, TenantUnavailableError
from medibook.core.paging import PageParams, page_meta
from medibook.modules.directory.models import Clinic
from medibook.modules.directory.repository import ClinicRepository
from medibook.modules.directory.schemas import ClinicRegister
from medibook.tenancy.connections import TenantConnectionRouter, connection_router
from medibook.tenancy.provisioning import database_name_for_clinic

logger = logging.getLogger(__name__)

class ClinicService:
    def __init__(self, session: AsyncSession, router: TenantConnectionRouter | None = None):
        self.session = session
        self.router = router or connection_router
        self.clinics = ClinicRepository(session)

    async def register(self, payload: ClinicRegister) -> Clinic:
        """Create the clinic record, then provision its tenant database exactly once."""
        if await self.clinics.find_by_contact(email=payload.email):
            raise ConflictError("Email already exists")
        if await self.clinics.find_by_contact(phone=payload.phone):
            raise ConflictError("Phone number already exists")

        clinic = await self.clinics.create(**payload.model_dump(), is_active=True)
        await self.session.commit()

        database_name = database_name_for_clinic(clinic.id)
        try:
            await self.router.provision(database_name)
        except TenantUnavailableError:
            logger.error(f"Clinic {clinic.id} registered without a tenant database; provisioning of {database_name} failed")
            raise
        await self.assign_database_name(clinic, database_name)
        logger.info(f"Clinic {clinic.id} registered with tenant database {database_name}")
        return clinic

    async def assign_database_name(self, clinic: Clinic, database_name: str) -> Clinic:
        if clinic.database_name:
            if clinic.database_name == database_name:
                return clinic
            raise ConflictError(f"Clinic {clinic.id} already has database {clinic.database_name!r}")
        clinic.database_name = database_name
        await self.session.commit()
        return clinic

    async def get(self, clinic_id: int) -> Clinic:
        clinic = await self.clinics.get(clinic_id)
        if not clinic:
            raise NotFoundError(f"Clinic with ID {clinic_id} not found")
        return clinic

    async def list(self, params: PageParams, active: bool | None = None) -> dict:
        rows, total = await self.clinics.list(limit=params.limit, offset=params.offset, active=active)
        return {"data": rows, "meta": page_meta(total, params)}

    async def set_active(self, clinic_id: int, is_active: bool) -> Clinic:
        clinic = await self.get(clinic_id)
        clinic.is_active = is_active
        await self.session.commit()
        return clinic

    async def directory_record(self, clinic_id: int) -> dict:
        clinic = await self.get(clinic_id)
        return {"clinic_id": clinic.id, "database_name": clinic.database_name, "is_active": clinic.is_active}
