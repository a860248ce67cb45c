import logging
from sqlalchemy.ext.asyncio import AsyncSession
from medibook.core.errors import NotFoundError
from medibook.modules.directory.repository import DirectoryMirrorRepository
from medibook.modules.directory.sync import DirectorySync, directory_sync
from medibook.modules.doctors.models import Doctor
from medibook.modules.doctors.repository import DoctorRepository, ServiceRepository
from medibook.modules.doctors.schemas import DoctorCreate, ServiceCreate
from medibook.tenancy.context import TenantContext, tenant_context

logger = logging.getLogger(__name__)

class DoctorService:
    def __init__(self, session: AsyncSession, sync: DirectorySync | None = None, context: TenantContext | None = None):
        self.session = session
        self.sync = sync or directory_sync
        self.context = context or tenant_context
        self.doctors = DoctorRepository(session)
        self.services = ServiceRepository(session)

    async def create_doctor(self, payload: DoctorCreate) -> Doctor:
        doctor = await self.doctors.create(**payload.model_dump())
        await self.session.commit()
        database_name = self.context.get()
        if database_name:
            try:
                self.sync.mirror_doctor(database_name, doctor.id)
            except Exception:
                logger.exception(f"Directory mirror for doctor {doctor.id} could not be started")
        return doctor

    async def get_doctor(self, doctor_id: int) -> Doctor:
        doctor = await self.doctors.get(doctor_id)
        if not doctor:
            raise NotFoundError(f"Doctor with ID {doctor_id} not found")
        return doctor

    async def list_doctors(self, specialty: str | None = None, active: bool | None = None):
        return await self.doctors.list(specialty=specialty, active=active)

    async def create_service(self, payload: ServiceCreate):
        service = await self.services.create(**payload.model_dump())
        await self.session.commit()
        return service

    async def list_services(self):
        return await self.services.list()

class DoctorSearchService:
    """Doctor lookup on whichever database the request is bound to.

    A session opened inside a clinic context searches that clinic's own doctors;
    outside one it searches the cross-clinic directory mirror.
    """

    def __init__(self, session: AsyncSession, context: TenantContext | None = None):
        self.session = session
        self.context = context or tenant_context

    async def search(self, name: str | None = None, specialty: str | None = None, limit: int = 50,
                     clinic_id: int | None = None) -> list[dict]:
        if not self.context.is_tenant():
            rows = await DirectoryMirrorRepository(self.session).search_doctors(name=name, specialty=specialty, limit=limit)
            return [
                {"clinic_id": r.clinic_id, "clinic_doctor_id": r.clinic_doctor_id, "name": r.name,
                 "specialty": r.specialty, "patients_count": r.patients_count}
                for r in rows
            ]
        rows = await DoctorRepository(self.session).search(name=name, specialty=specialty, limit=limit)
        return [
            {"clinic_id": clinic_id, "clinic_doctor_id": d.id, "name": d.name,
             "specialty": d.specialty, "patients_count": d.patients_count}
            for d in rows
        ]
