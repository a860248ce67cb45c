import asyncio
import logging
from typing import Awaitable, Callable

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from medibook.core.db import SessionLocal
from medibook.modules.directory.models import Clinic
from medibook.modules.directory.repository import DirectoryMirrorRepository
from medibook.tenancy.connections import TenantConnectionRouter, connection_router

log = logging.getLogger("directory.sync")

class DirectorySync:
    """Fire-and-forget propagation of tenant changes into the central directory.

    Each job runs in its own task with its own sessions, outside the
    triggering request. Failures are logged and dropped; callers never see
    them. ``drain()`` waits for every job submitted so far.
    """

    def __init__(self, router: TenantConnectionRouter, central: async_sessionmaker[AsyncSession]):
        self.router = router
        self.central = central
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, description: str, job: Callable[[], Awaitable[None]]) -> asyncio.Task:
        task = asyncio.create_task(self._run(description, job))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, description: str, job: Callable[[], Awaitable[None]]) -> None:
        try:
            await job()
            log.debug("Directory sync done: %s", description)
        except Exception:
            log.exception("Directory sync failed: %s", description)

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _clinic_id_for(self, session: AsyncSession, database_name: str) -> int | None:
        res = await session.execute(select(Clinic.id).where(Clinic.database_name == database_name))
        return res.scalar_one_or_none()

    # ---- jobs ----

    def mirror_doctor(self, database_name: str, doctor_id: int) -> asyncio.Task:
        return self.submit(f"mirror doctor {doctor_id} of {database_name}",
                           lambda: self._mirror_doctor(database_name, doctor_id))

    async def _mirror_doctor(self, database_name: str, doctor_id: int) -> None:
        from medibook.modules.doctors.models import Doctor
        conn = await self.router.resolve(database_name)
        async with conn.session() as ts:
            doctor = await ts.get(Doctor, doctor_id)
            if doctor is None:
                log.warning("Doctor %s vanished from %s before mirroring", doctor_id, database_name)
                return
            snapshot = {"name": doctor.name, "specialty": doctor.specialty, "patients_count": doctor.patients_count}
        async with self.central() as cs:
            clinic_id = await self._clinic_id_for(cs, database_name)
            if clinic_id is None:
                log.warning("No clinic owns tenant database %s; skipping doctor mirror", database_name)
                return
            await DirectoryMirrorRepository(cs).upsert_doctor(clinic_id, doctor_id, **snapshot)
            await cs.commit()

    def bump_doctor_patients(self, database_name: str, doctor_id: int) -> asyncio.Task:
        return self.submit(f"increment patients of doctor {doctor_id} in {database_name}",
                           lambda: self._bump_doctor_patients(database_name, doctor_id))

    async def _bump_doctor_patients(self, database_name: str, doctor_id: int) -> None:
        from medibook.modules.doctors.models import Doctor
        conn = await self.router.resolve(database_name)
        async with conn.session() as ts:
            await ts.execute(update(Doctor).where(Doctor.id == doctor_id).values(patients_count=Doctor.patients_count + 1))
            await ts.commit()
        await self._mirror_doctor(database_name, doctor_id)

    def mirror_reservation(self, database_name: str, snapshot: dict) -> asyncio.Task:
        return self.submit(f"mirror reservation {snapshot.get('id')} of {database_name}",
                           lambda: self._mirror_reservation(database_name, snapshot))

    async def _mirror_reservation(self, database_name: str, snapshot: dict) -> None:
        data = dict(snapshot)
        reservation_id = data.pop("id")
        async with self.central() as cs:
            clinic_id = await self._clinic_id_for(cs, database_name)
            if clinic_id is None:
                log.warning("No clinic owns tenant database %s; skipping reservation mirror", database_name)
                return
            await DirectoryMirrorRepository(cs).upsert_reservation(clinic_id, reservation_id, **data)
            await cs.commit()

    def forget_reservation(self, database_name: str, reservation_id: int) -> asyncio.Task:
        return self.submit(f"remove reservation mirror {reservation_id} of {database_name}",
                           lambda: self._forget_reservation(database_name, reservation_id))

    async def _forget_reservation(self, database_name: str, reservation_id: int) -> None:
        async with self.central() as cs:
            clinic_id = await self._clinic_id_for(cs, database_name)
            if clinic_id is None:
                return
            await DirectoryMirrorRepository(cs).delete_reservation(clinic_id, reservation_id)
            await cs.commit()

    def mirror_clinic_hours(self, database_name: str, days: list[str], branch_id: int | None,
                            working: dict[str, list[dict]] | None = None,
                            breaks: dict[str, list[dict]] | None = None) -> asyncio.Task:
        return self.submit(f"mirror clinic hours {days} (branch {branch_id}) into {database_name}",
                           lambda: self._mirror_clinic_hours(database_name, days, branch_id, working, breaks))

    async def _mirror_clinic_hours(self, database_name: str, days: list[str], branch_id: int | None,
                                   working: dict[str, list[dict]] | None,
                                   breaks: dict[str, list[dict]] | None) -> None:
        from medibook.modules.schedule.repository import TenantHoursRepository
        conn = await self.router.resolve(database_name)
        async with conn.session() as ts:
            repo = TenantHoursRepository(ts)
            if working is not None:
                await repo.replace_working(days, branch_id, working)
            if breaks is not None:
                await repo.replace_breaks(days, branch_id, breaks)
            await ts.commit()

directory_sync = DirectorySync(connection_router, SessionLocal)
