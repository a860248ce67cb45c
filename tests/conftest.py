import glob
import os
import tempfile
from datetime import date, timedelta

# settings are read at import time, so point every database at a scratch directory first
_tmp = tempfile.mkdtemp(prefix="medibook-tests-")
os.environ["ENV"] = "test"
os.environ["DB_MANAGE"] = "create_all"
os.environ["POSTGRES_DSN"] = f"sqlite+aiosqlite:///{_tmp}/central.db"
os.environ["TENANT_DSN_TEMPLATE"] = f"sqlite+aiosqlite:///{_tmp}/{{database}}.db"
os.environ["TENANT_ADMIN_DSN"] = f"sqlite+aiosqlite:///{_tmp}/admin.db"

import httpx
import pytest

from medibook.core.base import Base
from medibook.core.db import SessionLocal, engine
from medibook.modules.directory import models as _directory  # noqa: F401
from medibook.modules.directory.schemas import ClinicRegister
from medibook.modules.directory.service import ClinicService
from medibook.modules.directory.sync import directory_sync
from medibook.modules.schedule import models as _schedule  # noqa: F401
from medibook.modules.schedule.timeranges import DayOfWeek
from medibook.tenancy.connections import connection_router
from medibook.tenancy.context import tenant_context

def _remove_tenant_files():
    for path in glob.glob(os.path.join(_tmp, "clinic_*.db")):
        os.remove(path)

def _next_weekday(day: DayOfWeek) -> date:
    start = date.today() + timedelta(days=1)
    return start + timedelta(days=(day.index - start.weekday()) % 7)

@pytest.fixture
def next_weekday():
    """The first date strictly after today that falls on a given day."""
    return _next_weekday

@pytest.fixture(autouse=True)
async def _cleanup():
    yield
    await directory_sync.drain()
    await connection_router.dispose_all()
    await engine.dispose()
    tenant_context.clear()

@pytest.fixture
async def central():
    _remove_tenant_files()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield SessionLocal

@pytest.fixture
async def clinic(central):
    async with SessionLocal() as s:
        return await ClinicService(s).register(
            ClinicRegister(name="Nile Clinic", email="nile@example.com", phone="+201000000001")
        )

@pytest.fixture
async def tenant_session(clinic):
    conn = await connection_router.resolve(clinic.database_name)
    async with conn.session() as s:
        yield s

@pytest.fixture
async def client(central):
    from medibook.main import app
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
