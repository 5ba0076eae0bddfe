import pathlib
import sys
from datetime import datetime, timezone

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from core.collections import Collections
from core.context import TenantContext
from core.database import build_engine, build_sessionmaker, init_db
from core.settings import Settings
from core.store import DocumentStore
from modules.materials import service as material_service
from modules.materials.schemas import MaterialCreate
from modules.products import service as product_service
from modules.products.schemas import ProductCreate
from modules.projects import service as project_service
from modules.projects.schemas import ProjectCreate
from modules.workers import service as worker_service
from modules.workers.schemas import WorkerCreate

TENANT = "tenant-a"
NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings(tmp_path):
    return Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")


@pytest.fixture
async def store(settings):
    engine = build_engine(settings.database_url)
    await init_db(engine)
    yield DocumentStore(build_sessionmaker(engine))
    await engine.dispose()


@pytest.fixture
def ctx(store, settings):
    return TenantContext(TENANT, store, settings=settings, clock=lambda: NOW)


class Builder:
    """Creates records through the services, optionally forcing a status afterwards."""

    def __init__(self, ctx):
        self.ctx = ctx

    async def project(self, client_name="Acme Kitchens", status=None):
        result = await project_service.save_project(self.ctx, ProjectCreate(client_name=client_name))
        assert result.success, result.message
        if status:
            return await self.ctx.update(Collections.PROJECTS, result.data["id"], {"status": status})
        return result.data

    async def product(self, project_id, name="Wall cabinet", status=None):
        result = await product_service.save_product(self.ctx, ProductCreate(project_id=project_id, name=name))
        assert result.success, result.message
        if status:
            return await self.ctx.update(Collections.PRODUCTS, result.data["id"], {"status": status})
        return result.data

    async def material(
        self,
        product_id,
        name="Oak board",
        quantity=1.0,
        unit="pcs",
        unit_price=10.0,
        is_essential=False,
        status=None,
        supplier="",
    ):
        result = await material_service.add_material(
            self.ctx,
            MaterialCreate(
                product_id=product_id,
                material_name=name,
                quantity=quantity,
                unit=unit,
                unit_price=unit_price,
                is_essential=is_essential,
                supplier=supplier,
            ),
        )
        assert result.success, result.message
        if status:
            return await self.ctx.update(Collections.PRODUCT_MATERIALS, result.data["id"], {"status": status})
        return result.data

    async def worker(self, name="Ivo", status="Active", daily_rate=120.0):
        result = await worker_service.create_worker(
            self.ctx, WorkerCreate(name=name, status=status, daily_rate=daily_rate)
        )
        assert result.success, result.message
        return result.data


@pytest.fixture
def build(ctx):
    return Builder(ctx)
