from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.database import build_engine, build_sessionmaker, init_db
from core.errors import register_exception_handlers
from core.logging_config import configure_logging
from core.settings import Settings, get_settings
from core.store import DocumentStore
from modules.graph.router import router as graph_router
from modules.materials.router import router as materials_router
from modules.offers.router import router as offers_router
from modules.orders.router import router as orders_router
from modules.products.router import router as products_router
from modules.projects.router import router as projects_router
from modules.suppliers.router import router as suppliers_router
from modules.tasks.router import router as tasks_router
from modules.work_logs.router import router as work_logs_router
from modules.work_orders.router import router as work_orders_router
from modules.workers.router import router as workers_router

ROUTERS = (
    projects_router,
    products_router,
    materials_router,
    offers_router,
    orders_router,
    work_orders_router,
    work_logs_router,
    workers_router,
    suppliers_router,
    tasks_router,
    graph_router,
)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = build_engine(settings.database_url)
        await init_db(engine)
        app.state.store = DocumentStore(build_sessionmaker(engine))
        app.state.settings = settings
        yield
        await engine.dispose()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    for router in ROUTERS:
        app.include_router(router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("main:app", host="127.0.0.1", port=8000)


if __name__ == "__main__":
    run()
