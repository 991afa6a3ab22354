import uvicorn
from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from app.api.routes.admin import router as admin_router
from app.api.routes.admin_coupons import router as admin_coupons_router
from app.api.routes.auth import router as auth_router
from app.api.routes.errors import storage_error_handler
from app.api.routes.health import router as health_router
from app.api.routes.student import router as student_router
from app.core.config import get_settings
from app.core.logging import configure_logging


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Tuition Fees API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(student_router)
    app.include_router(admin_router)
    app.include_router(admin_coupons_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
