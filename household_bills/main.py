from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from household_bills.api import admin, endpoints
from household_bills.config import Settings, settings
from household_bills.exceptions import (
    AdminAuthorizationError,
    BillNotFoundError,
    BillValidationError,
    StorePersistenceError,
)
from household_bills.services.bill_store import BillStore
from household_bills.services.database_service import DatabaseService
import logging
from contextlib import asynccontextmanager
from typing import Optional

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时执行
    logging.info("应用启动中...")
    await app.state.database_service.create_tables()

    yield

    # 关闭时执行
    logging.info("应用关闭中...")
    await app.state.database_service.close()


async def validation_error_handler(request: Request, exc: BillValidationError):
    return JSONResponse(status_code=400, content={"error": exc.flatten()})


async def not_found_handler(request: Request, exc: BillNotFoundError):
    return JSONResponse(status_code=404, content={"error": "Not found"})


async def persistence_error_handler(request: Request, exc: StorePersistenceError):
    return JSONResponse(status_code=500, content={"error": "Internal error"})


async def unauthorized_handler(request: Request, exc: AdminAuthorizationError):
    return PlainTextResponse("Unauthorized", status_code=401)


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """按给定配置构建应用，配置只在此处注入一次"""
    app_settings = app_settings or settings
    database_service = DatabaseService(app_settings)

    app = FastAPI(
        title="家庭账单记录",
        description="基于FastAPI+SQLAlchemy的家庭账单管理服务",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = app_settings
    app.state.database_service = database_service
    app.state.bill_store = BillStore(database_service, app_settings)

    # 添加CORS中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials="*" not in app_settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BillValidationError, validation_error_handler)
    app.add_exception_handler(BillNotFoundError, not_found_handler)
    app.add_exception_handler(StorePersistenceError, persistence_error_handler)
    app.add_exception_handler(AdminAuthorizationError, unauthorized_handler)

    # 注册路由
    app.include_router(endpoints.router, prefix="/api")
    app.include_router(admin.router, prefix="/api")

    @app.get("/")
    async def root():
        return {
            "message": "家庭账单记录服务运行中",
            "version": "1.0.0",
            "docs": "/docs"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "household_bills.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.debug,
        workers=1
    )
