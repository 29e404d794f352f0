"""
CourseHub API
Course enrollment backend: users, courses, modules, lessons, enrollments and quizzes
"""

import logging
import os
import uuid

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from coursehub.core.config import settings
from coursehub.core.errors import CourseHubError
from coursehub.courses.course_router import router as course_router
from coursehub.courses.dashboard_router import router as dashboard_router
from coursehub.courses.enrollment_router import router as enrollment_router
from coursehub.courses.lesson_router import router as lesson_router
from coursehub.courses.module_router import router as module_router
from coursehub.courses.quiz_router import router as quiz_router
from coursehub.courses.user_router import router as user_router
from coursehub.store.manager import store_manager
from coursehub.system.health_router import router as health_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="CourseHub API",
    description="Course enrollment management backend",
    version="1.0.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
)


@app.on_event("startup")
async def startup_event():
    logger.info("Starting CourseHub (%s, store=%s)", settings.ENVIRONMENT, settings.DOCUMENT_STORE)
    try:
        store_manager.connect()
    except Exception as e:
        # Requests will retry the connection through get_store
        logger.error("Document store connection failed: %s", e)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down CourseHub...")
    await store_manager.disconnect()


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# ==================== EXCEPTION HANDLERS ====================

@app.exception_handler(CourseHubError)
async def coursehub_error_handler(request: Request, exc: CourseHubError):
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return exc.to_response()


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())

    error_details = [
        {"loc": error.get("loc"), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder({
            "success": False,
            "error": "Validation Failed",
            "message": "Invalid request data",
            "details": error_details,
        })
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning("HTTP %s on %s: %s", exc.status_code, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": "Not Found" if exc.status_code == 404 else "Error",
            "message": str(exc.detail),
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    log_id = uuid.uuid4().hex[:8]
    logger.exception("[%s] Unhandled exception on %s", log_id, request.url.path)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "Internal server error",
            "message": str(exc) if settings.is_development else "An unexpected error occurred",
            "details": {"log_id": log_id},
        }
    )

# ==================== ROUTER REGISTRATION ====================

app.include_router(user_router, prefix="/api")
app.include_router(course_router, prefix="/api")
app.include_router(module_router, prefix="/api")
app.include_router(lesson_router, prefix="/api")
app.include_router(enrollment_router, prefix="/api")
app.include_router(quiz_router, prefix="/api")
app.include_router(dashboard_router, prefix="/api")
app.include_router(health_router)

# Mounted last so /api and /health win over static files
if os.path.isdir(settings.STATIC_DIR):
    app.mount("/", StaticFiles(directory=settings.STATIC_DIR, html=True), name="dashboard")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("coursehub.main:app", host="0.0.0.0", port=settings.PORT)
