from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from cbt.core.config import settings
from cbt.core.logging import configure_logging
from cbt.endpoints import attempt, exam, grading, monitoring
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from cbt.middleware.exceptions import global_exception_handler, validation_exception_handler
from cbt.middleware.logging import RequestLoggingMiddleware
from cbt.core.scheduler import start_scheduler, stop_scheduler
from cbt.services import audit_log  # noqa: F401  registers audit handlers on the event bus

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)

app.add_exception_handler(StarletteHTTPException, global_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

app.include_router(exam.router, prefix="/exams", tags=["Exams"])
app.include_router(attempt.router, prefix="/attempts", tags=["Attempts"])
app.include_router(grading.router, prefix="/submissions", tags=["Grading"])
app.include_router(monitoring.router, prefix="/monitoring", tags=["Monitoring"])

@app.on_event("startup")
async def startup_event():
    if not settings.TESTING:
        configure_logging()
    start_scheduler()

@app.on_event("shutdown")
async def shutdown_event():
    stop_scheduler()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
