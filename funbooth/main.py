from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import HTMLResponse, JSONResponse
import logging

from funbooth.app_logging import configure_logging
from funbooth.config import settings
from funbooth.errors import PhotoboothError
from funbooth.api.routes import photos, session, storage, websocket
from funbooth.services.camera import camera_service
from funbooth.services.session import session_controller
from funbooth.templates.index import get_html_template

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description=settings.app_description,
    debug=settings.debug
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(session.router, prefix="/api")
app.include_router(photos.router, prefix="/api")
app.include_router(storage.router, prefix="/api")
app.include_router(websocket.router)
app.mount("/static", StaticFiles(directory=settings.static_dir), name="static")


@app.exception_handler(PhotoboothError)
async def photobooth_error_handler(request: Request, exc: PhotoboothError):
    logger.info("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )


@app.on_event("startup")
async def startup_event():
    configure_logging()
    logger.info("%s ready, photos stored in %s", settings.app_name, settings.photos_dir)


@app.on_event("shutdown")
async def shutdown_event():
    await session_controller.shutdown()


@app.get("/")
async def get_index():
    return HTMLResponse(get_html_template())


@app.get("/health")
async def health_check():
    return {"status": "healthy", "camera_active": camera_service.is_active}
