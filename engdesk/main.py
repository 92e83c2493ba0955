from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from engdesk.api.router import router as api_router
from engdesk.core.config import Settings, settings as default_settings
from engdesk.core.deps import get_data_store
from engdesk.core.http_hardening import install_http_hardening
from engdesk.core.logging import configure_logging
from engdesk.db.session import build_engine
from engdesk.services.data_access import DataStore
from engdesk.services.invoice_pdf import InvoicePdfRenderer


def create_app(settings: Settings = default_settings) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.LOG_LEVEL)
        engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
        app.state.data_store = DataStore(engine)
        app.state.pdf_renderer = InvoicePdfRenderer.from_settings(settings)
        try:
            yield
        finally:
            app.state.data_store = None
            app.state.pdf_renderer = None
            engine.dispose()

    app = FastAPI(title=settings.APP_NAME, version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_http_hardening(app)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse({"error": "Invalid request", "details": jsonable_encoder(exc.errors())}, status_code=400)

    app.include_router(api_router, prefix="/api")

    @app.get("/", include_in_schema=False)
    def landing():
        return JSONResponse({"service": settings.APP_NAME, "status": "ok"})

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/health/db")
    def health_db(store: DataStore = Depends(get_data_store)):
        result = store.ping()
        if not result.is_success:
            raise HTTPException(status_code=503, detail=result.message)
        return {"status": "ok"}

    return app


app = create_app()
