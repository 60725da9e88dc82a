import asyncio
import logging
from datetime import timedelta

from fastapi import FastAPI, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from tutor_admin.auth.dependencies import AuthenticationRequired, authentication_required_handler
from tutor_admin.auth.sessions import SessionStore
from tutor_admin.bootstrap import ensure_default_admin
from tutor_admin.core import config
from tutor_admin.database import build_session_factory, create_db_engine, ensure_schema
from tutor_admin.routes import auth_routes, dashboard_routes, note_routes, register_routes, student_routes
from tutor_admin.uploads import UploadStore

logger = logging.getLogger(__name__)

DATABASE_UNAVAILABLE_MESSAGE = 'Database unavailable. Please try again later.'
REQUEST_TOO_LARGE_MESSAGE = 'Request body too large.'
# Room for the non-file form fields and multipart boundaries.
MULTIPART_OVERHEAD_BYTES = 64 * 1024


def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error('Database error on %s %s', request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={'detail': DATABASE_UNAVAILABLE_MESSAGE},
    )


async def reject_oversized_body(request: Request, call_next):
    """Refuse bodies whose declared length exceeds the upload cap plus form overhead."""
    limit = request.app.state.max_request_bytes
    content_length = request.headers.get('content-length', '')
    if content_length.isdigit() and int(content_length) > limit:
        logger.info('Rejected %s %s with a %s byte body', request.method, request.url.path, content_length)
        return JSONResponse(status_code=413, content={'detail': REQUEST_TOO_LARGE_MESSAGE})
    return await call_next(request)


def initialize_storage(app: FastAPI) -> None:
    """Create the schema, check the session store, prepare uploads and the first admin.

    Any failure here is fatal: the app must not serve requests without its session store.
    """
    try:
        ensure_schema(app.state.engine)
        app.state.session_store.verify()
        app.state.upload_store.ensure_directory()
        with app.state.session_factory() as db:
            ensure_default_admin(db)
    except Exception:
        logger.exception('Startup failed. Check DATABASE_URL and UPLOAD_DIR.')
        raise


async def purge_sessions_periodically(store: SessionStore, interval_seconds: int) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await run_in_threadpool(store.purge_expired)
        except SQLAlchemyError:
            logger.exception('Purging expired sessions failed')


def create_app(
    database_url: str | None = None,
    upload_dir: str | None = None,
    session_ttl: timedelta | None = None,
    purge_interval_seconds: int | None = None,
) -> FastAPI:
    config.validate_runtime_config()

    database_url = database_url or config.DATABASE_URL
    if not database_url:
        raise RuntimeError('DATABASE_URL is not set.')

    if purge_interval_seconds is None:
        purge_interval_seconds = config.SESSION_PURGE_INTERVAL_SECONDS

    engine = create_db_engine(database_url)
    session_factory = build_session_factory(engine)

    app = FastAPI(title='Tutor Admin')
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.session_store = SessionStore(session_factory, ttl=session_ttl)
    app.state.upload_store = UploadStore(upload_dir or config.UPLOAD_DIR)
    app.state.purge_task = None
    app.state.max_request_bytes = app.state.upload_store.max_bytes + MULTIPART_OVERHEAD_BYTES

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )
    app.add_exception_handler(AuthenticationRequired, authentication_required_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.middleware('http')(reject_oversized_body)

    @app.on_event('startup')
    def initialize() -> None:
        initialize_storage(app)

    @app.on_event('startup')
    async def start_session_purge() -> None:
        if purge_interval_seconds > 0:
            app.state.purge_task = asyncio.create_task(
                purge_sessions_periodically(app.state.session_store, purge_interval_seconds)
            )

    @app.on_event('shutdown')
    async def shutdown() -> None:
        if app.state.purge_task is not None:
            app.state.purge_task.cancel()
        engine.dispose()

    @app.get('/health')
    def health():
        return {'status': 'Tutor Admin API Running'}

    app.include_router(auth_routes.router)
    app.include_router(dashboard_routes.router)
    app.include_router(student_routes.router)
    app.include_router(note_routes.router)
    app.include_router(register_routes.router)

    return app
