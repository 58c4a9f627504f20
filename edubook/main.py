import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from edubook.core import config
from edubook.core.errors import AuthError, DomainError
from edubook.database import engine, ensure_document_schema
from edubook.models import document
from edubook.routes import admin_routes, appointment_routes, auth_routes, availability_routes, message_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

config.validate_runtime_config()

app = FastAPI(title='edubook', debug=config.DEBUG)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        document.Base.metadata.create_all(bind=engine)
        ensure_document_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.exception_handler(DomainError)
async def handle_domain_error(request: Request, exc: DomainError) -> JSONResponse:
    logger.info('%s %s failed: %s (%s)', request.method, request.url.path, exc.message, exc.code)
    headers = {'WWW-Authenticate': 'Bearer'} if isinstance(exc, AuthError) else None
    return JSONResponse(status_code=exc.status_code, content={'detail': exc.to_dict()}, headers=headers)


@app.get('/')
def root():
    return {'status': 'edubook API running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(availability_routes.router, prefix='/availability')
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(admin_routes.router, prefix='/admin')
app.include_router(message_routes.router, prefix='/messages')
