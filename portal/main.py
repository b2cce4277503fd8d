import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from portal.core import config
from portal.database import Base, engine
from portal.models import document, profile
from portal.routes import auth_routes, document_routes, invite_routes, profile_routes, roster_routes

SECURITY_HEADERS = {
    'X-DNS-Prefetch-Control': 'on',
    'Strict-Transport-Security': 'max-age=63072000; includeSubDomains; preload',
    'X-Frame-Options': 'SAMEORIGIN',
    'X-Content-Type-Options': 'nosniff',
    'Referrer-Policy': 'origin-when-cross-origin',
    'Permissions-Policy': 'camera=(), microphone=(), geolocation=(), browsing-topics=()',
}

app = FastAPI(title='Portal Projeto de Vida')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.middleware('http')
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    if config.SECURITY_HEADERS_ENABLED:
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
    return response


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine, tables=[profile.Profile.__table__, document.Document.__table__])
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and Postgres credentials.')


@app.get('/')
def root():
    return {'status': 'School Portal API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(profile_routes.router, prefix='/profile')
app.include_router(document_routes.router, prefix='/documents')
app.include_router(roster_routes.router, prefix='/roster')
app.include_router(invite_routes.router, prefix='/api')
