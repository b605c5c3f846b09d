import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.core import config
from backend.database import Base, engine, ensure_learning_schema
from backend.models import course, enrollment, progress, user
from backend.routes import (
    auth_routes,
    certificate_routes,
    chapter_routes,
    course_routes,
    enrollment_routes,
    progress_routes,
    user_routes,
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
)

app = FastAPI(title='Learnify API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


def format_validation_errors(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = '.'.join(str(part) for part in error.get('loc', ()) if part != 'body')
        message = error.get('msg', 'Invalid value').removeprefix('Value error, ')
        messages.append(f'{location}: {message}' if location else message)
    return '; '.join(messages) or 'Invalid request'


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={'message': str(exc.detail)},
        headers=getattr(exc, 'headers', None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={'message': format_validation_errors(exc)},
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception('Database error while handling %s %s', request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={'message': 'Server error'},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception('Unhandled error while handling %s %s', request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={'message': 'Server error'},
    )


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(
            bind=engine,
            tables=[
                user.User.__table__,
                course.Course.__table__,
                course.Chapter.__table__,
                enrollment.Enrollment.__table__,
                progress.ChapterProgress.__table__,
                progress.Certificate.__table__,
            ],
        )
        ensure_learning_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/health')
def health():
    return {'status': 'OK'}


app.include_router(auth_routes.router, prefix=f'{config.API_PREFIX}/auth')
app.include_router(user_routes.router, prefix=config.API_PREFIX)
# /courses/enrolled must be matched before /courses/{course_id}
app.include_router(enrollment_routes.router, prefix=config.API_PREFIX)
app.include_router(course_routes.router, prefix=config.API_PREFIX)
app.include_router(chapter_routes.router, prefix=config.API_PREFIX)
app.include_router(progress_routes.router, prefix=config.API_PREFIX)
app.include_router(certificate_routes.router, prefix=config.API_PREFIX)
