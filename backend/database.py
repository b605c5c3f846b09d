from threading import Lock

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from backend.core import config


def _engine_options(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


def enable_sqlite_foreign_keys(target: Engine) -> None:
    if target.dialect.name != "sqlite":
        return

    @event.listens_for(target, "connect")
    def _set_sqlite_pragma(dbapi_connection, _connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_engine(config.DATABASE_URL, **_engine_options(config.DATABASE_URL))
enable_sqlite_foreign_keys(engine)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_learning_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_learning_schema(target: Engine | None = None) -> None:
    """Bring databases created by older releases up to the current schema.

    Adds the mentor approval column when it is missing and creates the
    unique and lookup indexes the progress workflow relies on.
    """
    global _learning_schema_checked

    if _learning_schema_checked:
        return

    bind = target or engine

    with _schema_lock:
        if _learning_schema_checked:
            return

        inspector = inspect(bind)
        table_names = set(inspector.get_table_names())

        with bind.begin() as connection:
            if 'users' in table_names:
                existing_columns = {column['name'] for column in inspector.get_columns('users')}
                if 'approved' not in existing_columns:
                    connection.execute(text('ALTER TABLE users ADD COLUMN approved BOOLEAN DEFAULT FALSE'))

            if 'chapters' in table_names:
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_chapters_course_created ON chapters(course_id, created_at)')
                )
            if 'chapter_progress' in table_names:
                connection.execute(
                    text(
                        'CREATE UNIQUE INDEX IF NOT EXISTS uq_chapter_progress_student_chapter '
                        'ON chapter_progress(student_id, chapter_id)'
                    )
                )
            if 'enrollments' in table_names:
                connection.execute(
                    text(
                        'CREATE UNIQUE INDEX IF NOT EXISTS uq_enrollments_student_course '
                        'ON enrollments(student_id, course_id)'
                    )
                )
            if 'certificates' in table_names:
                connection.execute(
                    text(
                        'CREATE UNIQUE INDEX IF NOT EXISTS uq_certificates_student_course '
                        'ON certificates(student_id, course_id)'
                    )
                )

        _learning_schema_checked = True
