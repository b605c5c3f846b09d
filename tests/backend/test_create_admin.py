import pytest
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import sessionmaker

from backend import create_admin, database


@pytest.fixture
def legacy_engine(tmp_path, monkeypatch: pytest.MonkeyPatch):
    engine = create_engine(f'sqlite:///{tmp_path / "legacy.db"}')
    with engine.begin() as connection:
        connection.execute(text(
            'CREATE TABLE users (id INTEGER PRIMARY KEY, name VARCHAR, email VARCHAR UNIQUE, '
            'hashed_password VARCHAR, role VARCHAR, created_at DATETIME)'
        ))

    monkeypatch.setattr(create_admin, 'engine', engine)
    monkeypatch.setattr(create_admin, 'SessionLocal', sessionmaker(autocommit=False, autoflush=False, bind=engine))
    monkeypatch.setattr(database, '_learning_schema_checked', False)
    try:
        yield engine
    finally:
        engine.dispose()


def test_create_admin_upgrades_legacy_database_and_creates_admin(legacy_engine) -> None:
    exit_code = create_admin.main(['--name', 'Root', '--email', 'Root@Example.com', '--password', 'sup3r-secret'])

    assert exit_code == 0
    inspector = inspect(legacy_engine)
    assert 'approved' in {column['name'] for column in inspector.get_columns('users')}
    assert {'courses', 'chapters', 'enrollments', 'chapter_progress', 'certificates'} <= set(inspector.get_table_names())
    with legacy_engine.connect() as connection:
        role = connection.execute(text("SELECT role FROM users WHERE email = 'root@example.com'")).scalar_one()
    assert role == 'ADMIN'


def test_create_admin_rejects_duplicate_email(legacy_engine, capsys: pytest.CaptureFixture[str]) -> None:
    args = ['--name', 'Root', '--email', 'root@example.com', '--password', 'sup3r-secret']
    assert create_admin.main(args) == 0

    assert create_admin.main(args) == 1
    assert 'User already exists' in capsys.readouterr().err


def test_create_admin_rejects_overlong_password(legacy_engine, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = create_admin.main(['--name', 'Root', '--email', 'root@example.com', '--password', 'x' * 80])

    assert exit_code == 1
    assert 'Invalid admin details' in capsys.readouterr().err
