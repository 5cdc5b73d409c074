import pytest
from sqlalchemy.orm import sessionmaker

from classbook.database import Base, create_db_engine


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite so worker threads get their own connections."""
    engine = create_db_engine(f"sqlite+pysqlite:///{tmp_path / 'classbook.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(file_engine):
    return sessionmaker(bind=file_engine, autoflush=False, expire_on_commit=False)
