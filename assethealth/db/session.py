from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from assethealth.core.config import settings


def build_engine(database_uri: str):
    if database_uri.startswith("sqlite"):
        return create_engine(
            database_uri,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
    # Pool must cover one connection per concurrent asset in a batch plus the roster/alert session
    return create_engine(
        database_uri,
        pool_size=max(10, settings.BATCH_SIZE + 2),
        max_overflow=10,
        pool_recycle=300,
        pool_pre_ping=True,
        pool_timeout=45,
        echo=False,
    )


engine = build_engine(settings.SQLALCHEMY_DATABASE_URI)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
