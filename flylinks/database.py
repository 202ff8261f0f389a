from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from flylinks import config


def make_engine(database_url: str):
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},  # needed for SQLite + FastAPI
        )
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,
    )


# Dev: SQLite (zero config), Prod: PostgreSQL
if config.ENVIRONMENT == "prod" and not config.DATABASE_URL:
    raise RuntimeError("DATABASE_URL must be set in production")

# SQLite for local dev — stored next to the package folder
DB_PATH = Path(__file__).parent.parent / "flylinks_dev.db"
DATABASE_URL = config.DATABASE_URL or f"sqlite:///{DB_PATH}"

engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
