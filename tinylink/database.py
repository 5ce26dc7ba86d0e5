import os
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

# Explicitly load .env from project root (parent of tinylink/)
ENV_PATH = Path(__file__).parent.parent / ".env"
load_dotenv(ENV_PATH)
ENVIRONMENT = os.getenv("ENVIRONMENT", "dev")


def _normalize_url(url: str) -> str:
    # Heroku/Railway style URLs use the scheme SQLAlchemy dropped in 1.4
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url


# Dev: SQLite (zero config), Prod: PostgreSQL
if ENVIRONMENT == "prod":
    DATABASE_URL = os.getenv("DATABASE_URL")
    if not DATABASE_URL:
        raise RuntimeError("DATABASE_URL must be set in production")
    DATABASE_URL = _normalize_url(DATABASE_URL)
    engine = create_engine(
        DATABASE_URL,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,
    )
else:
    # SQLite next to the package unless DATABASE_URL points elsewhere
    DB_PATH = Path(__file__).parent.parent / "tinylink_dev.db"
    DATABASE_URL = _normalize_url(os.getenv("DATABASE_URL") or f"sqlite:///{DB_PATH}")
    connect_args = {}
    if DATABASE_URL.startswith("sqlite"):
        connect_args["check_same_thread"] = False  # needed for SQLite + FastAPI
    engine = create_engine(DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
