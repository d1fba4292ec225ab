from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from crm.config import DATABASE_URL

# SQLite needs cross-thread access for FastAPI's threadpool
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,  # Enables pessimistic disconnect handling
    connect_args=connect_args,
    echo=False           # Set to True for debugging SQL queries
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
