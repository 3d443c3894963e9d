from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from config.environment import db_URI

connect_args = {"check_same_thread": False} if db_URI.startswith("sqlite") else {}

engine = create_engine(db_URI, connect_args=connect_args, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
