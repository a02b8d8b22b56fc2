from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from ideavault.config import settings

DATABASE_URL = settings.database_url

connect_args = {}
if DATABASE_URL.startswith("postgresql"):
    # Every store call gets a hard ceiling
    connect_args["options"] = f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()
