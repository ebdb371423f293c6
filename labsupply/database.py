# labsupply/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
import os
from dotenv import load_dotenv

load_dotenv()

SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./labsupply_portal.db")

# SQLAlchemy only accepts the postgresql:// scheme
if SQLALCHEMY_DATABASE_URL and SQLALCHEMY_DATABASE_URL.startswith("postgres://"):
    SQLALCHEMY_DATABASE_URL = SQLALCHEMY_DATABASE_URL.replace("postgres://", "postgresql://", 1)

connect_args = {"check_same_thread": False} if SQLALCHEMY_DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db():
    # Register every model on Base.metadata before creating tables
    import labsupply.models.admin_user  # noqa: F401
    import labsupply.models.merchant  # noqa: F401
    import labsupply.models.product  # noqa: F401
    import labsupply.models.inventory  # noqa: F401
    import labsupply.models.audit  # noqa: F401
    import labsupply.models.wallet  # noqa: F401
    import labsupply.models.order  # noqa: F401
    Base.metadata.create_all(bind=engine)
