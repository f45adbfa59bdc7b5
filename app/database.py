from sqlmodel import SQLModel, create_engine, Session
from app.config import settings


def build_engine(database_url: str):
    if database_url.startswith("sqlite"):
        # FastAPI runs sync routes in a threadpool
        return create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,      # checks dead connections
        pool_recycle=1800        # refresh every 30 min
    )


engine = build_engine(settings.database_url)


def create_db_and_tables(bind=None):
    from app.models import storage  # noqa: F401
    SQLModel.metadata.create_all(bind or engine)


def get_session():
    with Session(engine) as session:
        yield session
