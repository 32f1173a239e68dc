"""
Подключение к базе данных.
В продакшене PostgreSQL (нужны блокировки строк при записи), локально SQLite.
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from .config import get_settings

settings = get_settings()


def build_engine(url: str, echo: bool = False) -> Engine:
    """Движок с настройками пула под конкретную СУБД"""
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False}, echo=echo)

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        echo=echo
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Сессия на один запрос; закрывается после ответа"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = None):
    """Создать таблицы магазинов, услуг, клиентов и записей"""
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
