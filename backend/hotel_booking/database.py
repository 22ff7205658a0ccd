"""
数据库配置 - SQLAlchemy 持久化层
"""
import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from hotel_booking.config import settings

logger = logging.getLogger(__name__)

_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, connect_args=_connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """获取数据库会话"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """初始化数据库表"""
    from hotel_booking.models import ontology  # noqa
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database initialized at {settings.DATABASE_URL}")


def configure_logging(level: Optional[str] = None):
    """按配置设置根日志级别"""
    logging.basicConfig(format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    logging.getLogger().setLevel((level or settings.LOG_LEVEL).upper())
