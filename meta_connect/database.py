"""
데이터베이스 설정 및 초기화

SQLAlchemy 엔진, 세션, 트랜잭션 헬퍼, 그리고 테이블 초기화를 관리합니다.
"""

import os
from contextlib import contextmanager
from typing import Generator, Iterator

import structlog
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .core.config import get_settings

logger = structlog.get_logger(__name__)

settings = get_settings()

# 기본값: 작업 디렉터리의 SQLite 파일
DATABASE_URL = settings.database_url or "sqlite:///./meta_connect.db"

if DATABASE_URL.startswith("sqlite"):
    engine = create_engine(
        DATABASE_URL,
        connect_args={
            "check_same_thread": False,
            "timeout": 30
        },
        poolclass=StaticPool,
        echo=False
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        """SQLite 연결 시 WAL 모드와 busy_timeout을 설정합니다."""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout = 30000")
        cursor.close()
else:
    engine = create_engine(
        DATABASE_URL,
        echo=False,
        pool_pre_ping=True
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """데이터베이스 세션 의존성"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Commit on success, roll back everything on any exception."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def init_database() -> None:
    """데이터베이스 테이블을 생성합니다."""
    from .models import Base

    try:
        if DATABASE_URL.startswith("sqlite:///"):
            db_path = DATABASE_URL.replace("sqlite:///", "")
            db_dir = os.path.dirname(db_path)
            if db_dir and not os.path.exists(db_dir):
                logger.info("creating_database_directory", path=db_dir)
                os.makedirs(db_dir, exist_ok=True)

        logger.info("initializing_database", dialect=engine.dialect.name)
        Base.metadata.create_all(bind=engine)
        logger.info("database_tables_created")
    except Exception as e:
        logger.error("database_init_failed", error=str(e))
        raise
