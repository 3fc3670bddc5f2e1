from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache, wraps
import logging

from core.exceptions import ExchangeSelectException

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """環境變數 / .env 設定"""
    database_url: str = "sqlite:///./exchange_select.db"
    # 前端短輪詢 /api/state 的建議間隔（秒）
    poll_interval_seconds: float = 1.0
    # 資料庫為空時是否載入示範資料
    seed_demo_data: bool = True

    model_config = SettingsConfigDict(env_file=".env")


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()

# SQLite 連線會被 FastAPI 的 worker thread 與同步器執行緒使用
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if settings.database_url.startswith("sqlite") else {},
    pool_pre_ping=True
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """FastAPI dependency：每個 request 一個 Session，結束後關閉"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _find_session(args, kwargs) -> Session:
    if args and isinstance(args[0], Session):
        return args[0]
    db = kwargs.get("db")
    if db is None:
        raise ValueError(
            f"@transactional requires 'db: Session' as first argument, "
            f"but got args={args}, kwargs={kwargs}"
        )
    return db


def transactional(func):
    """
    快照寫入的 transaction 邊界

    使用方式：
        @transactional
        def persist_snapshot(db: Session, snapshot, expected_version):
            ...  # 版本比對、學生 / 學校寫回都在同一個 transaction

    行為：
        - 正常結束：commit
        - 業務拒絕（例如 StaleStateVersion）：rollback，記 warning，原樣拋出
        - 其他異常：rollback，記 error 與 traceback，原樣拋出

    注意：
        - 第一個參數必須是 db: Session（或以 db= 傳入）
        - 函式內不要自己 commit
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        db = _find_session(args, kwargs)

        try:
            result = func(*args, **kwargs)
            db.commit()
            return result
        except ExchangeSelectException as e:
            db.rollback()
            logger.warning(f"{func.__name__} rolled back: {e}")
            raise
        except Exception as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            raise

    return wrapper
