import logging
from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker

from models import Base
from services.errors import DuplicateKeyError, PersistenceError

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> AsyncEngine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_async_engine(database_url, echo=False, connect_args=connect_args)


def build_session_pool(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
    )


# Инициализация базы данных
async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("✅ База данных инициализирована")


# Dependency для получения асинхронной сессии БД
async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    session_pool = request.app.state.session_pool
    async with session_pool() as session:
        try:
            yield session
        finally:
            await session.close()


async def commit(session: AsyncSession) -> None:
    """Фиксирует транзакцию, переводя ошибки базы в ошибки сервиса"""
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise DuplicateKeyError("Record conflicts with an existing one") from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Database write failed")
        raise PersistenceError("Database error") from exc
