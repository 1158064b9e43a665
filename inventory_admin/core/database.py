import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """
    Подключение к БД: движок и фабрика сессий.

    Создаётся явно и передаётся туда, где нужен доступ к данным;
    connect() / close() вызываются из lifespan приложения.
    """

    def __init__(self, url: str, *, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker] = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    async def connect(self, *, create_tables: bool = False) -> None:
        if self._engine is not None:
            return
        self._engine = create_async_engine(self.url, echo=self.echo)
        self._sessionmaker = async_sessionmaker(self._engine, expire_on_commit=False)

        if create_tables:
            # Регистрация моделей в metadata
            from inventory_admin import models  # noqa: F401

            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

        logger.info("Подключение к БД установлено: %s", self._engine.url.render_as_string(hide_password=True))

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("Подключение к БД закрыто")

    def session(self) -> AsyncSession:
        if self._sessionmaker is None:
            raise RuntimeError("Database is not connected")
        return self._sessionmaker()

    async def fetch_concurrently(self, *fetchers: Callable[[AsyncSession], Awaitable[Any]]) -> List[Any]:
        """
        Выполняет независимые выборки параллельно, каждую в своей сессии.
        Первая ошибка пробрасывается, иначе возвращаются все результаты по порядку.
        """

        async def run(fetch):
            async with self.session() as session:
                return await fetch(session)

        tasks = [asyncio.ensure_future(run(fetch)) for fetch in fetchers]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
