from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from messenger.config import get_settings

settings = get_settings()


def async_database_url(url: str) -> str:
    """Rewrite sync MySQL URLs to the aiomysql driver; other URLs pass through."""
    if url.startswith("mysql://"):
        return "mysql+aiomysql://" + url[8:]
    if url.startswith("mysql+"):
        url = url.replace("mysql+mysqldb://", "mysql+aiomysql://")
        url = url.replace("mysql+pymysql://", "mysql+aiomysql://")
    return url


database_url = async_database_url(settings.database_url)

engine = create_async_engine(
    database_url,
    echo=settings.database_echo,
    pool_pre_ping=True,  # Reconnect on stale connections
)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db():
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()
