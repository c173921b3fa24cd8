from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from upskill.database.engine import engine


# Repositories open short-lived sessions from this factory; the service layer owns commits
async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
