import asyncio
import sys
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy import text

DATABASE_URL = "sqlite+aiosqlite:///./infohealth.db"

async def check_logs(url: str):
    engine = create_async_engine(url)
    async_session = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    async with async_session() as session:
        result = await session.execute(text(
            "SELECT id, provider_used, model_used, language, mode, latency_ms, fallback_used "
            "FROM request_logs ORDER BY id DESC LIMIT 1"
        ))
        row = result.mappings().first()
        if row:
            print("Latest Log Entry:")
            print(f"ID: {row['id']}")
            print(f"Provider: {row['provider_used']}")
            print(f"Model: {row['model_used']}")
            print(f"Language: {row['language']} ({row['mode']})")
            print(f"Latency: {row['latency_ms']}ms")
            print(f"Fallback Used: {bool(row['fallback_used'])}")
        else:
            print("No logs found.")

    await engine.dispose()

if __name__ == "__main__":
    asyncio.run(check_logs(sys.argv[1] if len(sys.argv) > 1 else DATABASE_URL))
