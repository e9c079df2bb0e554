import logging

from sqlalchemy.ext.asyncio import AsyncSession
from infohealth.models.db import RequestLog
from infohealth.models.routing import ChatResult
from infohealth.utils.db import Database

logger = logging.getLogger("request_log")

class LoggingService:
    @staticmethod
    async def log_request(
        db: AsyncSession,
        message_chars: int,
        provider: str,
        model: str | None,
        language: str,
        mode: str,
        latency_ms: float,
        fallback_used: bool,
    ):
        """
        Persist one routing outcome. Only the message length is recorded.
        """
        log_entry = RequestLog(
            message_chars=message_chars,
            provider_used=provider,
            model_used=model,
            language=language,
            mode=mode,
            latency_ms=latency_ms,
            fallback_used=fallback_used,
        )
        db.add(log_entry)
        await db.commit()

async def log_result_background(database: Database, message: str, result: ChatResult):
    """
    Background-task wrapper with its own session; the request scope is gone by now.
    Persistence failures are logged and never reach the caller.
    """
    async with database.session_factory() as session:
        try:
            await LoggingService.log_request(
                session,
                message_chars=len(message),
                provider=result.provider,
                model=result.model,
                language=result.language.value,
                mode=result.mode.value,
                latency_ms=round(result.elapsed_ms, 2),
                fallback_used=result.fallback_used,
            )
        except Exception as e:
            logger.error(f"Failed to log request: {e}")
