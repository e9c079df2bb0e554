from datetime import datetime, timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, case
from infohealth.models.db import RequestLog
from infohealth.models.metrics import MetricsSummary, ProviderSplit, TimeRange
from infohealth.models.routing import ERROR, FALLBACK

_WINDOWS = {
    TimeRange.last_1h: timedelta(hours=1),
    TimeRange.last_24h: timedelta(hours=24),
    TimeRange.last_7d: timedelta(days=7),
}

class MetricsService:
    @staticmethod
    async def get_summary(db: AsyncSession, time_range: TimeRange) -> MetricsSummary:
        start_time = datetime.utcnow() - _WINDOWS.get(time_range, timedelta(hours=24))
        base_filter = RequestLog.timestamp >= start_time

        # 1. Count, average latency, requests that needed fallback
        agg_query = select(
            func.count(RequestLog.id).label("total"),
            func.avg(RequestLog.latency_ms).label("avg_latency"),
            func.sum(case((RequestLog.fallback_used == True, 1), else_=0)).label("fallback_count"),  # noqa: E712
        ).where(base_filter)

        agg_data = (await db.execute(agg_query)).first()

        total_requests = agg_data.total or 0
        avg_latency = float(agg_data.avg_latency or 0.0)
        fallback_count = agg_data.fallback_count or 0

        fallback_rate = 0.0
        if total_requests > 0:
            fallback_rate = (fallback_count / total_requests) * 100

        # 2. Provider split (includes the fallback / error sentinels)
        split_query = select(
            RequestLog.provider_used,
            func.count(RequestLog.id)
        ).where(base_filter).group_by(RequestLog.provider_used)

        provider_data = []
        for provider, count in (await db.execute(split_query)).all():
            percentage = (count / total_requests * 100) if total_requests > 0 else 0
            provider_data.append(ProviderSplit(
                provider=provider,
                count=count,
                percentage=round(percentage, 2)
            ))

        unanswered = sum(p.count for p in provider_data if p.provider in (FALLBACK, ERROR))
        unanswered_rate = (unanswered / total_requests * 100) if total_requests > 0 else 0.0

        # 3. Language split
        lang_query = select(
            RequestLog.language,
            func.count(RequestLog.id)
        ).where(base_filter).group_by(RequestLog.language)
        language_split = {lang: count for lang, count in (await db.execute(lang_query)).all()}

        # 4. P95 latency
        p95_latency = 0.0
        if total_requests > 0:
            if db.bind.dialect.name == "postgresql":
                p95_stmt = select(
                    func.percentile_cont(0.95).within_group(RequestLog.latency_ms)
                ).where(base_filter)
                p95_latency = float((await db.execute(p95_stmt)).scalar() or 0.0)
            else:
                # SQLite / generic: sort in memory
                lat_stmt = select(RequestLog.latency_ms).where(base_filter).order_by(RequestLog.latency_ms)
                latencies = [row[0] for row in (await db.execute(lat_stmt)).all()]
                if latencies:
                    index = min(int(len(latencies) * 0.95), len(latencies) - 1)
                    p95_latency = float(latencies[index])

        return MetricsSummary(
            total_requests=total_requests,
            avg_latency_ms=round(avg_latency, 2),
            p95_latency_ms=round(p95_latency, 2),
            fallback_rate_percent=round(fallback_rate, 2),
            unanswered_rate_percent=round(unanswered_rate, 2),
            provider_split=provider_data,
            language_split=language_split,
        )
