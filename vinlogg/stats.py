"""
Aggregate statistics over a log feed.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from shared.constants import MAX_RATING, MIN_RATING
from vinlogg.db import LogRecord

TOP_REGION_COUNT = 3


def compute_stats(logs: Iterable[LogRecord]) -> dict:
    logs = list(logs)
    ratings = [log.rating for log in logs if log.rating]
    distribution = [0] * (MAX_RATING - MIN_RATING + 1)
    for rating in ratings:
        if MIN_RATING <= rating <= MAX_RATING:
            distribution[rating - MIN_RATING] += 1

    regions = Counter(log.wine.region for log in logs if log.wine and log.wine.region)
    top_regions = sorted(regions.items(), key=lambda item: (-item[1], item[0]))
    producers = {log.wine.producer for log in logs if log.wine and log.wine.producer}

    return {
        "total": len(logs),
        "average_rating": round(sum(ratings) / len(ratings), 2) if ratings else 0,
        "top_regions": [
            {"region": region, "count": count}
            for region, count in top_regions[:TOP_REGION_COUNT]
        ],
        "rating_distribution": distribution,
        "producers": len(producers),
    }
