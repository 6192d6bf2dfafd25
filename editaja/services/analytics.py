"""Admin analytics and dashboard statistics computed from generations."""

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from editaja.crud.generation import GenerationCRUD
from editaja.crud.style import StyleCRUD
from editaja.crud.user import UserCRUD
from editaja.crud.visitor import VisitorCRUD
from editaja.utils.exceptions import ValidationError
from editaja.utils.logger import get_logger
from editaja.utils.timeutils import isoformat, start_of_day, to_datetime, utcnow

logger = get_logger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class AnalyticsService:
    """Aggregates generation, user and visitor documents for the back-office."""

    PERIOD_DAYS = {"7days": 7, "30days": 30, "90days": 90, "all": None}
    TOP_N = 10
    DAILY_POINTS = 30
    RECENT_DAYS = 7
    RECENT_LIMIT = 10
    POPULAR_STYLES_LIMIT = 5

    def __init__(self, db):
        self.db = db
        self.generations = GenerationCRUD(db)
        self.users = UserCRUD(db)
        self.styles = StyleCRUD(db)
        self.visitors = VisitorCRUD(db)

    @staticmethod
    def _created(generation: Dict[str, Any]) -> datetime:
        return to_datetime(generation.get("createdAt")) or EPOCH

    def get_analytics(self, period: str = "30days", now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Analytics for one period.

        Growth compares the period with the equal-length period before it
        and is 0 for "all" or when the previous period had no generations.
        """
        if period not in self.PERIOD_DAYS:
            raise ValidationError("Invalid period. Use 7days, 30days, 90days or all")

        now = now or utcnow()
        days = self.PERIOD_DAYS[period]
        start = now - timedelta(days=days) if days else EPOCH

        generations = self.generations.list()
        in_period = [g for g in generations if self._created(g) >= start]

        total = len(in_period)
        per_user = Counter(g.get("userId") or "anonymous" for g in in_period)
        total_users = len(per_user)

        daily = Counter(self._created(g).strftime("%Y-%m-%d") for g in in_period)
        daily_generations = [{"date": d, "count": c} for d, c in sorted(daily.items())][-self.DAILY_POINTS:]

        styles = Counter(g["styleName"] for g in in_period if g.get("styleName"))
        popular_styles = [{"styleName": name, "count": c} for name, c in styles.most_common(self.TOP_N)]

        emails = {u["id"]: u.get("email") for u in self.users.list()}
        top_users = [
            {
                "userId": uid,
                "email": emails.get(uid) or ("Anonymous User" if uid == "anonymous" else f"{uid[:8]}..."),
                "count": c,
            }
            for uid, c in per_user.most_common(self.TOP_N)
        ]

        countries = Counter(
            (g.get("location") or {}).get("country")
            for g in in_period
            if (g.get("location") or {}).get("country")
        )
        user_locations = [{"country": country, "count": c} for country, c in countries.most_common(self.TOP_N)]

        growth_rate = 0.0
        if days:
            previous_start = start - timedelta(days=days)
            previous = sum(1 for g in generations if previous_start <= self._created(g) < start)
            if previous:
                growth_rate = round((total - previous) / previous * 100, 1)

        return {
            "period": period,
            "totalGenerations": total,
            "totalUsers": total_users,
            "averagePerUser": round(total / total_users, 2) if total_users else 0,
            "dailyGenerations": daily_generations,
            "popularStyles": popular_styles,
            "topUsers": top_users,
            "userLocations": user_locations,
            "growthRate": growth_rate,
        }

    def get_dashboard_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        midnight = start_of_day(now)
        generations = self.generations.list()
        today_generations = sum(1 for g in generations if self._created(g) >= midnight)
        today_visitors = self.visitors.today_count(now)
        conversion = today_generations / today_visitors * 100 if today_visitors else 0

        return {
            "totalUsers": self.users.count(),
            "dailyGenerations": today_generations,
            "activeStyles": len(self.styles.get_active_styles()),
            "activeVisitors": self.visitors.active_count(now),
            "todayVisitors": today_visitors,
            "totalGenerations": len(generations),
            "conversionRate": round(conversion, 1),
        }

    def get_recent_generations(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        cutoff = (now or utcnow()) - timedelta(days=self.RECENT_DAYS)
        recent = [g for g in self.generations.list() if self._created(g) >= cutoff]
        recent.sort(key=self._created, reverse=True)
        return [
            {
                "id": g["id"],
                "userId": g.get("userId", ""),
                "styleName": g.get("styleName", ""),
                "createdAt": isoformat(g.get("createdAt")),
            }
            for g in recent[: self.RECENT_LIMIT]
        ]

    def get_popular_styles(self) -> List[Dict[str, Any]]:
        counts: Dict[str, Dict[str, Any]] = {}
        for g in self.generations.list():
            entry = counts.setdefault(g.get("styleId") or "", {"name": g.get("styleName") or "Unknown", "count": 0})
            entry["count"] += 1
        ranked = sorted(counts.values(), key=lambda s: s["count"], reverse=True)
        return ranked[: self.POPULAR_STYLES_LIMIT]

    def get_dashboard(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        return {
            "stats": self.get_dashboard_stats(now),
            "recentGenerations": self.get_recent_generations(now),
            "popularStyles": self.get_popular_styles(),
        }
