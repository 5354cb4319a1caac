"""
Backend facade.

Async calls to the analytics API, grouped by domain. Every call falls back
to a bundled fixture of the same shape when the API cannot answer, so
callers always get data. The import pipeline does not depend on this module.
"""

import copy
from datetime import datetime, timezone
from typing import Any, Callable

import httpx

from transit_monitor.observability.logger import get_logger
from transit_monitor.observability.metrics import backend_fallbacks_total

from . import fixtures

logger = get_logger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000/api"
DEFAULT_TIMEOUT = 10.0


class BackendUnavailableError(Exception):
    """The API did not return a usable response."""

    def __init__(self, endpoint: str, reason: str):
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(f"{endpoint}: {reason}")


class BackendClient:
    """
    HTTP access to the analytics API with fixture fallback.

    Domain groups are attributes: ``dashboard``, ``system``, ``reference``,
    ``analytics``, ``chat``, ``navigation`` and ``users``.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            base_url: API root, e.g. "http://localhost:8000/api"
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

        self.dashboard = DashboardApi(self)
        self.system = SystemApi(self)
        self.reference = ReferenceApi(self)
        self.analytics = AnalyticsApi(self)
        self.chat = ChatApi(self)
        self.navigation = NavigationApi(self)
        self.users = UsersApi(self)

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """
        Call the API and return the decoded JSON body.

        Raises:
            BackendUnavailableError: On transport errors, timeouts, non-2xx
                responses or a body that is not JSON
        """
        params = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self._timeout,
                transport=self._transport,
                headers={"Content-Type": "application/json"},
            ) as client:
                response = await client.request(method, endpoint, params=params or None, json=json)
        except httpx.TimeoutException as e:
            raise BackendUnavailableError(endpoint, "timeout") from e
        except httpx.HTTPError as e:
            raise BackendUnavailableError(endpoint, f"network error: {e}") from e

        if not response.is_success:
            raise BackendUnavailableError(endpoint, f"HTTP {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise BackendUnavailableError(endpoint, "response is not JSON") from e

    async def fetch(
        self,
        endpoint: str,
        fallback: Any,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """
        Call the API, returning ``fallback`` if it cannot answer.

        ``fallback`` may be a zero-argument callable; a plain value is
        deep-copied so callers cannot modify the bundled fixtures.
        """
        try:
            return await self.request(endpoint, method=method, params=params, json=json)
        except BackendUnavailableError as e:
            logger.warning(
                "Backend unavailable, using static data",
                extra={"endpoint": endpoint, "reason": e.reason},
            )
            backend_fallbacks_total.labels(endpoint=endpoint).inc()
            return fallback() if callable(fallback) else copy.deepcopy(fallback)

    async def check_api_availability(self) -> bool:
        """True if the health endpoint answers successfully."""
        try:
            await self.request("/system/health")
        except BackendUnavailableError:
            return False
        return True

    async def get_api_status(self) -> dict[str, Any]:
        return {
            "is_available": await self.check_api_availability(),
            "base_url": self.base_url,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


class _ApiGroup:
    def __init__(self, client: BackendClient):
        self._client = client

    def _fetch(self, endpoint: str, fallback: Any, **kwargs) -> Any:
        return self._client.fetch(endpoint, fallback, **kwargs)


class DashboardApi(_ApiGroup):
    async def get_probability_data(self):
        return await self._fetch("/dashboard/probability-data", fixtures.PROBABILITY_DATA)

    async def get_anomaly_data(self):
        return await self._fetch("/dashboard/anomaly-data", fixtures.ANOMALY_DATA)

    async def get_critical_anomalies(self, limit: int = 10):
        return await self._fetch(
            "/dashboard/critical-anomalies",
            lambda: copy.deepcopy(fixtures.CRITICAL_ANOMALIES[:limit]),
            params={"limit": limit},
        )

    async def get_timeline_data(self, period: str = "7d"):
        return await self._fetch("/dashboard/timeline", fixtures.TIMELINE_DATA, params={"period": period})

    async def get_quick_access_items(self):
        return await self._fetch("/dashboard/quick-access", fixtures.QUICK_ACCESS_ITEMS)


class SystemApi(_ApiGroup):
    async def get_system_stats(self):
        return await self._fetch("/system/stats", fixtures.SYSTEM_STATS)

    async def get_app_constants(self):
        return await self._fetch("/system/constants", fixtures.APP_CONSTANTS)

    async def get_health_check(self):
        return await self._fetch("/system/health", fixtures.HEALTH_UNAVAILABLE)


def _filtered(items: list[dict[str, Any]], key: str, value: str | None) -> Callable[[], list[dict[str, Any]]]:
    def build() -> list[dict[str, Any]]:
        selected = items if value is None else [item for item in items if item.get(key) == value]
        return copy.deepcopy(selected)

    return build


class ReferenceApi(_ApiGroup):
    async def get_countries(self):
        return await self._fetch("/reference/countries", fixtures.COUNTRIES_DATA)

    async def get_cargo_types(self):
        return await self._fetch("/reference/cargo-types", fixtures.CARGO_TYPES)

    async def get_railway_stations(self, country: str | None = None):
        return await self._fetch(
            "/reference/stations",
            _filtered(fixtures.RAILWAY_STATIONS, "country", country),
            params={"country": country},
        )


class AnalyticsApi(_ApiGroup):
    async def get_analytics_data(self, tab: str = "performance"):
        return await self._fetch("/analytics/data", fixtures.ANALYTICS_DATA, params={"tab": tab})

    async def get_performance_metrics(self):
        return await self._fetch("/analytics/performance", fixtures.ANALYTICS_DATA["performance"])

    async def get_geographic_data(self):
        return await self._fetch("/analytics/geographic", fixtures.ANALYTICS_DATA["geographic"])

    async def get_financial_data(self):
        return await self._fetch("/analytics/financial", fixtures.ANALYTICS_DATA["financial"])


class ChatApi(_ApiGroup):
    async def get_chat_sessions(self, user_id: str | None = None):
        return await self._fetch("/chat/sessions", fixtures.CHAT_SESSIONS, params={"userId": user_id})

    async def get_preset_questions(self, category: str | None = None):
        return await self._fetch(
            "/chat/preset-questions",
            _filtered(fixtures.PRESET_QUESTIONS, "category", category),
            params={"category": category},
        )

    async def send_message(self, session_id: str, message: str):
        def canned_reply() -> dict[str, Any]:
            now = datetime.now(timezone.utc)
            return {
                "id": f"msg_{int(now.timestamp() * 1000)}",
                "session_id": session_id,
                "message": f'Это тестовый ответ на сообщение: "{message}"',
                "timestamp": now.isoformat(),
                "type": "ai",
            }

        return await self._fetch(
            "/chat/message",
            canned_reply,
            method="POST",
            json={"sessionId": session_id, "message": message},
        )


class NavigationApi(_ApiGroup):
    async def get_navigation_items(self, user_role: str | None = None):
        return await self._fetch("/navigation/items", fixtures.NAVIGATION_ITEMS, params={"role": user_role})


class UsersApi(_ApiGroup):
    async def get_current_user(self):
        def default_user() -> dict[str, Any]:
            return {**fixtures.DEFAULT_USER, "last_login": datetime.now(timezone.utc).isoformat()}

        return await self._fetch("/users/me", default_user)

    async def get_users(self):
        return await self._fetch("/users/list", [])
