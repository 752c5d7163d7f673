import logging
from typing import Any, Dict, List, Optional

import aiohttp

from xp_badge_system.exceptions import HTTPRequestError

logger = logging.getLogger(__name__)


class HttpClient:
    def __init__(self, base_url: str, token: str = "", timeout: int = 30,
                 session: Optional[aiohttp.ClientSession] = None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.session = session
        self._owns_session = session is None

    def _get_headers(self):
        headers = {
            "Content-Type": "application/json"
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _get_session(self) -> aiohttp.ClientSession:
        # created on first use so it binds to the running event loop
        if self.session is None:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
        return self.session

    async def _raise_for_status(self, response, method: str):
        if not 200 <= response.status < 300:
            body = await response.text()
            raise HTTPRequestError(
                status=response.status,
                url=str(response.url),
                reason=response.reason,
                method=method,
                body=body
            )

    async def get(self, endpoint: str, params=None) -> Any:
        url = self._url(endpoint)
        async with self._get_session().get(url, headers=self._get_headers(), params=params) as response:
            await self._raise_for_status(response, "GET")
            return await response.json()

    async def post(self, endpoint: str, data=None) -> Any:
        url = self._url(endpoint)
        async with self._get_session().post(url, headers=self._get_headers(), json=data) as response:
            await self._raise_for_status(response, "POST")
            return await response.json()

    async def get_learner_xp(self, learner_id: str) -> int:
        """Current XP of a learner as reported by the admin users endpoint."""
        data = await self.get(f"/admin/users/{learner_id}")
        user = data.get("user", data) if isinstance(data, dict) else {}
        xp = user.get("xp", 0)
        if isinstance(xp, bool) or not isinstance(xp, int):
            logger.warning(f"⚠️  Progress API returned non-integer xp {xp!r} for learner {learner_id}")
            return 0
        return xp

    async def get_leaderboard(self, limit: int = 50) -> List[Dict[str, Any]]:
        data = await self.get("/auth/leaderboard", params={"limit": limit})
        return data if isinstance(data, list) else []

    async def close(self):
        if self.session is not None and self._owns_session:
            await self.session.close()
        self.session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
