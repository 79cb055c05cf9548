from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from wingman.config import get_settings
from wingman.domain.canonical import activity_from_dict
from wingman.domain.models import Activity

USER_HEADER = "X-User-Id"
INVALID_RESPONSE = "Invalid response from server"


class ApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ActivitiesApiClient:
    """HTTP client for the activities API.

    The client is an owned resource: callers create it, pass it to whatever
    needs it and ``close()`` it (or use it as a context manager). An injected
    ``httpx.Client`` is never closed by this class.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        user_id: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ):
        self.user_id = user_id
        self._owns_client = client is None
        self._client = client or httpx.Client(
            base_url=base_url or get_settings().api_url,
            timeout=timeout,
        )

    def __enter__(self) -> "ActivitiesApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def list_activities(self, mine: bool = False) -> List[Activity]:
        params = {"mine": "true"} if mine else None
        data = self._request("GET", "/api/activities", params=params)
        try:
            return [activity_from_dict(item) for item in data.get("activities") or []]
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise ApiError(f"{INVALID_RESPONSE}: {exc}") from exc

    def create_activity(self, payload: Dict[str, Any]) -> Activity:
        data = self._request("POST", "/api/activities", json=payload)
        try:
            activity = dict(data.get("activity") or {})
            activity.setdefault("id", data.get("id"))
            return activity_from_dict(activity)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise ApiError(f"{INVALID_RESPONSE}: {exc}") from exc

    def join_activity(self, activity_id: str) -> Dict[str, Any]:
        return self._request("PATCH", f"/api/activities/{activity_id}/join")

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        headers = {USER_HEADER: self.user_id} if self.user_id else None
        try:
            resp = self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise ApiError(f"Network error: {exc}") from exc
        if resp.status_code >= 400:
            raise ApiError(_error_message(resp), resp.status_code)
        try:
            data = resp.json()
        except ValueError as exc:
            raise ApiError(INVALID_RESPONSE, resp.status_code) from exc
        if not isinstance(data, dict):
            raise ApiError(INVALID_RESPONSE, resp.status_code)
        return data


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        detail = data.get("detail", data.get("error"))
        if isinstance(detail, str) and detail:
            return detail
        if isinstance(detail, list) and detail and isinstance(detail[0], dict) and detail[0].get("msg"):
            return detail[0]["msg"]
    return f"Request failed with status {resp.status_code}"
