"""Client wrapper for the Heroku Platform API review app endpoints."""

from __future__ import annotations

from typing import Any, Dict, List

import httpx

from review_app_action.logger import get_logger, log_with_context
from review_app_action.models.review_app import AlreadyExists, Created, CreateResult, Failed, ReviewApp

logger = get_logger()

HEROKU_ACCEPT_HEADER = "application/vnd.heroku+json; version=3"
CONFLICT_STATUS = 409


class HerokuAPIError(RuntimeError):
    """Raised when the Heroku Platform API responds with an error."""

    def __init__(
        self,
        message: str,
        status_code: int,
        response_body: Any | None = None,
        error_id: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body
        self.error_id = error_id


class HerokuClient:
    def __init__(
        self,
        api_token: str,
        *,
        base_url: str = "https://api.heroku.com",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            transport=transport,
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {api_token}",
                "Accept": HEROKU_ACCEPT_HEADER,
                "Content-Type": "application/json",
            },
        )
        self._owns_client = client is None

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def list_review_apps(self, pipeline_id: str) -> List[ReviewApp]:
        response = await self._client.get(f"/pipelines/{pipeline_id}/review-apps")
        _raise_for_status("list review apps", response)
        data = response.json()
        if not isinstance(data, list):
            raise HerokuAPIError(
                "Unexpected response while listing review apps.",
                response.status_code,
                data,
            )
        return [ReviewApp.model_validate(item) for item in data]

    async def delete_review_app(self, review_app_id: str) -> Dict[str, Any]:
        response = await self._client.delete(f"/review-apps/{review_app_id}")
        _raise_for_status("delete review app", response)
        return response.json() if response.content else {}

    async def create_review_app(self, body: Dict[str, Any]) -> CreateResult:
        """Create a review app, reporting a 409 as AlreadyExists rather than an error."""

        ctx_logger = log_with_context(logger, pipeline_id=body.get("pipeline"), pr_number=body.get("pr_number"))
        response = await self._client.post("/review-apps", json=body)
        try:
            _raise_for_status("create review app", response)
        except HerokuAPIError as exc:
            if exc.status_code == CONFLICT_STATUS:
                ctx_logger.debug(f"Heroku reported a conflict while creating review app: {exc}")
                return AlreadyExists(message=_error_message(exc.response_body))
            return Failed(cause=exc)

        data = response.json() if response.content else {}
        review_app = ReviewApp.model_validate(data) if isinstance(data, dict) and data.get("id") else None
        return Created(review_app=review_app)


def _error_message(detail: Any) -> str | None:
    if isinstance(detail, dict):
        return detail.get("message")
    return None


def _raise_for_status(action: str, response: httpx.Response) -> None:
    if response.status_code < 400:
        return
    detail: Any | None
    error_id: str | None = None
    try:
        detail = response.json()
    except ValueError:
        detail = response.text
    if isinstance(detail, dict):
        error_id = detail.get("id")
    raise HerokuAPIError(
        f"Failed to {action}: status={response.status_code}, detail={detail}",
        response.status_code,
        detail,
        error_id,
    )
