"""
Best-effort image enrichment for new tasks.

Looks up a photo matching the task title on Pexels and stores its URL on the
task. Runs as a background task after the creating transaction commits;
any failure leaves the task without an image.
"""

from typing import Any, Dict, Optional

import httpx

from todograph.config import get_settings
from todograph.database import get_session_context
from todograph.exceptions import UpstreamUnavailableError
from todograph.logging_config import get_logger
from todograph.models import Task

logger = get_logger(__name__)


def _photo_url(payload: Dict[str, Any]) -> Optional[str]:
    photos = payload.get("photos") or []
    if not photos:
        return None
    src = photos[0].get("src") or {}
    return src.get("medium") or src.get("large") or src.get("original")


class PexelsClient:
    """Small wrapper around the Pexels photo search API."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key
        self._base_url = base_url or settings.pexels_api_url
        self._timeout = timeout if timeout is not None else settings.image_lookup_timeout
        self._transport = transport

    async def search_photo(self, query: str) -> Optional[str]:
        """
        Return the URL of the first photo matching `query`, or None.

        Raises:
            UpstreamUnavailableError: network failure or non-2xx response.
        """
        headers = {"Authorization": self._api_key}
        params = {"query": query, "per_page": 1}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(self._base_url, headers=headers, params=params)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamUnavailableError("Pexels", f"Image lookup failed: {exc}") from exc
        return _photo_url(payload)


async def find_image_url(title: str, client: Optional[PexelsClient] = None) -> Optional[str]:
    """Look up an image for a task title; None when disabled or unavailable."""
    if client is None:
        api_key = get_settings().pexels_api_key
        if not api_key:
            return None
        client = PexelsClient(api_key)

    try:
        return await client.search_photo(title)
    except UpstreamUnavailableError as exc:
        logger.warning(f"Skipping image for '{title}': {exc.message}")
        return None


async def attach_image(task_id: int, title: str, client: Optional[PexelsClient] = None) -> None:
    """Background job: find an image for the task and store its URL."""
    image_url = await find_image_url(title, client)
    if image_url is None:
        return

    async with get_session_context() as session:
        task = await session.get(Task, task_id)
        if task is None:
            logger.debug(f"Task {task_id} deleted before image lookup finished")
            return
        task.image_url = image_url
        session.add(task)

    logger.info(f"Attached image to task {task_id}")
