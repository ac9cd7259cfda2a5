#!/usr/bin/env python3
"""Client for the captcha-solving job queue.

A job is queued with the ``in`` endpoint and its result polled from the
``res`` endpoint until the service reports completion.
"""

import asyncio
import logging
from typing import Any

import httpx

from .errors import CaptchaError

logger = logging.getLogger(__name__)


class CaptchaClient:
    """Solves Turnstile challenges through a 2captcha-compatible service."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        in_url: str,
        res_url: str,
        poll_interval: float = 5.0,
        max_polls: int | None = None,
    ) -> None:
        """Initialize the captcha client.

        Args:
            client: HTTP client used for both endpoints
            api_key: Service account key
            in_url: Job submission endpoint
            res_url: Job result endpoint
            poll_interval: Seconds to wait before each result poll
            max_polls: Optional bound on result polls; None polls forever
        """
        if not api_key:
            raise ValueError("Captcha service key is required to solve captchas")

        self.client = client
        self.api_key = api_key
        self.in_url = in_url
        self.res_url = res_url
        self.poll_interval = poll_interval
        self.max_polls = max_polls

    async def _get_json(self, url: str, params: dict[str, Any]) -> dict[str, Any]:
        response = await self.client.get(url, params=params)
        response.raise_for_status()
        return response.json()

    async def submit(self, site_key: str, page_url: str) -> str:
        """Queue a solve job and return its id.

        Raises:
            CaptchaError: If the service refuses the job
        """
        job = await self._get_json(self.in_url, {
            "key": self.api_key,
            "method": "turnstile",
            "sitekey": site_key,
            "pageurl": page_url,
            "json": 1,
        })
        if job.get("status") != 1:
            raise CaptchaError(f"Failed to queue CAPTCHA: {job.get('request') or 'unknown error'}")
        return str(job["request"])

    async def solve(self, site_key: str, page_url: str) -> str:
        """Solve a Turnstile challenge and return the token.

        Without ``max_polls`` this waits as long as the service takes; cancel
        the calling task to abandon it.

        Raises:
            CaptchaError: If the job is refused or ``max_polls`` is exhausted
        """
        job_id = await self.submit(site_key, page_url)
        logger.info(f"Captcha job {job_id} queued, waiting for solution...")

        polls = 0
        while self.max_polls is None or polls < self.max_polls:
            await asyncio.sleep(self.poll_interval)
            polls += 1
            result = await self._get_json(self.res_url, {
                "key": self.api_key,
                "action": "get",
                "id": job_id,
                "json": 1,
            })
            if result.get("status") == 1:
                logger.info(f"Captcha job {job_id} solved after {polls} poll(s)")
                return result["request"]
            logger.debug(f"Captcha job {job_id} not ready: {result.get('request')}")

        raise CaptchaError(f"Captcha job {job_id} not solved after {polls} polls")
