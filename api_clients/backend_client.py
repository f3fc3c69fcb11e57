"""
Backend API client for calls to the glucose data service.
"""
import logging
import os
from typing import Optional

import httpx

# get backend environment variables
CGM_BACKEND_API_BASE_URL = os.getenv("CGM_BACKEND_API_BASE_URL")
CGM_BACKEND_SESSION_TOKEN = os.getenv("CGM_BACKEND_SESSION_TOKEN")


class BackendClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        session_token: Optional[str] = None,
        *,
        timeout: Optional[httpx.Timeout] = None,
    ):
        self.base_url = base_url or CGM_BACKEND_API_BASE_URL
        self.session_token = session_token or CGM_BACKEND_SESSION_TOKEN
        if not self.base_url or not self.session_token:
            raise ValueError("[CGM backend] base URL/session token not set (CGM_BACKEND_API_BASE_URL / CGM_BACKEND_SESSION_TOKEN)")

        self.timeout = timeout or httpx.Timeout(30.0, connect=10.0)
        self.headers = {
            "content-type": "application/json",
            "x-session-token": self.session_token
        }

    async def post_json(self, endpoint: str, payload: dict) -> dict:
        """POST ``payload`` and return the decoded JSON body (``{}`` when empty)."""
        url = f"{self.base_url.rstrip('/')}/{endpoint.lstrip('/')}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json=payload, headers=self.headers)
                logging.info(f"POST {url} -> {response.status_code}")
                response.raise_for_status()
                return response.json() if response.text else {}
        except httpx.HTTPStatusError as e:
            logging.error(f"Glucose backend rejected POST {url}: {e.response.status_code} {e.response.text}")
            raise
        except httpx.RequestError as e:
            logging.error(f"Glucose backend unreachable for POST {url}: {e!r}")
            raise
