"""HTTP client for npm-compatible package registries."""

from __future__ import annotations

import logging
from typing import Any

import requests

from stencil.ports.registry import RegistryClient

logger = logging.getLogger(__name__)


class NpmRegistryClient(RegistryClient):
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._documents: dict[str, dict[str, Any] | None] = {}

    @property
    def base_url(self) -> str:
        return self._base_url

    def package_url(self, name: str) -> str:
        return f"{self._base_url}/{name}"

    def fetch_package(self, name: str) -> dict[str, Any] | None:
        if not name:
            return None
        if name in self._documents:
            return self._documents[name]
        url = self.package_url(name)
        logger.debug("GET %s", url)
        try:
            response = self._session.get(
                url,
                headers={"Accept": "application/json"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            logger.debug("registry request for %s failed: %s", name, exc)
            return None
        if response.status_code != 200:
            logger.debug("registry returned %s for %s", response.status_code, name)
            return None
        try:
            payload = response.json()
        except ValueError:
            logger.debug("registry returned invalid JSON for %s", name)
            return None
        document = payload if isinstance(payload, dict) else None
        self._documents[name] = document
        return document
