"""
Weblate token authentication as an httpx request hook.
"""

import httpx


class TokenAuthHook:
    """Adds ``Authorization: Token <token>`` and forces a JSON Accept header."""

    def __init__(self, token: str) -> None:
        if not token:
            raise ValueError("Weblate API token must not be empty")
        self._token = token

    def __call__(self, request: httpx.Request) -> None:
        request.headers["Authorization"] = f"Token {self._token}"
        request.headers["Accept"] = "application/json"

    def __repr__(self) -> str:
        return "<TokenAuthHook(token='***')>"
