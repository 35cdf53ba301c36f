"""
Cliente HTTP para la API REST de Weblate.

Envoltorio ligero sobre un httpx.Client que:
- envía requests GET aceptando JSON
- ejecuta request hooks intercambiables (p.ej. autenticación por token)
- convierte cualquier problema de transporte o protocolo en FetchFailed
"""

from typing import Any, Callable

import httpx
import structlog

from .auth import TokenAuthHook

logger = structlog.get_logger()

RequestHook = Callable[[httpx.Request], None]

_BODY_PREVIEW = 200


class FetchFailed(Exception):
    """Una llamada remota no devolvió un resultado utilizable."""

    def __init__(
        self,
        message: str,
        url: str,
        status_code: int | None = None,
        body: str | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.body = body


class WeblateClient:
    """Cliente para requests GET contra una instancia de Weblate."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        token: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """Inicializa el cliente.

        Args:
            base_url: URL de la instancia de Weblate (se ignora la / final)
            timeout: Timeout en segundos de cada request
            token: Token de API opcional; instala TokenAuthHook
            transport: Transport de httpx opcional (los tests usan httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.log = logger.bind(component="weblate_client")
        self.http = httpx.Client(
            headers={"Accept": "application/json"},
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )
        if token:
            self.use_authentication(token)

    @property
    def request_hooks(self) -> list[RequestHook]:
        return list(self.http.event_hooks["request"])

    def set_request_hooks(self, hooks: list[RequestHook]) -> None:
        """Reemplaza todos los request hooks."""
        event_hooks = self.http.event_hooks
        event_hooks["request"] = list(hooks)
        self.http.event_hooks = event_hooks

    def use_authentication(self, token: str) -> None:
        """Instala la autenticación por token. Reemplaza el resto de request hooks."""
        self.set_request_hooks([TokenAuthHook(token)])
        self.log.debug("weblate_client.authentication_enabled")

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def get_json(self, url: str) -> Any:
        """Hace GET de ``url`` y devuelve el body JSON decodificado.

        Raises:
            FetchFailed: Ante errores de transporte, status no 2xx, o body
                vacío o no decodificable.
        """
        self.log.debug("weblate_client.get", url=url)

        try:
            response = self.http.get(url)
        except httpx.HTTPError as e:
            raise FetchFailed(f"Request to {url} failed: {e}", url=url) from e

        if not response.is_success:
            raise FetchFailed(
                f"Got non-success response from {url} (status={response.status_code})",
                url=url,
                status_code=response.status_code,
                body=response.text[:_BODY_PREVIEW],
            )

        if not response.content:
            raise FetchFailed(
                f"Got empty response from {url}",
                url=url,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise FetchFailed(
                f"Invalid JSON response from {url}: {e}",
                url=url,
                status_code=response.status_code,
                body=response.text[:_BODY_PREVIEW],
            ) from e

    def close(self) -> None:
        self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def __repr__(self) -> str:
        return f"<WeblateClient(url='{self.base_url}')>"
