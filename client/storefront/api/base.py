# client/storefront/api/base.py
"""
Cliente HTTP base para el backend REST de la tienda.

Envuelve un httpx.AsyncClient compartido y se encarga de:
- Añadir la cabecera Authorization con el token bearer
- Aplicar el timeout configurado (FETCH_TIMEOUT)
- Traducir fallos de transporte a ConnectionTimeout / NetworkError
- Interpretar el sobre {success, data, message} de las respuestas
"""

import logging
from typing import Any, Dict, Optional

import httpx

from storefront.core.config import settings
from storefront.core.exceptions import (
    APIError,
    AuthenticationError,
    ConnectionTimeout,
    NetworkError,
)
from storefront.core.security import TokenStore, token_store as default_token_store

logger = logging.getLogger(__name__)


class APIClient:
    """
    Cliente asíncrono autenticado.

    Uso:
        async with APIClient() as client:
            data = await client.request("GET", "/cart")
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token_store: Optional[TokenStore] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.token_store = token_store or default_token_store
        self.timeout = timeout if timeout is not None else settings.FETCH_TIMEOUT
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "APIClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _auth_headers(self) -> Dict[str, str]:
        token = self.token_store.get_token()
        if not token:
            raise AuthenticationError("Please login to continue.", status_code=401)
        return {"Authorization": f"Bearer {token}"}

    async def request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        error_message: str = "Request failed.",
    ) -> Dict[str, Any]:
        """
        Lanza una petición autenticada y devuelve el cuerpo JSON decodificado.

        Raises:
            AuthenticationError: sin token o token rechazado (401)
            ConnectionTimeout: la petición superó el timeout
            NetworkError: no se pudo contactar con el servidor
            APIError: success=false, status de error o respuesta no JSON
        """
        headers = self._auth_headers()
        url = f"{self.base_url}{path}"

        try:
            response = await self._client.request(method, path, json=json, headers=headers)
        except httpx.TimeoutException as e:
            logger.error(f"Timeout en {method} {url}")
            raise ConnectionTimeout(url) from e
        except httpx.RequestError as e:
            logger.error(f"Error de red en {method} {url}: {e}")
            raise NetworkError(url, e) from e

        return self._handle_response(response, error_message)

    def _handle_response(self, response: httpx.Response, error_message: str) -> Dict[str, Any]:
        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            text = response.text
            logger.error(f"Respuesta no JSON ({response.status_code}) de {response.request.url}")
            raise APIError(text or "Server returned non-JSON response", status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise APIError("Server returned malformed JSON", status_code=response.status_code) from e

        if not isinstance(data, dict):
            raise APIError("Unexpected response from server", status_code=response.status_code)

        message = data.get("message") or error_message
        code = data.get("errorCode") or data.get("error")

        if response.status_code == 401:
            raise AuthenticationError(message, status_code=401, code=code, payload=data)

        if response.is_error or data.get("success") is False:
            logger.warning(
                f"{response.request.method} {response.request.url.path} -> "
                f"{response.status_code} (code={code}): {message}"
            )
            raise APIError(message, status_code=response.status_code, code=code, payload=data)

        return data
