import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
from flowbot.core.config import (
    FLOW_SERVICE_URL,
    TEMPLATE_SERVICE_URL,
    FILE_SERVICE_URL,
)
from typing import Dict, Any, List, Optional
import logging

logger = logging.getLogger(__name__)

class APIRequestError(Exception):
    """Базовый exception для API ошибок."""
    pass

class APIHTTPError(APIRequestError):
    """HTTP-ошибка от API."""
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(message)

class APINetworkError(APIRequestError):
    """Сетевая ошибка (timeout, connection)."""
    pass

def retry_api_call():
    """Retry для идемпотентных чтений."""
    return retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type((httpx.RequestError, httpx.TimeoutException, APINetworkError)),
        reraise=True
    )

class BaseAPIClient:
    """Общие настройки HTTP-клиента сервиса."""
    def __init__(self, base_url: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url
        self.transport = transport
        self.timeout = httpx.Timeout(10.0, connect=5.0)
        self.headers = {"Content-Type": "application/json"}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            http2=False, trust_env=False, timeout=self.timeout, transport=self.transport
        )

class TemplateAPIClient(BaseAPIClient):
    """Клиент для работы с шаблонами модулей."""
    def __init__(self, base_url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(base_url or f"{TEMPLATE_SERVICE_URL}/templates", transport)

    @retry_api_call()
    async def list_templates(self) -> List[Dict[str, Any]]:
        """Список шаблонов: сначала стандартные, затем свежие."""
        async with self._client() as client:
            try:
                response = await client.get(f"{self.base_url}/")
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as e:
                raise APIHTTPError(e.response.status_code, f"HTTP error: {e.response.text}")
            except httpx.RequestError as e:
                raise APINetworkError(f"Network error: {str(e)}")

    async def create_template(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Создание шаблона."""
        async with self._client() as client:
            try:
                response = await client.post(f"{self.base_url}/", json=payload, headers=self.headers)
                if response.status_code == 409:
                    logger.info(f"Template with component {payload.get('component')} already exists.")
                    raise APIHTTPError(
                        409, f"A template with component name \"{payload.get('component')}\" already exists."
                    )
                response.raise_for_status()
                logger.info(f"Successfully created template {payload.get('name')}")
                return response.json()
            except httpx.HTTPStatusError as e:
                raise APIHTTPError(e.response.status_code, f"HTTP error: {e.response.text}")
            except httpx.RequestError as e:
                raise APINetworkError(f"Network error: {str(e)}")

    async def update_template(self, template_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Обновление шаблона."""
        async with self._client() as client:
            try:
                response = await client.put(f"{self.base_url}/{template_id}", json=payload, headers=self.headers)
                response.raise_for_status()
                logger.info(f"Successfully updated template {template_id}")
                return response.json()
            except httpx.HTTPStatusError as e:
                raise APIHTTPError(e.response.status_code, f"HTTP error: {e.response.text}")
            except httpx.RequestError as e:
                raise APINetworkError(f"Network error: {str(e)}")

    async def delete_template(self, template_id: str) -> bool:
        """Удаление шаблона."""
        async with self._client() as client:
            try:
                response = await client.delete(f"{self.base_url}/{template_id}")
                response.raise_for_status()
                logger.info(f"Deleted template {template_id}")
                return True
            except httpx.HTTPStatusError as e:
                raise APIHTTPError(e.response.status_code, f"HTTP error: {e.response.text}")
            except httpx.RequestError as e:
                raise APINetworkError(f"Network error: {str(e)}")

class FlowAPIClient(BaseAPIClient):
    """Клиент для работы с флоу."""
    def __init__(self, base_url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(base_url or f"{FLOW_SERVICE_URL}/flows", transport)

    @retry_api_call()
    async def list_flows(self) -> List[Dict[str, Any]]:
        """Список всех флоу."""
        async with self._client() as client:
            try:
                response = await client.get(f"{self.base_url}/")
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as e:
                raise APIHTTPError(e.response.status_code, f"HTTP error: {e.response.text}")
            except httpx.RequestError as e:
                raise APINetworkError(f"Network error: {str(e)}")

    @retry_api_call()
    async def get_flow_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        """Получение флоу по slug."""
        async with self._client() as client:
            try:
                response = await client.get(f"{self.base_url}/by-slug/{slug}")
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 404:
                    logger.info(f"FlowAPI: Flow with slug {slug} not found.")
                    return None
                raise APIHTTPError(e.response.status_code, f"HTTP error: {e.response.text}")
            except httpx.RequestError as e:
                raise APINetworkError(f"Network error: {str(e)}")

    async def create_flow(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Создание флоу."""
        async with self._client() as client:
            try:
                response = await client.post(f"{self.base_url}/", json=payload, headers=self.headers)
                response.raise_for_status()
                logger.info(f"Successfully created flow {payload.get('slug')}")
                return response.json()
            except httpx.HTTPStatusError as e:
                raise APIHTTPError(e.response.status_code, f"HTTP error: {e.response.text}")
            except httpx.RequestError as e:
                raise APINetworkError(f"Network error: {str(e)}")

    async def update_flow(self, flow_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Полная замена флоу."""
        async with self._client() as client:
            try:
                response = await client.put(f"{self.base_url}/{flow_id}", json=payload, headers=self.headers)
                response.raise_for_status()
                logger.info(f"Successfully updated flow {flow_id}")
                return response.json()
            except httpx.HTTPStatusError as e:
                raise APIHTTPError(e.response.status_code, f"HTTP error: {e.response.text}")
            except httpx.RequestError as e:
                raise APINetworkError(f"Network error: {str(e)}")

class FileAPIClient(BaseAPIClient):
    """Клиент для работы с файлами."""
    def __init__(self, base_url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(base_url or f"{FILE_SERVICE_URL}/files", transport)

    async def upload(self, filename: str, data: bytes, content_type: str) -> str:
        """Загрузка файла, возвращает публичный URL."""
        files = {'file': (filename, data, content_type)}
        async with self._client() as client:
            try:
                response = await client.post(f"{self.base_url}/upload", files=files)
                response.raise_for_status()
                url = response.json().get("url")
                if not url:
                    raise APIHTTPError(response.status_code, "Upload response has no url")
                logger.info(f"FileAPI: Uploaded {filename} ({len(data)} bytes)")
                return url
            except httpx.HTTPStatusError as e:
                raise APIHTTPError(e.response.status_code, f"HTTP error: {e.response.text}")
            except httpx.RequestError as e:
                raise APINetworkError(f"Network error: {str(e)}")

template_api_client = TemplateAPIClient()
flow_api_client = FlowAPIClient()
file_api_client = FileAPIClient()
