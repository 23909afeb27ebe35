# portal/web/frontend/api/api_client.py
import asyncio
import copy
from typing import Any, Dict, List, Optional

import httpx

from portal.common.config_manager import ConfigManager

from ..utils.exceptions import APIException, ValidationException
from ..utils.validation import (
    validate_dependencia_data,
    validate_faq_data,
    validate_opa_data,
    validate_subdependencia_data,
    validate_tema_data,
    validate_tramite_data,
)


# Cliente de la propia API FastAPI del portal
class APIClient:
    def __init__(self, base_url: str = "http://127.0.0.1:8000", timeout: float = 30.0):
        self.base_url = base_url
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None
        # Token del panel de administración; viaja en X-Authorization
        self.auth_token: Optional[str] = None

    async def __aenter__(self):
        self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, headers={"Content-Type": "application/json"}
            )
        return self._client

    def with_token(self, token: Optional[str]) -> "APIClient":
        """Copia del cliente que autentica sus peticiones con `token`. Comparte la conexión HTTP."""
        autenticado = copy.copy(self)
        autenticado._client = self._get_client()
        autenticado.auth_token = token
        return autenticado

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict] = None,
        json_data: Optional[Dict] = None,
        retries: int = 3,
        raw: bool = False,
    ) -> Any:
        client = self._get_client()
        headers = {"X-Authorization": self.auth_token} if self.auth_token else None
        for attempt in range(retries):
            try:
                response = await client.request(
                    method=method, url=endpoint, params=params, json=json_data, headers=headers
                )
            except httpx.RequestError as e:
                if attempt == retries - 1:
                    raise APIException(f"Error de conexión: {e}")
                await asyncio.sleep(2**attempt)
                continue

            if response.status_code >= 400:
                try:
                    error_data = response.json()
                    error_detail = error_data.get("detail", str(error_data))
                except ValueError:
                    error_detail = response.text or f"Error HTTP {response.status_code}"
                raise APIException(message=str(error_detail), status_code=response.status_code)
            if raw:
                return response.text
            if response.status_code == 204 or not response.content:
                return None
            try:
                return response.json()
            except ValueError:
                return response.text

    @staticmethod
    def _validar(resultado):
        if not resultado.is_valid:
            raise ValidationException("Datos inválidos", resultado.errors)

    # BÚSQUEDA
    async def search(self, params: Optional[Dict] = None) -> Dict:
        return await self._request("GET", "/api/search", params=params)

    async def search_procedimientos(self, params: Optional[Dict] = None) -> Dict:
        return await self._request("GET", "/api/search/procedimientos", params=params)

    async def get_search_suggestions(self, query: str, limit: int = 5) -> List[str]:
        data = await self._request("GET", "/api/search/suggestions", params={"query": query, "limit": limit})
        return (data or {}).get("suggestions", [])

    async def get_search_stats(self) -> Dict:
        return await self._request("GET", "/api/search/stats")

    # DEPENDENCIAS
    async def get_dependencias(self, params: Optional[Dict] = None) -> Dict:
        return await self._request("GET", "/api/dependencias", params=params)

    async def get_dependencias_activas(self) -> List[Dict]:
        return await self._request("GET", "/api/dependencias/activas") or []

    async def get_subdependencias_de(self, dependencia_id: str) -> List[Dict]:
        return await self._request("GET", f"/api/dependencias/{dependencia_id}/subdependencias") or []

    async def create_dependencia(self, data: Dict) -> Dict:
        self._validar(validate_dependencia_data(data))
        return await self._request("POST", "/api/dependencias", json_data=data)

    async def update_dependencia(self, dependencia_id: str, data: Dict) -> Dict:
        self._validar(validate_dependencia_data(data, is_update=True))
        return await self._request("PUT", f"/api/dependencias/{dependencia_id}", json_data=data)

    async def delete_dependencia(self, dependencia_id: str) -> None:
        await self._request("DELETE", f"/api/dependencias/{dependencia_id}")

    # SUBDEPENDENCIAS
    async def get_subdependencias(self, params: Optional[Dict] = None) -> Dict:
        return await self._request("GET", "/api/subdependencias", params=params)

    async def get_temas_de(self, subdependencia_id: str) -> List[Dict]:
        return await self._request("GET", f"/api/subdependencias/{subdependencia_id}/temas") or []

    async def create_subdependencia(self, data: Dict) -> Dict:
        self._validar(validate_subdependencia_data(data))
        return await self._request("POST", "/api/subdependencias", json_data=data)

    async def update_subdependencia(self, subdependencia_id: str, data: Dict) -> Dict:
        self._validar(validate_subdependencia_data(data, is_update=True))
        return await self._request("PUT", f"/api/subdependencias/{subdependencia_id}", json_data=data)

    async def delete_subdependencia(self, subdependencia_id: str) -> None:
        await self._request("DELETE", f"/api/subdependencias/{subdependencia_id}")

    # TRÁMITES
    async def get_tramites(self, params: Optional[Dict] = None) -> Dict:
        return await self._request("GET", "/api/tramites", params=params)

    async def get_tramite(self, tramite_id: str) -> Dict:
        return await self._request("GET", f"/api/tramites/{tramite_id}")

    async def create_tramite(self, data: Dict) -> Dict:
        self._validar(validate_tramite_data(data))
        return await self._request("POST", "/api/tramites", json_data=data)

    async def update_tramite(self, tramite_id: str, data: Dict) -> Dict:
        self._validar(validate_tramite_data(data, is_update=True))
        return await self._request("PUT", f"/api/tramites/{tramite_id}", json_data=data)

    async def delete_tramite(self, tramite_id: str) -> None:
        await self._request("DELETE", f"/api/tramites/{tramite_id}")

    # OPAs
    async def get_opas(self, params: Optional[Dict] = None) -> Dict:
        return await self._request("GET", "/api/opas", params=params)

    async def get_opa(self, opa_id: str) -> Dict:
        return await self._request("GET", f"/api/opas/{opa_id}")

    async def create_opa(self, data: Dict) -> Dict:
        self._validar(validate_opa_data(data))
        return await self._request("POST", "/api/opas", json_data=data)

    async def update_opa(self, opa_id: str, data: Dict) -> Dict:
        # El cambio parcial (p. ej. solo 'activo') se valida en el backend contra el registro completo.
        return await self._request("PUT", f"/api/opas/{opa_id}", json_data=data)

    async def delete_opa(self, opa_id: str) -> None:
        await self._request("DELETE", f"/api/opas/{opa_id}")

    # TEMAS
    async def get_temas(self, params: Optional[Dict] = None) -> List[Dict]:
        return await self._request("GET", "/api/temas", params=params) or []

    async def create_tema(self, data: Dict) -> Dict:
        self._validar(validate_tema_data(data))
        return await self._request("POST", "/api/temas", json_data=data)

    async def update_tema(self, tema_id: str, data: Dict) -> Dict:
        self._validar(validate_tema_data(data, is_update=True))
        return await self._request("PUT", f"/api/temas/{tema_id}", json_data=data)

    async def delete_tema(self, tema_id: str) -> None:
        await self._request("DELETE", f"/api/temas/{tema_id}")

    # FAQs
    async def get_faqs(self, params: Optional[Dict] = None) -> Dict:
        return await self._request("GET", "/api/faqs", params=params)

    async def get_faq_hierarchy(self) -> Dict:
        return await self._request("GET", "/api/faqs/jerarquia")

    async def create_faq(self, data: Dict) -> Dict:
        self._validar(validate_faq_data(data))
        return await self._request("POST", "/api/faqs", json_data=data)

    async def update_faq(self, faq_id: str, data: Dict) -> Dict:
        self._validar(validate_faq_data(data, is_update=True))
        return await self._request("PUT", f"/api/faqs/{faq_id}", json_data=data)

    async def delete_faq(self, faq_id: str) -> None:
        await self._request("DELETE", f"/api/faqs/{faq_id}")

    # ASISTENTE VIRTUAL
    async def send_chat_message(self, message: str, session_token: Optional[str] = None) -> Dict:
        payload = {"message": message, "channel": "web"}
        if session_token:
            payload["sessionToken"] = session_token
        data = await self._request("POST", "/api/chat", json_data=payload, retries=1)
        return data["data"]

    async def get_chat_history(self, session_token: str) -> Dict:
        return await self._request("GET", "/api/chat", params={"sessionToken": session_token})

    async def send_chat_feedback(self, message_id: str, feedback_type: str, comment: Optional[str] = None) -> Dict:
        payload = {"messageId": message_id, "feedbackType": feedback_type}
        if comment:
            payload["comment"] = comment
        data = await self._request("POST", "/api/chat/feedback", json_data=payload, retries=1)
        return data["data"]

    async def trigger_knowledge_sync(self) -> Dict:
        return await self._request("POST", "/api/chat/knowledge/sync")

    async def get_knowledge_status(self) -> Dict:
        return await self._request("GET", "/api/chat/knowledge/status")

    # ADMINISTRACIÓN
    async def get_admin_session(self) -> Dict:
        return await self._request("GET", "/api/auth/sesion", retries=1)

    async def export_catalog(self, recurso: str, formato: str = "csv") -> str:
        return await self._request("GET", f"/api/{recurso}/exportar", params={"formato": formato}, raw=True)

    async def import_catalog(
        self, recurso: str, contenido: str, formato: str = "csv", estrategia: str = "update"
    ) -> Dict:
        payload = {"contenido": contenido, "formato": formato, "estrategia": estrategia}
        return await self._request("POST", f"/api/{recurso}/importar", json_data=payload, retries=1)

    # SISTEMA
    async def get_metrics(self) -> Dict:
        return await self._request("GET", "/api/metrics")

    async def get_health(self) -> Dict:
        return await self._request("GET", "/api/health")

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None


_api_client_instance: Optional[APIClient] = None


def get_api_client() -> APIClient:
    """Instancia compartida del cliente, apuntando a la URL configurada del servicio."""
    global _api_client_instance
    if _api_client_instance is None:
        web_config = ConfigManager.get_interfaz_web_config()
        _api_client_instance = APIClient(base_url=web_config["api_base_url"], timeout=web_config["api_timeout_seg"])
    return _api_client_instance
