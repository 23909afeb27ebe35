# src/portal/common/llm_client.py
"""
Cliente HTTP para un proveedor de lenguaje con API compatible con OpenAI
(`POST {base_url}/chat/completions`).

Incluye reintentos con backoff exponencial para 429/5xx/timeouts, un circuit
breaker para no insistir contra un proveedor caído y un modo simulado para
desarrollo cuando no hay una API key real configurada.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

MAX_RETRIES = 2
BASE_DELAY = 1.0


class LLMError(Exception):
    """Fallo definitivo al obtener una respuesta del proveedor."""


@dataclass
class RespuestaLLM:
    contenido: str
    tokens: int = 0
    # Solo el modo simulado fija la confianza; en el resto se calcula a partir del contenido.
    confianza: Optional[float] = None
    simulada: bool = False


@dataclass
class CircuitBreaker:
    """Circuit breaker del proveedor: closed -> open -> half_open -> closed."""

    failure_threshold: int = 5
    reset_seconds: int = 60
    _failure_count: int = field(default=0, repr=False)
    _last_failure_time: float = field(default=0.0, repr=False)
    _state: str = field(default="closed", repr=False)

    @property
    def state(self) -> str:
        if self._state == "open" and time.monotonic() - self._last_failure_time >= self.reset_seconds:
            self._state = "half_open"
        return self._state

    def allow_request(self) -> bool:
        return self.state != "open"

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = "closed"

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()
        if self._state == "half_open" or self._failure_count >= self.failure_threshold:
            self._state = "open"
            logger.warning(
                "Circuit breaker del LLM ABIERTO tras %d fallos (reintento en %ds)",
                self._failure_count,
                self.reset_seconds,
            )


_RESPUESTAS_SIMULADAS = [
    (
        ("cédula", "cedula"),
        "Para sacar tu cédula de ciudadanía debes dirigirte a la Registraduría Nacional más cercana con tu "
        "certificado de nacimiento original y la tarjeta de identidad anterior, si la tienes. Allí diligencias "
        "el formulario, pagas la tarifa correspondiente y te toman huellas y foto.",
        0.9,
    ),
    (
        ("impuesto", "pago"),
        "Los impuestos municipales de Chía se pueden pagar en las oficinas de la Alcaldía, en los bancos "
        "autorizados o en línea por PSE. Ten a mano tu cédula y el recibo o factura del impuesto.",
        0.85,
    ),
    (
        ("horario", "atención", "atencion"),
        "La Alcaldía de Chía atiende presencialmente de lunes a viernes de 8:00 a. m. a 5:00 p. m. "
        "y los sábados de 8:00 a. m. a 12:00 m.",
        0.95,
    ),
    (
        ("empresa", "registro"),
        "Para registrar tu empresa en Chía debes inscribirla en la Cámara de Comercio, obtener el RUT ante "
        "la DIAN y solicitar el registro de industria y comercio en la Secretaría de Hacienda.",
        0.8,
    ),
]

_SALUDO_SIMULADO = (
    "¡Hola! Soy el asistente virtual de la Alcaldía de Chía. Puedo ayudarte con información sobre "
    "trámites y servicios municipales, pagos de impuestos, horarios de atención y registro de empresas. "
    "¿En qué te puedo ayudar hoy?"
)


def es_api_key_simulada(api_key: Optional[str]) -> bool:
    if not api_key:
        return True
    key = api_key.lower()
    return "placeholder" in key or "test" in key


class LLMClient:
    def __init__(
        self,
        base_url: str,
        api_key: Optional[str],
        model: str,
        max_tokens: int = 500,
        temperature: float = 0.7,
        timeout: int = 30,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.simulado = es_api_key_simulada(api_key)
        self.breaker = CircuitBreaker()
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(connect=10.0, read=float(timeout), write=10.0, pool=5.0),
        )
        if self.simulado:
            logger.warning("LLMClient en modo simulado: no se enviarán peticiones al proveedor.")

    async def completar(
        self, mensajes: List[Dict[str, str]], contexto: Optional[List[Dict[str, Any]]] = None
    ) -> RespuestaLLM:
        """
        Envía la conversación (incluido el mensaje de sistema) y devuelve el contenido generado.
        Lanza LLMError si el proveedor no responde tras los reintentos.
        """
        if self.simulado:
            return self._respuesta_simulada(mensajes, contexto or [])

        if not self.breaker.allow_request():
            raise LLMError("El proveedor de lenguaje no está disponible temporalmente (circuit breaker abierto).")

        payload = {
            "model": self.model,
            "messages": mensajes,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        ultimo_error: Optional[Exception] = None

        for attempt in range(MAX_RETRIES + 1):
            try:
                resp = await self._client.post("/chat/completions", json=payload, headers=headers)
                resp.raise_for_status()
                data = resp.json()
                message = data["choices"][0]["message"]
                usage = data.get("usage") or {}
                self.breaker.record_success()
                logger.debug(f"Respuesta del LLM recibida (modelo={self.model}, tokens={usage.get('total_tokens', 0)})")
                return RespuestaLLM(contenido=(message.get("content") or "").strip(), tokens=usage.get("total_tokens", 0))

            except httpx.HTTPStatusError as e:
                code = e.response.status_code
                if (code == 429 or code >= 500) and attempt < MAX_RETRIES:
                    delay = BASE_DELAY * (2**attempt)
                    logger.warning(f"LLM respondió {code} (intento {attempt + 1}/{MAX_RETRIES + 1}), reintento en {delay}s")
                    await asyncio.sleep(delay)
                    ultimo_error = e
                    continue
                self.breaker.record_failure()
                raise LLMError(f"El proveedor de lenguaje respondió {code}: {e.response.text[:200]}") from e

            except httpx.TimeoutException as e:
                if attempt < MAX_RETRIES:
                    delay = BASE_DELAY * (2**attempt)
                    logger.warning(f"Timeout del LLM (intento {attempt + 1}/{MAX_RETRIES + 1}), reintento en {delay}s")
                    await asyncio.sleep(delay)
                    ultimo_error = e
                    continue
                self.breaker.record_failure()
                raise LLMError("Tiempo de espera agotado con el proveedor de lenguaje.") from e

            except httpx.RequestError as e:
                self.breaker.record_failure()
                raise LLMError(f"Error de conexión con el proveedor de lenguaje: {e}") from e

            except (KeyError, IndexError, ValueError) as e:
                self.breaker.record_failure()
                raise LLMError(f"Respuesta del proveedor con estructura inesperada: {e}") from e

        self.breaker.record_failure()
        raise LLMError(f"El proveedor de lenguaje no respondió tras {MAX_RETRIES + 1} intentos: {ultimo_error}")

    def _respuesta_simulada(self, mensajes: List[Dict[str, str]], contexto: List[Dict[str, Any]]) -> RespuestaLLM:
        ultimo = next((m["content"] for m in reversed(mensajes) if m.get("role") == "user"), "").lower()

        for palabras, texto, confianza in _RESPUESTAS_SIMULADAS:
            if any(p in ultimo for p in palabras):
                return RespuestaLLM(contenido=texto, tokens=len(texto) // 4, confianza=confianza, simulada=True)

        if contexto:
            primero = contexto[0]
            texto = f"Según la información oficial disponible sobre {primero['title']}:\n\n{primero['content']}"
            return RespuestaLLM(contenido=texto, tokens=len(texto) // 4, confianza=0.75, simulada=True)

        return RespuestaLLM(contenido=_SALUDO_SIMULADO, tokens=len(_SALUDO_SIMULADO) // 4, confianza=0.7, simulada=True)

    async def close(self):
        await self._client.aclose()
        logger.info("Cliente LLM cerrado.")
