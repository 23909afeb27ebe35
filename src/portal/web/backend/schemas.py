from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, TypedDict
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MIN_LONGITUD_DESCRIPCION_TRAMITE = 50


def _limpiar_lista(valores: Optional[List[str]]) -> Optional[List[str]]:
    if valores is None:
        return None
    return [v.strip() for v in valores if v and v.strip()]


class _TextoLimpio(BaseModel):
    """Base de los formularios del admin: recorta espacios en todos los textos."""

    model_config = ConfigDict(str_strip_whitespace=True)


# --- Dependencias ---


class DependenciaCreate(_TextoLimpio):
    codigo: str = Field(..., min_length=1, max_length=20)
    nombre: str = Field(..., min_length=1, max_length=255)
    sigla: Optional[str] = Field(None, max_length=20)
    descripcion: Optional[str] = None
    activo: bool = True


class DependenciaUpdate(_TextoLimpio):
    codigo: Optional[str] = Field(None, min_length=1, max_length=20)
    nombre: Optional[str] = Field(None, min_length=1, max_length=255)
    sigla: Optional[str] = Field(None, max_length=20)
    descripcion: Optional[str] = None
    activo: Optional[bool] = None


# --- Subdependencias ---


class SubdependenciaCreate(_TextoLimpio):
    codigo: str = Field(..., min_length=1, max_length=20)
    nombre: str = Field(..., min_length=1, max_length=255)
    sigla: Optional[str] = Field(None, max_length=20)
    descripcion: Optional[str] = None
    dependencia_id: UUID
    activo: bool = True


class SubdependenciaUpdate(_TextoLimpio):
    codigo: Optional[str] = Field(None, min_length=1, max_length=20)
    nombre: Optional[str] = Field(None, min_length=1, max_length=255)
    sigla: Optional[str] = Field(None, max_length=20)
    descripcion: Optional[str] = None
    dependencia_id: Optional[UUID] = None
    activo: Optional[bool] = None


# --- Trámites ---


class _DescripcionMinima(_TextoLimpio):
    @field_validator("descripcion", check_fields=False)
    @classmethod
    def _validar_descripcion(cls, v: Optional[str]) -> Optional[str]:
        if v and len(v) < MIN_LONGITUD_DESCRIPCION_TRAMITE:
            raise ValueError(f"La descripción debe tener al menos {MIN_LONGITUD_DESCRIPCION_TRAMITE} caracteres.")
        return v or None

    @field_validator("requisitos", check_fields=False)
    @classmethod
    def _validar_requisitos(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _limpiar_lista(v)


class TramiteCreate(_DescripcionMinima):
    codigo_unico: str = Field(..., min_length=1, max_length=50)
    nombre: str = Field(..., min_length=1, max_length=500)
    descripcion: Optional[str] = None
    formulario: Optional[str] = None
    tiempo_respuesta: Optional[str] = Field(None, max_length=255)
    tiene_pago: bool = False
    requisitos: List[str] = Field(default_factory=list)
    visualizacion_suit: bool = False
    visualizacion_gov: bool = False
    subdependencia_id: UUID
    activo: bool = True


class TramiteUpdate(_DescripcionMinima):
    codigo_unico: Optional[str] = Field(None, min_length=1, max_length=50)
    nombre: Optional[str] = Field(None, min_length=1, max_length=500)
    descripcion: Optional[str] = None
    formulario: Optional[str] = None
    tiempo_respuesta: Optional[str] = Field(None, max_length=255)
    tiene_pago: Optional[bool] = None
    requisitos: Optional[List[str]] = None
    visualizacion_suit: Optional[bool] = None
    visualizacion_gov: Optional[bool] = None
    subdependencia_id: Optional[UUID] = None
    activo: Optional[bool] = None


# --- OPAs ---


class OpaCreate(_TextoLimpio):
    codigo_opa: str = Field(..., min_length=1, max_length=50)
    nombre: str = Field(..., min_length=1, max_length=500)
    descripcion: Optional[str] = None
    formulario: Optional[str] = None
    tiempo_respuesta: Optional[str] = Field(None, max_length=255)
    tiene_pago: bool = False
    requisitos: List[str] = Field(default_factory=list)
    subdependencia_id: UUID
    activo: bool = True

    @field_validator("requisitos")
    @classmethod
    def _validar_requisitos(cls, v: List[str]) -> List[str]:
        return _limpiar_lista(v)

    @model_validator(mode="after")
    def _validar_opa_activa(self):
        if self.activo and (not self.requisitos or not self.tiempo_respuesta):
            raise ValueError("Una OPA activa debe tener requisitos y tiempo de respuesta.")
        return self


class OpaUpdate(_TextoLimpio):
    codigo_opa: Optional[str] = Field(None, min_length=1, max_length=50)
    nombre: Optional[str] = Field(None, min_length=1, max_length=500)
    descripcion: Optional[str] = None
    formulario: Optional[str] = None
    tiempo_respuesta: Optional[str] = Field(None, max_length=255)
    tiene_pago: Optional[bool] = None
    requisitos: Optional[List[str]] = None
    subdependencia_id: Optional[UUID] = None
    activo: Optional[bool] = None

    @field_validator("requisitos")
    @classmethod
    def _validar_requisitos(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _limpiar_lista(v)


# --- Temas ---


class TemaCreate(_TextoLimpio):
    nombre: str = Field(..., min_length=1, max_length=255)
    descripcion: Optional[str] = None
    subdependencia_id: UUID
    orden: int = 0
    activo: bool = True


class TemaUpdate(_TextoLimpio):
    nombre: Optional[str] = Field(None, min_length=1, max_length=255)
    descripcion: Optional[str] = None
    subdependencia_id: Optional[UUID] = None
    orden: Optional[int] = None
    activo: Optional[bool] = None


# --- FAQs ---


class FaqCreate(_TextoLimpio):
    pregunta: str = Field(..., min_length=1)
    respuesta: str = Field(..., min_length=1)
    palabras_clave: List[str] = Field(default_factory=list)
    tema: Optional[str] = Field(None, max_length=255)
    tema_id: Optional[UUID] = None
    dependencia_id: UUID
    subdependencia_id: Optional[UUID] = None
    orden: int = 0
    activo: bool = True

    @field_validator("palabras_clave")
    @classmethod
    def _validar_palabras(cls, v: List[str]) -> List[str]:
        return _limpiar_lista(v)


class FaqUpdate(_TextoLimpio):
    pregunta: Optional[str] = Field(None, min_length=1)
    respuesta: Optional[str] = Field(None, min_length=1)
    palabras_clave: Optional[List[str]] = None
    tema: Optional[str] = Field(None, max_length=255)
    tema_id: Optional[UUID] = None
    dependencia_id: Optional[UUID] = None
    subdependencia_id: Optional[UUID] = None
    orden: Optional[int] = None
    activo: Optional[bool] = None

    @field_validator("palabras_clave")
    @classmethod
    def _validar_palabras(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _limpiar_lista(v)


# --- Exportación / importación ---


class ImportacionRequest(BaseModel):
    contenido: str = Field(..., min_length=1, max_length=10_000_000)
    formato: Literal["csv", "json"] = "csv"
    estrategia: Literal["update", "skip", "create"] = "update"


# --- Chat ---
# Los tipos se validan en el servicio para responder 400 con mensajes propios
# en lugar del 422 genérico de FastAPI.


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: Any = None
    session_token: Optional[str] = Field(None, alias="sessionToken")
    channel: Literal["web", "whatsapp"] = "web"
    user_id: Optional[str] = Field(None, alias="userId")
    phone_number: Optional[str] = Field(None, alias="phoneNumber")


class FeedbackRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message_id: Any = Field(None, alias="messageId")
    feedback_type: Any = Field(None, alias="feedbackType")
    comment: Any = None


# --- Respuestas ---


class Pagination(TypedDict):
    page: int
    limit: int
    total: int
    totalPages: int


class PaginatedResponse(TypedDict):
    data: List[Dict[str, Any]]
    pagination: Pagination


class SearchResult(TypedDict):
    id: str
    tipo: Literal["tramite", "opa", "faq"]
    titulo: str
    nombre: str
    descripcion: str
    codigo: Optional[str]
    dependencia: str
    subdependencia: Optional[str]
    categoria: Optional[str]
    tiempo_estimado: Optional[str]
    tiene_pago: Optional[bool]
    formulario: Optional[str]
    estado: Literal["activo", "inactivo"]
    tags: List[str]
    vistas: int
    created_at: Optional[datetime]
    original_data: Dict[str, Any]


class ChatResponseData(TypedDict):
    response: str
    confidence: float
    sources: List[str]
    sessionToken: str
    escalateToHuman: bool
    messageId: Optional[str]
