# src/portal/web/backend/api.py
import logging
import time
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query, Request, Response, status

from portal.common.config_manager import ConfigManager
from portal.common.database import DatabaseConnector

from . import database as db_service
from . import exportacion
from . import search as search_service
from .cache import cached, clear_cache, get_cache_stats
from .dependencies import get_db, llm_client_provider
from .errors import handle_endpoint_errors
from .schemas import (
    DependenciaCreate,
    DependenciaUpdate,
    FaqCreate,
    FaqUpdate,
    ImportacionRequest,
    OpaCreate,
    OpaUpdate,
    SubdependenciaCreate,
    SubdependenciaUpdate,
    TemaCreate,
    TemaUpdate,
    TramiteCreate,
    TramiteUpdate,
)
from .security import requerir_admin, requerir_gestor

logger = logging.getLogger(__name__)

router = APIRouter()

_PATRON_TIPO = "^(tramite|opa|faq)$"
_PATRON_PAGO = "^(gratuito|con_pago)$"
_PATRON_EXPORTABLE = "^(tramites|opas|faqs)$"
_TIPOS_CONTENIDO = {"csv": "text/csv; charset=utf-8", "json": "application/json; charset=utf-8"}

# Escrituras en los catálogos: admin o funcionario
_GESTION = [Depends(requerir_gestor)]


def _invalidar_cache(background_tasks: BackgroundTasks):
    """Toda escritura en los catálogos deja obsoletas las búsquedas y métricas cacheadas."""
    background_tasks.add_task(clear_cache)


# ------------------------------------------------------------------
# Búsqueda
# ------------------------------------------------------------------
@router.get("/api/search", tags=["Búsqueda"])
async def unified_search(
    db: DatabaseConnector = Depends(get_db),
    query: Optional[str] = Query(None, max_length=200),
    tipo: Optional[str] = Query(None, pattern=_PATRON_TIPO),
    dependencia: Optional[str] = None,
    subdependencia_id: Optional[UUID] = None,
    tipo_pago: Optional[str] = Query(None, pattern=_PATRON_PAGO),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    incluir_inactivos: bool = False,
):
    """Búsqueda unificada de trámites, OPAs y preguntas frecuentes."""
    try:
        return await search_service.buscar_unificado(
            db,
            query=query,
            tipo=tipo,
            dependencia=dependencia,
            subdependencia_id=str(subdependencia_id) if subdependencia_id else None,
            tipo_pago=tipo_pago,
            page=page,
            limit=limit,
            incluir_inactivos=incluir_inactivos,
        )
    except Exception as e:
        handle_endpoint_errors("unified_search", e, "Búsqueda")


@router.get("/api/search/procedimientos", tags=["Búsqueda"])
async def search_tramites_and_opas(
    db: DatabaseConnector = Depends(get_db),
    query: Optional[str] = Query(None, max_length=200),
    dependencia: Optional[str] = None,
    subdependencia_id: Optional[UUID] = None,
    tipo_pago: Optional[str] = Query(None, pattern=_PATRON_PAGO),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    return await search_service.buscar_tramites_y_opas(
        db,
        query=query,
        dependencia=dependencia,
        subdependencia_id=str(subdependencia_id) if subdependencia_id else None,
        tipo_pago=tipo_pago,
        page=page,
        limit=limit,
    )


@router.get("/api/search/suggestions", tags=["Búsqueda"])
async def search_suggestions(
    db: DatabaseConnector = Depends(get_db),
    query: Optional[str] = Query(None, max_length=200),
    limit: int = Query(5, ge=1, le=20),
):
    suggestions = await search_service.obtener_sugerencias(db, query, limit=limit)
    return {"suggestions": suggestions}


@router.get("/api/search/stats", tags=["Búsqueda"])
async def search_stats(db: DatabaseConnector = Depends(get_db)):
    try:
        return await search_service.obtener_estadisticas_busqueda(db)
    except Exception as e:
        handle_endpoint_errors("search_stats", e, "Estadísticas")


# ------------------------------------------------------------------
# Administración: sesión, exportación e importación
# ------------------------------------------------------------------
@router.get("/api/auth/sesion", tags=["Administración"])
def admin_session(rol: str = Depends(requerir_gestor)):
    """Valida el token del panel de administración y devuelve su rol."""
    return {"rol": rol}


# Se declaran antes que /api/{catalogo}/{id} para que "exportar" no se lea como id
@router.get("/api/{recurso}/exportar", tags=["Administración"], dependencies=_GESTION)
def export_catalog(
    recurso: str = Path(..., pattern=_PATRON_EXPORTABLE),
    formato: str = Query("csv", pattern="^(csv|json)$"),
    db: DatabaseConnector = Depends(get_db),
):
    try:
        contenido = exportacion.exportar_catalogo(db, recurso, formato)
    except Exception as e:
        handle_endpoint_errors("export_catalog", e, recurso)
    filename = f"{recurso}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.{formato}"
    return Response(
        content=contenido,
        media_type=_TIPOS_CONTENIDO[formato],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/api/{recurso}/importar", tags=["Administración"], dependencies=_GESTION)
def import_catalog(
    data: ImportacionRequest,
    background_tasks: BackgroundTasks,
    recurso: str = Path(..., pattern=_PATRON_EXPORTABLE),
    db: DatabaseConnector = Depends(get_db),
):
    try:
        registros = exportacion.parsear_registros(recurso, data.formato, data.contenido)
        resultado = exportacion.importar_catalogo(db, recurso, registros, data.estrategia)
    except Exception as e:
        handle_endpoint_errors("import_catalog", e, recurso)
    if resultado["created"] or resultado["updated"]:
        _invalidar_cache(background_tasks)
    return resultado


# ------------------------------------------------------------------
# Dependencias
# ------------------------------------------------------------------
@router.get("/api/dependencias", tags=["Dependencias"])
def list_dependencias(
    db: DatabaseConnector = Depends(get_db),
    q: Optional[str] = None,
    activo: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
):
    try:
        return db_service.get_dependencias(db, q=q, activo=activo, page=page, limit=limit)
    except Exception as e:
        handle_endpoint_errors("list_dependencias", e, "Dependencias")


@router.get("/api/dependencias/activas", tags=["Dependencias"])
def list_dependencias_activas(db: DatabaseConnector = Depends(get_db)):
    """Opciones del primer nivel de los selects en cascada."""
    try:
        return db_service.get_dependencias_activas(db)
    except Exception as e:
        handle_endpoint_errors("list_dependencias_activas", e, "Dependencias")


@router.get("/api/dependencias/{dependencia_id}", tags=["Dependencias"])
def get_dependencia(dependencia_id: UUID, db: DatabaseConnector = Depends(get_db)):
    try:
        return db_service.get_dependencia(db, dependencia_id)
    except Exception as e:
        handle_endpoint_errors("get_dependencia", e, "Dependencia", dependencia_id)


@router.get("/api/dependencias/{dependencia_id}/subdependencias", tags=["Dependencias"])
def list_subdependencias_de_dependencia(
    dependencia_id: UUID, solo_activas: bool = True, db: DatabaseConnector = Depends(get_db)
):
    """Opciones del segundo nivel de los selects en cascada."""
    try:
        return db_service.get_subdependencias_por_dependencia(db, dependencia_id, solo_activas=solo_activas)
    except Exception as e:
        handle_endpoint_errors("list_subdependencias_de_dependencia", e, "Dependencia", dependencia_id)


@router.post("/api/dependencias", tags=["Dependencias"], status_code=status.HTTP_201_CREATED, dependencies=_GESTION)
def create_dependencia(
    data: DependenciaCreate, background_tasks: BackgroundTasks, db: DatabaseConnector = Depends(get_db)
):
    try:
        dependencia = db_service.create_dependencia(db, data)
        _invalidar_cache(background_tasks)
        return {"message": "Dependencia creada.", "data": dependencia}
    except Exception as e:
        handle_endpoint_errors("create_dependencia", e, "Dependencia")


@router.put("/api/dependencias/{dependencia_id}", tags=["Dependencias"], dependencies=_GESTION)
def update_dependencia(
    dependencia_id: UUID,
    data: DependenciaUpdate,
    background_tasks: BackgroundTasks,
    db: DatabaseConnector = Depends(get_db),
):
    try:
        dependencia = db_service.update_dependencia(db, dependencia_id, data)
        _invalidar_cache(background_tasks)
        return {"message": "Dependencia actualizada.", "data": dependencia}
    except Exception as e:
        handle_endpoint_errors("update_dependencia", e, "Dependencia", dependencia_id)


@router.delete(
    "/api/dependencias/{dependencia_id}",
    tags=["Dependencias"],
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=_GESTION,
)
def delete_dependencia(
    dependencia_id: UUID, background_tasks: BackgroundTasks, db: DatabaseConnector = Depends(get_db)
):
    try:
        db_service.delete_dependencia(db, dependencia_id)
        _invalidar_cache(background_tasks)
    except Exception as e:
        handle_endpoint_errors("delete_dependencia", e, "Dependencia", dependencia_id)


# ------------------------------------------------------------------
# Subdependencias
# ------------------------------------------------------------------
@router.get("/api/subdependencias", tags=["Subdependencias"])
def list_subdependencias(
    db: DatabaseConnector = Depends(get_db),
    dependencia_id: Optional[UUID] = None,
    q: Optional[str] = None,
    activo: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
):
    try:
        return db_service.get_subdependencias(
            db, dependencia_id=dependencia_id, q=q, activo=activo, page=page, limit=limit
        )
    except Exception as e:
        handle_endpoint_errors("list_subdependencias", e, "Subdependencias")


@router.get("/api/subdependencias/{subdependencia_id}", tags=["Subdependencias"])
def get_subdependencia(subdependencia_id: UUID, db: DatabaseConnector = Depends(get_db)):
    try:
        return db_service.get_subdependencia(db, subdependencia_id)
    except Exception as e:
        handle_endpoint_errors("get_subdependencia", e, "Subdependencia", subdependencia_id)


@router.get("/api/subdependencias/{subdependencia_id}/temas", tags=["Subdependencias"])
def list_temas_de_subdependencia(subdependencia_id: UUID, db: DatabaseConnector = Depends(get_db)):
    """Opciones del tercer nivel (temas de FAQ) de los selects en cascada."""
    try:
        return db_service.get_temas_por_subdependencia(db, subdependencia_id)
    except Exception as e:
        handle_endpoint_errors("list_temas_de_subdependencia", e, "Subdependencia", subdependencia_id)


@router.post(
    "/api/subdependencias",
    tags=["Subdependencias"],
    status_code=status.HTTP_201_CREATED,
    dependencies=_GESTION,
)
def create_subdependencia(
    data: SubdependenciaCreate, background_tasks: BackgroundTasks, db: DatabaseConnector = Depends(get_db)
):
    try:
        subdependencia = db_service.create_subdependencia(db, data)
        _invalidar_cache(background_tasks)
        return {"message": "Subdependencia creada.", "data": subdependencia}
    except Exception as e:
        handle_endpoint_errors("create_subdependencia", e, "Subdependencia")


@router.put("/api/subdependencias/{subdependencia_id}", tags=["Subdependencias"], dependencies=_GESTION)
def update_subdependencia(
    subdependencia_id: UUID,
    data: SubdependenciaUpdate,
    background_tasks: BackgroundTasks,
    db: DatabaseConnector = Depends(get_db),
):
    try:
        subdependencia = db_service.update_subdependencia(db, subdependencia_id, data)
        _invalidar_cache(background_tasks)
        return {"message": "Subdependencia actualizada.", "data": subdependencia}
    except Exception as e:
        handle_endpoint_errors("update_subdependencia", e, "Subdependencia", subdependencia_id)


@router.delete(
    "/api/subdependencias/{subdependencia_id}",
    tags=["Subdependencias"],
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=_GESTION,
)
def delete_subdependencia(
    subdependencia_id: UUID, background_tasks: BackgroundTasks, db: DatabaseConnector = Depends(get_db)
):
    try:
        db_service.delete_subdependencia(db, subdependencia_id)
        _invalidar_cache(background_tasks)
    except Exception as e:
        handle_endpoint_errors("delete_subdependencia", e, "Subdependencia", subdependencia_id)


# ------------------------------------------------------------------
# Trámites
# ------------------------------------------------------------------
@router.get("/api/tramites", tags=["Trámites"])
def list_tramites(
    db: DatabaseConnector = Depends(get_db),
    q: Optional[str] = None,
    subdependencia_id: Optional[UUID] = None,
    dependencia_id: Optional[UUID] = None,
    tiene_pago: Optional[bool] = None,
    activo: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
):
    try:
        return db_service.get_tramites(
            db,
            q=q,
            subdependencia_id=subdependencia_id,
            dependencia_id=dependencia_id,
            tiene_pago=tiene_pago,
            activo=activo,
            page=page,
            limit=limit,
        )
    except Exception as e:
        handle_endpoint_errors("list_tramites", e, "Trámites")


@router.get("/api/tramites/{tramite_id}", tags=["Trámites"])
def get_tramite(tramite_id: UUID, db: DatabaseConnector = Depends(get_db)):
    try:
        return db_service.get_tramite(db, tramite_id)
    except Exception as e:
        handle_endpoint_errors("get_tramite", e, "Trámite", tramite_id)


@router.post("/api/tramites", tags=["Trámites"], status_code=status.HTTP_201_CREATED, dependencies=_GESTION)
def create_tramite(data: TramiteCreate, background_tasks: BackgroundTasks, db: DatabaseConnector = Depends(get_db)):
    try:
        tramite = db_service.create_tramite(db, data)
        _invalidar_cache(background_tasks)
        return {"message": "Trámite creado.", "data": tramite}
    except Exception as e:
        handle_endpoint_errors("create_tramite", e, "Trámite")


@router.put("/api/tramites/{tramite_id}", tags=["Trámites"], dependencies=_GESTION)
def update_tramite(
    tramite_id: UUID, data: TramiteUpdate, background_tasks: BackgroundTasks, db: DatabaseConnector = Depends(get_db)
):
    try:
        tramite = db_service.update_tramite(db, tramite_id, data)
        _invalidar_cache(background_tasks)
        return {"message": "Trámite actualizado.", "data": tramite}
    except Exception as e:
        handle_endpoint_errors("update_tramite", e, "Trámite", tramite_id)


@router.delete(
    "/api/tramites/{tramite_id}",
    tags=["Trámites"],
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=_GESTION,
)
def delete_tramite(tramite_id: UUID, background_tasks: BackgroundTasks, db: DatabaseConnector = Depends(get_db)):
    try:
        db_service.delete_tramite(db, tramite_id)
        _invalidar_cache(background_tasks)
    except Exception as e:
        handle_endpoint_errors("delete_tramite", e, "Trámite", tramite_id)


# ------------------------------------------------------------------
# OPAs
# ------------------------------------------------------------------
@router.get("/api/opas", tags=["OPAs"])
def list_opas(
    db: DatabaseConnector = Depends(get_db),
    q: Optional[str] = None,
    subdependencia_id: Optional[UUID] = None,
    dependencia_id: Optional[UUID] = None,
    tiene_pago: Optional[bool] = None,
    activo: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
):
    try:
        return db_service.get_opas(
            db,
            q=q,
            subdependencia_id=subdependencia_id,
            dependencia_id=dependencia_id,
            tiene_pago=tiene_pago,
            activo=activo,
            page=page,
            limit=limit,
        )
    except Exception as e:
        handle_endpoint_errors("list_opas", e, "OPAs")


@router.get("/api/opas/{opa_id}", tags=["OPAs"])
def get_opa(opa_id: UUID, db: DatabaseConnector = Depends(get_db)):
    try:
        return db_service.get_opa(db, opa_id)
    except Exception as e:
        handle_endpoint_errors("get_opa", e, "OPA", opa_id)


@router.post("/api/opas", tags=["OPAs"], status_code=status.HTTP_201_CREATED, dependencies=_GESTION)
def create_opa(data: OpaCreate, background_tasks: BackgroundTasks, db: DatabaseConnector = Depends(get_db)):
    try:
        opa = db_service.create_opa(db, data)
        _invalidar_cache(background_tasks)
        return {"message": "OPA creada.", "data": opa}
    except Exception as e:
        handle_endpoint_errors("create_opa", e, "OPA")


@router.put("/api/opas/{opa_id}", tags=["OPAs"], dependencies=_GESTION)
def update_opa(
    opa_id: UUID, data: OpaUpdate, background_tasks: BackgroundTasks, db: DatabaseConnector = Depends(get_db)
):
    try:
        opa = db_service.update_opa(db, opa_id, data)
        _invalidar_cache(background_tasks)
        return {"message": "OPA actualizada.", "data": opa}
    except Exception as e:
        handle_endpoint_errors("update_opa", e, "OPA", opa_id)


@router.delete("/api/opas/{opa_id}", tags=["OPAs"], status_code=status.HTTP_204_NO_CONTENT, dependencies=_GESTION)
def delete_opa(opa_id: UUID, background_tasks: BackgroundTasks, db: DatabaseConnector = Depends(get_db)):
    try:
        db_service.delete_opa(db, opa_id)
        _invalidar_cache(background_tasks)
    except Exception as e:
        handle_endpoint_errors("delete_opa", e, "OPA", opa_id)


# ------------------------------------------------------------------
# Temas
# ------------------------------------------------------------------
@router.get("/api/temas", tags=["Temas"])
def list_temas(
    db: DatabaseConnector = Depends(get_db),
    subdependencia_id: Optional[UUID] = None,
    activo: Optional[bool] = None,
):
    try:
        return db_service.get_temas(db, subdependencia_id=subdependencia_id, activo=activo)
    except Exception as e:
        handle_endpoint_errors("list_temas", e, "Temas")


@router.get("/api/temas/{tema_id}", tags=["Temas"])
def get_tema(tema_id: UUID, db: DatabaseConnector = Depends(get_db)):
    try:
        return db_service.get_tema(db, tema_id)
    except Exception as e:
        handle_endpoint_errors("get_tema", e, "Tema", tema_id)


@router.post("/api/temas", tags=["Temas"], status_code=status.HTTP_201_CREATED, dependencies=_GESTION)
def create_tema(data: TemaCreate, background_tasks: BackgroundTasks, db: DatabaseConnector = Depends(get_db)):
    try:
        tema = db_service.create_tema(db, data)
        _invalidar_cache(background_tasks)
        return {"message": "Tema creado.", "data": tema}
    except Exception as e:
        handle_endpoint_errors("create_tema", e, "Tema")


@router.put("/api/temas/{tema_id}", tags=["Temas"], dependencies=_GESTION)
def update_tema(
    tema_id: UUID, data: TemaUpdate, background_tasks: BackgroundTasks, db: DatabaseConnector = Depends(get_db)
):
    try:
        tema = db_service.update_tema(db, tema_id, data)
        _invalidar_cache(background_tasks)
        return {"message": "Tema actualizado.", "data": tema}
    except Exception as e:
        handle_endpoint_errors("update_tema", e, "Tema", tema_id)


@router.delete("/api/temas/{tema_id}", tags=["Temas"], status_code=status.HTTP_204_NO_CONTENT, dependencies=_GESTION)
def delete_tema(tema_id: UUID, background_tasks: BackgroundTasks, db: DatabaseConnector = Depends(get_db)):
    try:
        db_service.delete_tema(db, tema_id)
        _invalidar_cache(background_tasks)
    except Exception as e:
        handle_endpoint_errors("delete_tema", e, "Tema", tema_id)


# ------------------------------------------------------------------
# FAQs
# ------------------------------------------------------------------
@router.get("/api/faqs", tags=["FAQs"])
def list_faqs(
    db: DatabaseConnector = Depends(get_db),
    q: Optional[str] = None,
    dependencia_id: Optional[UUID] = None,
    subdependencia_id: Optional[UUID] = None,
    tema_id: Optional[UUID] = None,
    activo: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
):
    try:
        return db_service.get_faqs(
            db,
            q=q,
            dependencia_id=dependencia_id,
            subdependencia_id=subdependencia_id,
            tema_id=tema_id,
            activo=activo,
            page=page,
            limit=limit,
        )
    except Exception as e:
        handle_endpoint_errors("list_faqs", e, "FAQs")


@router.get("/api/faqs/jerarquia", tags=["FAQs"])
def get_faq_hierarchy(db: DatabaseConnector = Depends(get_db)):
    """FAQs activas agrupadas por dependencia, subdependencia y tema."""
    try:
        return db_service.get_faq_hierarchy(db)
    except Exception as e:
        handle_endpoint_errors("get_faq_hierarchy", e, "FAQs")


@router.get("/api/faqs/{faq_id}", tags=["FAQs"])
def get_faq(faq_id: UUID, db: DatabaseConnector = Depends(get_db)):
    try:
        return db_service.get_faq(db, faq_id)
    except Exception as e:
        handle_endpoint_errors("get_faq", e, "FAQ", faq_id)


@router.post("/api/faqs", tags=["FAQs"], status_code=status.HTTP_201_CREATED, dependencies=_GESTION)
def create_faq(data: FaqCreate, background_tasks: BackgroundTasks, db: DatabaseConnector = Depends(get_db)):
    try:
        faq = db_service.create_faq(db, data)
        _invalidar_cache(background_tasks)
        return {"message": "Pregunta frecuente creada.", "data": faq}
    except Exception as e:
        handle_endpoint_errors("create_faq", e, "FAQ")


@router.put("/api/faqs/{faq_id}", tags=["FAQs"], dependencies=_GESTION)
def update_faq(
    faq_id: UUID, data: FaqUpdate, background_tasks: BackgroundTasks, db: DatabaseConnector = Depends(get_db)
):
    try:
        faq = db_service.update_faq(db, faq_id, data)
        _invalidar_cache(background_tasks)
        return {"message": "Pregunta frecuente actualizada.", "data": faq}
    except Exception as e:
        handle_endpoint_errors("update_faq", e, "FAQ", faq_id)


@router.delete("/api/faqs/{faq_id}", tags=["FAQs"], status_code=status.HTTP_204_NO_CONTENT, dependencies=_GESTION)
def delete_faq(faq_id: UUID, background_tasks: BackgroundTasks, db: DatabaseConnector = Depends(get_db)):
    try:
        db_service.delete_faq(db, faq_id)
        _invalidar_cache(background_tasks)
    except Exception as e:
        handle_endpoint_errors("delete_faq", e, "FAQ", faq_id)


# ------------------------------------------------------------------
# Métricas y estado del servicio
# ------------------------------------------------------------------
@cached(ttl=60)
def _metricas_cacheadas(db: DatabaseConnector):
    return db_service.get_system_metrics(db)


@router.get("/api/metrics", tags=["Sistema"])
async def get_metrics(db: DatabaseConnector = Depends(get_db)):
    try:
        return await _metricas_cacheadas(db)
    except Exception as e:
        handle_endpoint_errors("get_metrics", e, "Métricas")


@router.get("/api/health", tags=["Sistema"])
def health(request: Request):
    web_config = ConfigManager.get_interfaz_web_config()
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": web_config["version"],
        "environment": web_config["environment"],
        "uptime": round(time.monotonic() - request.app.state.started_at, 2),
        "features": {
            "ai_chatbot": llm_client_provider.has_llm_client(),
            "busqueda_unificada": True,
            "faq_jerarquica": True,
        },
    }


@router.get("/api/cache/stats", tags=["Sistema"])
def cache_stats():
    return get_cache_stats()


@router.delete("/api/cache", tags=["Sistema"], dependencies=[Depends(requerir_admin)])
async def purge_cache():
    await clear_cache()
    return {"message": "Caché limpiado."}
