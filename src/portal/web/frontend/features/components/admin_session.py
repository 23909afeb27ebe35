# portal/web/frontend/features/components/admin_session.py
"""
Acceso al panel de administración y exportación/importación de catálogos.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

from reactpy import component, event, html, use_state

from ...shared.styles import BUTTON_OUTLINE_SECONDARY, BUTTON_PRIMARY, BUTTON_SECONDARY
from ...utils.exceptions import APIException

EXPORTABLES = ("tramites", "opas", "faqs")

TIPOS_EXPORTACION = {"csv": "text/csv", "json": "application/json"}

ESTRATEGIAS_IMPORTACION = {
    "update": "Actualizar los existentes",
    "skip": "Omitir los existentes",
    "create": "Crear siempre",
}

ROLES = {"admin": "Administrador", "funcionario": "Funcionario"}


def export_filename(recurso: str, formato: str, ahora: Optional[datetime] = None) -> str:
    return f"{recurso}_{(ahora or datetime.now()).strftime('%Y%m%d_%H%M%S')}.{formato}"


def export_data_url(contenido: str, formato: str) -> str:
    """Enlace de descarga con el archivo embebido; el navegador no vuelve a pedirlo al servidor."""
    return f"data:{TIPOS_EXPORTACION[formato]};charset=utf-8,{quote(contenido)}"


def login_error_message(error: Exception) -> str:
    if isinstance(error, APIException) and error.status_code in (401, 403):
        return "Token inválido o sin permisos de administración."
    return f"No se pudo validar el acceso: {error}"


async def open_admin_session(api_client, token: str) -> Dict[str, Any]:
    """Valida el token contra la API y devuelve la sesión {"token", "rol"}."""
    token = (token or "").strip()
    if not token:
        raise ValueError("Ingrese el token de acceso.")
    sesion = await api_client.with_token(token).get_admin_session()
    return {"token": token, "rol": sesion["rol"]}


@component
def AdminLogin(on_login: Callable):
    """Formulario de acceso con el token de administración."""
    token, set_token = use_state("")
    error, set_error = use_state(None)
    is_loading, set_is_loading = use_state(False)

    async def handle_submit(e):
        if is_loading:
            return
        set_error(None)
        set_is_loading(True)
        try:
            await on_login(token)
        except ValueError as ex:
            set_error(str(ex))
        except APIException as ex:
            set_error(login_error_message(ex))
        finally:
            set_is_loading(False)

    return html.article(
        {"class_name": "admin-login"},
        html.header(html.h2("Administración del portal")),
        html.p({"role": "alert", "class_name": "form-errors"}, error) if error else None,
        html.form(
            {"on_submit": event(handle_submit, prevent_default=True)},
            html.label(
                "Token de acceso",
                html.input(
                    {
                        "type": "password",
                        "name": "admin-token",
                        "autocomplete": "off",
                        "value": token,
                        "on_change": lambda e: set_token(e["target"]["value"]),
                        "disabled": is_loading,
                    }
                ),
            ),
            html.button(
                {"type": "submit", "class_name": BUTTON_PRIMARY, "aria-busy": str(is_loading).lower()},
                "Ingresar",
            ),
        ),
    )


@component
def AdminSessionBar(session: Dict[str, Any], on_logout: Callable):
    return html.div(
        {"class_name": "admin-session"},
        html.small(f"Sesión: {ROLES.get(session.get('rol'), session.get('rol'))}"),
        html.button(
            {"type": "button", "class_name": BUTTON_OUTLINE_SECONDARY, "on_click": lambda e: on_logout()},
            "Cerrar sesión",
        ),
    )


@component
def CatalogTransferPanel(recurso: str, api_client, on_imported: Callable, notify: Callable):
    """Exporta el catálogo completo e importa registros pegados en CSV o JSON."""
    formato, set_formato = use_state("csv")
    estrategia, set_estrategia = use_state("update")
    contenido, set_contenido = use_state("")
    descarga, set_descarga = use_state(None)
    resultado, set_resultado = use_state(None)
    is_busy, set_is_busy = use_state(False)

    async def handle_export(e):
        set_is_busy(True)
        try:
            archivo = await api_client.export_catalog(recurso, formato)
            set_descarga({"href": export_data_url(archivo, formato), "nombre": export_filename(recurso, formato)})
        except APIException as ex:
            notify(f"Error al exportar {recurso}: {ex}", "error")
        finally:
            set_is_busy(False)

    async def handle_import(e):
        if not contenido.strip():
            notify("Pegue el contenido a importar.", "warning")
            return
        set_is_busy(True)
        try:
            respuesta = await api_client.import_catalog(recurso, contenido, formato, estrategia)
            set_resultado(respuesta)
            notify(respuesta["message"], "success" if respuesta["success"] else "warning")
            if respuesta["created"] or respuesta["updated"]:
                await on_imported()
        except APIException as ex:
            notify(f"Error al importar {recurso}: {ex}", "error")
        finally:
            set_is_busy(False)

    return html.details(
        {"class_name": "catalog-transfer"},
        html.summary("Exportar / importar"),
        html.div(
            {"class_name": "grid"},
            html.select(
                {"name": "formato", "value": formato, "on_change": lambda e: set_formato(e["target"]["value"])},
                html.option({"value": "csv"}, "CSV"),
                html.option({"value": "json"}, "JSON"),
            ),
            html.button(
                {"type": "button", "class_name": BUTTON_SECONDARY, "on_click": handle_export, "disabled": is_busy},
                "Exportar",
            ),
            html.a({"href": descarga["href"], "download": descarga["nombre"]}, f"Descargar {descarga['nombre']}")
            if descarga
            else None,
        ),
        html.textarea(
            {
                "name": "contenido-importacion",
                "rows": 6,
                "placeholder": "Pegue aquí el contenido del archivo CSV o JSON",
                "value": contenido,
                "on_change": lambda e: set_contenido(e["target"]["value"]),
            }
        ),
        html.div(
            {"class_name": "grid"},
            html.select(
                {
                    "name": "estrategia",
                    "value": estrategia,
                    "on_change": lambda e: set_estrategia(e["target"]["value"]),
                },
                *[html.option({"value": k, "key": k}, v) for k, v in ESTRATEGIAS_IMPORTACION.items()],
            ),
            html.button(
                {
                    "type": "button",
                    "class_name": BUTTON_PRIMARY,
                    "on_click": handle_import,
                    "disabled": is_busy,
                    "aria-busy": str(is_busy).lower(),
                },
                "Importar",
            ),
        ),
        html.ul(*[html.li({"key": err}, err) for err in resultado["errors"]])
        if resultado and resultado["errors"]
        else None,
    )
