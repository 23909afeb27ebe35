# portal/web/frontend/features/modals/catalog_modals.py
"""
Formulario modal de creación y edición para los catálogos del portal.

Cada catálogo declara sus campos en CAMPOS y sus niveles de ubicación en
UBICACION; el modal valida con las mismas reglas que el backend antes de
llamar a save_item del hook use_catalog.
"""

from typing import Any, Callable, Dict, List, NamedTuple, Optional

from reactpy import component, event, html, use_state

from ...hooks.use_cascading_selects_hook import use_cascading_selects
from ...utils.input_helpers import create_trimmed_handler, split_commas, split_lines, trim_text_input
from ...utils.validation import (
    validate_dependencia_data,
    validate_faq_data,
    validate_opa_data,
    validate_subdependencia_data,
    validate_tema_data,
    validate_tramite_data,
)
from ..components.cascading_selects import CascadingSelects


class Campo(NamedTuple):
    nombre: str
    etiqueta: str
    tipo: str = "text"  # text | textarea | lines | commas | checkbox | number | url
    requerido: bool = False
    ayuda: Optional[str] = None


CAMPOS: Dict[str, List[Campo]] = {
    "dependencias": [
        Campo("codigo", "Código", requerido=True),
        Campo("sigla", "Sigla"),
        Campo("nombre", "Nombre", requerido=True),
        Campo("descripcion", "Descripción", "textarea"),
        Campo("activo", "Activa", "checkbox"),
    ],
    "subdependencias": [
        Campo("codigo", "Código", requerido=True),
        Campo("sigla", "Sigla"),
        Campo("nombre", "Nombre", requerido=True),
        Campo("descripcion", "Descripción", "textarea"),
        Campo("activo", "Activa", "checkbox"),
    ],
    "tramites": [
        Campo("codigo_unico", "Código único", requerido=True),
        Campo("nombre", "Nombre", requerido=True),
        Campo("descripcion", "Descripción", "textarea", ayuda="Mínimo 50 caracteres si se diligencia."),
        Campo("tiempo_respuesta", "Tiempo de respuesta"),
        Campo("formulario", "Enlace al formulario", "url"),
        Campo("requisitos", "Requisitos", "lines", ayuda="Un requisito por línea."),
        Campo("tiene_pago", "Tiene pago", "checkbox"),
        Campo("visualizacion_suit", "Publicado en SUIT", "checkbox"),
        Campo("visualizacion_gov", "Publicado en GOV.CO", "checkbox"),
        Campo("activo", "Activo", "checkbox"),
    ],
    "opas": [
        Campo("codigo_opa", "Código OPA", requerido=True),
        Campo("nombre", "Nombre", requerido=True),
        Campo("descripcion", "Descripción", "textarea"),
        Campo("tiempo_respuesta", "Tiempo de respuesta", ayuda="Obligatorio para una OPA activa."),
        Campo("formulario", "Enlace al formulario", "url"),
        Campo("requisitos", "Requisitos", "lines", ayuda="Un requisito por línea. Obligatorio para una OPA activa."),
        Campo("tiene_pago", "Tiene pago", "checkbox"),
        Campo("activo", "Activa", "checkbox"),
    ],
    "temas": [
        Campo("nombre", "Nombre", requerido=True),
        Campo("descripcion", "Descripción", "textarea"),
        Campo("orden", "Orden", "number"),
        Campo("activo", "Activo", "checkbox"),
    ],
    "faqs": [
        Campo("pregunta", "Pregunta", "textarea", requerido=True),
        Campo("respuesta", "Respuesta", "textarea", requerido=True),
        Campo("palabras_clave", "Palabras clave", "commas", ayuda="Separadas por comas."),
        Campo("tema", "Tema (texto libre)", ayuda="Se usa cuando la pregunta no tiene un tema del catálogo."),
        Campo("orden", "Orden", "number"),
        Campo("activo", "Activa", "checkbox"),
    ],
}

# Niveles de ubicación y campos que cada catálogo envía a la API
UBICACION: Dict[str, Optional[Dict[str, Any]]] = {
    "dependencias": None,
    "subdependencias": {"with_subdependencia": False, "with_temas": False, "campos": ["dependencia_id"]},
    "tramites": {"with_subdependencia": True, "with_temas": False, "campos": ["subdependencia_id"]},
    "opas": {"with_subdependencia": True, "with_temas": False, "campos": ["subdependencia_id"]},
    "temas": {"with_subdependencia": True, "with_temas": False, "campos": ["subdependencia_id"]},
    "faqs": {
        "with_subdependencia": True,
        "with_temas": True,
        "campos": ["dependencia_id", "subdependencia_id", "tema_id"],
    },
}

VALIDADORES: Dict[str, Callable] = {
    "dependencias": validate_dependencia_data,
    "subdependencias": validate_subdependencia_data,
    "tramites": validate_tramite_data,
    "opas": validate_opa_data,
    "temas": validate_tema_data,
    "faqs": validate_faq_data,
}


def to_form_data(recurso: str, item: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Valores iniciales del formulario: listas a texto, booleanos y orden con defecto."""
    item = item or {}
    form: Dict[str, Any] = {}
    for campo in CAMPOS[recurso]:
        valor = item.get(campo.nombre)
        if campo.tipo == "lines":
            form[campo.nombre] = "\n".join(valor or [])
        elif campo.tipo == "commas":
            form[campo.nombre] = ", ".join(valor or [])
        elif campo.tipo == "checkbox":
            form[campo.nombre] = bool(valor) if campo.nombre in item else campo.nombre == "activo"
        elif campo.tipo == "number":
            form[campo.nombre] = str(valor if valor is not None else 0)
        else:
            form[campo.nombre] = valor or ""
    return form


def build_payload(
    recurso: str, form_data: Dict[str, Any], ubicacion: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Convierte el estado del formulario en el cuerpo que espera la API.
    Los textos vacíos opcionales viajan como None.
    """
    payload: Dict[str, Any] = {}
    for campo in CAMPOS[recurso]:
        valor = form_data.get(campo.nombre)
        if campo.tipo == "lines":
            payload[campo.nombre] = split_lines(valor)
        elif campo.tipo == "commas":
            payload[campo.nombre] = split_commas(valor)
        elif campo.tipo == "checkbox":
            payload[campo.nombre] = bool(valor)
        elif campo.tipo == "number":
            texto = trim_text_input(valor)
            try:
                payload[campo.nombre] = int(texto) if texto else 0
            except ValueError:
                payload[campo.nombre] = texto
        else:
            texto = trim_text_input(valor)
            payload[campo.nombre] = texto if texto or campo.requerido else None

    config = UBICACION.get(recurso)
    if config:
        for nombre in config["campos"]:
            payload[nombre] = (ubicacion or {}).get(nombre) or None
    return payload


def _render_campo(campo: Campo, form_data: Dict[str, Any], on_change: Callable, disabled: bool):
    valor = form_data.get(campo.nombre)
    etiqueta = campo.etiqueta + (" *" if campo.requerido else "")
    ayuda = html.small(campo.ayuda) if campo.ayuda else None

    if campo.tipo == "checkbox":
        return html.label(
            {"key": campo.nombre},
            html.input(
                {
                    "type": "checkbox",
                    "role": "switch",
                    "name": campo.nombre,
                    "checked": bool(valor),
                    "on_change": lambda e: on_change(campo.nombre, e["target"]["checked"]),
                    "disabled": disabled,
                }
            ),
            campo.etiqueta,
        )

    atributos = {
        "name": campo.nombre,
        "value": valor or "",
        "on_change": lambda e: on_change(campo.nombre, e["target"]["value"]),
        "required": campo.requerido,
        "disabled": disabled,
    }
    if campo.tipo in ("text", "url"):
        atributos["on_blur"] = create_trimmed_handler(lambda e: on_change(campo.nombre, e["target"]["value"]))

    if campo.tipo in ("textarea", "lines"):
        control = html.textarea({**atributos, "rows": 4 if campo.tipo == "textarea" else 5})
    else:
        tipo_input = {"number": "number", "url": "url"}.get(campo.tipo, "text")
        control = html.input({**atributos, "type": tipo_input})
    return html.label({"key": campo.nombre}, etiqueta, control, ayuda)


@component
def CatalogFormModal(
    recurso: str,
    singular: str,
    item: Optional[Dict[str, Any]],
    on_close: Callable,
    on_save: Callable,
):
    """
    Modal de creación (item vacío) o edición.

    Args:
        on_save: corrutina (item_id, payload) -> bool, normalmente use_catalog["save_item"]
    """
    item = item or {}
    is_edit_mode = bool(item.get("id"))
    config = UBICACION.get(recurso)

    form_data, set_form_data = use_state(lambda: to_form_data(recurso, item))
    errors, set_errors = use_state([])
    is_saving, set_is_saving = use_state(False)
    selects = use_cascading_selects(
        initial_dependencia_id=item.get("dependencia_id"),
        initial_subdependencia_id=item.get("subdependencia_id"),
        initial_tema_id=item.get("tema_id"),
        with_temas=bool(config and config["with_temas"]),
    )

    def handle_change(field: str, value: Any):
        set_form_data(lambda old: {**old, field: value})

    async def handle_submit(e):
        if is_saving:
            return
        payload = build_payload(recurso, form_data, selects)
        resultado = VALIDADORES[recurso](payload)
        if not resultado.is_valid:
            set_errors(resultado.errors)
            return

        set_errors([])
        set_is_saving(True)
        try:
            if await on_save(item.get("id"), payload):
                on_close()
        finally:
            set_is_saving(False)

    form_id = f"{recurso}-form"
    titulo = f"Editar {singular.lower()}" if is_edit_mode else f"Crear {singular.lower()}"

    return html.dialog(
        {"open": True},
        html.article(
            html.header(
                html.button({"aria-label": "Cerrar", "rel": "prev", "on_click": lambda e: on_close()}),
                html.h2(titulo),
            ),
            html.article(
                {"class_name": "form-errors", "role": "alert"},
                html.ul(*[html.li({"key": err}, err) for err in errors]),
            )
            if errors
            else None,
            html.form(
                {"id": form_id, "on_submit": event(handle_submit, prevent_default=True)},
                CascadingSelects(
                    selects=selects,
                    with_subdependencia=config["with_subdependencia"],
                    with_temas=config["with_temas"],
                    required=True,
                    disabled=is_saving,
                )
                if config
                else None,
                *[_render_campo(c, form_data, handle_change, is_saving) for c in CAMPOS[recurso]],
            ),
            html.footer(
                html.div(
                    {"class_name": "grid"},
                    html.button(
                        {
                            "type": "button",
                            "class_name": "secondary",
                            "on_click": lambda e: on_close(),
                            "disabled": is_saving,
                        },
                        "Cancelar",
                    ),
                    html.button(
                        {"type": "submit", "form": form_id, "aria-busy": str(is_saving).lower(), "disabled": is_saving},
                        "Guardar",
                    ),
                ),
            ),
        ),
    )
