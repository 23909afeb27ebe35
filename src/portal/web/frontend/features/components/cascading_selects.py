# portal/web/frontend/features/components/cascading_selects.py
"""
Selects dependientes dependencia -> subdependencia (-> tema).

El componente no guarda estado propio: recibe el dict que devuelve
use_cascading_selects, así el formulario o la barra de filtros que lo usa
puede leer la selección directamente.
"""

from typing import Any, Callable, Dict, Optional

from reactpy import component, html


def _opciones(items, placeholder: str, etiqueta: Callable[[Dict[str, Any]], str]):
    return [
        html.option({"value": "", "key": "vacio"}, placeholder),
        *[html.option({"value": item["id"], "key": item["id"]}, etiqueta(item)) for item in items],
    ]


def _nombre_con_sigla(item: Dict[str, Any]) -> str:
    if item.get("sigla"):
        return f"{item['nombre']} ({item['sigla']})"
    return item["nombre"]


@component
def CascadingSelects(
    selects: Dict[str, Any],
    with_subdependencia: bool = True,
    with_temas: bool = False,
    required: bool = False,
    disabled: bool = False,
    as_filters: bool = False,
    on_change: Optional[Callable[[str, Optional[str]], None]] = None,
):
    """
    Args:
        selects: estado de use_cascading_selects
        as_filters: usa "Todas" como opción vacía y etiquetas compactas (barras de filtros)
        on_change: se llama con (nivel, valor) después de actualizar la selección
    """

    def handler(nivel: str, setter: Callable):
        def _on_change(event):
            valor = event["target"]["value"] or None
            setter(valor)
            if on_change:
                on_change(nivel, valor)

        return _on_change

    dependencia_id = selects["dependencia_id"]
    subdependencia_id = selects["subdependencia_id"]
    vacio = "Todas" if as_filters else "Seleccione..."

    campos = [
        html.label(
            {"key": "dependencia"},
            "Dependencia" + (" *" if required and not as_filters else ""),
            html.select(
                {
                    "name": "dependencia_id",
                    "value": dependencia_id or "",
                    "on_change": handler("dependencia", selects["set_dependencia"]),
                    "disabled": disabled or selects["loading_dependencias"],
                    "aria-busy": str(selects["loading_dependencias"]).lower(),
                    "required": required,
                },
                *_opciones(selects["dependencias"], vacio, _nombre_con_sigla),
            ),
        )
    ]

    if with_subdependencia:
        sin_dependencia = not dependencia_id
        campos.append(
            html.label(
                {"key": "subdependencia"},
                "Subdependencia" + (" *" if required and not as_filters else ""),
                html.select(
                    {
                        "name": "subdependencia_id",
                        "value": subdependencia_id or "",
                        "on_change": handler("subdependencia", selects["set_subdependencia"]),
                        "disabled": disabled or sin_dependencia or selects["loading_subdependencias"],
                        "aria-busy": str(selects["loading_subdependencias"]).lower(),
                        "required": required,
                    },
                    *_opciones(
                        selects["subdependencias"],
                        "Primero seleccione una dependencia" if sin_dependencia else vacio,
                        _nombre_con_sigla,
                    ),
                ),
            )
        )

    if with_subdependencia and with_temas:
        campos.append(
            html.label(
                {"key": "tema"},
                "Tema",
                html.select(
                    {
                        "name": "tema_id",
                        "value": selects["tema_id"] or "",
                        "on_change": handler("tema", selects["set_tema"]),
                        "disabled": disabled or not subdependencia_id or selects["loading_temas"],
                        "aria-busy": str(selects["loading_temas"]).lower(),
                    },
                    *_opciones(selects["temas"], "Sin tema" if not as_filters else vacio, lambda t: t["nombre"]),
                ),
            )
        )

    error = selects.get("error")
    return html.div(
        {"class_name": "grid cascading-selects"},
        *campos,
        html.small({"class_name": "field-error", "key": "error"}, error) if error else None,
    )
