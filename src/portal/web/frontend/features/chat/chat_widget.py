# portal/web/frontend/features/chat/chat_widget.py
"""
Asistente virtual flotante, presente en todas las páginas.

El estado de la conversación vive en ChatWidget (use_chat), de modo que
cerrar o minimizar el panel no pierde los mensajes. El panel se monta la
primera vez que se abre, o se precarga unos segundos después de cargar la
página.
"""

import asyncio
from typing import Any, Callable, Dict, Optional

from reactpy import component, event, html, use_effect, use_ref, use_state

from ...hooks.use_chat_hook import use_chat
from ...shared.styles import (
    CHAT_BADGE_NEW,
    CHAT_LAUNCHER,
    CHAT_MESSAGE,
    CHAT_MESSAGES,
    CHAT_PANEL,
    CHAT_PANEL_MINIMIZED,
)

PREFETCH_DELAY_SECONDS = 2
MAX_LONGITUD_MENSAJE = 1000
INPUT_ID = "chat-widget-input"

SUGERENCIAS_INICIALES = [
    "¿Cómo obtengo un certificado de residencia?",
    "¿Qué trámites son gratuitos?",
    "¿Dónde pago el impuesto predial?",
]


def should_flag_new_message(messages, is_open: bool, is_minimized: bool) -> bool:
    """Hay mensaje nuevo si el último es del asistente y el panel no está a la vista."""
    if not messages or messages[-1].get("role") != "assistant":
        return False
    return not is_open or is_minimized


def last_message_key(messages) -> Optional[str]:
    """Id del último mensaje; cambia con cada mensaje aunque el historial ya esté en su máximo."""
    return messages[-1]["id"] if messages else None


async def prefetch_panel(set_panel_mounted: Callable[[bool], None], delay: float = PREFETCH_DELAY_SECONDS):
    """Monta el panel pasado `delay` para que la primera apertura sea inmediata."""
    await asyncio.sleep(delay)
    set_panel_mounted(True)


def format_confidence(
confidence: Optional[float]) -> Optional[str]:
    if confidence is None:
        return None
    return f"Confianza: {round(float(confidence) * 100)}%"


@component
def ChatMessageBubble(message: Dict[str, Any], rated: Optional[str], on_feedback: Callable):
    role = message.get("role", "system")
    es_asistente = role == "assistant"
    fuentes = message.get("sources") or []
    confianza = format_confidence(message.get("confidence")) if es_asistente else None

    async def handle_helpful(e):
        await on_feedback(message["db_id"], "helpful")

    async def handle_not_helpful(e):
        await on_feedback(message["db_id"], "not_helpful")

    feedback = None
    if es_asistente and message.get("db_id"):
        if rated:
            feedback = html.small({"class_name": "chat-feedback-done"}, "¡Gracias por tu calificación!")
        else:
            feedback = html.div(
                {"class_name": "chat-feedback"},
                html.button(
                    {
                        "type": "button",
                        "class_name": "outline secondary",
                        "aria-label": "Respuesta útil",
                        "on_click": handle_helpful,
                    },
                    "👍",
                ),
                html.button(
                    {
                        "type": "button",
                        "class_name": "outline secondary",
                        "aria-label": "Respuesta no útil",
                        "on_click": handle_not_helpful,
                    },
                    "👎",
                ),
            )

    return html.div(
        {"class_name": CHAT_MESSAGE.get(role, CHAT_MESSAGE["system"])},
        html.p({"class_name": "chat-message-text"}, message.get("content", "")),
        html.div(
            {"class_name": "chat-escalation", "role": "note"},
            "Esta consulta requiere atención personalizada. Puedes comunicarte con la Alcaldía "
            "o acercarte a la dependencia correspondiente.",
        )
        if message.get("escalated")
        else None,
        html.details(
            {"class_name": "chat-sources"},
            html.summary(f"Fuentes ({len(fuentes)})"),
            html.ul(*[html.li({"key": f"src-{i}"}, f) for i, f in enumerate(fuentes)]),
        )
        if fuentes
        else None,
        html.small({"class_name": "chat-confidence"}, confianza) if confianza else None,
        feedback,
    )


@component
def ChatPanel(chat: Dict[str, Any], visible: bool, minimized: bool, on_close: Callable, on_minimize: Callable):
    draft, set_draft = use_state("")
    messages = chat["messages"]

    async def handle_submit(e):
        texto = draft.strip()
        if not texto or chat["loading"]:
            return
        set_draft("")
        await chat["send_message"](texto)

    def suggestion_handler(texto: str):
        async def _enviar(e):
            await chat["send_message"](texto)

        return _enviar

    def handle_key_down(e):
        if e.get("key") == "Escape":
            on_close()

    clase = CHAT_PANEL_MINIMIZED if minimized else CHAT_PANEL

    return html.section(
        {
            "class_name": clase,
            "style": {"display": "flex" if visible else "none"},
            "role": "dialog",
            "aria-label": "Asistente virtual",
            "on_key_down": handle_key_down,
        },
        html.header(
            {"class_name": "chat-panel-header"},
            html.strong("Asistente virtual"),
            html.div(
                {"class_name": "chat-panel-actions"},
                html.button(
                    {
                        "type": "button",
                        "class_name": "outline secondary",
                        "on_click": chat["clear_chat"],
                        "aria-label": "Limpiar conversación",
                    },
                    "⟲",
                ),
                html.button(
                    {
                        "type": "button",
                        "class_name": "outline secondary",
                        "on_click": lambda e: on_minimize(),
                        "aria-label": "Minimizar",
                    },
                    "▁" if not minimized else "▢",
                ),
                html.button(
                    {
                        "type": "button",
                        "class_name": "outline secondary",
                        "on_click": lambda e: on_close(),
                        "aria-label": "Cerrar",
                    },
                    "✕",
                ),
            ),
        ),
        html._(
            html.div(
                {"class_name": CHAT_MESSAGES, "aria-live": "polite"},
                html.div(
                    {"class_name": "chat-welcome"},
                    html.p("¡Hola! Soy el asistente de la Alcaldía de Chía. ¿En qué te puedo ayudar?"),
                    *[
                        html.button(
                            {
                                "type": "button",
                                "key": s,
                                "class_name": "outline chat-suggestion",
                                "on_click": suggestion_handler(s),
                            },
                            s,
                        )
                        for s in SUGERENCIAS_INICIALES
                    ],
                )
                if not messages
                else None,
                *[
                    ChatMessageBubble(
                        message=m,
                        rated=chat["rated"].get(m.get("db_id")),
                        on_feedback=chat["submit_feedback"],
                        key=m["id"],
                    )
                    for m in messages
                ],
                html.div({"class_name": "chat-typing", "aria-busy": "true"}, "Escribiendo...")
                if chat["is_typing"] or chat["loading"]
                else None,
            ),
            html.div(
                {"class_name": "chat-error"},
                html.small(chat["error"]),
                html.button(
                    {"type": "button", "class_name": "outline", "on_click": chat["retry_last_message"]},
                    "Reintentar",
                )
                if chat["can_retry"]
                else None,
            )
            if chat["error"]
            else None,
            html.form(
                {"class_name": "chat-input", "on_submit": event(handle_submit, prevent_default=True)},
                html.fieldset(
                    {"role": "group"},
                    html.input(
                        {
                            "id": INPUT_ID,
                            "type": "text",
                            "name": "chat-message",
                            "placeholder": "Escribe tu pregunta...",
                            "value": draft,
                            "maxlength": MAX_LONGITUD_MENSAJE,
                            "autocomplete": "off",
                            "on_change": lambda e: set_draft(e["target"]["value"]),
                            "disabled": chat["loading"],
                        }
                    ),
                    html.button(
                        {
                            "type": "submit",
                            "disabled": chat["loading"] or not draft.strip(),
                            "aria-busy": str(chat["loading"]).lower(),
                        },
                        "Enviar",
                    ),
                ),
                html.small({"class_name": "chat-counter"}, f"{len(draft)}/{MAX_LONGITUD_MENSAJE}"),
            ),
        )
        if not minimized
        else None,
    )


@component
def ChatWidget():
    chat = use_chat()
    is_open, set_is_open = use_state(False)
    is_minimized, set_is_minimized = use_state(False)
    has_new_message, set_has_new_message = use_state(False)
    panel_mounted, set_panel_mounted = use_state(False)
    focus_count, set_focus_count = use_state(0)
    history_loaded = use_ref(False)

    @use_effect(dependencies=[])
    def schedule_prefetch():
        task = asyncio.create_task(prefetch_panel(set_panel_mounted))
        return lambda: task.cancel()

    @use_effect(dependencies=[last_message_key(chat["messages"])])
    def flag_new_message():
        if should_flag_new_message(chat["messages"], is_open, is_minimized):
            set_has_new_message(True)

    async def handle_open():
        set_panel_mounted(True)
        set_is_open(True)
        set_is_minimized(False)
        set_has_new_message(False)
        set_focus_count(lambda c: c + 1)
        # Recupera la conversación previa de la sesión una sola vez
        if chat["session_token"] and not chat["messages"] and not history_loaded.current:
            history_loaded.current = True
            await chat["reconnect"]()

    def handle_close():
        set_is_open(False)
        set_is_minimized(False)

    def handle_minimize():
        if is_minimized:
            set_has_new_message(False)
            set_focus_count(lambda c: c + 1)
        set_is_minimized(not is_minimized)

    async def handle_launcher_click(e):
        if is_open:
            handle_close()
            return
        await handle_open()

    return html.div(
        {"class_name": "chat-widget"},
        ChatPanel(
            chat=chat,
            visible=is_open,
            minimized=is_minimized,
            on_close=handle_close,
            on_minimize=handle_minimize,
        )
        if panel_mounted
        else None,
        html.button(
            {
                "type": "button",
                "class_name": CHAT_LAUNCHER,
                "aria-label": "Cerrar asistente virtual" if is_open else "Abrir asistente virtual",
                "aria-expanded": str(is_open).lower(),
                "on_click": handle_launcher_click,
            },
            html.span({"class_name": "material-symbols-outlined"}, "close" if is_open else "chat"),
            html.span({"class_name": CHAT_BADGE_NEW, "aria-label": "Mensaje nuevo"}) if has_new_message else None,
        ),
        # Enfoca el campo de texto cada vez que el panel se abre o se restaura
        html.script(
            {"key": f"chat-focus-{focus_count}"},
            f"setTimeout(() => document.getElementById('{INPUT_ID}')?.focus(), 50);",
        )
        if focus_count and is_open and not is_minimized
        else None,
    )
