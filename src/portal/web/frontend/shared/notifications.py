# portal/web/frontend/shared/notifications.py
import asyncio
import uuid
from typing import Any, Callable, Dict

from reactpy import component, create_context, event, html, use_context, use_effect, use_state

NotificationContext = create_context(None)

AUTO_DISMISS_SECONDS = 5

ESTILOS_TOAST = {
    "success": {"class_name": "toast-success", "icon": "✓", "aria_label": "Mensaje de éxito"},
    "error": {"class_name": "toast-error", "icon": "✕", "aria_label": "Mensaje de error"},
    "warning": {"class_name": "toast-warning", "icon": "⚠", "aria_label": "Mensaje de advertencia"},
    "info": {"class_name": "toast-info", "icon": "ℹ", "aria_label": "Mensaje informativo"},
}


def use_notification_state() -> Dict[str, Any]:
    """Estado de las notificaciones que el componente raíz publica en NotificationContext."""
    notifications, set_notifications = use_state([])

    def show_notification(message: str, style: str = "success"):
        new_id = str(uuid.uuid4())
        set_notifications(lambda old: old + [{"id": new_id, "message": message, "style": style}])

    def dismiss_notification(notification_id: str):
        set_notifications(lambda old: [n for n in old if n["id"] != notification_id])

    return {
        "notifications": notifications,
        "show_notification": show_notification,
        "dismiss_notification": dismiss_notification,
    }


def use_notify() -> Callable[..., None]:
    """Devuelve show_notification, o una función nula fuera del NotificationContext."""
    ctx = use_context(NotificationContext)
    if not ctx:
        return lambda message, style="info": None
    return ctx["show_notification"]


@component
def Toast(message: str, style: str, on_dismiss: Callable):
    """Notificación individual con animación de entrada y cierre automático."""
    is_visible, set_is_visible = use_state(False)

    @use_effect(dependencies=[])
    def animate_in():
        set_is_visible(True)

    @use_effect(dependencies=[])
    def setup_auto_dismiss():
        async def dismiss_after_delay():
            await asyncio.sleep(AUTO_DISMISS_SECONDS)
            on_dismiss()

        task = asyncio.create_task(dismiss_after_delay())
        return lambda: task.cancel()

    config = ESTILOS_TOAST.get(style, ESTILOS_TOAST["info"])
    class_name = f"toast {config['class_name']}" + (" show" if is_visible else "")

    attributes = {"class_name": class_name, "role": "alert", "aria-label": config["aria_label"]}
    if style == "error":
        attributes["aria-invalid"] = "true"

    return html.article(
        attributes,
        html.div(
            {"class_name": "toast-content"},
            html.div(
                {"class_name": "toast-message"},
                html.span({"class_name": "toast-icon"}, config["icon"]),
                html.span({"class_name": "toast-text"}, message),
            ),
            html.button(
                {
                    "class_name": "toast-close",
                    "aria-label": "Cerrar notificación",
                    "on_click": event(lambda e: on_dismiss(), prevent_default=True),
                },
                "×",
            ),
        ),
    )


@component
def ToastContainer():
    notification_ctx = use_context(NotificationContext)
    if not notification_ctx:
        return None

    dismiss_notification = notification_ctx["dismiss_notification"]

    return html.div(
        {"class_name": "toast-container", "aria-live": "polite"},
        html.div(
            {"class_name": "toast-stack"},
            [
                Toast(
                    key=n["id"],
                    message=n["message"],
                    style=n["style"],
                    on_dismiss=lambda nid=n["id"]: dismiss_notification(nid),
                )
                for n in notification_ctx["notifications"]
            ],
        ),
    )
