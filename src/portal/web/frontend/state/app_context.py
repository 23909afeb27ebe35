# portal/web/frontend/state/app_context.py
"""
Contexto global de la aplicación para inyección de dependencias.

Comparte el cliente de la API, la sesión del panel de administración (con
su cliente autenticado) y el token de sesión del asistente virtual, que deben
sobrevivir a la navegación entre páginas.

Uso:
    # En app.py (componente raíz)
    context_value = {
        "api_client": api_client,
        "admin_session": {"token": ..., "rol": "admin"} o None,
        "set_admin_session": set_admin_session,
        "admin_api_client": api_client.with_token(token),
        "chat_session_token": token,
        "set_chat_session_token": set_token,
    }
    return AppContext(children..., value=context_value)

    # En hooks o componentes
    from portal.web.frontend.state.app_context import use_app_context
    api_client = use_app_context()["api_client"]
"""

from typing import Any, Dict

from reactpy import create_context, use_context

AppContext = create_context({})


def use_app_context() -> Dict[str, Any]:
    """Devuelve el diccionario de dependencias compartidas (api_client, token del chat)."""
    return use_context(AppContext)


def use_api_client():
    """Atajo para obtener el APIClient inyectado en la raíz."""
    context = use_context(AppContext)
    if "api_client" not in context:
        raise RuntimeError("use_api_client() requiere un AppContext con 'api_client'.")
    return context["api_client"]
