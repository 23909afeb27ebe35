# portal/web/frontend/shared/styles.py
"""
Clases CSS reutilizables del portal (Pico.css más las clases propias de
static/custom.css).

Uso:
    from portal.web.frontend.shared.styles import BUTTON_PRIMARY, BADGE_TIPO

    html.button({"class_name": BUTTON_PRIMARY}, "Guardar")
"""

# ============================================================================
# BOTONES
# ============================================================================

BUTTON_PRIMARY = "btn btn-primary"
BUTTON_SECONDARY = "secondary"
BUTTON_OUTLINE = "outline"
BUTTON_OUTLINE_SECONDARY = "outline secondary"
BUTTON_OUTLINE_DANGER = "outline danger"

# ============================================================================
# BADGES
# ============================================================================

TAG = "tag"
TAG_SECONDARY = "tag secondary"

# Tipo de resultado de búsqueda
BADGE_TIPO = {
    "tramite": "tag tag-tramite",
    "opa": "tag tag-opa",
    "faq": "tag tag-faq",
}
TIPO_LABELS = {"tramite": "Trámite", "opa": "OPA", "faq": "Pregunta frecuente"}

BADGE_PAGO = "tag tag-pago"
BADGE_GRATUITO = "tag tag-gratuito"
BADGE_ACTIVO = "tag tag-activo"
BADGE_INACTIVO = "tag secondary"

# ============================================================================
# LAYOUT
# ============================================================================

CONTAINER = "container"
GRID = "grid"
CARDS_CONTAINER = "cards-container"
RESULT_CARD = "result-card"
TABLE_CONTAINER = "table-container"
DASHBOARD_CONTROLS = "dashboard-controls"
CONTROLS_HEADER = "controls-header"
FILTER_BAR = "filter-bar"
SEARCH_INPUT = "search-input"
BREADCRUMB = "breadcrumb"

# ============================================================================
# ASISTENTE VIRTUAL
# ============================================================================

CHAT_LAUNCHER = "chat-launcher"
CHAT_PANEL = "chat-panel"
CHAT_PANEL_MINIMIZED = "chat-panel is-minimized"
CHAT_MESSAGES = "chat-messages"
CHAT_MESSAGE = {
    "user": "chat-message chat-message-user",
    "assistant": "chat-message chat-message-assistant",
    "system": "chat-message chat-message-system",
}
CHAT_BADGE_NEW = "chat-badge-new"
