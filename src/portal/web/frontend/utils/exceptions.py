# portal/web/frontend/utils/exceptions.py
from typing import List, Optional


class APIException(Exception):
    """Error devuelto por la API del portal o de conexión con ella."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

    def __str__(self):
        if self.status_code:
            return f"[API Error {self.status_code}]: {self.message}"
        return f"[API Error]: {self.message}"

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @property
    def is_conflict(self) -> bool:
        return self.status_code == 409

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429


class ValidationException(Exception):
    """Errores de validación detectados antes de llamar a la API."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.message = message
        self.errors = errors or []
        super().__init__(self.message)

    def __str__(self):
        return f"[Validation Error]: {self.message} - {self.errors}"
