import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


class ConfigLoader:
    """
    Cargador de configuración estandarizado para los servicios del portal.
    Jerarquía: .env de servicio > variables de entorno > .env general.
    """

    _initialized = False
    _project_root: Optional[Path] = None

    @classmethod
    def initialize_service(cls, service_name: str) -> None:
        """
        Inicializa la configuración para un servicio. La raíz del proyecto es el primer
        directorio ascendente que contiene 'pyproject.toml'.
        """
        if cls._initialized:
            return

        try:
            project_root = Path(__file__).resolve()
            while not (project_root / "pyproject.toml").exists():
                if project_root.parent == project_root:
                    raise FileNotFoundError
                project_root = project_root.parent
            cls._project_root = project_root
        except (FileNotFoundError, AttributeError):
            cls._project_root = Path.cwd()
            print(
                f"ADVERTENCIA CONFIG_LOADER: No se encontró 'pyproject.toml'. Se usa el directorio actual como raíz: {cls._project_root}",
                file=sys.stderr,
            )

        cls._load_environment_variables(service_name)
        cls._initialized = True
        os.environ["PORTAL_CONFIG_INITIALIZED"] = "True"

        print(f"CONFIG_LOADER: Servicio '{service_name}' inicializado (raíz: {cls._project_root})", file=sys.stderr)

    @classmethod
    def _load_environment_variables(cls, service_name: str) -> None:
        # 1. .env general, sin pisar variables ya definidas
        project_env_path = cls._project_root / ".env"
        if project_env_path.exists():
            print(f"CONFIG_LOADER: Cargando .env general desde {project_env_path}", file=sys.stderr)
            load_dotenv(dotenv_path=project_env_path, override=False)

        # 2. .env del servicio en src/portal/{servicio}/.env
        service_env_path = cls._project_root / "src" / "portal" / service_name / ".env"
        if service_env_path.exists():
            print(f"CONFIG_LOADER: Cargando .env del servicio desde {service_env_path}", file=sys.stderr)
            load_dotenv(dotenv_path=service_env_path, override=True)

    @classmethod
    def get_project_root(cls) -> Path:
        """Retorna la ruta raíz del proyecto."""
        if not cls._initialized:
            raise RuntimeError("ConfigLoader no ha sido inicializado. Llama a initialize_service() primero.")
        return cls._project_root

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._initialized

    @classmethod
    def reset(cls) -> None:
        """Resetea el estado del ConfigLoader (útil para testing)."""
        cls._initialized = False
        cls._project_root = None
        os.environ.pop("PORTAL_CONFIG_INITIALIZED", None)
