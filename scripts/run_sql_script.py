import re
import sys
from pathlib import Path
from typing import List

# Add src to python path BEFORE importing portal modules
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from portal.common.config_loader import ConfigLoader  # noqa: E402
from portal.common.config_manager import ConfigManager  # noqa: E402
from portal.common.database import DatabaseConnector  # noqa: E402

# GO solo cuenta como separador en una línea propia
_SEPARADOR_GO = re.compile(r"^\s*GO\s*;?\s*$", re.IGNORECASE | re.MULTILINE)


def split_batches(sql_content: str) -> List[str]:
    return [b.strip() for b in _SEPARADOR_GO.split(sql_content) if b.strip()]


def run_script(script_path):
    print(f"Ejecutando script: {script_path}")

    db = None
    try:
        sql_config = ConfigManager.get_sql_server_config("SQL_PORTAL")
        db = DatabaseConnector(
            servidor=sql_config["servidor"],
            base_datos=sql_config["base_datos"],
            usuario=sql_config["usuario"],
            contrasena=sql_config["contrasena"],
            db_config_prefix="SQL_PORTAL",
        )

        with open(script_path, encoding="utf-8") as f:
            batches = split_batches(f.read())

        for i, batch in enumerate(batches):
            print(f"Ejecutando lote {i + 1}/{len(batches)}...")
            db.ejecutar_consulta(batch, es_select=False)

        print("Script ejecutado correctamente.")

    except Exception as e:
        print(f"Error ejecutando el script: {e}")
        sys.exit(1)
    finally:
        if db:
            db.cerrar_conexiones_pool()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Uso: python scripts/run_sql_script.py <archivo.sql>")
        sys.exit(1)

    ConfigLoader.initialize_service("web")
    run_script(sys.argv[1])
