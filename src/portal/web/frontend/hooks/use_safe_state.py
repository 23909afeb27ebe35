# portal/web/frontend/hooks/use_safe_state.py
from reactpy import use_effect, use_ref


def use_is_mounted():
    """
    Referencia que vale True mientras el componente está montado.
    Las tareas async la consultan antes de actualizar estado.
    """
    is_mounted = use_ref(True)

    @use_effect(dependencies=[])
    def lifecycle():
        is_mounted.current = True
        return lambda: setattr(is_mounted, "current", False)

    return is_mounted
