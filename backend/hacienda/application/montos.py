from decimal import Decimal, ROUND_HALF_UP
from typing import Any

CENTAVO = Decimal("0.01")
CERO = Decimal("0.00")


def dinero(valor: Any) -> Decimal:
    """Convierte a Decimal con 2 decimales (float pasa por str para no arrastrar binario)."""
    if valor is None:
        return CERO
    if isinstance(valor, float):
        valor = str(valor)
    return Decimal(valor).quantize(CENTAVO, rounding=ROUND_HALF_UP)


def a_float(valor: Any) -> float | None:
    """Dinero para JSON: número con 2 decimales."""
    if valor is None:
        return None
    return float(dinero(valor))
