from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

# Binary suffixes must be checked before the single-letter decimal ones
_SUFFIXES = (
    ("Ki", Decimal(1024)),
    ("Mi", Decimal(1024) ** 2),
    ("Gi", Decimal(1024) ** 3),
    ("Ti", Decimal(1024) ** 4),
    ("Pi", Decimal(1024) ** 5),
    ("Ei", Decimal(1024) ** 6),
    ("n", Decimal("0.000000001")),
    ("u", Decimal("0.000001")),
    ("m", Decimal("0.001")),
    ("k", Decimal(1000)),
    ("M", Decimal(1000) ** 2),
    ("G", Decimal(1000) ** 3),
    ("T", Decimal(1000) ** 4),
    ("P", Decimal(1000) ** 5),
    ("E", Decimal(1000) ** 6),
)


def parse_quantity(quantity) -> Decimal:
    """
    Parse kubernetes quantity to Decimal.
    Adapted from kubernetes-python utils. Unparseable input yields 0.
    """
    if quantity is None:
        return Decimal(0)
    if isinstance(quantity, (int, float, Decimal)):
        return Decimal(quantity)

    quantity = str(quantity)
    for suffix, multiplier in _SUFFIXES:
        if quantity.endswith(suffix):
            number, scale = quantity[: -len(suffix)], multiplier
            break
    else:
        number, scale = quantity, Decimal(1)

    try:
        return Decimal(number) * scale
    except InvalidOperation:
        return Decimal(0)


def memory_mebibytes(resources: Optional[Dict[str, str]]) -> int:
    """Returns the 'memory' entry of a resource map in Mi (0 when absent)."""
    if not resources:
        return 0
    return int(parse_quantity(resources.get("memory"))) // (1024 * 1024)
