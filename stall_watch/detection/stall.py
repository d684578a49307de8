"""Detección de series estancadas.

Una serie está estancada cuando todos sus valores son textualmente idénticos
al primero. La comparación es sobre el texto serializado por el store, no
numérica: "21.0" y "21.00" cuentan como cambio.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Mapping, Optional

from ..metrics.models import Series

DEFAULT_DEVICE_LABEL = "device_id"

# Una sola muestra no demuestra que el valor esté congelado
MIN_SAMPLES = 2


def is_stalled(series: Series) -> bool:
    values = series.sample_values
    if len(values) < MIN_SAMPLES:
        return False

    reference = values[0]
    return all(value == reference for value in values[1:])


def extract_device_id(labels: Mapping[str, str], label: str = DEFAULT_DEVICE_LABEL) -> Optional[str]:
    """Devuelve el device id del label set, o None si el label no está."""
    return labels.get(label)


def stalled_devices(series: Iterable[Series], label: str = DEFAULT_DEVICE_LABEL) -> Iterator[str]:
    """Device ids de las series estancadas, en el orden del store.

    Las series estancadas sin label de identidad se descartan sin error.
    """
    for item in series:
        if not is_stalled(item):
            continue
        device_id = extract_device_id(item.labels, label)
        if device_id is not None:
            yield device_id
