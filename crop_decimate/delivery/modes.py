"""
Delivery Modes
==============

Modo de entrega de una request (ONCE, RATE_LIMITED, FREE_RUN).

Wire enumerators (compatibles con DownSampledImageRequest):
- 0 → ONCE          (publica una vez al recibir la request)
- 1 → RATE_LIMITED  (publica con timer a frecuencia acotada)
- 2 → FREE_RUN      (publica cada frame que llega)

Cualquier otro valor → FREE_RUN (fallback observado en producción).
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..transform import TransformConfig


class DeliveryMode(Enum):
    ONCE = "once"
    RATE_LIMITED = "rate_limited"
    FREE_RUN = "free_run"

    @classmethod
    def from_wire(cls, value: Any) -> 'DeliveryMode':
        """
        Mapea el enumerador del wire a DeliveryMode.

        Args:
            value: int (0/1/2), float entero o alias string ("once", "publish_freq", "all", ...)

        Returns:
            DeliveryMode (FREE_RUN si el valor no se reconoce)
        """
        if isinstance(value, bool):
            return cls.FREE_RUN
        if isinstance(value, int):
            return _WIRE_INTS.get(value, cls.FREE_RUN)
        if isinstance(value, float) and value.is_integer():
            return _WIRE_INTS.get(int(value), cls.FREE_RUN)
        if isinstance(value, str):
            key = value.strip().lower()
            if key.lstrip('-').isdigit():
                return _WIRE_INTS.get(int(key), cls.FREE_RUN)
            return _WIRE_ALIASES.get(key, cls.FREE_RUN)
        return cls.FREE_RUN


_WIRE_INTS = {
    0: DeliveryMode.ONCE,
    1: DeliveryMode.RATE_LIMITED,
    2: DeliveryMode.FREE_RUN,
}

_WIRE_ALIASES = {
    "once": DeliveryMode.ONCE,
    "rate_limited": DeliveryMode.RATE_LIMITED,
    "publish_freq": DeliveryMode.RATE_LIMITED,
    "free_run": DeliveryMode.FREE_RUN,
    "all": DeliveryMode.FREE_RUN,
}


@dataclass(frozen=True)
class DeliveryRequest:
    """
    Request activa del cliente.

    Reemplaza por completo a la request anterior al llegar.
    publish_frequency solo tiene sentido en RATE_LIMITED.
    """
    config: TransformConfig
    mode: DeliveryMode = DeliveryMode.FREE_RUN
    publish_frequency: float = 0.0
