"""
Image Request Messages
======================

Validación del payload de image requests (pydantic) y mapeo a
DeliveryRequest.

Payload (JSON):
    {
        "binning_x": 2, "binning_y": 2,
        "roi": {"x_offset": 100, "y_offset": 50, "width": 200, "height": 100},
        "mode": 1,                 # 0=ONCE, 1=PUBLISH_FREQ, 2=ALL (o alias string)
        "publish_frequency": 30.0  # Hz, solo PUBLISH_FREQ
    }

Convenciones:
- binning 0 == 1 (camera_info)
- roi width/height 0 == extensión restante
- mode ausente o desconocido → FREE_RUN
"""
import json
from typing import Any, Dict, Union

from pydantic import BaseModel, Field

from ..delivery import DeliveryMode, DeliveryRequest
from ..transform import TransformConfig


class RequestROI(BaseModel):
    """ROI pedida, en píxeles del frame de entrada"""
    x_offset: int = Field(default=0, ge=0)
    y_offset: int = Field(default=0, ge=0)
    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)


class ImageRequestMessage(BaseModel):
    """Image request tal como llega por MQTT"""
    binning_x: int = Field(default=0, ge=0, description="Horizontal decimation (0 == 1)")
    binning_y: int = Field(default=0, ge=0, description="Vertical decimation (0 == 1)")
    roi: RequestROI = Field(default_factory=RequestROI)
    # Sin coerción: from_wire resuelve cualquier valor (desconocido → FREE_RUN)
    mode: Any = Field(
        default=None,
        description="Delivery mode enumerator or alias"
    )
    publish_frequency: float = Field(
        default=0.0,
        allow_inf_nan=False,
        description="Requested publish rate (Hz) for PUBLISH_FREQ"
    )

    def to_delivery_request(self) -> DeliveryRequest:
        config = TransformConfig(
            decimation_x=max(self.binning_x, 1),
            decimation_y=max(self.binning_y, 1),
            x_offset=self.roi.x_offset,
            y_offset=self.roi.y_offset,
            width=self.roi.width,
            height=self.roi.height,
        )
        return DeliveryRequest(
            config=config,
            mode=DeliveryMode.from_wire(self.mode),
            publish_frequency=self.publish_frequency,
        )


def parse_image_request(payload: Union[bytes, str, Dict[str, Any]]) -> DeliveryRequest:
    """
    Payload crudo → DeliveryRequest validada.

    Raises:
        json.JSONDecodeError: JSON inválido
        pydantic.ValidationError: Campos inválidos (ej: offsets negativos)
    """
    if isinstance(payload, bytes):
        payload = payload.decode('utf-8')
    if isinstance(payload, str):
        payload = json.loads(payload)

    return ImageRequestMessage.model_validate(payload).to_delivery_request()
