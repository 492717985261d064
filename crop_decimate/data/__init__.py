"""
Data Plane - Frame publishing, upstream source and consumer presence
"""
from .plane import MQTTDataPlane
from .source import MQTTFrameSource
from .presence import SubscriberTracker
from .buffer import FrameBuffer
from .codec import CodecError, decode_pair, encode_pair

__all__ = [
    "MQTTDataPlane",
    "MQTTFrameSource",
    "SubscriberTracker",
    "FrameBuffer",
    "CodecError",
    "encode_pair",
    "decode_pair",
]
