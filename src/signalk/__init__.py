"""Signal K delta construction and publishing sinks."""

from .delta import Delta, SELF_CONTEXT, vessel_context
from .sink import DeltaSink, CallbackSink, MqttSink, MqttSinkConfig

__all__ = [
    'Delta', 'SELF_CONTEXT', 'vessel_context',
    'DeltaSink', 'CallbackSink', 'MqttSink', 'MqttSinkConfig',
]
