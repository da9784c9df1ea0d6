"""Device-resident playback: amplifier, stream decoder and the state machine."""

from .controller import PlaybackController, PlaybackSnapshot, PlaybackState, StreamSession
from .hardware import (
    Amplifier,
    AudioSink,
    CommandSink,
    HttpStreamDecoder,
    NullSink,
    StreamDecoder,
    SysfsGpioAmplifier,
    VirtualAmplifier,
)

__all__ = [
    "Amplifier",
    "AudioSink",
    "CommandSink",
    "HttpStreamDecoder",
    "NullSink",
    "PlaybackController",
    "PlaybackSnapshot",
    "PlaybackState",
    "StreamDecoder",
    "StreamSession",
    "SysfsGpioAmplifier",
    "VirtualAmplifier",
]
