"""Channel computation: propagation model, path cache, engine and export."""

from gscm.channel.history import ChannelHistory, ChannelType, FrameResult
from gscm.channel.propagation import GainMode, SPEED_OF_LIGHT

__all__ = [
    "ChannelHistory",
    "ChannelType",
    "FrameResult",
    "GainMode",
    "SPEED_OF_LIGHT",
]
