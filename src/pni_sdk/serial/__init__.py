"""Serial communication layer."""

from pni_sdk.serial.channel import Channel
from pni_sdk.serial.connection import SerialConnection, Transport
from pni_sdk.serial.reader import FrameReader
from pni_sdk.serial.writer import FrameWriter

__all__ = ["Channel", "SerialConnection", "Transport", "FrameReader", "FrameWriter"]
