"""Producer/consumer scheduling: generator, writer, reader pool."""

from pubstream.service.generator import EventGenerator
from pubstream.service.reader import Reader
from pubstream.service.stream import StreamService
from pubstream.service.ticker import ticks
from pubstream.service.writer import Writer

__all__ = ["EventGenerator", "Reader", "StreamService", "Writer", "ticks"]
