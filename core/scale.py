"""
Serial scale reader.

The bench scale streams its display value over a serial line at 9600 baud
(e.g. "ST,GS,  1.250kg\\r\\n"). This module opens the port, decodes the byte
stream one line (frame) at a time, and pulls a weight out of each line.

Parsing rule:
    The first run of digits / decimal points that contains a digit is read
    as kilograms and converted to whole grams (round half up). Lines with
    no such run produce no observation.

Usage:
    with ScaleReader("/dev/ttyUSB0") as reader:
        for grams in reader.observations():
            print(grams)

The chunk generator is lazy, infinite and non-restartable. It ends when a
read returns no data (end of stream or a cancelled read) and always closes
the port on the way out. It never reopens the port by itself.
"""

from __future__ import annotations

import codecs
import logging
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterator, Optional

import serial

from .exceptions import DeviceUnavailable


DEFAULT_BAUDRATE = 9600

_WEIGHT_RUN_RE = re.compile(r"[0-9.]*[0-9][0-9.]*")
_DECIMAL_PREFIX_RE = re.compile(r"[0-9]*(?:\.[0-9]*)?")


def parse_weight_grams(chunk: str) -> Optional[int]:
    """
    Extract a weight in grams from one chunk of scale output.

    Args:
        chunk: Decoded text received from the scale

    Returns:
        Whole grams, or None if the chunk carries no number

    Example:
        >>> parse_weight_grams("ST,GS,  1.2505kg")
        1251
    """
    match = _WEIGHT_RUN_RE.search(chunk or "")
    if not match:
        return None

    # "1.250.3" reads as 1.250, like a float parse of the run would
    number = _DECIMAL_PREFIX_RE.match(match.group(0)).group(0)
    if not any(ch.isdigit() for ch in number):
        return None

    grams = Decimal(number) * 1000
    return int(grams.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class ScaleReader:
    """
    Scoped handle on the scale's serial stream.

    The handle is acquired by open() (or entering the context manager) and
    released by close(), by leaving the context manager, or when the chunk
    generator finishes for any reason.

    Attributes:
        port: Serial device path (e.g. '/dev/ttyUSB0' or 'COM3')
        baudrate: Line speed
        is_open: True while the stream is held
    """

    def __init__(
        self,
        port: Optional[str] = None,
        baudrate: int = DEFAULT_BAUDRATE,
        stream=None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the reader. Does not open the port.

        Args:
            port: Serial device path
            baudrate: Line speed (default 9600)
            stream: Already-open byte stream to read instead of a serial port
            logger: Logger instance (creates default if not provided)
        """
        self.port = port
        self.baudrate = baudrate
        self._stream = stream
        self._cancelled = False
        self._logger = logger or logging.getLogger("core.scale")

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def open(self) -> "ScaleReader":
        """
        Open the serial port.

        Raises:
            DeviceUnavailable: No port selected, or the port cannot be opened
        """
        if self._stream is not None:
            return self

        if not self.port:
            raise DeviceUnavailable("scale", "No scale port selected")

        try:
            # timeout=None blocks until data arrives; stop() cancels the read
            self._stream = serial.Serial(self.port, baudrate=self.baudrate, timeout=None)
        except (serial.SerialException, OSError, ValueError) as e:
            raise DeviceUnavailable(
                "scale",
                f"Cannot open scale on {self.port}: {e}",
                {"port": self.port, "baudrate": self.baudrate},
            ) from e

        self._cancelled = False
        self._logger.info(f"Scale opened on {self.port} @ {self.baudrate} bps")
        return self

    def close(self) -> None:
        """Release the stream. Safe to call multiple times."""
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.close()
        except (serial.SerialException, OSError) as e:
            self._logger.warning(f"Error closing scale stream: {e}")
        self._logger.info("Scale stream closed")

    def cancel(self) -> None:
        """
        Unblock a pending read from another thread.

        The chunk generator then ends and closes the stream.
        """
        self._cancelled = True
        stream = self._stream
        if stream is None:
            return
        cancel_read = getattr(stream, "cancel_read", None)
        if cancel_read is not None:
            cancel_read()
        else:
            self.close()

    def __enter__(self) -> "ScaleReader":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def chunks(self) -> Iterator[str]:
        """
        Yield one decoded line per scale frame until the stream ends.

        A line cut short by a cancelled read is dropped. A final line
        without a terminator at the end of the stream is still yielded.

        Raises:
            DeviceUnavailable: If the stream is not open, or fails while
                reading (unless the read was cancelled)
        """
        if self._stream is None:
            raise DeviceUnavailable("scale", "Scale is not connected")

        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            while True:
                data = self._read()
                if not data:
                    self._logger.info("Scale stream signalled end of data")
                    break
                if self._cancelled:
                    break
                text = decoder.decode(data)
                if text:
                    yield text
        except (serial.SerialException, OSError, TypeError) as e:
            # pyserial raises TypeError when the port is closed under a read
            if not self._cancelled:
                raise DeviceUnavailable("scale", f"Scale read failed: {e}") from e
        finally:
            self.close()

    def observations(self) -> Iterator[int]:
        """Yield a weight in grams for every line that carries one."""
        for chunk in self.chunks():
            grams = parse_weight_grams(chunk)
            if grams is None:
                continue
            yield grams

    def _read(self) -> bytes:
        stream = self._stream
        if stream is None:
            return b""
        # One frame per read; blocks until the terminator or a cancel_read()
        return stream.readline()
