"""
Label printer sinks.

Both sinks take a rendered ZPL payload and hand it to the printer as raw
bytes. What the printer does with it afterwards (queueing, retries, ribbon
out) is the printer's business.

- NetworkLabelPrinter: raw TCP, usually port 9100 (JetDirect)
- DeviceLabelPrinter: a local character device such as /dev/usb/lp0

Each send opens and closes its own connection, so a printer restart
between labels needs no special handling.
"""

from __future__ import annotations

import logging
import socket
from pathlib import Path
from typing import Optional

from .exceptions import DeviceUnavailable
from .interfaces import LabelPrinter


DEFAULT_RAW_PORT = 9100
PAYLOAD_ENCODING = "utf-8"


class NetworkLabelPrinter(LabelPrinter):
    """Send payloads to a networked label printer over raw TCP."""

    name = "printer"

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_RAW_PORT,
        timeout_seconds: float = 5.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.host = host
        self.port = port
        self.timeout_seconds = timeout_seconds
        self._logger = logger or logging.getLogger("core.printers")

    def send(self, payload: str) -> None:
        """
        Send one payload.

        Raises:
            DeviceUnavailable: If no host is configured or the connection fails
        """
        if not self.host:
            raise DeviceUnavailable("printer", "No label printer configured")

        data = payload.encode(PAYLOAD_ENCODING)
        try:
            with socket.create_connection((self.host, self.port), timeout=self.timeout_seconds) as sock:
                sock.sendall(data)
        except OSError as e:
            raise DeviceUnavailable(
                "printer",
                f"Cannot reach label printer at {self.host}:{self.port}: {e}",
                {"host": self.host, "port": self.port},
            ) from e

        self._logger.info(f"Sent {len(data)} bytes to {self.host}:{self.port}")


class DeviceLabelPrinter(LabelPrinter):
    """Write payloads to a local printer device file."""

    name = "printer"

    def __init__(self, device_path: str, logger: Optional[logging.Logger] = None):
        self.device_path = device_path
        self._logger = logger or logging.getLogger("core.printers")

    def send(self, payload: str) -> None:
        """
        Write one payload to the device.

        Raises:
            DeviceUnavailable: If no device is configured or it cannot be written
        """
        if not self.device_path:
            raise DeviceUnavailable("printer", "No label printer device configured")

        data = payload.encode(PAYLOAD_ENCODING)
        try:
            with open(Path(self.device_path), "wb") as device:
                device.write(data)
        except OSError as e:
            raise DeviceUnavailable(
                "printer",
                f"Cannot write to label printer {self.device_path}: {e}",
                {"device": self.device_path},
            ) from e

        self._logger.info(f"Wrote {len(data)} bytes to {self.device_path}")
