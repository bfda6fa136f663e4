"""
Scale service with a background read thread.

This service owns the scale connection and keeps the latest weight for the
label form. It runs one background thread that blocks on serial reads and
overwrites the current weight with every observation.

Thread Safety:
    - The read thread is the only writer of current_weight_grams
    - Readers get whatever value was written last (display only, no lock)
    - stop() cancels the blocked read, which ends the loop and closes the port

Usage:
    # Operator presses "connect scale"
    scale_service = ScaleService(lambda: ScaleReader("/dev/ttyUSB0", 9600))
    scale_service.start()

    # In routes
    grams = scale_service.current_weight_grams

    # At app shutdown
    scale_service.stop()

The loop does not reconnect by itself. If the scale is unplugged the
service stops and last_error says why; the operator reconnects.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from core.exceptions import CanLabelerError, DeviceUnavailable
from core.scale import ScaleReader
from logging_config import get_logger, set_thread_name


# Module logger
logger = get_logger(__name__)


class ScaleService:
    """
    Background service holding the live scale reading.

    Attributes:
        current_weight_grams: Last observed weight (0 until the first reading)
        last_reading_at: When the last observation arrived
        last_error: Message of the error that ended the last read loop
        is_running: Whether the read thread is active
    """

    def __init__(self, reader_factory: Callable[[], ScaleReader]):
        """
        Initialize scale service. Does not touch the port.

        Args:
            reader_factory: Returns a new, unopened ScaleReader
        """
        self._reader_factory = reader_factory
        self._reader: Optional[ScaleReader] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

        self.current_weight_grams = 0
        self.last_reading_at: Optional[datetime] = None
        self.last_error: Optional[str] = None

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def start(self) -> None:
        """
        Open the scale and start the read thread.

        Safe to call while running - does nothing then.

        Raises:
            DeviceUnavailable: If the port cannot be opened
        """
        with self._lock:
            if self.is_running:
                logger.warning("Scale service already running")
                return

            reader = self._reader_factory()
            try:
                reader.open()
            except DeviceUnavailable as e:
                self.last_error = e.message
                logger.error(f"Scale not connected: {e}")
                raise

            self._reader = reader
            self.last_error = None
            self._thread = threading.Thread(
                target=self._read_loop,
                args=(reader,),
                name="Scale",
                daemon=True,
            )
            self._thread.start()

        logger.info("Scale read thread started")

    def stop(self, timeout: float = 5.0) -> None:
        """
        Stop the read thread and release the port.

        Safe to call multiple times.
        """
        with self._lock:
            reader, thread = self._reader, self._thread
            self._reader = None

        if reader is None:
            return

        logger.info("Stopping scale read thread...")
        reader.cancel()

        if thread and thread.is_alive():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("Scale thread did not stop cleanly")

        # The loop closes the reader on exit; this covers a thread that never ran
        reader.close()
        logger.info("Scale read thread stopped")

    def _read_loop(self, reader: ScaleReader) -> None:
        """Background thread main loop."""
        set_thread_name("Scale")
        logger.info("Scale read loop starting")

        try:
            for grams in reader.observations():
                self.current_weight_grams = grams
                self.last_reading_at = datetime.now(timezone.utc)
                logger.debug(f"Weight: {grams} g")
        except CanLabelerError as e:
            self.last_error = e.message
            logger.error(f"Scale read loop ended: {e}")
        finally:
            reader.close()

        logger.info("Scale read loop exiting")

    def to_dict(self) -> dict:
        return {
            "connected": self.is_running,
            "weight_grams": self.current_weight_grams,
            "last_reading_at": self.last_reading_at.isoformat() if self.last_reading_at else None,
            "error": self.last_error,
        }
