# =============================================================================
# Inner Voice - Capture Sources
# =============================================================================
# Provides the pull-based frame sources used by the observer pipeline:
#   - CameraCapture: a live video device read through OpenCV.
#   - ScreenCapture: a monitor grabbed with mss.
# Both return an encoded JPEG Frame, or None when no frame is available, so
# that a tick can be skipped silently.
#
# IntervalTimer drives the polling loop: it fires a callback on a fixed
# cadence in a background thread until stopped.
# =============================================================================

import io
import logging
import threading
import uuid
from typing import Callable, Optional

import cv2
import mss
from PIL import Image

from observer.session import Frame, utc_now_iso

logger = logging.getLogger(__name__)


def _new_frame(data: bytes) -> Frame:
    return Frame(frame_id=str(uuid.uuid4()), data=data, captured_at=utc_now_iso())


class CameraCapture:
    """
    Frame source backed by an OpenCV video device.

    The device is opened lazily on the first read and reopened on a later
    tick if it was not ready. Width and height are requested from the driver
    as hints; the device may deliver a different resolution.

    Args:
        device_index: OpenCV camera index (0 = default webcam).
        width:        Requested frame width in pixels.
        height:       Requested frame height in pixels.
        jpeg_quality: JPEG encoder quality (0-100).
    """

    def __init__(
        self,
        device_index: int = 0,
        width: int = 640,
        height: int = 480,
        jpeg_quality: int = 92,
    ):
        self._device_index = device_index
        self._width = width
        self._height = height
        self._jpeg_quality = jpeg_quality
        self._capture: Optional[cv2.VideoCapture] = None
        self._lock = threading.Lock()

    def _open(self) -> bool:
        if self._capture is not None and self._capture.isOpened():
            return True

        capture = cv2.VideoCapture(self._device_index)
        if not capture.isOpened():
            capture.release()
            logger.debug("Camera %d not ready", self._device_index)
            return False

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self._width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self._height)
        self._capture = capture
        logger.info(
            "Opened camera %d (requested %dx%d)",
            self._device_index,
            self._width,
            self._height,
        )
        return True

    def get_current_frame(self) -> Optional[Frame]:
        """
        Read and JPEG-encode the current video frame.

        Returns:
            A Frame, or None if the device is not ready or yields no image.
        """
        with self._lock:
            if not self._open():
                return None

            ok, image = self._capture.read()
            if not ok or image is None:
                logger.debug("Camera %d returned no frame", self._device_index)
                return None

        ok, buffer = cv2.imencode(
            ".jpg", image, [int(cv2.IMWRITE_JPEG_QUALITY), self._jpeg_quality]
        )
        if not ok:
            logger.debug("JPEG encoding failed for camera %d", self._device_index)
            return None

        data = buffer.tobytes()
        if not data:
            return None
        return _new_frame(data)

    def close(self) -> None:
        """Release the video device."""
        with self._lock:
            if self._capture is not None:
                self._capture.release()
                self._capture = None
                logger.info("Camera %d released", self._device_index)


class ScreenCapture:
    """
    Frame source that grabs a monitor with mss.

    Args:
        monitor_index: Index of the monitor to capture (1 = primary).
        jpeg_quality:  JPEG encoder quality (0-100).
    """

    def __init__(self, monitor_index: int = 1, jpeg_quality: int = 92):
        self._monitor_index = monitor_index
        self._jpeg_quality = jpeg_quality

    def get_current_frame(self) -> Optional[Frame]:
        """
        Capture and JPEG-encode a screenshot of the configured monitor.

        Returns:
            A Frame, or None if the monitor does not exist.
        """
        with mss.mss() as sct:
            # mss monitor list: index 0 = all monitors combined, 1+ = individual
            if self._monitor_index >= len(sct.monitors):
                logger.debug("Monitor %d not available", self._monitor_index)
                return None
            raw = sct.grab(sct.monitors[self._monitor_index])
            # mss returns BGRA; convert to PIL Image then to RGB
            image = Image.frombytes("RGB", raw.size, raw.bgra, "raw", "BGRX")

        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=self._jpeg_quality)
        return _new_frame(buffer.getvalue())

    def close(self) -> None:
        pass


class IntervalTimer:
    """
    Fires a callback on a fixed interval in a background daemon thread.

    The first tick fires immediately. Exceptions raised by the callback are
    logged and never stop the timer.

    Args:
        interval: Seconds between consecutive ticks.
        callback: Zero-argument function invoked on every tick.
    """

    def __init__(self, interval: float, callback: Callable[[], None]):
        self._interval = interval
        self._callback = callback
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            logger.warning("Timer is already running.")
            return

        self._stop_event.clear()

        def _tick_loop():
            logger.info("Polling loop started (interval=%.2fs)", self._interval)
            while not self._stop_event.is_set():
                try:
                    self._callback()
                except Exception:
                    logger.exception("Error during tick")

                # Returns early as soon as stop() sets the event
                self._stop_event.wait(timeout=self._interval)

            logger.info("Polling loop stopped.")

        self._thread = threading.Thread(target=_tick_loop, name="inner-voice-timer", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Signal the loop to stop and wait for the thread to finish."""
        self._stop_event.set()
        if self._thread is not None:
            if self._thread is not threading.current_thread():
                self._thread.join(timeout=5.0)
            self._thread = None
