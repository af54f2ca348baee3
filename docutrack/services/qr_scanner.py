"""QR code decoding for scan-to-receive.

Reads frames from a camera with OpenCV and decodes QR codes with
cv2.QRCodeDetector. Decoded text is handed to a callback; the caller
passes it to RoutingEngine.scan_receive().

Usage:
    with QrScanner(camera_index=0) as scanner:
        scanner.scan(lambda text: engine.scan_receive(text, user))

The capture device is always released when the context exits, whether the
scan ended by decoding a code, by stop(), or by an error.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, List, Optional, Union

import cv2

from docutrack.errors import ExternalServiceFailure

logger = logging.getLogger(__name__)


def _decode(detector: Any, frame: Any) -> Optional[str]:
    text, _points, _straight = detector.detectAndDecode(frame)
    text = (text or "").strip()
    return text or None


def decode_image(path: Union[str, Path], detector: Any = None) -> Optional[str]:
    """Decode a QR code from a still image (e.g. a photographed slip).

    Returns:
        Decoded text, or None if no QR code was found

    Raises:
        ExternalServiceFailure: If the image cannot be read
    """
    image = cv2.imread(str(path))
    if image is None:
        raise ExternalServiceFailure(f"Could not read image: {path}", service="scanner")
    return _decode(detector or cv2.QRCodeDetector(), image)


class QrScanner:
    """Camera-backed QR reader.

    Args:
        camera_index: OpenCV device index
        capture_factory: Opens a capture for an index (cv2.VideoCapture)
        detector: Object with detectAndDecode(frame); defaults to
                  cv2.QRCodeDetector()
        max_failed_reads: Consecutive failed frame reads before giving up
    """

    def __init__(
        self,
        camera_index: int = 0,
        capture_factory: Callable[[int], Any] = cv2.VideoCapture,
        detector: Any = None,
        max_failed_reads: int = 30,
    ):
        self.camera_index = camera_index
        self._capture_factory = capture_factory
        self._detector = detector or cv2.QRCodeDetector()
        self._max_failed_reads = max_failed_reads
        self._capture = None
        self._running = False

    def __enter__(self) -> QrScanner:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._capture is not None

    def open(self) -> None:
        """Open the camera.

        Raises:
            ExternalServiceFailure: If the device cannot be opened
        """
        if self._capture is not None:
            return
        capture = self._capture_factory(self.camera_index)
        if capture is None or not capture.isOpened():
            if capture is not None:
                capture.release()
            raise ExternalServiceFailure(
                f"Could not access camera {self.camera_index}. Please grant permission and try again.",
                service="scanner",
            )
        self._capture = capture
        logger.info("Camera %d opened for QR scanning", self.camera_index)

    def close(self) -> None:
        self._running = False
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info("Camera %d released", self.camera_index)

    def stop(self) -> None:
        """End a running scan() loop after the current frame."""
        self._running = False

    def scan(self, on_decoded: Callable[[str], Any], stop_on_first: bool = True) -> List[str]:
        """Read frames until a code is decoded or stop() is called.

        Args:
            on_decoded: Called with the decoded text of each QR code
            stop_on_first: Return after the first decoded code

        Returns:
            Decoded texts in the order they were seen
        """
        self.open()
        self._running = True
        decoded: List[str] = []
        failed_reads = 0
        last_text: Optional[str] = None

        while self._running:
            ok, frame = self._capture.read()
            if not ok:
                failed_reads += 1
                if failed_reads >= self._max_failed_reads:
                    self._running = False
                    raise ExternalServiceFailure("Camera stopped delivering frames.", service="scanner")
                continue
            failed_reads = 0

            text = _decode(self._detector, frame)
            # The same code stays in view for many frames
            if text is None or text == last_text:
                continue
            last_text = text
            decoded.append(text)
            logger.info("Decoded QR code %r", text)
            on_decoded(text)
            if stop_on_first:
                self._running = False

        return decoded
