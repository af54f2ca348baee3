import pytest

from docutrack.errors import ExternalServiceFailure
from docutrack.services import qr_scanner
from docutrack.services.qr_scanner import QrScanner, decode_image


class FakeCapture:
    def __init__(self, frames, opened=True):
        self.frames = list(frames)
        self.opened = opened
        self.released = False

    def isOpened(self):
        return self.opened

    def read(self):
        if not self.frames:
            return False, None
        return True, self.frames.pop(0)

    def release(self):
        self.released = True


class FakeDetector:
    """Treats each frame as the text it encodes ("" means no code in view)."""

    def detectAndDecode(self, frame):
        return frame, None, None


def _scanner(capture, **kwargs):
    return QrScanner(camera_index=0, capture_factory=lambda index: capture, detector=FakeDetector(), **kwargs)


def test_scan_stops_on_first_code_and_releases_camera():
    capture = FakeCapture(["", "", " doc-1 ", "doc-2"])
    seen = []

    with _scanner(capture) as scanner:
        decoded = scanner.scan(seen.append)

    assert decoded == ["doc-1"]
    assert seen == ["doc-1"]
    assert capture.released
    assert not scanner.is_open


def test_continuous_scan_skips_repeated_frames_until_stopped():
    capture = FakeCapture(["doc-1", "doc-1", "doc-2", "doc-3"])
    seen = []

    with _scanner(capture) as scanner:
        def on_decoded(text):
            seen.append(text)
            if text == "doc-2":
                scanner.stop()

        scanner.scan(on_decoded, stop_on_first=False)

    assert seen == ["doc-1", "doc-2"]


def test_camera_that_cannot_open_raises():
    capture = FakeCapture([], opened=False)

    with pytest.raises(ExternalServiceFailure) as exc_info:
        with _scanner(capture):
            pass
    assert exc_info.value.service == "scanner"
    assert capture.released


def test_camera_that_stops_delivering_frames_raises_and_releases():
    capture = FakeCapture([""])

    with pytest.raises(ExternalServiceFailure):
        with _scanner(capture, max_failed_reads=3) as scanner:
            scanner.scan(lambda text: None)
    assert capture.released


def test_decode_image_reports_unreadable_file(tmp_path, monkeypatch):
    monkeypatch.setattr(qr_scanner.cv2, "imread", lambda path: None)

    with pytest.raises(ExternalServiceFailure):
        decode_image(tmp_path / "missing.png")


def test_decode_image_uses_detector(tmp_path, monkeypatch):
    monkeypatch.setattr(qr_scanner.cv2, "imread", lambda path: "doc-42")

    assert decode_image(tmp_path / "slip.png", detector=FakeDetector()) == "doc-42"
