"""
Video Sources
=============

Frame-providing handles for the capture sampler.

Components:
    - VideoSource: Protocol every source implements
    - OpenCVVideoSource: Local camera via cv2.VideoCapture (production)
    - StaticVideoSource: Replays fixed JPEG bytes (tests, offline runs)

Design Rules:
    - acquire() fails loudly (permission / availability), never retries
    - release() is idempotent and safe to call from any exit path
    - read_jpeg() returns None when the source is not ready; callers skip
      the tick silently
"""

import logging
import threading
from pathlib import Path
from typing import Optional, Protocol, Union

import cv2

from sentinel_id.capture.imaging import ImageDecodeError, encode_jpeg


logger = logging.getLogger(__name__)


class VideoSourceError(Exception):
    """Raised when a video source cannot be acquired."""
    pass


class VideoSource(Protocol):
    """
    Protocol for live frame providers.

    Implemented by:
        - OpenCVVideoSource (camera devices, RTSP/HTTP streams)
        - StaticVideoSource (fixed image)
    """

    @property
    def is_ready(self) -> bool:
        """Whether a frame can be read right now."""
        ...

    def acquire(self) -> None:
        """Open the device. Raises VideoSourceError on failure."""
        ...

    def release(self) -> None:
        """Close the device. Idempotent."""
        ...

    def read_jpeg(self) -> Optional[bytes]:
        """Read one frame as JPEG, or None if not ready."""
        ...


class OpenCVVideoSource:
    """
    Camera or stream source backed by cv2.VideoCapture.

    Reads and release are serialized with a lock so a capture running in
    a worker thread never races with release() on session stop.

    Attributes:
        device: Camera index or stream URL
        width: Requested frame width
        height: Requested frame height
        jpeg_quality: JPEG quality for captured frames
    """

    def __init__(
        self,
        device: Union[int, str] = 0,
        width: int = 1280,
        height: int = 720,
        jpeg_quality: int = 80,
    ) -> None:
        self.device = device
        self.width = width
        self.height = height
        self.jpeg_quality = jpeg_quality

        self._capture: Optional[cv2.VideoCapture] = None
        self._lock = threading.Lock()
        self._read_failures: int = 0

    @property
    def is_ready(self) -> bool:
        capture = self._capture
        return capture is not None and capture.isOpened()

    @property
    def read_failures(self) -> int:
        """Frames that could not be read while acquired."""
        return self._read_failures

    def acquire(self) -> None:
        """
        Open the capture device.

        Raises:
            VideoSourceError: If the device is unavailable or access is denied
        """
        with self._lock:
            if self._capture is not None and self._capture.isOpened():
                return

            capture = cv2.VideoCapture(self.device)
            if not capture.isOpened():
                capture.release()
                raise VideoSourceError(
                    f"Cannot open video device {self.device!r}. "
                    f"Check that the camera exists and access is permitted."
                )

            capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
            self._capture = capture

        logger.info(
            f"Video source acquired: device={self.device!r}, "
            f"requested={self.width}x{self.height}"
        )

    def release(self) -> None:
        """Release the capture device. Safe to call repeatedly."""
        with self._lock:
            if self._capture is None:
                return
            self._capture.release()
            self._capture = None
        logger.info(f"Video source released: device={self.device!r}")

    def read_jpeg(self) -> Optional[bytes]:
        with self._lock:
            if self._capture is None or not self._capture.isOpened():
                return None

            ok, frame = self._capture.read()
            if not ok or frame is None:
                self._read_failures += 1
                logger.debug(f"Frame read failed (total failures: {self._read_failures})")
                return None

        try:
            return encode_jpeg(frame, self.jpeg_quality)
        except ImageDecodeError as e:
            self._read_failures += 1
            logger.warning(f"Frame encode failed: {e}")
            return None


class StaticVideoSource:
    """
    Source that returns the same JPEG bytes on every read.

    Useful for tests and for running the service without a camera.
    """

    def __init__(self, jpeg: bytes) -> None:
        if not jpeg:
            raise ValueError("jpeg must not be empty")
        self._jpeg = jpeg
        self._acquired: bool = False
        self.ready_override: Optional[bool] = None
        self.acquire_count: int = 0
        self.release_count: int = 0

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "StaticVideoSource":
        """Load the replayed image from disk."""
        file_path = Path(path)
        if not file_path.is_file():
            raise VideoSourceError(f"Static image not found: {file_path}")
        return cls(file_path.read_bytes())

    @property
    def is_ready(self) -> bool:
        if self.ready_override is not None:
            return self._acquired and self.ready_override
        return self._acquired

    def acquire(self) -> None:
        self._acquired = True
        self.acquire_count += 1

    def release(self) -> None:
        if self._acquired:
            self.release_count += 1
        self._acquired = False

    def read_jpeg(self) -> Optional[bytes]:
        if not self.is_ready:
            return None
        return self._jpeg
