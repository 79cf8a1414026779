"""
Capture Module
==============

Video acquisition and periodic frame sampling.

Components:
    - FrameSample: One JPEG frame, alive for one pipeline tick
    - VideoSource: Protocol for frame providers
    - OpenCVVideoSource: Camera / stream source via OpenCV
    - StaticVideoSource: Fixed-image source for tests and offline runs
    - CaptureSampler: Periodic capture loop feeding the pipeline

Example:
    from sentinel_id.capture import CaptureSampler, OpenCVVideoSource

    source = OpenCVVideoSource(device=0)
    source.acquire()
    sampler = CaptureSampler(source, pipeline, references.list, 4.0)
    sampler.start()
"""

from sentinel_id.capture.frame import FrameSample
from sentinel_id.capture.imaging import ImageDecodeError
from sentinel_id.capture.source import (
    OpenCVVideoSource,
    StaticVideoSource,
    VideoSource,
    VideoSourceError,
)
from sentinel_id.capture.sampler import CaptureSampler, CaptureSamplerMetrics


__all__ = [
    "FrameSample",
    "ImageDecodeError",
    "VideoSource",
    "VideoSourceError",
    "OpenCVVideoSource",
    "StaticVideoSource",
    "CaptureSampler",
    "CaptureSamplerMetrics",
]
