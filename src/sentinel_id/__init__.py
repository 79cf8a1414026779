"""
SentinelID
==========

Periodic face identification against a small set of labeled reference faces.

A video source is sampled on a fixed period; each frame is sent, together
with the reference faces, to an identification oracle (Gemini). Confident
matches are deduplicated per identity by a cooldown window and appended to
an activity log, and a transient match banner is raised.

Components:
    - capture: Video sources and the periodic capture sampler
    - oracle: Identification oracle clients (Gemini, mock)
    - pipeline: Threshold/cooldown graph, identification pipeline, banner
    - store: Reference repository and activity log
    - session: Monitoring session controller (IDLE / MONITORING)

Example:
    from sentinel_id.config import settings
    from sentinel_id.main import build_session

    session = build_session(settings)
    await session.start()
"""

__version__ = "1.0.0"
__author__ = "SentinelID Project"

__all__ = [
    "__version__",
]
