"""
Pipeline Module
===============

Capture-and-throttle core: decide which oracle judgments become log entries.

Components:
    - CooldownLedger: name -> last accepted instant
    - MatchPolicy: tri-state per-judgment decision
    - MatchGraph: LangGraph workflow (threshold filter → cooldown)
    - MatchBanner: transient match signal with auto-clear
    - IdentificationPipeline: single-flight tick orchestration

Key Design Decisions:
    - Threshold is a fixed constant (confidence > 0.5)
    - Cooldown comparison is strict (elapsed > window)
    - Suppression never resets the cooldown window
"""

from sentinel_id.pipeline.cooldown import CooldownLedger
from sentinel_id.pipeline.policy import CONFIDENCE_THRESHOLD, MatchPolicy, passes_threshold
from sentinel_id.pipeline.graph import MatchGraph, MatchOutcome
from sentinel_id.pipeline.banner import MatchBanner
from sentinel_id.pipeline.identification import IdentificationPipeline, MAX_REFERENCES

__all__ = [
    "CooldownLedger",
    "CONFIDENCE_THRESHOLD",
    "MatchPolicy",
    "passes_threshold",
    "MatchGraph",
    "MatchOutcome",
    "MatchBanner",
    "IdentificationPipeline",
    "MAX_REFERENCES",
]
