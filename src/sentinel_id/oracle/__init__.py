"""
Oracle Module
=============

Face-identification oracle, treated as a pluggable black box.

Components:
    - OracleClient: Protocol for identification backends
    - MockOracleClient: Scripted client for tests and offline runs
    - GeminiOracleClient: Google Gemini (production)
    - parse_judgments: Defensive normalization of oracle payloads

Design Philosophy:
    The pipeline reasons over judgments only, never over how the oracle
    detected or compared faces.
"""

from sentinel_id.oracle.client import (
    MockOracleClient,
    OracleCall,
    OracleClient,
    OracleError,
    OracleResponseError,
    OracleTransportError,
    parse_judgments,
)
from sentinel_id.oracle.gemini_client import GeminiOracleClient


__all__ = [
    "OracleClient",
    "OracleCall",
    "OracleError",
    "OracleTransportError",
    "OracleResponseError",
    "MockOracleClient",
    "GeminiOracleClient",
    "parse_judgments",
]
