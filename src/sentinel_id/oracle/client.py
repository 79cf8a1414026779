"""
Oracle Client
=============

Black-box face-identification oracle abstraction.

The pipeline consumes ONLY the judgments returned here. How the oracle
detects and compares faces is entirely delegated.

Components:
    - OracleClient: Protocol for identification backends
    - OracleError: Base class for transport / response failures
    - parse_judgments: Normalizes raw oracle payloads into JudgmentResults
    - MockOracleClient: Scripted client for tests and offline runs

Request Contract:
    - One JPEG frame
    - Up to 8 reference identities (name + image bytes + MIME type)

Response Contract:
    - Ordered list of JudgmentResult, one per detected face
    - Empty list if no face was detected
"""

import asyncio
import json
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, List, Optional, Protocol, Sequence, Union

from pydantic import ValidationError

from sentinel_id.capture.frame import FrameSample
from sentinel_id.models.judgment import JudgmentResult
from sentinel_id.models.reference import ReferenceIdentity


logger = logging.getLogger(__name__)


class OracleError(Exception):
    """Base class for oracle failures."""
    pass


class OracleTransportError(OracleError):
    """Raised when the oracle request itself fails."""
    pass


class OracleResponseError(OracleError):
    """Raised when the oracle answers with something unusable."""
    pass


class OracleClient(Protocol):
    """
    Protocol for identification backends.

    Implemented by:
        - GeminiOracleClient (production)
        - MockOracleClient (tests, offline)
    """

    async def identify(
        self,
        frame: FrameSample,
        references: Sequence[ReferenceIdentity],
    ) -> List[JudgmentResult]:
        """
        Judge every face in `frame` against `references`.

        Args:
            frame: Captured JPEG frame
            references: Reference identities (already bounded by the caller)

        Returns:
            One JudgmentResult per detected face, in oracle order

        Raises:
            OracleError: On transport or response failures
        """
        ...


def parse_judgments(payload: Union[str, bytes, list, dict, None]) -> List[JudgmentResult]:
    """
    Normalize a raw oracle payload into judgments.

    A single object instead of an array is wrapped into a one-element list.
    Items that fail validation are dropped with a warning.

    Args:
        payload: JSON text, or already-decoded JSON data

    Returns:
        List of JudgmentResult in payload order

    Raises:
        OracleResponseError: If the payload is not JSON or not an
            object/array
    """
    if isinstance(payload, (str, bytes)):
        try:
            data: Any = json.loads(payload)
        except json.JSONDecodeError as e:
            raise OracleResponseError(f"Oracle returned invalid JSON: {e}") from e
    else:
        data = payload

    if data is None:
        return []

    if isinstance(data, dict):
        data = [data]

    if not isinstance(data, list):
        raise OracleResponseError(
            f"Oracle returned {type(data).__name__}, expected array of judgments"
        )

    judgments: List[JudgmentResult] = []
    for index, item in enumerate(data):
        try:
            judgments.append(JudgmentResult.model_validate(item))
        except (ValidationError, TypeError, ValueError) as e:
            logger.warning(f"Dropping malformed judgment #{index}: {e}")

    return judgments


@dataclass
class OracleCall:
    """One recorded MockOracleClient call."""

    frame: FrameSample
    reference_names: List[str] = field(default_factory=list)


class MockOracleClient:
    """
    Scripted oracle for tests and offline runs.

    Responses are consumed in FIFO order; each scripted item is either a
    list of judgments (returned) or an exception (raised). When the script
    is empty, `default` is returned.

    If `gate` is set, every call waits on it before answering, which lets
    tests hold a request in flight.

    Attributes:
        calls: Every call received, in order
        call_started: Set as soon as a call begins
    """

    def __init__(
        self,
        responses: Optional[Sequence[Union[List[JudgmentResult], Exception]]] = None,
        default: Optional[List[JudgmentResult]] = None,
    ) -> None:
        self._script: Deque[Union[List[JudgmentResult], Exception]] = deque(responses or [])
        self.default: List[JudgmentResult] = list(default or [])
        self.calls: List[OracleCall] = []
        self.gate: Optional[asyncio.Event] = None
        self.call_started = asyncio.Event()

        logger.info("MockOracleClient initialized")

    @property
    def credentials_missing(self) -> bool:
        return False

    def queue(self, response: Union[List[JudgmentResult], Exception]) -> None:
        """Append a scripted response or exception."""
        self._script.append(response)

    async def identify(
        self,
        frame: FrameSample,
        references: Sequence[ReferenceIdentity],
    ) -> List[JudgmentResult]:
        self.calls.append(
            OracleCall(frame=frame, reference_names=[ref.name for ref in references])
        )
        self.call_started.set()

        if self.gate is not None:
            await self.gate.wait()

        if not self._script:
            return list(self.default)

        response = self._script.popleft()
        if isinstance(response, Exception):
            raise response
        return list(response)
