"""
Gemini Oracle Client
====================

Production identification oracle backed by Google Gemini (google-genai SDK).

This client:
    - Sends the frame and up to `max_references` reference images inline
    - Requests structured JSON output (array of judgments)
    - Normalizes the answer with parse_judgments()

Design Rules:
    - Missing API key is a configuration warning, not a crash: calls
      short-circuit to an empty result
    - Transport and parse failures raise OracleError; the pipeline decides
      how to recover
    - Log every failure
"""

import logging
from typing import List, Optional, Sequence

from sentinel_id.capture.frame import FrameSample
from sentinel_id.models.judgment import JudgmentResult
from sentinel_id.models.reference import ReferenceIdentity
from sentinel_id.oracle.client import (
    OracleResponseError,
    OracleTransportError,
    parse_judgments,
)
from sentinel_id.oracle import prompts


logger = logging.getLogger(__name__)


DEFAULT_MODEL = "gemini-2.5-flash"


class GeminiOracleClient:
    """
    Face-identification oracle using the Gemini generate_content API.

    Attributes:
        model: Gemini model name
        temperature: Sampling temperature (low for analytical precision)
        max_references: Payload ceiling on reference images per request
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        temperature: float = 0.1,
        max_references: int = 8,
    ) -> None:
        """
        Initialize the Gemini oracle.

        Args:
            api_key: Gemini API key. None/empty disables identification.
            model: Model name
            temperature: Sampling temperature
            max_references: Maximum reference images per request

        Raises:
            ImportError: If google-genai is not installed
        """
        self.model = model
        self.temperature = temperature
        self.max_references = max(1, max_references)

        self._client = None
        self._call_count: int = 0
        self._error_count: int = 0

        if api_key:
            self._init_client(api_key)
            logger.info(f"GeminiOracleClient initialized: model={model}")
        else:
            logger.warning(
                "Oracle API key is missing; identification calls will return no judgments"
            )

    def _init_client(self, api_key: str) -> None:
        """Create the google-genai client."""
        try:
            from google import genai
        except ImportError:
            raise ImportError(
                "google-genai is required for GeminiOracleClient. "
                "Install with: pip install google-genai"
            )

        self._client = genai.Client(api_key=api_key)

    @property
    def credentials_missing(self) -> bool:
        """True when no API key was configured."""
        return self._client is None

    @property
    def call_count(self) -> int:
        return self._call_count

    @property
    def error_count(self) -> int:
        return self._error_count

    async def identify(
        self,
        frame: FrameSample,
        references: Sequence[ReferenceIdentity],
    ) -> List[JudgmentResult]:
        """
        Ask Gemini to judge every face in the frame.

        Args:
            frame: Captured JPEG frame
            references: Reference identities; only the first
                `max_references` are sent

        Returns:
            Judgments in oracle order (empty without credentials or
            references)

        Raises:
            OracleTransportError: If the API call fails
            OracleResponseError: If the answer is empty or not JSON
        """
        if self._client is None or not references:
            return []

        from google.genai import types

        active = list(references)[: self.max_references]
        contents = self._build_contents(frame, active)
        config = types.GenerateContentConfig(
            system_instruction=prompts.SYSTEM_INSTRUCTION,
            response_mime_type="application/json",
            response_schema=prompts.response_schema(),
            temperature=self.temperature,
        )

        self._call_count += 1
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=config,
            )
        except Exception as e:
            self._error_count += 1
            raise OracleTransportError(f"Gemini request failed: {e}") from e

        text = getattr(response, "text", None)
        if not text:
            self._error_count += 1
            raise OracleResponseError("No response text from Gemini")

        try:
            judgments = parse_judgments(text)
        except OracleResponseError:
            self._error_count += 1
            raise

        logger.debug(
            f"Gemini: frame={frame.sequence}, references={len(active)}, "
            f"judgments={len(judgments)}"
        )
        return judgments

    @staticmethod
    def _build_contents(
        frame: FrameSample,
        references: Sequence[ReferenceIdentity],
    ) -> list:
        """Interleave captions and inline images into one user turn."""
        from google.genai import types

        parts = [
            types.Part.from_text(text=prompts.FRAME_INTRO),
            types.Part.from_bytes(data=frame.jpeg, mime_type="image/jpeg"),
            types.Part.from_text(text=prompts.REFERENCES_INTRO),
        ]
        for index, face in enumerate(references):
            parts.append(types.Part.from_text(text=prompts.reference_label(index, face.name)))
            parts.append(types.Part.from_bytes(data=face.image_data, mime_type=face.mime_type))

        return [types.Content(role="user", parts=parts)]

    def get_metrics(self) -> dict:
        """Get client metrics for observability."""
        return {
            "model": self.model,
            "call_count": self._call_count,
            "error_count": self._error_count,
            "credentials_missing": self.credentials_missing,
        }
