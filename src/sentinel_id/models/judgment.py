"""
Judgment Model
==============

Per-face output of the identification oracle.

The oracle answers in camelCase JSON:
    {
        "matchFound": true,
        "matchedName": "Alice",
        "confidence": 0.92,
        "maskDetected": false,
        "reasoning": "Same jawline and eyebrow shape"
    }

Both the camelCase keys and the snake_case field names are accepted.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class JudgmentResult(BaseModel):
    """
    One detected face as judged by the oracle.

    Transient: consumed immediately by the identification pipeline.

    Attributes:
        match_found: Whether the oracle believes this face matches a reference
        matched_name: Name of the matched reference, None when no match
        confidence: Match confidence in [0, 1]
        mask_detected: Whether the person wears a face mask
        reasoning: Short free-text explanation from the oracle
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    match_found: bool = Field(
        ...,
        alias="matchFound",
        description="True if this face matches a reference face",
    )

    matched_name: Optional[str] = Field(
        default=None,
        alias="matchedName",
        description="Name of the matched reference (None if no match)",
    )

    confidence: float = Field(
        ...,
        description="Match confidence between 0.0 and 1.0",
    )

    mask_detected: bool = Field(
        default=False,
        alias="maskDetected",
        description="True if the person is wearing a face mask",
    )

    reasoning: str = Field(
        default="",
        description="Brief explanation of the compared features",
    )

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        value = float(value)
        return min(1.0, max(0.0, value))

    @field_validator("matched_name", mode="before")
    @classmethod
    def _blank_name_is_none(cls, value: Any) -> Optional[str]:
        """
        Strip surrounding whitespace; blank becomes None.

        The cooldown ledger keys on this stripped name, so "Alice " and
        "Alice" share one cooldown window.
        """
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @field_validator("reasoning", mode="before")
    @classmethod
    def _null_reasoning(cls, value: Any) -> str:
        return "" if value is None else str(value)
