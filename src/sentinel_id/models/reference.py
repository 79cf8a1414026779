"""
Reference Identity Model
========================

Labeled reference faces that the oracle compares each captured frame against.

Design Rules:
    - Immutable once created (frozen)
    - Uniqueness is by `id`, never by `name` (two entries may share a name)
    - Image bytes are kept raw; base64 only appears at the API boundary
"""

import base64
import binascii
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_serializer


def new_identity_id() -> str:
    """Generate an opaque identity token."""
    return uuid.uuid4().hex


class ReferenceIdentity(BaseModel):
    """
    One labeled reference image.

    Attributes:
        id: Opaque token, unique within the repository
        name: Display name reported by the oracle on a match
        image_data: Encoded image bytes
        mime_type: MIME type of `image_data` (e.g. "image/jpeg")
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(
        default_factory=new_identity_id,
        description="Opaque identity token",
    )

    name: str = Field(
        ...,
        min_length=1,
        description="Name of the person in the reference image",
    )

    image_data: bytes = Field(
        ...,
        repr=False,
        description="Encoded reference image",
    )

    mime_type: str = Field(
        default="image/jpeg",
        description="MIME type of the reference image",
    )

    @field_serializer("image_data", when_used="json")
    def _serialize_image(self, value: bytes) -> str:
        return base64.b64encode(value).decode("ascii")


class ReferenceUpload(BaseModel):
    """
    API request body for enrolling one reference face.

    Attributes:
        name: Person's name
        image_base64: Base64-encoded image (a data URL prefix is tolerated)
        mime_type: MIME type of the uploaded image
    """

    name: str = Field(..., min_length=1)
    image_base64: str = Field(..., min_length=1)
    mime_type: str = Field(default="image/jpeg")

    def decode_image(self) -> bytes:
        """
        Decode the base64 payload.

        Raises:
            ValueError: If the payload is not valid base64
        """
        payload = self.image_base64
        if payload.startswith("data:") and "," in payload:
            payload = payload.split(",", 1)[1]
        try:
            return base64.b64decode(payload, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 image: {e}") from e
