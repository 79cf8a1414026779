"""
Oracle Prompt Policy
====================

Fixed instruction policy sent with every identification request.

The policy is not caller-configurable: detect all faces, compare each to
the references, report a match only above 0.5 confidence, detect masks,
return one object per face (empty array if none).
"""

FRAME_INTRO = "Here is the IMAGE_TO_ANALYZE (Current Webcam Frame):"

REFERENCES_INTRO = (
    "Below are the REFERENCE_FACES from the database. Compare ANY person found "
    "in the IMAGE_TO_ANALYZE against these reference faces."
)

SYSTEM_INSTRUCTION = """
You are a high-security biometric authentication system.
Your task is to analyze the 'IMAGE_TO_ANALYZE' and detect ALL faces present in the frame.

Rules:
1. Detect ALL distinct faces in the image.
2. For EACH detected face, compare it against the provided 'REFERENCE_FACES'.
3. If a face matches a reference face, calculate a confidence score.
4. Return 'matchFound': true ONLY if the confidence score is strictly greater than 0.5 (50%). If confidence is 0.5 or lower, 'matchFound' must be false.
5. Ignore background differences.
6. Identify if a mask is worn for each face.
7. Return the result as a JSON ARRAY, with one object for each detected face. If no faces are detected, return an empty array.
""".strip()


def reference_label(index: int, name: str) -> str:
    """Caption placed before each reference image (1-based)."""
    return f'Reference Face #{index + 1}: Name="{name}"'


def response_schema():
    """
    Structured-output schema: ARRAY of per-face judgment objects.

    Built lazily so importing this module does not require google-genai.
    """
    from google.genai import types

    return types.Schema(
        type=types.Type.ARRAY,
        items=types.Schema(
            type=types.Type.OBJECT,
            properties={
                "matchFound": types.Schema(
                    type=types.Type.BOOLEAN,
                    description="True if this specific face matches a reference face with > 50% confidence.",
                ),
                "matchedName": types.Schema(
                    type=types.Type.STRING,
                    description="The name of the matched person from the reference list. Null if no match.",
                    nullable=True,
                ),
                "confidence": types.Schema(
                    type=types.Type.NUMBER,
                    description="A score from 0.0 to 1.0 indicating confidence of the match.",
                ),
                "maskDetected": types.Schema(
                    type=types.Type.BOOLEAN,
                    description="True if this person is wearing a face mask.",
                ),
                "reasoning": types.Schema(
                    type=types.Type.STRING,
                    description="Brief explanation of visual features compared.",
                ),
            },
            required=["matchFound", "confidence", "maskDetected"],
        ),
    )
