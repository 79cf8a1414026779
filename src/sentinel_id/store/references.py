"""
Reference Repository
====================

In-memory CRUD store of labeled reference faces.

Besides plain add/remove/clear/list, the repository can enroll raw images
(downscaled before storage to keep oracle payloads small) and bulk-load a
directory where each file name is the person's name.

Selection Policy:
    The oracle receives at most N references per request. The repository
    picks the first N in insertion order (select_active).
"""

import logging
import mimetypes
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from sentinel_id.capture.imaging import ImageDecodeError, resize_to_width
from sentinel_id.models.reference import ReferenceIdentity


logger = logging.getLogger(__name__)


IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".webp", ".bmp"}


class ReferenceRepository:
    """
    Ordered collection of ReferenceIdentity, keyed by id.

    Attributes:
        max_width: Width enrolled images are downscaled to
        jpeg_quality: Quality used when re-encoding downscaled images
    """

    def __init__(self, max_width: int = 512, jpeg_quality: int = 80) -> None:
        self.max_width = max_width
        self.jpeg_quality = jpeg_quality
        self._faces: Dict[str, ReferenceIdentity] = {}

    def __len__(self) -> int:
        return len(self._faces)

    def __contains__(self, identity_id: object) -> bool:
        return identity_id in self._faces

    def add(self, entries: Iterable[ReferenceIdentity]) -> List[ReferenceIdentity]:
        """
        Add identities, preserving order.

        Raises:
            ValueError: If an id is already present
        """
        added: List[ReferenceIdentity] = []
        for entry in entries:
            if entry.id in self._faces:
                raise ValueError(f"Reference id already exists: {entry.id}")
            self._faces[entry.id] = entry
            added.append(entry)

        if added:
            logger.info(
                f"Added {len(added)} reference face(s); total={len(self._faces)}"
            )
        return added

    def enroll(
        self,
        name: str,
        image_data: bytes,
        mime_type: str = "image/jpeg",
    ) -> ReferenceIdentity:
        """
        Create and add an identity from raw image bytes.

        Images wider than `max_width` are downscaled and stored as JPEG.

        Raises:
            ValueError: If the name is blank
            ImageDecodeError: If the image cannot be decoded
        """
        name = name.strip()
        if not name:
            raise ValueError("Reference name must not be blank")

        data, resized = resize_to_width(image_data, self.max_width, self.jpeg_quality)
        identity = ReferenceIdentity(
            name=name,
            image_data=data,
            mime_type="image/jpeg" if resized else mime_type,
        )
        self.add([identity])
        return identity

    def load_directory(self, path: Union[str, Path]) -> List[ReferenceIdentity]:
        """
        Enroll every image in a directory, named after the file stem.

        Unreadable or undecodable files are skipped with a warning.

        Raises:
            NotADirectoryError: If `path` is not a directory
        """
        directory = Path(path)
        if not directory.is_dir():
            raise NotADirectoryError(f"Reference directory not found: {directory}")

        enrolled: List[ReferenceIdentity] = []
        for file_path in sorted(directory.iterdir()):
            if not file_path.is_file() or file_path.suffix.lower() not in IMAGE_SUFFIXES:
                continue

            mime_type = mimetypes.guess_type(file_path.name)[0] or "image/jpeg"
            try:
                enrolled.append(
                    self.enroll(file_path.stem, file_path.read_bytes(), mime_type)
                )
            except (OSError, ValueError, ImageDecodeError) as e:
                logger.warning(f"Failed to load {file_path.name}: {e}")

        logger.info(f"Loaded {len(enrolled)} reference face(s) from {directory}")
        return enrolled

    def get(self, identity_id: str) -> Optional[ReferenceIdentity]:
        return self._faces.get(identity_id)

    def remove(self, identity_id: str) -> bool:
        """Remove one identity. Returns False if the id is unknown."""
        removed = self._faces.pop(identity_id, None)
        return removed is not None

    def clear(self) -> int:
        """Remove everything. Returns the number removed."""
        cleared = len(self._faces)
        self._faces.clear()
        return cleared

    def list(self) -> List[ReferenceIdentity]:
        """Identities in insertion order."""
        return list(self._faces.values())

    def select_active(self, limit: int = 8) -> List[ReferenceIdentity]:
        """First `limit` identities in insertion order."""
        return list(self._faces.values())[: max(0, limit)]
