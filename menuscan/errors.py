# menuscan/errors.py
"""
Error taxonomy for MenuScan.

Only the collaborator boundaries (text reader, LLM services) and the calling
layer's request validation raise these to callers. UnparsableLine is raised
and recovered inside the item parser.
"""


class MenuScanError(Exception):
    """Base class for every MenuScan error."""


# ---------------------------------------------------------------------------
# Text reader (OCR / PDF) boundary
# ---------------------------------------------------------------------------

class TextReaderError(MenuScanError):
    """The text reader could not produce text for an upload."""


class UnsupportedInputType(TextReaderError):
    """Mime type is neither a PDF nor an image."""

    def __init__(self, mime_type: str):
        super().__init__(f"Unsupported file type: {mime_type}")
        self.mime_type = mime_type


class UndecodableInput(TextReaderError):
    """Bytes could not be opened as the declared document type."""


class TextEngineError(TextReaderError):
    """Tesseract / Poppler missing or failing."""


# ---------------------------------------------------------------------------
# LLM collaborators
# ---------------------------------------------------------------------------

class CollaboratorError(MenuScanError):
    """An external structuring or ranking service failed."""


class ServiceUnavailable(CollaboratorError):
    """Service not configured, unreachable, or returned an API error."""


class MalformedResponse(CollaboratorError):
    """Reply was not JSON or did not match the expected schema."""


MalformedCollaboratorResponse = MalformedResponse


# ---------------------------------------------------------------------------
# Parsing + request validation
# ---------------------------------------------------------------------------

class UnparsableLine(MenuScanError):
    """A classified item line produced no usable item."""

    def __init__(self, line: str, reason: str):
        super().__init__(f"{reason}: {line!r}")
        self.line = line
        self.reason = reason


class RequestValidationError(MenuScanError):
    """Caller-side input problems (no file, no allergens)."""


class EmptyAllergenSelection(RequestValidationError):
    """At least one allergen must be provided."""


class NoFileProvided(RequestValidationError):
    """No menu image/PDF bytes were supplied."""
