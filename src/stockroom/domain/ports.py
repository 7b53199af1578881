from abc import ABC, abstractmethod
from enum import StrEnum


class PhotoSourcePort(ABC):
    """
    Boundary to whatever hands us image data (picker, file, URL).
    Each instance represents exactly one selected photo.
    """

    @abstractmethod
    async def load_blob(self) -> bytes:
        """
        Loads the photo's binary payload.

        Raises:
            PhotoLoadError: If the photo cannot be loaded.
        """
        ...


# ---------------------------------------------------------------------------
# Custom Domain Exceptions
# ---------------------------------------------------------------------------


class ValidationReason(StrEnum):
    EMPTY_NAME = "empty_name"


class FormValidationError(Exception):
    def __init__(self, reason: ValidationReason):
        messages = {ValidationReason.EMPTY_NAME: "Product name cannot be empty."}
        super().__init__(messages[reason])
        self.reason = reason


class ProductNotFoundError(Exception):
    def __init__(self, product_id: str):
        super().__init__(f"Product '{product_id}' not found")
        self.product_id = product_id


class StoreIOError(Exception):
    def __init__(self, operation: str, detail: str):
        super().__init__(f"Record store failed during '{operation}': {detail}")
        self.operation = operation
        self.detail = detail


class PhotoLoadError(Exception):
    def __init__(self, source: str, detail: str):
        super().__init__(f"Could not load photo from '{source}': {detail}")
        self.source = source
        self.detail = detail


class InvalidModeError(Exception):
    """Raised when a list operation is not allowed in the current mode."""


class FormClosedError(Exception):
    """Raised when a saved or cancelled form is used again."""
