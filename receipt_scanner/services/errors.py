"""
Error taxonomy for receipt scanning.

ScanError subclasses are raised while processing a single image and are
turned into a failure outcome for that image by the batch scanner.
BatchRequestError subclasses reject a whole submission before any image
is processed.
"""


class ScanError(Exception):
    """Base class for per-image extraction failures"""


class ImageDecodeError(ScanError):
    pass


class EmptyResponseError(ScanError):
    def __init__(self, message: str = "No response from model"):
        super().__init__(message)


class ResponseParseError(ScanError):
    pass


class ReceiptSchemaError(ScanError):
    pass


class UnsupportedModelError(ScanError):
    def __init__(self, model: str):
        self.model = model
        super().__init__(f"Unsupported model: {model}")


class ModelNotConfiguredError(ScanError):
    def __init__(self, message: str = "Receipt model is not configured (set GEMINI_API_KEY)"):
        super().__init__(message)


class ModelRequestError(ScanError):
    pass


class BatchRequestError(Exception):
    """Base class for submissions rejected before processing"""


class EmptyBatchError(BatchRequestError):
    def __init__(self):
        super().__init__("No images provided")


class BatchTooLargeError(BatchRequestError):
    def __init__(self, submitted: int, max_images: int):
        self.submitted = submitted
        self.max_images = max_images
        self.dropped = submitted - max_images
        super().__init__(
            f"Too many images: {submitted} submitted, maximum is {max_images} "
            f"({self.dropped} over the limit)"
        )


class ImageTooLargeError(BatchRequestError):
    def __init__(self, index: int, size: int, max_bytes: int):
        self.index = index
        self.size = size
        self.max_bytes = max_bytes
        super().__init__(
            f"Image {index + 1} is too large ({size} bytes, maximum is {max_bytes} bytes)"
        )


class ScanCancelledError(Exception):
    """The caller went away before the batch finished"""

    def __init__(self, completed: int, total: int):
        self.completed = completed
        self.total = total
        super().__init__(f"Scan cancelled after {completed} of {total} images")
