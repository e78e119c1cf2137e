class ImageOptError(Exception):
    """Base class for failures surfaced by the optimization service."""


class ValidationError(ImageOptError):
    """The request cannot be processed as submitted (client error)."""


class CodecError(ImageOptError):
    """An image could not be decoded, resized or encoded."""


class BatchTimeoutError(ImageOptError):
    """The batch did not finish before the request deadline."""


class ProcessingError(ImageOptError):
    def __init__(self, details: str):
        super().__init__(details)
        self.details = details
