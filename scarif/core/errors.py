from click import UsageError


class FormatError(Exception):
    """Raised when an SCRF stream is malformed."""


class BoundsError(UsageError):
    def __init__(
        self, text: str, reason: str = "expected minX:minY:minZ:maxX:maxY:maxZ"
    ):
        super().__init__(f"Invalid bounds '{text}': {reason}.")
        self.text = text
