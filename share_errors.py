"""
Error taxonomy for the share-link protocol.

Every failure here is recoverable: the loader catches them per fragment and
turns each one into a single user notification.
"""


class ShareError(Exception):
    """Root of every share-link failure."""


class DecodeError(ShareError):
    """
    A wire token could not be turned back into a payload.

    `stage` names the step that failed: "token" (not valid Base64),
    "inflate" (corrupt or truncated deflate stream), "utf8" or "json".
    """

    def __init__(self, message: str, stage: str = "token"):
        super().__init__(message)
        self.stage = stage


class ParseError(DecodeError):
    """The inflated payload is not JSON, or not the JSON shape we expect."""

    def __init__(self, message: str):
        super().__init__(message, stage="json")


class EngineUnavailableError(ShareError):
    """The scanning engine was probed before it was ready (or after it failed)."""


class EngineLoadError(ShareError):
    """Fetching or instantiating the scanning engine failed."""


class PayloadTooLargeError(ShareError):
    """The state to share serializes past the size a share link may inflate to."""
