"""Error taxonomy for the broadcast and watch engines."""


class LivestreamError(Exception):
    """Base class for every error raised by this package."""


class CaptureError(LivestreamError):
    """The recorder failed to produce a segment."""


class MissingSegmentError(LivestreamError):
    """A segment that should be on disk is absent."""


class UploadError(LivestreamError):
    """The content store rejected or failed an upload."""


class PublishError(LivestreamError):
    """Binding the stable name to a new content identifier failed."""


class ResolutionError(LivestreamError):
    """The stable name could not be resolved or downloaded."""


class FormatError(LivestreamError):
    """Manifest bytes could not be parsed."""


class IdentityError(LivestreamError):
    """The content store's local identity is unavailable."""
