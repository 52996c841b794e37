"""Exception types raised by the feed and playback layers."""


class QuakeWavesError(Exception):
    """Base class for recoverable replay errors."""


class FeedUnavailable(QuakeWavesError):
    """The event feed could not be fetched or parsed."""


class EmptyFeedError(QuakeWavesError):
    """The event feed was fetched but contained no events."""


class InvalidDateRange(QuakeWavesError, ValueError):
    """A requested date range is reversed or outside the accepted years."""
