"""
Error types for the Now Playing collage renderer.

Feed errors abort the whole run; fetch and render errors are confined to the
batch that raised them.
"""


class NowPlayingError(RuntimeError):
    """Base class for all renderer failures."""


class FeedError(NowPlayingError):
    """The home feed could not be fetched or decoded."""


class AssetFetchError(NowPlayingError):
    """A poster could not be downloaded or written to the cache."""


class RenderError(NowPlayingError):
    """A batch image could not be composed or saved."""
