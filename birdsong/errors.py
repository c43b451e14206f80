"""
Error taxonomy for Bird Song Explorer.

Only ExhaustedFallback is expected to reach a listener-facing caller; the
others are recovered locally by dropping to the next fallback tier.
"""


class ExplorerError(RuntimeError):
    pass


class ConfigError(ExplorerError):
    pass


class UpstreamUnavailable(ExplorerError):
    """Network or API failure from an observation, audio, encyclopedia or speech source."""


class NotFound(ExplorerError):
    """The upstream answered, but had nothing usable for the query."""


class AssetMissing(ExplorerError):
    """A static ambience/chime/outro file is not on disk."""


class RenderToolFailure(ExplorerError):
    """ffmpeg/ffprobe is absent or exited non-zero."""

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message)
        self.stderr = stderr


class ExhaustedFallback(ExplorerError):
    """Every resolution tier, including the global fallback list, failed."""
