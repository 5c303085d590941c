"""
Pipeline failure taxonomy.

Only whole-run failures are exceptions. A join key with no metadata record
(match miss) or a rule that trips over a malformed field is handled per alert
and never surfaces here.
"""


class PipelineError(Exception):
    """Base class for failures that abort a pipeline run."""


class UpstreamFetchError(PipelineError):
    """An upstream call failed or returned data we could not read."""


class FeedDecodeError(PipelineError):
    """The primary payload does not parse as a GTFS-Realtime FeedMessage."""
