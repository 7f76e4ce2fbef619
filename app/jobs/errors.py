"""Job failure taxonomy.

Every stage of a visualization job raises one of these. The message is what
API callers see in the job's ``error`` field, so it never carries tool output
or environment details; those go to the log.
"""


class GourceError(Exception):
    """Base class for job stage failures."""

    message = "Visualization job failed"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)


class InvalidUrl(GourceError):
    message = "Invalid URL"


class UnsupportedRepository(GourceError):
    message = "Only GitHub repositories are supported"


class TempDirCreationFailed(GourceError):
    message = "Failed to create temporary directory"


class CloneFailed(GourceError):
    message = "Failed to clone repository"


class CommitCountFailed(GourceError):
    message = "Failed to count commits"


class GourceGenerationFailed(GourceError):
    message = "Failed to generate Gource visualization"


class DecryptionFailed(GourceError):
    message = "Failed to decrypt access token"
