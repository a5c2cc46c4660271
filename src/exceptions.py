"""Errors raised while extracting, resolving and staging a Kettle environment."""


class StagingError(Exception):
    """Exception class from which every exception in this library will derive."""

    pass


class InvalidArgumentError(StagingError, ValueError):
    """A required argument is missing or refers to something in the wrong state."""

    pass


class MissingArgumentError(InvalidArgumentError):
    pass


class DestinationExistsError(InvalidArgumentError):
    """The staging destination exists and overwriting was not allowed."""

    pass


class SourceNotFoundError(StagingError):
    pass


class PluginFolderNotFoundError(SourceNotFoundError):
    """None of the plugin roots contains the requested plugin folder."""

    pass


class ExtractionFailedError(StagingError):
    pass


class CleanupFailedError(StagingError):
    """The partially extracted destination could not be removed after a failure."""

    pass


class ResolutionError(StagingError):
    """A plugin root exists but could not be searched."""

    pass


class StagingFailedError(StagingError):
    pass
