class MiniStiError(Exception):
    """Base class for every error raised by ministi."""


class ConfigurationError(MiniStiError, ValueError):
    """A model or an inheritance hierarchy was declared incorrectly."""


class InvalidMappingError(ConfigurationError):
    """The model map produced something that is neither a class, a name nor None."""


class DuplicateDiscriminatorError(ConfigurationError):
    """Two classes of one hierarchy would store the same discriminator value."""


class FlushError(MiniStiError, RuntimeError):
    """Writing the unit of work failed; the session has been rolled back."""
