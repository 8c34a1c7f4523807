"""Error kinds raised across pushcron."""


class PushcronError(Exception):
    """Base class for all pushcron errors."""


class ConfigError(PushcronError):
    """Runtime configuration is missing or malformed. Aborts a whole tick."""


class ChannelError(PushcronError):
    """A channel could not deliver a message.

    Covers unknown channels, missing credentials, malformed provider
    responses and provider-reported failures. Drives the retry loop.
    """


class TransportError(ChannelError):
    """The provider could not be reached (network failure)."""


class NotFoundError(PushcronError):
    """A task id does not exist."""
