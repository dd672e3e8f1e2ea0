class TickerError(Exception):
    """Base error for the ticker presence bot."""


class SetupError(TickerError):
    """A watcher could not open its session or resolve its identity."""


class TransientFetchError(TickerError):
    """Price provider returned no usable data for this tick."""


class FormatError(TickerError):
    """Numeric payload from a provider could not be parsed."""


class PublishError(TickerError):
    """The chat platform rejected a nickname, role or activity update."""


class WatcherExistsError(TickerError):
    pass
