class ConfigError(ValueError):
    """Bad flag value, malformed target or unreadable targets file. Fatal, raised before probing."""


class ParseError(ConfigError):
    """A target string that is not a valid host:port."""
