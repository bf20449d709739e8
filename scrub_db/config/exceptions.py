class ConfigError(Exception):
    """Raised when the run configuration file cannot be loaded or is invalid."""
