import logging
import sys


class Log:
    """Centralized logging for scrub-db.

    Everything goes to stderr: stdout may be carrying the rewritten dump.
    """

    _logger: logging.Logger = logging.getLogger("scrub_db")

    @classmethod
    def configure(cls, log_level: str) -> None:
        """Set the level and attach the stderr handler once per process."""
        cls._logger.setLevel(log_level.upper())
        if not cls._logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(
                logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
            )
            cls._logger.addHandler(handler)

    @classmethod
    def reset(cls) -> None:
        """Drop handlers and level so the next configure starts clean."""
        for handler in list(cls._logger.handlers):
            cls._logger.removeHandler(handler)
        cls._logger.setLevel(logging.NOTSET)

    @classmethod
    def info(cls, message: str, **kwargs: object) -> None:
        """Log run-level progress, such as the end-of-run summary."""
        cls._logger.info(message, extra=kwargs)

    @classmethod
    def error(cls, message: str, **kwargs: object) -> None:
        """Log a failure that stops the run."""
        cls._logger.error(message, extra=kwargs)

    @classmethod
    def warning(cls, message: str, **kwargs: object) -> None:
        """Log a recoverable problem, e.g. lines passed through unchanged."""
        cls._logger.warning(message, extra=kwargs)

    @classmethod
    def debug(cls, message: str, **kwargs: object) -> None:
        """Log a per-line detail."""
        cls._logger.debug(message, extra=kwargs)
