class RewriterError(Exception):
    """Base exception for per-line rewriting problems; never fatal to a run."""


class UnparseableRowError(RewriterError):
    """Raised when a data statement's literal/quote structure cannot be resolved."""


class MissingTableContextError(RewriterError):
    """Raised when an insert has no column list and no declaration is known."""
