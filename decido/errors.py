"""Error types raised by the decision engine.

Both kinds propagate to the caller. The host translates them into a
fatal data-integrity report (ConfigurationError) or a user-facing
denial (PreconditionViolation).
"""


class DecidoError(Exception):
    """Base exception for all decision-engine errors."""


class ConfigurationError(DecidoError):
    """Raised when a decision is configured in a way the engine cannot honour.

    Unknown decision method, unknown step mode or mention scale, or a
    staging window whose end does not come after its start.
    """


class PreconditionViolation(DecidoError):
    """Raised when an operation is attempted in a state that forbids it.

    Manual stage overrides outside AMENDEMENTS, actions by someone other
    than the creator, or resolution input inconsistent with the method.
    """
