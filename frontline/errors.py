"""Exception hierarchy shared across Frontline."""


class FrontlineError(Exception):
    """Base class for Frontline errors."""


class FatalTurnError(FrontlineError):
    """The turn cannot be classified; the caller must be handed to a human."""


class RuleCompilationError(FatalTurnError):
    """The rule store could not be read while building a rule set."""

    def __init__(self, tenant_id: object, message: str) -> None:
        self.tenant_id = tenant_id
        super().__init__(f"Rule compilation failed for tenant {tenant_id}: {message}")


class TriageNoMatchError(FatalTurnError):
    """No rule matched; the compiled set is missing its catch-all."""


class CacheError(FrontlineError):
    """A compiled-artifact cache backend failed."""


class PolicyCompilationError(FrontlineError):
    """A policy document could not be compiled."""


class RuleNotFoundError(FrontlineError):
    """A rule or triage card does not exist for the tenant."""
