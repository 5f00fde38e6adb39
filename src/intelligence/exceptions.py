"""Error taxonomy of the intelligence engine.

Data sparsity is never an error: calculators return ``insufficient-data``
as a regular classification. Only operational failures and policy
violations raise.
"""


class IntelligenceError(Exception):
    """Base class for every error raised by the engine."""


class AllowanceExceeded(IntelligenceError):
    """A sample pull would go over the approval threshold without sign-off."""

    def __init__(self, current: int, requested: int, limit: int):
        self.current = int(current)
        self.requested = int(requested)
        self.limit = int(limit)
        super().__init__(
            f"Allocation echantillons depassee: {self.current} deja preleves, "
            f"{self.requested} demandes, seuil {self.limit}. "
            "Validation d'un responsable requise."
        )

    def as_payload(self) -> dict:
        return {
            "current": self.current,
            "requested": self.requested,
            "limit": self.limit,
        }


class DataSourceUnavailable(IntelligenceError):
    """The order history store could not be read (timeout, lost connection)."""


class InvalidConfiguration(IntelligenceError):
    """Tenant thresholds are nonsensical and would misclassify accounts."""
