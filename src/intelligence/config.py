"""Typed configuration for the intelligence calculators.

Every recognised option is enumerated here with its default. Options are
validated once when a configuration is built; the calculators never read
loose option bags.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from decimal import Decimal, InvalidOperation

from intelligence.exceptions import InvalidConfiguration

RANKING_METRICS = ("revenue", "volume", "penetration")


def _to_decimal(name: str, value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidConfiguration(f"{name}: valeur numerique attendue.")
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidConfiguration(f"{name}: valeur numerique attendue, recu {value!r}.") from exc


def _to_int(name: str, value) -> int:
    if isinstance(value, bool):
        raise InvalidConfiguration(f"{name}: entier attendu.")
    try:
        parsed = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidConfiguration(f"{name}: entier attendu, recu {value!r}.") from exc
    if parsed != parsed.to_integral_value():
        raise InvalidConfiguration(f"{name}: entier attendu, recu {value!r}.")
    return int(parsed)


def _to_bool(name: str, value) -> bool:
    if isinstance(value, bool):
        return value
    raw = str(value).strip().lower()
    if raw in {"1", "true", "yes", "on"}:
        return True
    if raw in {"0", "false", "no", "off"}:
        return False
    raise InvalidConfiguration(f"{name}: booleen attendu, recu {value!r}.")


_COERCERS = {
    "int": _to_int,
    "Decimal": _to_decimal,
    "bool": _to_bool,
    "str": lambda name, value: str(value),
}


def _coerce_section(cls, section: str, data: dict):
    if not isinstance(data, dict):
        raise InvalidConfiguration(f"{section}: dictionnaire attendu.")
    known = {f.name: f for f in fields(cls)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise InvalidConfiguration(f"{section}: option(s) inconnue(s): {', '.join(unknown)}.")
    values = {}
    for key, raw in data.items():
        coerce = _COERCERS[known[key].type]
        values[key] = coerce(f"{section}.{key}", raw)
    return cls(**values)


@dataclass(frozen=True)
class PaceConfig:
    lookback_days: int = 180
    minimum_orders_required: int = 3
    warning_multiplier: Decimal = Decimal("1.2")
    critical_multiplier: Decimal = Decimal("1.5")

    def validate(self) -> "PaceConfig":
        if self.lookback_days <= 0:
            raise InvalidConfiguration("pace.lookback_days doit etre strictement positif.")
        # Two orders are the minimum to measure a single interval.
        if self.minimum_orders_required < 2:
            raise InvalidConfiguration("pace.minimum_orders_required doit etre >= 2.")
        if self.warning_multiplier <= 0:
            raise InvalidConfiguration("pace.warning_multiplier doit etre strictement positif.")
        if self.warning_multiplier >= self.critical_multiplier:
            raise InvalidConfiguration(
                "pace.warning_multiplier doit etre inferieur a pace.critical_multiplier."
            )
        return self


@dataclass(frozen=True)
class HealthConfig:
    lookback_months: int = 6
    minimum_months_required: int = 3
    warning_threshold_percent: Decimal = Decimal("-10")
    critical_threshold_percent: Decimal = Decimal("-15")
    exclude_current_month: bool = True

    def validate(self) -> "HealthConfig":
        if self.lookback_months <= 0:
            raise InvalidConfiguration("health.lookback_months doit etre strictement positif.")
        if self.minimum_months_required <= 0:
            raise InvalidConfiguration("health.minimum_months_required doit etre strictement positif.")
        max_months = self.lookback_months + (0 if self.exclude_current_month else 1)
        if self.minimum_months_required > max_months:
            raise InvalidConfiguration(
                "health.minimum_months_required depasse le nombre de mois de la fenetre."
            )
        if self.critical_threshold_percent >= self.warning_threshold_percent:
            raise InvalidConfiguration(
                "health.critical_threshold_percent doit etre inferieur a health.warning_threshold_percent."
            )
        return self


@dataclass(frozen=True)
class SampleConfig:
    monthly_allowance: int = 60
    require_manager_approval_over: int = 60
    minimum_feedback_days: int = 7
    track_tasting_feedback: bool = True

    def validate(self) -> "SampleConfig":
        if self.monthly_allowance < 0:
            raise InvalidConfiguration("samples.monthly_allowance ne peut pas etre negatif.")
        if self.require_manager_approval_over < 0:
            raise InvalidConfiguration("samples.require_manager_approval_over ne peut pas etre negatif.")
        if self.minimum_feedback_days < 0:
            raise InvalidConfiguration("samples.minimum_feedback_days ne peut pas etre negatif.")
        return self


@dataclass(frozen=True)
class OpportunityConfig:
    lookback_days: int = 180
    minimum_customer_threshold: int = 3
    result_size: int = 20
    default_metric: str = "revenue"
    include_inactive_products: bool = False

    def validate(self) -> "OpportunityConfig":
        if self.lookback_days <= 0:
            raise InvalidConfiguration("opportunities.lookback_days doit etre strictement positif.")
        if self.minimum_customer_threshold < 0:
            raise InvalidConfiguration("opportunities.minimum_customer_threshold ne peut pas etre negatif.")
        if self.result_size <= 0:
            raise InvalidConfiguration("opportunities.result_size doit etre strictement positif.")
        if self.default_metric not in RANKING_METRICS:
            raise InvalidConfiguration(
                f"opportunities.default_metric inconnu: {self.default_metric!r} "
                f"(attendu: {', '.join(RANKING_METRICS)})."
            )
        return self


_SECTIONS = {
    "pace": PaceConfig,
    "health": HealthConfig,
    "samples": SampleConfig,
    "opportunities": OpportunityConfig,
}


@dataclass(frozen=True)
class IntelligenceConfig:
    """All calculator options of one tenant."""

    pace: PaceConfig = field(default_factory=PaceConfig)
    health: HealthConfig = field(default_factory=HealthConfig)
    samples: SampleConfig = field(default_factory=SampleConfig)
    opportunities: OpportunityConfig = field(default_factory=OpportunityConfig)

    def validate(self) -> "IntelligenceConfig":
        self.pace.validate()
        self.health.validate()
        self.samples.validate()
        self.opportunities.validate()
        return self

    @classmethod
    def defaults(cls) -> "IntelligenceConfig":
        return cls().validate()

    @classmethod
    def from_mapping(cls, data: dict | None) -> "IntelligenceConfig":
        """Build a validated config from ``{"pace": {...}, "health": {...}, ...}``.

        Missing sections or options keep their defaults; unknown sections or
        options are rejected.
        """
        data = data or {}
        if not isinstance(data, dict):
            raise InvalidConfiguration("Configuration: dictionnaire attendu.")
        unknown = sorted(set(data) - set(_SECTIONS))
        if unknown:
            raise InvalidConfiguration(f"Section(s) inconnue(s): {', '.join(unknown)}.")
        sections = {
            name: _coerce_section(section_cls, name, data.get(name, {}))
            for name, section_cls in _SECTIONS.items()
        }
        return cls(**sections).validate()

    def merged(self, overrides: dict | None) -> "IntelligenceConfig":
        """Return a copy with ``overrides`` applied on top of the current values."""
        current = self.as_dict()
        for section, values in (overrides or {}).items():
            if section in current and isinstance(values, dict):
                current[section] = {**current[section], **values}
            else:
                current[section] = values
        return self.from_mapping(current)

    def with_section(self, **sections) -> "IntelligenceConfig":
        return replace(self, **sections).validate()

    def as_dict(self) -> dict:
        return {name: asdict(getattr(self, name)) for name in _SECTIONS}
