from decimal import Decimal

import pytest

from intelligence.config import (
    HealthConfig,
    IntelligenceConfig,
    OpportunityConfig,
    PaceConfig,
    SampleConfig,
)
from intelligence.exceptions import InvalidConfiguration


def test_defaults_are_valid():
    config = IntelligenceConfig.defaults()

    assert config.pace.lookback_days == 180
    assert config.pace.warning_multiplier == Decimal("1.2")
    assert config.health.critical_threshold_percent == Decimal("-15")
    assert config.samples.monthly_allowance == 60
    assert config.opportunities.default_metric == "revenue"


def test_from_mapping_coerces_values():
    config = IntelligenceConfig.from_mapping({
        "pace": {"lookback_days": "90", "warning_multiplier": "1.3"},
        "samples": {"track_tasting_feedback": "false"},
    })

    assert config.pace.lookback_days == 90
    assert config.pace.warning_multiplier == Decimal("1.3")
    assert config.samples.track_tasting_feedback is False
    assert config.health == HealthConfig()


@pytest.mark.parametrize(
    "data",
    [
        {"pace": {"warning_multiplier": "1.6"}},
        {"pace": {"minimum_orders_required": 1}},
        {"pace": {"lookback_days": 0}},
        {"health": {"warning_threshold_percent": "-20"}},
        {"health": {"minimum_months_required": 7}},
        {"samples": {"monthly_allowance": -1}},
        {"opportunities": {"default_metric": "margin"}},
        {"opportunities": {"result_size": 0}},
        {"pace": {"unknown_option": 1}},
        {"metrics": {}},
        {"pace": {"lookback_days": "abc"}},
        {"pace": {"lookback_days": 1.5}},
        {"samples": {"track_tasting_feedback": "peut-etre"}},
    ],
)
def test_nonsensical_values_are_rejected(data):
    with pytest.raises(InvalidConfiguration):
        IntelligenceConfig.from_mapping(data)


def test_merged_keeps_existing_values():
    base = IntelligenceConfig.from_mapping({"pace": {"lookback_days": 120}})

    merged = base.merged({"pace": {"minimum_orders_required": 4}})

    assert merged.pace.lookback_days == 120
    assert merged.pace.minimum_orders_required == 4


def test_with_section_validates():
    config = IntelligenceConfig.defaults()

    with pytest.raises(InvalidConfiguration):
        config.with_section(samples=SampleConfig(minimum_feedback_days=-1))

    updated = config.with_section(opportunities=OpportunityConfig(result_size=5))
    assert updated.opportunities.result_size == 5


def test_as_dict_round_trips_through_from_mapping():
    config = IntelligenceConfig(pace=PaceConfig(lookback_days=60)).validate()

    assert IntelligenceConfig.from_mapping(config.as_dict()) == config
