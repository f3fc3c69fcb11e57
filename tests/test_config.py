import pytest

from cgm_aggregator.config import AggregationSettings, TIRThresholds


def test_default_thresholds():
    thresholds = TIRThresholds()
    assert (thresholds.very_low, thresholds.low, thresholds.high, thresholds.very_high) == (54.0, 70.0, 180.0, 250.0)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"very_low": 0},
        {"very_low": 70},
        {"low": 200},
        {"high": 250},
    ],
)
def test_thresholds_must_be_ordered(kwargs):
    with pytest.raises(ValueError):
        TIRThresholds(**kwargs)


def test_settings_from_env_mapping():
    settings = AggregationSettings.from_env(
        {
            "CGM_LOCAL_TIMEZONE": "Asia/Shanghai",
            "CGM_TIR_HIGH": "160",
            "CGM_TIR_VERY_HIGH": "",
        }
    )
    assert settings.local_timezone == "Asia/Shanghai"
    assert settings.thresholds == TIRThresholds(high=160.0)
    assert settings.tz.key == "Asia/Shanghai"


def test_settings_from_empty_env_uses_defaults():
    assert AggregationSettings.from_env({}) == AggregationSettings()


def test_settings_from_env_rejects_bad_number():
    with pytest.raises(ValueError, match="CGM_TIR_LOW"):
        AggregationSettings.from_env({"CGM_TIR_LOW": "seventy"})


def test_settings_reject_unknown_timezone():
    with pytest.raises(ValueError, match="timezone"):
        AggregationSettings(local_timezone="Not/AZone")


def test_settings_require_history_for_longest_period():
    with pytest.raises(ValueError):
        AggregationSettings(history_days=10)
    AggregationSettings(history_days=13, period_days=(7, 14))
