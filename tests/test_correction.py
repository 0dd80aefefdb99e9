import math

import pytest

from poib_estimator.models import (
    AxisConvention,
    CoordinateRequest,
    CorrectionResult,
    ErrorKind,
    InchPoint,
    ProcessingError,
    ProcessingStage,
)
from poib_estimator.nodes.correction import (
    compute_clicks,
    inches_per_click,
    inches_per_moa,
    mean_point,
    validate_parameters,
)
from poib_estimator.pipeline import compute_correction

BULL = InchPoint(x=4.25, y=5.5)


def _clicks(poib, bull=BULL, **kwargs) -> CorrectionResult:
    result = compute_clicks(poib, bull, kwargs.pop("distance", 100.0), kwargs.pop("click", 0.25), **kwargs)
    assert isinstance(result, CorrectionResult), result
    return result


def test_true_moa_scales_with_distance():
    assert inches_per_moa(100) == pytest.approx(1.047)
    assert inches_per_moa(50) == pytest.approx(0.5235)
    assert inches_per_click(100, 0.25) == pytest.approx(0.26175)


def test_end_to_end_coordinate_example():
    request = CoordinateRequest(
        holes=[InchPoint(x=3.90, y=4.85), InchPoint(x=3.88, y=4.78)],
        bull=BULL,
        distance_yards=100,
        click_value_moa=0.25,
    )
    result = compute_correction(request)
    assert isinstance(result, CorrectionResult)
    assert result.poib_inches.x == pytest.approx(3.89)
    assert result.poib_inches.y == pytest.approx(4.815)
    assert result.correction_inches.dx_in == pytest.approx(0.36)
    assert result.correction_inches.dy_in == pytest.approx(0.685)
    assert result.clicks.windage_clicks_signed == 1.38
    assert result.clicks.elevation_clicks_signed == 2.62
    assert result.clicks.windage_label == "RIGHT"
    assert result.clicks.elevation_label == "UP"
    assert result.dial.windage == "RIGHT 1.38 clicks"
    assert result.dial.elevation == "UP 2.62 clicks"
    assert result.correction_moa == (0.34, 0.65)
    assert result.diagnostics.inches_per_moa == pytest.approx(1.047)
    assert result.diagnostics.inches_per_click == pytest.approx(0.26175)
    # Two shots is below the recommended group size
    assert result.diagnostics.holes_selected == 2
    assert any("recommended" in w for w in result.diagnostics.warnings)


@pytest.mark.parametrize(
    "poib, windage_sign, windage_label",
    [
        (InchPoint(x=3.0, y=5.5), 1, "RIGHT"),
        (InchPoint(x=6.0, y=5.5), -1, "LEFT"),
    ],
)
def test_windage_direction(poib, windage_sign, windage_label):
    result = _clicks(poib)
    assert math.copysign(1, result.clicks.windage_clicks_signed) == windage_sign
    assert result.clicks.windage_label == windage_label


def test_elevation_direction_y_up():
    low = _clicks(InchPoint(x=4.25, y=2.0))
    assert low.clicks.elevation_clicks_signed > 0
    assert low.clicks.elevation_label == "UP"

    high = _clicks(InchPoint(x=4.25, y=9.0))
    assert high.clicks.elevation_clicks_signed < 0
    assert high.clicks.elevation_label == "DOWN"


def test_elevation_direction_y_down():
    # Same physical group as test_elevation_direction_y_up's low group, on 11in paper
    low = _clicks(
        InchPoint(x=4.25, y=9.0),
        bull=InchPoint(x=4.25, y=5.5),
        convention=AxisConvention.Y_DOWN,
    )
    assert low.clicks.elevation_clicks_signed < 0
    assert low.clicks.elevation_label == "UP"
    assert low.convention == AxisConvention.Y_DOWN


def test_poib_on_bull_gives_zero_and_neutral_labels():
    result = _clicks(BULL)
    assert result.clicks.windage_clicks_signed == 0.0
    assert result.clicks.elevation_clicks_signed == 0.0
    assert math.copysign(1, result.clicks.windage_clicks_signed) == 1
    assert result.clicks.windage_label == "CENTER"
    assert result.clicks.elevation_label == "CENTER"
    assert result.dial.windage == "CENTER 0.00 clicks"


def test_doubling_distance_halves_clicks():
    poib = InchPoint(x=0.0, y=0.0)
    bull = InchPoint(x=1.047, y=-2.094)
    near = _clicks(poib, bull, distance=100.0)
    far = _clicks(poib, bull, distance=200.0)
    assert near.clicks.windage_clicks_signed == pytest.approx(4.0)
    assert near.clicks.elevation_clicks_signed == pytest.approx(-8.0)
    assert far.clicks.windage_clicks_signed == pytest.approx(2.0)
    assert far.clicks.elevation_clicks_signed == pytest.approx(-4.0)


@pytest.mark.parametrize("offset", [0.3, -0.3, 0.49, -0.49])
def test_deadband_zeroes_small_offsets(offset):
    poib = InchPoint(x=0.0, y=0.0)
    result = _clicks(poib, InchPoint(x=offset, y=-offset), deadband_in=0.5)
    assert result.clicks.windage_clicks_signed == 0.0
    assert result.clicks.elevation_clicks_signed == 0.0
    assert result.clicks.windage_label == "CENTER"
    # Raw correction is still reported
    assert result.correction_inches.dx_in == pytest.approx(offset)


def test_deadband_is_per_axis():
    result = _clicks(InchPoint(x=0.0, y=0.0), InchPoint(x=0.2, y=1.0), deadband_in=0.5)
    assert result.clicks.windage_clicks_signed == 0.0
    assert result.clicks.elevation_clicks_signed == pytest.approx(3.82)
    assert result.correction_moa[0] == 0.0


def test_rounding_happens_last():
    # Rounding the inches to two decimals first would give 0.99
    result = _clicks(InchPoint(x=0.0, y=0.0), InchPoint(x=0.26175 * 1.006, y=0.0))
    assert result.clicks.windage_clicks_signed == 1.01


@pytest.mark.parametrize(
    "kwargs, field",
    [
        ({"distance_yards": 0, "click_value_moa": 0.25}, "distance_yards"),
        ({"distance_yards": -50, "click_value_moa": 0.25}, "distance_yards"),
        ({"distance_yards": float("nan"), "click_value_moa": 0.25}, "distance_yards"),
        ({"distance_yards": 100, "click_value_moa": 0}, "click_value_moa"),
        ({"distance_yards": 100, "click_value_moa": float("inf")}, "click_value_moa"),
        ({"distance_yards": 100, "click_value_moa": 0.25, "deadband_in": -1}, "deadband_in"),
        ({"distance_yards": 100, "click_value_moa": 0.25, "pixels_per_inch": 0}, "pixels_per_inch"),
    ],
)
def test_validate_parameters_rejects(kwargs, field):
    err = validate_parameters(**kwargs)
    assert isinstance(err, ProcessingError)
    assert err.error_type == ErrorKind.INVALID_PARAMETER
    assert field in err.details


def test_zero_distance_is_invalid_not_zero_clicks():
    result = compute_clicks(InchPoint(x=0, y=0), BULL, 0, 0.25)
    assert isinstance(result, ProcessingError)
    assert result.error_type == ErrorKind.INVALID_PARAMETER
    assert result.stage == ProcessingStage.CORRECT


def test_coordinate_mode_zero_distance():
    result = compute_correction(
        {"holes": [{"x": 1, "y": 1}], "bull": {"x": 2, "y": 2}, "distance_yards": 0}
    )
    assert isinstance(result, ProcessingError)
    assert result.error_type == ErrorKind.INVALID_PARAMETER


def test_mean_point_empty_is_malformed():
    err = mean_point([])
    assert isinstance(err, ProcessingError)
    assert err.error_type == ErrorKind.MALFORMED_INPUT


def test_coordinate_mode_non_finite_hole():
    result = compute_correction(
        CoordinateRequest(
            holes=[InchPoint(x=1.0, y=1.0), InchPoint(x=float("nan"), y=2.0)],
            bull=BULL,
        )
    )
    assert isinstance(result, ProcessingError)
    assert result.error_type == ErrorKind.MALFORMED_INPUT
    assert result.details["indices"] == [1]


def test_coordinate_mode_missing_bull_is_malformed():
    result = compute_correction({"holes": [{"x": 1, "y": 1}]})
    assert isinstance(result, ProcessingError)
    assert result.error_type == ErrorKind.MALFORMED_INPUT
    assert any(e["loc"] == ["bull"] for e in result.details["errors"])


def test_non_finite_bull_is_malformed():
    result = compute_clicks(InchPoint(x=0, y=0), InchPoint(x=float("inf"), y=0), 100, 0.25)
    assert isinstance(result, ProcessingError)
    assert result.error_type == ErrorKind.MALFORMED_INPUT
