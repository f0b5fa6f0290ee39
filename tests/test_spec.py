"""
Tests for model specifications and smoothing parameters.
"""
import numpy as np
import pytest

from expsmooth import (
    ErrorType,
    InitialState,
    InvalidParameterError,
    ModelSpec,
    SeasonType,
    SmoothingParameters,
    TrendType,
)


def test_parse_codes():
    spec = ModelSpec.parse("A,Ad,M")
    assert spec.error is ErrorType.ADDITIVE
    assert spec.trend is TrendType.DAMPED_ADDITIVE
    assert spec.season is SeasonType.MULTIPLICATIVE
    assert spec.code == "AAdM"
    assert ModelSpec.parse("MMdN").trend is TrendType.DAMPED_MULTIPLICATIVE
    assert ModelSpec.parse("ann") == ModelSpec()


@pytest.mark.parametrize("code", ["", "AN", "XNN", "AXN", "ANX", "AAdMM"])
def test_parse_rejects_garbage(code):
    with pytest.raises(InvalidParameterError):
        ModelSpec.parse(code)


def test_enumerates_every_combination():
    specs = ModelSpec.all()
    assert len(specs) == 2 * 5 * 3
    assert len({s.code for s in specs}) == len(specs)


def test_string_components_are_coerced():
    spec = ModelSpec("multiplicative", "additive", "none")
    assert spec.error is ErrorType.MULTIPLICATIVE
    assert spec.is_multiplicative
    with pytest.raises(InvalidParameterError):
        ModelSpec(trend="quadratic")


def test_required_parameters():
    assert ModelSpec.parse("ANN").required_parameters == ("alpha",)
    assert ModelSpec.parse("AAN").required_parameters == ("alpha", "beta")
    assert ModelSpec.parse("AAdA").required_parameters == ("alpha", "beta", "gamma", "phi")
    assert ModelSpec.parse("MNM").required_parameters == ("alpha", "gamma")


@pytest.mark.parametrize("values", [
    {"alpha": 0.0},
    {"alpha": 1.01},
    {"alpha": float("nan")},
    {"beta": -0.1},
    {"gamma": 1.5},
    {"phi": 0.0},
    {"phi": 1.2},
])
def test_out_of_range_parameters(values):
    with pytest.raises(InvalidParameterError) as exc:
        SmoothingParameters(**values)
    assert exc.value.field == next(iter(values))


def test_boundary_values_are_valid():
    params = SmoothingParameters(alpha=1.0, beta=0.0, gamma=1.0, phi=1.0)
    assert params.as_dict() == {"alpha": 1.0, "beta": 0.0, "gamma": 1.0, "phi": 1.0}


def test_parameters_must_match_components():
    with pytest.raises(InvalidParameterError):
        SmoothingParameters(alpha=0.5, beta=0.1).check(ModelSpec.parse("ANN"))
    with pytest.raises(InvalidParameterError):
        SmoothingParameters(alpha=0.5).check(ModelSpec.parse("AAN"))
    assert SmoothingParameters(alpha=0.5).missing(ModelSpec.parse("AAdN")) == ("beta", "phi")


def test_from_dict_rejects_unknown_names():
    with pytest.raises(InvalidParameterError):
        SmoothingParameters.from_dict({"alpha": 0.5, "delta": 0.1})


def test_initial_state_checks_shape():
    spec = ModelSpec.parse("AAA")
    state = InitialState(level=10.0, trend=1.0, seasonal=[1.0, -1.0])
    assert state.check(spec, 2) is state
    with pytest.raises(InvalidParameterError):
        state.check(spec, 3)
    with pytest.raises(InvalidParameterError):
        InitialState(level=10.0).check(spec, 2)
    with pytest.raises(InvalidParameterError):
        InitialState(level=np.inf)
