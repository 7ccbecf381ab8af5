import pytest
from sgxcompose.UTILS.string_interpolation import EnvironmentInterpolator, InterpolationError


def interpolate(template, **context):
    return EnvironmentInterpolator(context).interpolate(template)


def test_plain_and_braced():
    assert interpolate("$HOME/x", HOME="/root") == "/root/x"
    assert interpolate("${HOME}x", HOME="/root") == "/rootx"


def test_defaults():
    assert interpolate("${TAG:-latest}") == "latest"
    assert interpolate("${TAG:-latest}", TAG="") == "latest"
    assert interpolate("${TAG-latest}", TAG="") == ""
    assert interpolate("${TAG-latest}", TAG="v1") == "v1"


def test_alternates():
    assert interpolate("${DEBUG:+--verbose}", DEBUG="1") == "--verbose"
    assert interpolate("${DEBUG:+--verbose}", DEBUG="") == ""
    assert interpolate("${DEBUG+--verbose}", DEBUG="") == "--verbose"
    assert interpolate("${DEBUG+--verbose}") == ""


def test_required():
    assert interpolate("${SGX_MODE:?set SGX_MODE}", SGX_MODE="HW") == "HW"
    with pytest.raises(InterpolationError, match="set SGX_MODE"):
        interpolate("${SGX_MODE:?set SGX_MODE}")
    with pytest.raises(InterpolationError):
        interpolate("${SGX_MODE:?}", SGX_MODE="")
    assert interpolate("${SGX_MODE?}", SGX_MODE="") == ""


def test_escape():
    assert interpolate("$$HOME", HOME="/root") == "$HOME"


def test_missing_recorded():
    interpolator = EnvironmentInterpolator({})
    assert interpolator.interpolate("${A}-$B-${A}") == "--"
    assert interpolator.missing == ["A", "B"]


def test_interpolate_data_leaves_keys():
    interpolator = EnvironmentInterpolator({"X": "1"})
    data = {"$X": ["$X", {"k": "${X}"}, 5, None]}
    assert interpolator.interpolate_data(data) == {"$X": ["1", {"k": "1"}, 5, None]}


def test_lone_dollar_kept():
    assert interpolate("cost $ 5") == "cost $ 5"
