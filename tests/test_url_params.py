from urllib.parse import parse_qs

from shape_geometry import ShapeKind
from spirotrace_math import OrbitMode, SpiroParams
from url_params import (
    build_share_url,
    format_number,
    params_from_query,
    parse_params,
    serialize_params,
)


def test_serialize_uses_short_keys():
    query = serialize_params(SpiroParams())
    values = parse_qs(query)
    assert values == {
        "R": ["120"],
        "r": ["35"],
        "d": ["60"],
        "c": ["00ffff"],
        "s": ["5"],
        "m": ["INNER"],
        "sh": ["CIRCLE"],
        "w": ["2"],
        "e": ["2"],
    }


def test_reverse_rotation_is_only_written_when_set():
    query = serialize_params(SpiroParams(reverse_rotation=True, elongation=1.5))
    values = parse_qs(query)
    assert values["rv"] == ["1"]
    assert values["e"] == ["1.5"]


def test_format_number():
    assert format_number(3.0) == "3"
    assert format_number(0.25) == "0.25"


def test_parse_accepts_full_url_and_colour_with_marker():
    params = params_from_query(
        "https://example.org/app?R=80&r=20&d=10&c=%23FF0000&m=OUTER&sh=STADIUM&rv=true"
    )
    assert params.fixed_scale == 80.0
    assert params.moving_radius == 20.0
    assert params.pen_offset == 10.0
    assert params.color == "#ff0000"
    assert params.orbit_mode == OrbitMode.OUTER
    assert params.shape == ShapeKind.STADIUM
    assert params.reverse_rotation is True
    assert params.speed == SpiroParams().speed


def test_malformed_values_are_dropped():
    result = parse_params("R=abc&r=-4&d=inf&w=0&c=zzzzzz&m=SIDEWAYS&sh=HEX&s=7")
    assert result == {"speed": 7.0}


def test_missing_query_keeps_defaults():
    assert params_from_query("") == SpiroParams()


def test_build_share_url_replaces_query():
    url = build_share_url("https://example.org/app?old=1#frag", SpiroParams())
    assert url.startswith("https://example.org/app?R=120&")
    assert "old=" not in url
    assert "#" not in url


def test_values_beyond_limits_are_dropped():
    result = parse_params("R=1e308&r=1e-320&e=1e308&d=2e6&s=5000&w=500&sh=SQUARE")
    assert result == {"shape": ShapeKind.SQUARE}
