from __future__ import annotations

import pytest
from PIL import Image

import find_panes
from beacon_map.core_types import Color8, ColorF, InvalidInputError, SearchResult
from beacon_map.utils import (
    format_number_compact,
    format_result_lines,
    format_seconds_compact,
    format_total_duration_compact,
    key_value_pairs_to_string,
    save_swatch_png,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("#00ffff", (0, 255, 255)),
        ("0x00ffff", (0, 255, 255)),
        ("#0ff", (0, 255, 255)),
        ("0X00FFFF", (0, 255, 255)),
        ("65535", (0, 255, 255)),
        ("808080", (12, 84, 144)),
    ],
)
def test_parse_target(text, expected):
    assert find_panes.parse_target(text).to_tuple() == expected


@pytest.mark.parametrize("text", ["cyan", "c0c0c0", "0ff", "#12345", "-65535"])
def test_parse_target_rejects_garbage(text):
    # Unprefixed hex is ambiguous with decimal, so it is refused.
    with pytest.raises(InvalidInputError):
        find_panes.parse_target(text)


def test_cli_defaults():
    args = find_panes.parse_cli_args([])
    assert args.target == "0x00ffff"
    assert args.depth == 5
    assert args.metric == "cie76"
    assert args.workers >= 1
    assert args.swatch is None


def test_main_depth_one(capsys):
    status = find_panes.main(["#00ffff", "--depth", "1", "--workers", "1"])
    out = capsys.readouterr().out
    assert status == 0
    assert "[search] Target: #00ffff" in out
    assert "Combinations: 16" in out
    assert "Final Panes:" in out
    assert "Combinations checked: 16" in out


def test_main_writes_swatch(tmp_path, capsys):
    path = tmp_path / "swatch.png"
    status = find_panes.main(
        ["#ff0000", "--depth", "2", "--workers", "1", "--swatch", str(path)]
    )
    assert status == 0
    assert "Wrote swatch.png" in capsys.readouterr().out
    with Image.open(path) as img:
        assert img.size == (128, 64)
        assert img.convert("RGB").getpixel((0, 0)) == (255, 0, 0)


def test_main_reports_bad_target(capsys):
    status = find_panes.main(["not-a-colour", "--workers", "1"])
    err = capsys.readouterr().err
    assert status == 2
    assert err.startswith("[error] ")


def test_main_reports_bad_depth(capsys):
    status = find_panes.main(["--depth", "0", "--workers", "1"])
    assert status == 2
    assert "--depth must be >= 1" in capsys.readouterr().err


def test_format_result_lines():
    result = SearchResult(
        1.5, ("white", "black"), ColorF(139.0, 142.0, 143.5), leaves=4
    )
    lines = format_result_lines(result, Color8(139, 142, 143))
    assert lines[0] == "Target: #8b8e8f  (139, 142, 143)"
    assert lines[1] == "Distance: 1.500000"
    assert lines[2] == "Calculated Color: (139.000, 142.000, 143.500)  ~#8b8e8f"
    assert lines[3] == "Final Panes: white, black"
    assert lines[4] == "Combinations checked: 4"


def test_save_swatch_right_half_is_result(tmp_path):
    path = tmp_path / "s.png"
    result = SearchResult(0.0, ("a",), ColorF(10.9, 20.0, 30.0), leaves=1)
    save_swatch_png(path, Color8(1, 2, 3), result, size=4)
    with Image.open(path) as img:
        assert img.size == (8, 4)
        assert img.getpixel((0, 0)) == (1, 2, 3)
        assert img.getpixel((7, 3)) == (10, 20, 30)


def test_formatting_helpers():
    assert format_seconds_compact(0.25) == "250.0ms"
    assert format_seconds_compact(2.5) == "2.500s"
    assert format_seconds_compact(125.0) == "2m 5.0s"
    assert format_total_duration_compact(125.0) == "2m 5s"
    assert format_number_compact(65536) == "65,536"
    assert format_number_compact(1.2500) == "1.25"
    assert key_value_pairs_to_string([("Debug", True), ("Depth", 5)]) == (
        "Debug: on  Depth: 5"
    )
