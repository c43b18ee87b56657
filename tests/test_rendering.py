import base64
import io
import json
from unittest import mock

import pytest

from bpcli.rendering import (
    optimal_column_width,
    render_json,
    render_json_value,
    render_table,
    render_tabbed_table,
    truncate_columns,
)


def test_width_falls_back_without_terminal():
    assert optimal_column_width([["a", "b"]], 2, None) == 200


def test_width_shared_between_remaining_columns():
    assert optimal_column_width([["first-column", "b", "c"]], 2, 100) == 40


def test_width_grows_with_terminal():
    rows = [["name", "b", "c"], ["longer-name", "d", "e"]]
    narrow = optimal_column_width(rows, 2, 120)
    wide = optimal_column_width(rows, 2, 122)
    assert wide == narrow + 1


def test_width_needs_two_columns():
    with pytest.raises(ValueError):
        optimal_column_width([["only"]], 2, 80)


def test_truncate_keeps_first_column():
    row = ["a-very-long-first-column", "ok"]
    assert truncate_columns(row, 4)[0] == "a-very-long-first-column"


def test_truncate_long_content():
    assert truncate_columns(["x", "abcdefgh"], 5) == ["x", "abcde..."]


def test_truncate_at_exact_width():
    assert truncate_columns(["x", "abcd"], 4) == ["x", "abcd..."]


def test_truncate_at_newline():
    assert truncate_columns(["x", "line1\nline2"], 10) == ["x", "line1..."]


def test_truncate_newline_beyond_width():
    assert truncate_columns(["x", "abcdefghij\nk"], 4) == ["x", "abcd..."]


def test_truncate_short_content_unchanged():
    assert truncate_columns(["x", "ab"], 10) == ["x", "ab"]


@mock.patch("os.get_terminal_size", side_effect=OSError)
def test_tabbed_table_aligns_columns(_size):
    out = io.StringIO()
    render_tabbed_table(["NAME", "ID"], [["alpha", "1"], ["b", "22"]], out)
    lines = out.getvalue().splitlines()
    assert len(lines) == 3
    assert lines[0].startswith("NAME")
    assert lines[0].index("ID") == lines[1].index("1") == lines[2].index("22")


def test_table_formats_headers():
    out = io.StringIO()
    render_table(["cluster_id", "name"], [["abc", "x"]], out)
    lines = out.getvalue().splitlines()
    assert lines[0].startswith("CLUSTER ID")
    assert "NAME" in lines[0]
    assert lines[1].startswith("abc")
    assert lines[1].split("\t")[-1] == "x"


def test_table_wraps_long_cells():
    long_text = " ".join(["word"] * 20)
    out = io.StringIO()
    render_table(["id", "text"], [["1", long_text]], out)
    lines = out.getvalue().splitlines()
    assert len(lines) > 2
    assert " ".join(line.split("\t")[-1].strip() for line in lines[1:]) == long_text


def test_render_json_round_trip():
    out = io.StringIO()
    payload = b'{"hello": "world"}'
    render_json(io.BytesIO(payload), out)
    assert base64.b64decode(json.loads(out.getvalue())) == payload


def test_render_json_value_round_trip():
    out = io.StringIO()
    value = {"b": [1, 2], "a": "<tag> & more"}
    render_json_value(value, out)
    text = out.getvalue()
    assert json.loads(text) == value
    assert "<" not in text and "&" not in text
    assert text.index('"a"') < text.index('"b"')