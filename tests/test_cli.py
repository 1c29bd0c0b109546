import json
import sys

import pytest

import build_tournament
import decode_che
import verify_layout
from chelib import parse, Result, ResultMatrix
from chelib.results import encode_results
from chelib.constants import TEAM_FILE_SIZE


def _run(module, monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", [module.__name__, *argv])
    module.main()


@pytest.fixture
def inputs(tmp_path, red_team_file, cup_file, template):
    paths = {}
    for name, data in (("red.CHE", red_team_file), ("cup.CHE", cup_file), ("tmpl.CHE", template)):
        path = tmp_path / name
        path.write_bytes(data)
        paths[name] = str(path)
    return paths


def test_decode_json(inputs, monkeypatch, capsys):
    _run(decode_che, monkeypatch, inputs["cup.CHE"], "--json")
    out = json.loads(capsys.readouterr().out)
    assert out["type"] == "match"
    assert out["header"]["tournament_name"] == "Spring Cup"
    assert [t["name"] for t in out["teams"]] == ["Falcons", "Wolves", "Owls"]


def test_decode_text(inputs, monkeypatch, capsys):
    _run(decode_che, monkeypatch, inputs["red.CHE"])
    out = capsys.readouterr().out
    assert "Team:  Red Team" in out
    assert "Owner: Alice" in out


def test_decode_rejects_unknown_file(tmp_path, monkeypatch):
    path = tmp_path / "junk.bin"
    path.write_bytes(b"JUNK")
    with pytest.raises(SystemExit):
        _run(decode_che, monkeypatch, str(path))


def test_build_with_selection(inputs, tmp_path, monkeypatch, capsys):
    out_path = tmp_path / "out.CHE"
    _run(build_tournament, monkeypatch, inputs["red.CHE"], inputs["cup.CHE"],
         "-o", str(out_path), "--template", inputs["tmpl.CHE"],
         "--name", "Final", "--teams", "2,0", "--validate")

    parsed = parse(out_path.read_bytes())
    assert parsed.header.name == "Final"
    assert [t.name for t in parsed.teams] == ["Wolves", "Red Team"]
    assert "Wrote 'Final'" in capsys.readouterr().out


def test_build_team_format(inputs, tmp_path, monkeypatch):
    out_path = tmp_path / "teams.CHE"
    _run(build_tournament, monkeypatch, inputs["cup.CHE"], "-o", str(out_path), "--format", "team")
    assert len(out_path.read_bytes()) == 3 * TEAM_FILE_SIZE


def test_build_with_synthesized_template(inputs, tmp_path, monkeypatch):
    out_path = tmp_path / "out.CHE"
    _run(build_tournament, monkeypatch, inputs["red.CHE"], inputs["red.CHE"],
         "-o", str(out_path), "--synthesize-template")
    assert len(parse(out_path.read_bytes()).teams) == 2


def test_build_rejects_bad_selection(inputs, tmp_path, monkeypatch):
    with pytest.raises(SystemExit):
        _run(build_tournament, monkeypatch, inputs["red.CHE"],
             "-o", str(tmp_path / "x.CHE"), "--synthesize-template", "--teams", "5")


def test_build_list(inputs, monkeypatch, capsys):
    _run(build_tournament, monkeypatch, inputs["red.CHE"], inputs["cup.CHE"], "--list")
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 4
    assert "Owls" in lines[3]


def test_probe_offsets_prefers_default(cup_file):
    results = verify_layout.probe_offsets(cup_file)
    by_shift = {shift: clean for shift, _, clean, _ in results}
    assert by_shift[0] == 3
    assert max(by_shift.values()) == by_shift[0]


def test_verify_layout_round_trip(inputs, monkeypatch, capsys):
    _run(verify_layout, monkeypatch, inputs["cup.CHE"])
    out = capsys.readouterr().out
    assert "OK" in out


def test_decode_prints_result_report(cup_file, tmp_path, monkeypatch, capsys):
    matrix = ResultMatrix(3)
    matrix.set(0, 1, Result.WIN)
    matrix.set(2, 0, Result.DRAW)
    packed = encode_results(matrix)
    data = bytearray(cup_file)
    data[0x150:0x150 + len(packed)] = packed
    path = tmp_path / "played.CHE"
    path.write_bytes(bytes(data))

    _run(decode_che, monkeypatch, str(path), "--results-offset", "0x150")
    out = capsys.readouterr().out
    assert "No 01 03 02 " in out
    assert "01 ＼ △ ○ 01-00-01" in out
    assert "01位 01 04p (01-01-00) : Falcons [Carol]" in out
    assert "==ここまで==" in out
