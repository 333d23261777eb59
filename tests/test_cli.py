"""Tests for the command line interface"""

import json

import pytest

from netimpact.__main__ import build_parser, main, parse_change
from netimpact.topology import CostChange


@pytest.fixture
def scenario_file(tmp_path, scenario_dict):
    path = tmp_path / "topology.json"
    path.write_text(json.dumps(scenario_dict))
    return str(path)


class TestParseChange:
    """Tests for EDGE=COST parsing"""

    def test_valid(self):
        """Test a well-formed change"""
        assert parse_change("ab=25") == CostChange("ab", 25)

    def test_edge_id_with_equals(self):
        """Test only the last = splits"""
        assert parse_change("a=b=7").edge_id == "a=b"

    @pytest.mark.parametrize("raw", ["ab", "=25", "ab=x"])
    def test_invalid(self, raw):
        """Test malformed changes"""
        with pytest.raises(ValueError):
            parse_change(raw)


class TestMain:
    """Tests for main()"""

    def test_path(self, scenario_file, capsys):
        """Test the path command prints JSON"""
        assert main(["path", scenario_file, "A", "D"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["path"]["canonical_path"] == ["A", "B", "D"]

    def test_unreachable_path(self, scenario_file, capsys):
        """Test an unreachable pair prints a null path"""
        assert main(["path", scenario_file, "D", "A"]) == 0
        assert json.loads(capsys.readouterr().out) == {"path": None}

    def test_impact(self, scenario_file, capsys):
        """Test the impact command"""
        assert main(["impact", scenario_file, "--change", "ab=25"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["score"]["overall"] == 63
        assert data["report_id"] == "report-000001"

    def test_spof(self, scenario_file, capsys):
        """Test the spof command"""
        assert main(["spof", scenario_file, "--max", "2"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert len(data["scan"]["spofs"]) <= 2

    def test_failure(self, scenario_file, capsys):
        """Test the failure command"""
        assert main(["failure", scenario_file, "--edge", "ab", "--seed", "1"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["failed_links"] == ["ab"]

    def test_unknown_node_exit_code(self, scenario_file, capsys):
        """Test topology errors exit with code 2 and JSON on stderr"""
        assert main(["path", scenario_file, "A", "Z"]) == 2
        error = json.loads(capsys.readouterr().err)
        assert error["error"] == "node_not_found"

    def test_missing_file(self, tmp_path, capsys):
        """Test an unreadable file exits with code 2"""
        assert main(["spof", str(tmp_path / "missing.json")]) == 2
        assert json.loads(capsys.readouterr().err)["error"] == "invalid_input"

    def test_bad_change(self, scenario_file, capsys):
        """Test a malformed change exits with code 2"""
        assert main(["impact", scenario_file, "--change", "ab"]) == 2

    def test_malformed_topology(self, tmp_path, capsys):
        """Test a node without an id exits with code 2 and JSON on stderr"""
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"nodes": [{"label": "x"}], "edges": []}))
        assert main(["spof", str(path)]) == 2
        error = json.loads(capsys.readouterr().err)
        assert error["error"] == "topology_error"
        assert "node #0" in error["message"]

    def test_no_command(self, capsys):
        """Test help without a command"""
        assert main([]) == 0
        assert "netimpact" in capsys.readouterr().out

    def test_log_level_parsing(self):
        """Test the log level is case-insensitive"""
        args = build_parser().parse_args(["--log-level", "debug", "path", "t.json", "A", "B"])
        assert args.log_level == "DEBUG"
