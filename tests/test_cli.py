"""Tests for the typer command-line front end."""

import itertools
import json

import pytest
from typer.testing import CliRunner

from chart_lut.cli import app
from chart_lut.cube import read_cube

runner = CliRunner()


@pytest.fixture
def chart_json(tmp_path):
    """Writes a patch-data file and returns a function to tweak and rewrite it."""
    levels = [0.1, 0.5, 0.9]
    reference = [list(c) for c in itertools.product(levels, repeat=3)]
    camera = [[min(1.0, v * 0.8 + 0.1) for v in c] for c in reference]
    path = tmp_path / "chart.json"

    def write(**overrides) -> str:
        cfg = {
            "reference": {"patches": reference, "skipped": 9},
            "camera": {"patches": camera, "quality": [0.02] * len(camera), "skipped": 9},
        }
        cfg.update(overrides)
        path.write_text(json.dumps(cfg))
        return str(path)

    return write


# ---------------------------------------------------------------------------
# build
# ---------------------------------------------------------------------------


class TestBuild:
    def test_from_config(self, chart_json, tmp_path) -> None:
        out = tmp_path / "out.cube"
        config = chart_json(strategy="rangeAware", size=3, output=str(out), title="Bench")
        result = runner.invoke(app, ["build", "--config", config])
        assert result.exit_code == 0, result.output
        assert "Done" in result.output
        parsed = read_cube(out)
        assert parsed["size"] == 3
        assert parsed["title"] == "Bench"

    def test_options_override_config(self, chart_json, tmp_path) -> None:
        config = chart_json(strategy="rangeAware", size=3)
        result = runner.invoke(
            app,
            [
                "build",
                "-c", config,
                "--strategy", "tetrahedral",
                "--size", "2",
                "--output", "tetra",
                "--output-dir", str(tmp_path / "luts"),
            ],
        )
        assert result.exit_code == 0, result.output
        assert read_cube(tmp_path / "luts" / "tetra.cube")["size"] == 2

    def test_prompts_for_missing_values(self, chart_json, tmp_path) -> None:
        config = chart_json(output=str(tmp_path / "prompted.cube"))
        # strategy 1 = standard, size 1 = 17
        result = runner.invoke(app, ["build", "--config", config], input="1\n1\n")
        assert result.exit_code == 0, result.output
        assert read_cube(tmp_path / "prompted.cube")["size"] == 17

    def test_report(self, chart_json, tmp_path) -> None:
        report = tmp_path / "report.json"
        config = chart_json(strategy="standard", size=2, output=str(tmp_path / "r.cube"))
        result = runner.invoke(app, ["build", "-c", config, "--report", str(report)])
        assert result.exit_code == 0, result.output
        data = json.loads(report.read_text())
        assert data["lut"]["strategy"] == "standard"
        assert data["lut"]["entries"] == 8
        assert data["compatibility"]["score"] <= 1.0

    def test_samples_input(self, tmp_path) -> None:
        groups = [[[v, v, v], [v, v, v], [v + 0.01, v, v]] for v in (0.1, 0.4, 0.7, 0.9)]
        path = tmp_path / "samples.json"
        path.write_text(
            json.dumps(
                {
                    "reference": {"samples": groups},
                    "camera": {"samples": groups},
                    "strategy": "perceptual",
                    "size": 2,
                    "output": str(tmp_path / "s.cube"),
                }
            )
        )
        result = runner.invoke(app, ["build", "-c", str(path)])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "s.cube").exists()

    def test_unknown_strategy(self, chart_json) -> None:
        result = runner.invoke(app, ["build", "-c", chart_json(strategy="cubic", size=2)])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_bad_size(self, chart_json, tmp_path) -> None:
        config = chart_json(strategy="standard", size=1, output=str(tmp_path / "x.cube"))
        result = runner.invoke(app, ["build", "-c", config])
        assert result.exit_code == 1
        assert "at least 2" in result.output

    def test_mismatched_sides(self, tmp_path) -> None:
        path = tmp_path / "bad.json"
        path.write_text(
            json.dumps(
                {
                    "reference": {"patches": [[0.1, 0.1, 0.1], [0.2, 0.2, 0.2]]},
                    "camera": {"patches": [[0.1, 0.1, 0.1]]},
                    "strategy": "standard",
                    "size": 2,
                }
            )
        )
        result = runner.invoke(app, ["build", "-c", str(path)])
        assert result.exit_code == 1

    def test_missing_side(self, tmp_path) -> None:
        path = tmp_path / "half.json"
        path.write_text(json.dumps({"reference": {"patches": [[0.1, 0.1, 0.1]]}}))
        result = runner.invoke(app, ["build", "-c", str(path)])
        assert result.exit_code == 1
        assert "camera" in result.output

    def test_ragged_samples(self, tmp_path) -> None:
        path = tmp_path / "ragged.json"
        groups = [[[0.1, 0.2, 0.3]], [[0.5, 0.5]]]
        path.write_text(
            json.dumps(
                {
                    "reference": {"samples": groups},
                    "camera": {"samples": groups},
                    "strategy": "standard",
                    "size": 2,
                }
            )
        )
        result = runner.invoke(app, ["build", "-c", str(path)])
        assert result.exit_code == 1
        assert "Error" in result.output
        assert "RGB triples" in result.output

    def test_malformed_json(self, tmp_path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        result = runner.invoke(app, ["build", "-c", str(path)])
        assert result.exit_code == 1


# ---------------------------------------------------------------------------
# analyze / strategies / inspect
# ---------------------------------------------------------------------------


class TestOtherCommands:
    def test_strategies(self) -> None:
        result = runner.invoke(app, ["strategies"])
        assert result.exit_code == 0
        for name in ("standard", "rangeAware", "tetrahedral", "perceptual"):
            assert name in result.output

    def test_analyze(self, chart_json, tmp_path) -> None:
        report = tmp_path / "analysis.json"
        result = runner.invoke(app, ["analyze", "-c", chart_json(), "--report", str(report)])
        assert result.exit_code == 0, result.output
        assert "Suggested strategy" in result.output
        data = json.loads(report.read_text())
        assert data["suggested_strategy"] in ("standard", "rangeAware")
        assert "color_temperature" in data

    def test_inspect(self, chart_json, tmp_path) -> None:
        out = tmp_path / "inspect.cube"
        config = chart_json(strategy="standard", size=2, output=str(out), title="Look")
        assert runner.invoke(app, ["build", "-c", config]).exit_code == 0
        result = runner.invoke(app, ["inspect", str(out)])
        assert result.exit_code == 0, result.output
        assert "Look" in result.output

    def test_inspect_broken_file(self, tmp_path) -> None:
        path = tmp_path / "broken.cube"
        path.write_text("LUT_3D_SIZE 2\n1 2 3\n")
        result = runner.invoke(app, ["inspect", str(path)])
        assert result.exit_code == 1

    def test_inspect_size_without_value(self, tmp_path) -> None:
        path = tmp_path / "headless.cube"
        path.write_text("LUT_3D_SIZE\n0 0 0\n")
        result = runner.invoke(app, ["inspect", str(path)])
        assert result.exit_code == 1
        assert "Error" in result.output
