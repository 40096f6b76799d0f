"""
Tests for simulation settings and the command line interface.
"""

import json
import math
import textwrap

import pytest

from roboml import SimulationConfig, load_config, Entity, Vector
from roboml.__main__ import main


PROGRAM_YAML = textwrap.dedent("""
    entry:
      - {kind: speed, value: 100}
      - {kind: move, direction: FORWARD, distance: 100}
      - {kind: rotate, direction: CLOCK, angle: 90}
""")

BROKEN_YAML = textwrap.dedent("""
    entry:
      - {kind: move, direction: FORWARD, distance: ghost}
""")


class TestSimulationConfig:
    """Test config defaults, validation and loading."""

    def test_defaults(self):
        config = SimulationConfig()
        assert config.initial_speed == 100.0
        assert config.angular_rate == pytest.approx(math.pi / 2)
        assert config.max_iterations == 100_000
        assert config.max_duration == 5.0
        assert config.checkpoint_interval == 1000
        assert config.max_call_depth == 64
        assert config.arena_size == (10000.0, 10000.0)
        assert config.robot_size == (250.0, 250.0)
        assert config.entities == []

    @pytest.mark.parametrize("field, value", [
        ("angular_rate", 0.0),
        ("max_iterations", -1),
        ("checkpoint_interval", 0),
        ("max_call_depth", 0),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ValueError):
            SimulationConfig(**{field: value})

    def test_from_dict(self):
        config = SimulationConfig.from_dict({
            "initial_speed": 50,
            "arena_size": [2000, 1000],
            "robot_size": {"x": 100, "y": 80},
            "entities": [{"type": "Block", "pos": [10, 20], "size": [30, 40]}],
        })
        assert config.initial_speed == 50
        assert config.arena_size == (2000.0, 1000.0)
        assert config.robot_size == (100.0, 80.0)
        assert config.entities == [Entity("Block", Vector(10.0, 20.0), Vector(30.0, 40.0))]

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="max_speed"):
            SimulationConfig.from_dict({"max_speed": 3})

    def test_bad_pair_rejected(self):
        with pytest.raises(ValueError, match="arena_size"):
            SimulationConfig.from_dict({"arena_size": [1, 2, 3]})

    def test_to_dict_round_trip(self):
        config = SimulationConfig(entities=[Entity("Wall", Vector(0.0, 5.0), Vector(10.0, 0.0))])
        assert SimulationConfig.from_dict(config.to_dict()) == config

    def test_load_config(self, tmp_path):
        path = tmp_path / "arena.yaml"
        path.write_text(textwrap.dedent("""
            initial_speed: 200
            max_duration: null
            entities:
              - {type: Block, pos: [6000, 4000], size: [100, 2000]}
        """))
        config = load_config(path)
        assert config.initial_speed == 200
        assert config.max_duration is None
        assert len(config.entities) == 1

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == SimulationConfig()

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n")
        with pytest.raises(ValueError):
            load_config(path)


class TestCli:
    """Test the `python -m roboml` commands."""

    def write(self, tmp_path, name, text):
        path = tmp_path / name
        path.write_text(text)
        return str(path)

    def test_check_ok(self, tmp_path, capsys):
        path = self.write(tmp_path, "prog.yaml", PROGRAM_YAML)
        assert main(["check", path]) == 0
        assert "OK" in capsys.readouterr().out

    def test_check_reports_errors(self, tmp_path, capsys):
        path = self.write(tmp_path, "bad.yaml", BROKEN_YAML)
        assert main(["check", path]) == 1
        assert "E312" in capsys.readouterr().out

    def test_missing_file(self, tmp_path, capsys):
        assert main(["check", str(tmp_path / "nope.yaml")]) == 1
        assert "not found" in capsys.readouterr().err

    def test_list(self, tmp_path, capsys):
        path = self.write(tmp_path, "prog.yaml", textwrap.dedent("""
            functions:
              - name: turn
                parameters: [{name: deg, type: number}]
                body: [{kind: rotate, direction: CLOCK, angle: deg}]
            entry: []
        """))
        assert main(["list", path]) == 0
        out = capsys.readouterr().out
        assert "turn(deg: number) -> void" in out

    def test_run_writes_scene(self, tmp_path):
        path = self.write(tmp_path, "prog.yaml", PROGRAM_YAML)
        output = tmp_path / "scene.json"
        assert main(["run", path, "--output", str(output)]) == 0
        scene = json.loads(output.read_text())
        assert scene["time"] == pytest.approx(2.0)
        assert len(scene["timestamps"]) == 2

    def test_run_with_config(self, tmp_path, capsys):
        path = self.write(tmp_path, "prog.yaml", PROGRAM_YAML)
        config = self.write(tmp_path, "arena.yaml", "angular_rate: 3.141592653589793\n")
        assert main(["run", path, "-c", config]) == 0
        scene = json.loads(capsys.readouterr().out)
        assert scene["time"] == pytest.approx(1.5)

    def test_run_refuses_invalid(self, tmp_path):
        path = self.write(tmp_path, "bad.yaml", BROKEN_YAML)
        assert main(["run", path]) == 1

    def test_build_to_file(self, tmp_path):
        path = self.write(tmp_path, "prog.yaml", PROGRAM_YAML)
        output = tmp_path / "robot.ino"
        assert main(["build", path, "-o", str(output)]) == 0
        source = output.read_text()
        assert source.startswith("#include <Arduino.h>")
        assert "robot.setCarAdvance(currentSpeed);" in source

    def test_build_refuses_invalid(self, tmp_path, capsys):
        path = self.write(tmp_path, "bad.yaml", BROKEN_YAML)
        assert main(["build", path]) == 1
        assert "E312" in capsys.readouterr().err
