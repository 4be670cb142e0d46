"""
Test HereNow CLI
================

Command payload construction (no broker needed).

Usage:
    pytest test_cli.py
"""

from argparse import Namespace
from pathlib import Path

import pytest

from herenow_cli.cli import build_command, load_yaml_config


COMMANDS_DIR = Path(__file__).parent / "config" / "commands"


def test_load_yaml_command_file():
    command = load_yaml_config(str(COMMANDS_DIR / "schedule_daily_reveal.yaml"))

    assert command["command"] == "schedule"
    assert command["repeat_interval"] == "daily"
    assert command["notification"]["id"] == "daily-reveal"


def test_load_yaml_rejects_missing_and_invalid(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_yaml_config(str(tmp_path / "missing.yaml"))

    no_command = tmp_path / "no_command.yaml"
    no_command.write_text("notification_id: x\n")
    with pytest.raises(ValueError):
        load_yaml_config(str(no_command))

    broken = tmp_path / "broken.yaml"
    broken.write_text("command: [unclosed\n")
    with pytest.raises(ValueError):
        load_yaml_config(str(broken))


def test_build_sample_and_region_commands():
    sample = build_command(Namespace(command="sample", latitude=37.7, longitude=-122.4, accuracy=10.0))
    region = build_command(Namespace(
        command="add-region", region_id="park", latitude=37.7, longitude=-122.4, radius=150.0, name=None,
    ))

    assert sample == {"command": "location_sample", "latitude": 37.7, "longitude": -122.4, "accuracy_m": 10.0}
    assert region["command"] == "register_region"
    assert region["name"] == "park"
    assert region["radius_m"] == 150.0


def test_build_preference_commands():
    quiet = build_command(Namespace(command="quiet-hours", start="22:00", end="07:00"))
    category = build_command(Namespace(command="category", category="social", state="off"))

    assert quiet["preferences"] == {"quiet_hours_start": "22:00", "quiet_hours_end": "07:00"}
    assert category["preferences"] == {"categories": {"social": False}}


def test_build_simple_commands():
    assert build_command(Namespace(command="cancel-all")) == {"command": "cancel_all"}
    assert build_command(Namespace(command="list-regions")) == {"command": "list_regions"}
    assert build_command(Namespace(command="cancel", notification_id="n1")) == {
        "command": "cancel", "notification_id": "n1",
    }
