"""Tests for the shoptrip command line."""

import json

import pytest

from conftest import SIX_ITEMS, plan_payload, seed_raw_session
from shoptrip.cli import main
from shoptrip.db import SQLiteSessionStore
from shoptrip.session import TripSession


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "shoptrip.toml"
    path.write_text(
        f'[session]\ndb_path = "{tmp_path / "sessions.db"}"\n\n'
        '[route]\ndefault_retailer = "Corner Shop"\n'
    )
    return path


@pytest.fixture
def plan_file(tmp_path):
    path = tmp_path / "plan.json"
    path.write_text(json.dumps(plan_payload(("Fresh Mart", SIX_ITEMS))))
    return path


class TestRoute:
    def test_json_output(self, config_file, plan_file, capsys):
        main(["-c", str(config_file), "route", str(plan_file), "--json"])
        data = json.loads(capsys.readouterr().out)

        assert data["isMultiStore"] is False
        assert [a["sectionLabel"] for a in data["aisleGroups"]] == [
            "Fresh Produce",
            "Dairy & Eggs",
            "Meat & Seafood",
        ]
        assert [i["id"] for i in data["aisleGroups"][0]["items"]] == [1, 4]
        assert data["estimatedMinutes"] > 0

    def test_text_output(self, config_file, plan_file, capsys):
        main(["-c", str(config_file), "route", str(plan_file)])
        out = capsys.readouterr().out
        assert "Fresh Mart" in out
        assert "Bananas" in out

    def test_bare_item_list_uses_default_retailer(self, config_file, tmp_path, capsys):
        plan = tmp_path / "items.json"
        plan.write_text(json.dumps({"items": [{"id": 1, "productName": "Bananas"}]}))
        main(["-c", str(config_file), "route", str(plan)])
        assert "Corner Shop" in capsys.readouterr().out

    def test_missing_file(self, config_file, tmp_path, capsys):
        with pytest.raises(SystemExit):
            main(["-c", str(config_file), "route", str(tmp_path / "nope.json")])
        assert "Cannot read plan file" in capsys.readouterr().err

    def test_invalid_plan(self, config_file, tmp_path, capsys):
        plan = tmp_path / "bad.json"
        plan.write_text(json.dumps({"nothing": True}))
        with pytest.raises(SystemExit):
            main(["-c", str(config_file), "route", str(plan)])
        assert "Invalid plan" in capsys.readouterr().err


class TestClassify:
    def test_json_output(self, config_file, capsys):
        main(["-c", str(config_file), "classify", "Whole Milk", "Bananas", "--json"])
        data = json.loads(capsys.readouterr().out)
        assert [d["productName"] for d in data] == ["Whole Milk", "Bananas"]
        assert data[0]["category"] == "Dairy & Eggs"
        assert data[1]["category"] == "Produce"
        assert "lookup" not in data[0]


class TestSession:
    def _store(self, tmp_path):
        return SQLiteSessionStore(tmp_path / "sessions.db")

    def test_list_empty(self, config_file, capsys):
        main(["-c", str(config_file), "session", "list"])
        assert "No saved sessions." in capsys.readouterr().out

    def test_show_and_clear(self, config_file, tmp_path, capsys):
        store = self._store(tmp_path)
        store.save(
            "42",
            TripSession(list_id="42", plan_snapshot={"stores": []}, current_aisle_index=2),
        )
        store.close()

        main(["-c", str(config_file), "session", "list"])
        assert "42" in capsys.readouterr().out

        main(["-c", str(config_file), "session", "show", "42"])
        data = json.loads(capsys.readouterr().out)
        assert data["currentAisleIndex"] == 2

        main(["-c", str(config_file), "session", "clear", "42"])
        capsys.readouterr()
        main(["-c", str(config_file), "session", "show", "42"])
        assert "No saved session" in capsys.readouterr().out

    def test_show_corrupt(self, config_file, tmp_path, capsys):
        store = self._store(tmp_path)
        seed_raw_session(store, "42", "{not json")
        store.close()

        with pytest.raises(SystemExit):
            main(["-c", str(config_file), "session", "show", "42"])
        assert "corrupt" in capsys.readouterr().err


def test_no_command_prints_help(capsys):
    with pytest.raises(SystemExit):
        main([])
    assert "usage" in capsys.readouterr().out
