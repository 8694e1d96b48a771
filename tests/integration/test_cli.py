"""
Integration tests for the Pillbox CLI.

Tests cover:
- add / list / show against a temporary database
- JSON output
- Config file handling
- Error exit codes
"""

import json
from pathlib import Path

from typer.testing import CliRunner

from pillbox import __version__
from pillbox.cli import app


runner = CliRunner()


def _add(db: Path, label: str = "API", *extra: str):
    return runner.invoke(
        app,
        [
            "add",
            "--db", str(db),
            "--label", label,
            "--location", "https://x/y",
            "--macaroon", "ab12",
            "--preimage", "cd34",
            "--invoice", "lnbc1...",
            *extra,
        ],
    )


class TestVersion:
    """Tests for --version."""

    def test_version(self) -> None:
        """--version prints the version."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestAddCommand:
    """Tests for `pillbox add`."""

    def test_add(self, db_path: Path) -> None:
        """add stores a credential and reports its ID."""
        result = _add(db_path)
        assert result.exit_code == 0
        assert "Stored credential" in result.stdout
        assert "1" in result.stdout
        assert db_path.exists()

    def test_add_json(self, db_path: Path) -> None:
        """add --json prints the stored record."""
        result = _add(db_path, "API", "--json", "--method", "POST", "--type", "graphql")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["id"] == 1
        assert data["method"] == "POST"
        assert data["type"] == "graphql"
        assert data["created_at"]

    def test_add_defaults(self, db_path: Path) -> None:
        """Method defaults to GET and type to file."""
        data = json.loads(_add(db_path, "API", "--json").stdout)
        assert data["method"] == "GET"
        assert data["type"] == "file"

    def test_add_requires_label(self, db_path: Path) -> None:
        """--label is required."""
        result = runner.invoke(app, ["add", "--db", str(db_path), "--location", "https://x"])
        assert result.exit_code != 0


class TestListCommand:
    """Tests for `pillbox list`."""

    def test_list_empty(self, db_path: Path) -> None:
        """list on a new database reports no credentials."""
        result = runner.invoke(app, ["list", "--db", str(db_path)])
        assert result.exit_code == 0
        assert "No credentials found" in result.stdout

    def test_list_table(self, db_path: Path) -> None:
        """list shows stored labels."""
        _add(db_path, "first")
        _add(db_path, "second")
        result = runner.invoke(app, ["list", "--db", str(db_path)])
        assert result.exit_code == 0
        assert "first" in result.stdout
        assert "second" in result.stdout
        assert "2 credential(s)" in result.stdout

    def test_list_json(self, db_path: Path) -> None:
        """list --json returns an array ordered by ID."""
        for i in range(3):
            _add(db_path, f"c{i}")
        result = runner.invoke(app, ["list", "--db", str(db_path), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [c["id"] for c in data] == [1, 2, 3]
        assert [c["label"] for c in data] == ["c0", "c1", "c2"]


class TestShowCommand:
    """Tests for `pillbox show`."""

    def test_show(self, db_path: Path) -> None:
        """show prints every field."""
        _add(db_path)
        result = runner.invoke(app, ["show", "1", "--db", str(db_path)])
        assert result.exit_code == 0
        assert "Credential 1" in result.stdout
        assert "ab12" in result.stdout
        assert "cd34" in result.stdout

    def test_show_json(self, db_path: Path) -> None:
        """show --json prints the record."""
        _add(db_path)
        result = runner.invoke(app, ["show", "1", "--db", str(db_path), "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["macaroon"] == "ab12"

    def test_show_missing(self, db_path: Path) -> None:
        """show of an unknown ID exits with code 1."""
        result = runner.invoke(app, ["show", "5", "--db", str(db_path)])
        assert result.exit_code == 1

    def test_show_missing_json(self, db_path: Path) -> None:
        """show --json of an unknown ID prints a JSON error."""
        result = runner.invoke(app, ["show", "5", "--db", str(db_path), "--json"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["error"] is True
        assert data["error_type"] == "NotFoundError"


class TestConfigOption:
    """Tests for --config."""

    def test_config_db_path(self, temp_dir: Path) -> None:
        """The config file's db_path is used when --db is absent."""
        db = temp_dir / "from-config.db"
        config = temp_dir / "pillbox.yaml"
        config.write_text(f"db_path: {db}\ntimeout_seconds: 5\n")

        result = runner.invoke(
            app,
            ["add", "--config", str(config), "--label", "x", "--location", "https://x"],
        )
        assert result.exit_code == 0
        assert db.exists()

    def test_invalid_config(self, temp_dir: Path) -> None:
        """An invalid config file exits with code 1."""
        config = temp_dir / "bad.yaml"
        config.write_text("timeout_seconds: -1\n")
        result = runner.invoke(app, ["list", "--config", str(config)])
        assert result.exit_code == 1

    def test_unusable_db_path(self, temp_dir: Path) -> None:
        """A database path that can't be opened exits with code 1."""
        blocker = temp_dir / "file"
        blocker.write_text("not a directory")
        result = runner.invoke(app, ["list", "--db", str(blocker / "pillbox.db")])
        assert result.exit_code == 1
