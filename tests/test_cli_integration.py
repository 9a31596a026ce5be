"""Integration tests for CLI."""

import json
import subprocess
import sys
from pathlib import Path

import pytest

from brickco.store import DataStore


def run_brickco(args: list[str], data_dir: Path) -> subprocess.CompletedProcess:
    """Run brickco CLI command against data_dir."""
    return subprocess.run(
        [sys.executable, "-m", "brickco.cli", "--data-dir", str(data_dir)] + args,
        capture_output=True,
        text=True,
    )


@pytest.fixture
def seeded_dir(temp_dir):
    data_dir = temp_dir / "data"
    result = run_brickco(["init", "--seed"], data_dir)
    assert result.returncode == 0, result.stderr
    return data_dir


class TestCLIIntegration:
    """Integration tests for CLI commands."""

    def test_init_creates_data_file(self, temp_dir):
        """brickco init should create the data file."""
        result = run_brickco(["init"], temp_dir)

        assert result.returncode == 0
        assert "Initialized" in result.stdout
        assert (temp_dir / "brickco.json").exists()

    def test_init_force_overwrites(self, temp_dir):
        """brickco init --force should overwrite existing data."""
        run_brickco(["init"], temp_dir)

        result = run_brickco(["init"], temp_dir)
        assert result.returncode == 1
        assert "already exists" in result.stderr

        result = run_brickco(["init", "--force"], temp_dir)
        assert result.returncode == 0

    def test_seed_is_ledgered(self, seeded_dir):
        """Seeded stock should reconcile cleanly."""
        result = run_brickco(["reconcile"], seeded_dir)

        assert result.returncode == 0
        assert "consistent" in result.stdout

    def test_bricks_json(self, seeded_dir):
        result = run_brickco(["bricks", "--json"], seeded_dir)

        assert result.returncode == 0
        bricks = json.loads(result.stdout)
        assert len(bricks) == 4
        assert all("stock" in b for b in bricks)

    def test_bricks_low_stock(self, seeded_dir):
        result = run_brickco(["bricks", "--low-stock"], seeded_dir)

        assert result.returncode == 0
        assert "Fire Brick" in result.stdout
        assert "LOW" in result.stdout
        assert "Red Clay Brick" not in result.stdout

    def test_stock_history_filters(self, seeded_dir):
        result = run_brickco(["stock-history", "--type", "added", "--json"], seeded_dir)

        assert result.returncode == 0
        entries = json.loads(result.stdout)
        assert len(entries) == 4
        assert {e["source"] for e in entries} == {"initial_stock"}

        result = run_brickco(["stock-history", "--source", "order"], seeded_dir)
        assert "No stock history." in result.stdout

    def test_stock_history_bad_type(self, seeded_dir):
        result = run_brickco(["stock-history", "--type", "sideways"], seeded_dir)

        assert result.returncode == 1
        assert "Error:" in result.stderr

    def test_reconcile_reports_drift(self, seeded_dir):
        """Stock changed outside the ledger should exit with code 2."""
        store = DataStore(seeded_dir)
        with store.transaction() as db:
            db.bricks[0].stock += 7

        result = run_brickco(["reconcile", "--json"], seeded_dir)

        assert result.returncode == 2
        report = json.loads(result.stdout)
        assert report["consistent"] is False
        assert report["discrepancies"][0]["difference"] == 7

    def test_export_to_file(self, seeded_dir, temp_dir):
        output = temp_dir / "customers.csv"
        result = run_brickco(["export", "customers", "-o", str(output)], seeded_dir)

        assert result.returncode == 0
        lines = output.read_text().splitlines()
        assert lines[0].startswith("customerId,name,email")
        assert len(lines) == 3

    def test_export_unknown_report(self, seeded_dir):
        result = run_brickco(["export", "profits"], seeded_dir)
        assert result.returncode == 2

    def test_no_command_prints_help(self, temp_dir):
        result = run_brickco([], temp_dir)

        assert result.returncode == 0
        assert "usage" in result.stdout.lower()
