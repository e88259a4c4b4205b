"""
Tests for the batch scan experiment driver.
"""

import pytest
import yaml

from cardscan.recognition import get_registry
from cardscan.utils.io import load_json, save_image
from experiments.exp_scan_directory import run_experiment

from fakes import STRONG_TEXT, ScriptedRecognizer


@pytest.fixture
def scripted_backend():
    """Register the scripted fake as a configurable backend."""
    registry = get_registry()
    registry.register("scripted", ScriptedRecognizer)
    yield "scripted"
    registry.unregister("scripted")


@pytest.fixture
def card_dir(tmp_path, card_image):
    """Directory with two card photos, one broken file and a names CSV."""
    data_dir = tmp_path / "cards"
    save_image(card_image, data_dir / "card1.png")
    save_image(card_image, data_dir / "card2.png")
    (data_dir / "broken.png").write_bytes(b"garbage")
    (data_dir / "names.csv").write_text("image,profile_name\ncard1.png,Vishal Singh\n")
    return data_dir


@pytest.fixture
def config_file(tmp_path, scripted_backend):
    """Configuration selecting the scripted backend."""
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "preprocessing": {"target_min_dim": 40},
        "recognition": {"backend": scripted_backend, "options": {"script": STRONG_TEXT}},
        "logging": {"console_output": False},
    }))
    return path


class TestScanDirectory:
    """Tests for run_experiment."""

    def test_report(self, tmp_path, card_dir, config_file):
        """Every image gets a record and the summary counts them."""
        output_dir = tmp_path / "results"
        report = run_experiment(
            data_dir=str(card_dir),
            output_dir=str(output_dir),
            config_path=str(config_file),
            names_csv=str(card_dir / "names.csv"),
            num_workers=2,
        )

        summary = report["summary"]
        assert summary["images"] == 3
        assert summary["valid_scans"] == 2
        assert summary["verified"] == 1
        assert summary["match_rate"] == 1.0

        by_image = {r["image"]: r for r in report["results"]}
        assert by_image["broken.png"]["scan"]["error_kind"] == "unusable_input"
        assert by_image["card1.png"]["verification"]["is_match"] is True
        assert "verification" not in by_image["card2.png"]

        saved = load_json(output_dir / "scan_report.json")
        assert saved["summary"]["valid_scans"] == 2

    def test_dump_variants(self, tmp_path, card_dir, config_file):
        """Variant dumps hold four images per readable photo."""
        output_dir = tmp_path / "results"
        run_experiment(
            data_dir=str(card_dir),
            output_dir=str(output_dir),
            config_path=str(config_file),
            dump=True,
        )

        dumped = sorted(p.name for p in (output_dir / "variants").glob("*.png"))
        assert len(dumped) == 8
        assert "card1_contrast-otsu.png" in dumped
