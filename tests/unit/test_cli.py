"""
Tests for the command line interface.
"""

import logging

import pytest
from click.testing import CliRunner
from PIL import Image

from scrollshot import __version__
from scrollshot.cli import main
from scrollshot.actuator import ScreenInfo
from scrollshot.config import ScrollshotConfig, save_config
from scrollshot.safety.stopswitch import MockStopSwitch


@pytest.fixture(autouse=True)
def restore_logging():
    """The CLI reconfigures root logging onto CliRunner's stderr."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def frame_files(tmp_path, make_document, to_image):
    doc = make_document(76, width=32, seed=9)
    first = tmp_path / "a.png"
    second = tmp_path / "b.png"
    to_image(doc[:48]).save(first)
    to_image(doc[28:76]).save(second)
    return first, second


@pytest.fixture
def config_file(tmp_path):
    return save_config(ScrollshotConfig(), str(tmp_path / "config.yaml"))


class TestMain:
    """Tests for the command group."""

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help(self, runner):
        result = runner.invoke(main, [])
        assert result.exit_code == 0
        assert "capture" in result.output


class TestStitchCommand:
    """Tests for `scrollshot stitch`."""

    def test_stitches_frames(self, runner, frame_files, tmp_path):
        output = tmp_path / "out.png"
        result = runner.invoke(main, ["stitch", *map(str, frame_files), "-o", str(output)])

        assert result.exit_code == 0, result.output
        assert "32x76" in result.output
        with Image.open(output) as image:
            assert image.size == (32, 76)

    def test_mismatched_frames(self, runner, frame_files, tmp_path):
        odd = tmp_path / "odd.png"
        Image.new("RGB", (10, 10)).save(odd)
        result = runner.invoke(
            main, ["stitch", str(frame_files[0]), str(odd), "-o", str(tmp_path / "x.png")]
        )
        assert result.exit_code != 0


class TestOverlapCommand:
    """Tests for `scrollshot overlap`."""

    def test_reports_overlap(self, runner, frame_files):
        result = runner.invoke(main, ["overlap", *map(str, frame_files)])
        assert result.exit_code == 0, result.output
        assert "Overlap: 20 of 48 rows" in result.output

    def test_no_overlap(self, runner, tmp_path, make_document, to_image):
        first, second = tmp_path / "x.png", tmp_path / "y.png"
        to_image(make_document(48, seed=1)).save(first)
        to_image(make_document(48, seed=2)).save(second)
        result = runner.invoke(main, ["overlap", str(first), str(second)])
        assert result.exit_code == 0
        assert "No reliable overlap" in result.output


class TestConfigCommand:
    """Tests for `scrollshot config`."""

    def test_init_writes_file(self, runner, tmp_path):
        path = tmp_path / "new" / "config.yaml"
        result = runner.invoke(main, ["config", "--init", "-c", str(path)])
        assert result.exit_code == 0, result.output
        assert path.exists()

    def test_init_refuses_overwrite(self, runner, config_file):
        result = runner.invoke(main, ["config", "--init", "-c", str(config_file)])
        assert result.exit_code == 1

    def test_show(self, runner, config_file):
        result = runner.invoke(main, ["config", "-c", str(config_file)])
        assert result.exit_code == 0
        assert "max_steps" in result.output

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(main, ["config", "-c", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 2
        assert "not found" in result.output


class TestCaptureCommand:
    """Tests for `scrollshot capture`."""

    def test_dry_run(self, runner, config_file, tmp_path, monkeypatch):
        monkeypatch.setattr("scrollshot.cli.StopSwitch", MockStopSwitch)
        output = tmp_path / "capture.png"

        result = runner.invoke(main, [
            "capture",
            "--region", "0,0,40,30",
            "--scale", "1",
            "--delay", "0.05",
            "--dry-run",
            "-o", str(output),
            "-c", str(config_file),
        ])

        assert result.exit_code == 0, result.output
        assert "content_stopped" in result.output
        assert output.exists()

    def test_bad_region(self, runner, config_file):
        result = runner.invoke(main, ["capture", "--region", "1,2", "-c", str(config_file)])
        assert result.exit_code == 2


class TestScreensCommand:
    """Tests for `scrollshot screens`."""

    def test_lists_displays(self, runner, monkeypatch):
        screens = [
            ScreenInfo(index=1, x=0, y=0, width=1440, height=900, scale_factor=2.0, is_primary=True),
            ScreenInfo(index=2, x=1440, y=0, width=1920, height=1080, scale_factor=1.0),
        ]
        monkeypatch.setattr("scrollshot.cli.get_screen_info", lambda: screens)

        result = runner.invoke(main, ["screens"])

        assert result.exit_code == 0
        assert "1440x900" in result.output
        assert "1920x1080" in result.output

    def test_no_displays(self, runner, monkeypatch):
        monkeypatch.setattr("scrollshot.cli.get_screen_info", lambda: [])
        result = runner.invoke(main, ["screens"])
        assert result.exit_code == 1
