"""Shared pytest fixtures for the sysfs-gpio test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Generator

import pytest

from sysfs_gpio.config import Settings, override_settings
from sysfs_gpio.notifier import MockNotifier


class FakeSysfs:
    """A plain-file stand-in for ``/sys/class/gpio``.

    Regular files cannot react to writes, so pins the kernel would create on
    export are materialised up front with :meth:`add_pin`.
    """

    def __init__(self, root: Path) -> None:
        self.root = root
        root.mkdir(parents=True, exist_ok=True)
        (root / "export").write_text("")
        (root / "unexport").write_text("")

    def add_pin(self, pin: int, direction: str = "in", value: int = 0, edge: bool = True) -> Path:
        pin_dir = self.root / f"gpio{pin}"
        pin_dir.mkdir()
        (pin_dir / "direction").write_text(f"{direction}\n")
        (pin_dir / "value").write_text(f"{value}\n")
        if edge:
            (pin_dir / "edge").write_text("none\n")
        return pin_dir

    def read(self, pin: int, attribute: str) -> str:
        return (self.root / f"gpio{pin}" / attribute).read_text().strip()

    def set_value(self, pin: int, value: int) -> None:
        # Overwrite in place so an open descriptor sees the new content.
        with open(self.root / f"gpio{pin}" / "value", "r+") as f:
            f.write(f"{value}\n")

    @property
    def exported(self) -> str:
        return (self.root / "export").read_text()

    @property
    def unexported(self) -> str:
        return (self.root / "unexport").read_text()


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_sysfs(tmp_path: Path) -> FakeSysfs:
    return FakeSysfs(tmp_path / "gpio")


@pytest.fixture
def test_settings(fake_sysfs: FakeSysfs) -> Generator[Settings, None, None]:
    settings = Settings(
        sysfs={"root": str(fake_sysfs.root)},
        export_poll={"max_attempts": 3, "delay_seconds": 0.0, "max_delay_seconds": 0.0},
        logging={"level": "debug", "format": "console"},
    )
    override_settings(settings)
    yield settings
    override_settings(None)


# ---------------------------------------------------------------------------
# Notifier
# ---------------------------------------------------------------------------


@pytest.fixture
def notifier() -> MockNotifier:
    return MockNotifier()
