from pathlib import Path
import os, sys

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from run_tests import COVERED_MODULES, SUITES

ROOT = Path(__file__).resolve().parents[1]


def test_suite_modules_exist():
    for _, args in SUITES.values():
        for arg in args:
            if arg.startswith("tests/"):
                assert (ROOT / arg).exists(), arg


def test_suite_markers_are_registered():
    pyproject = (ROOT / "pyproject.toml").read_text(encoding="utf-8")
    for _, args in SUITES.values():
        if "-m" in args:
            marker = args[args.index("-m") + 1]
            assert f'"{marker}:' in pyproject


def test_covered_modules_exist():
    for module in COVERED_MODULES:
        assert (ROOT / f"{module}.py").exists()
