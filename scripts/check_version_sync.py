#!/usr/bin/env python3
"""
Fail if pyproject.toml's [project].version and robust_fetch.__version__ differ.
Usage: python scripts/check_version_sync.py [pkg_import]
"""
from __future__ import annotations
import importlib
import pathlib
import sys

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # Python 3.9–3.10
    import tomli as tomllib  # type: ignore[no-redef]

pkg_import = sys.argv[1] if len(sys.argv) > 1 else "robust_fetch"
root = pathlib.Path(__file__).resolve().parent.parent

declared = tomllib.loads((root / "pyproject.toml").read_text(encoding="utf-8"))["project"]["version"]

sys.path.insert(0, str(root / "src"))
exported = getattr(importlib.import_module(pkg_import), "__version__", None)

if declared != exported:
    raise SystemExit(f"{pkg_import}: pyproject declares {declared}, package exports {exported}")

print(f"{pkg_import} {declared}: versions in sync")
