#!/usr/bin/env python3
# =============================================================================
#  alu-shims setup.py
#
#  Install for development with:
#      pip install -e ".[dev]"
#      python -m pytest
# =============================================================================

from __future__ import annotations

import re
from pathlib import Path

from setuptools import setup, find_packages

# ---------------------------------------------------------------------------
#  Read version from the package so we have a single source of truth.
# ---------------------------------------------------------------------------
_HERE = Path(__file__).resolve().parent


def _read_version() -> str:
    """Extract ``__version__`` from alu_shims/__init__.py."""
    init = _HERE / "alu_shims" / "__init__.py"
    text = init.read_text(encoding="utf-8")
    match = re.search(r'^__version__\s*=\s*"([^"]+)"', text, re.MULTILINE)
    if match:
        return match.group(1)
    return "0.0.0"


setup(
    name="alu-shims",
    version=_read_version(),
    description=(
        "Symbolic inversion of four-register ALU programs: find the digit "
        "inputs that drive a register to a target value."
    ),
    license="MIT",
    author="alu-shims contributors",
    python_requires=">=3.10",
    packages=find_packages(
        include=[
            "alu_shims",
            "alu_shims.*",
        ],
        exclude=[
            "tests",
            "tests.*",
        ],
    ),
    package_data={
        "alu_shims": ["py.typed"],
    },
    install_requires=[],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=4.0",
            "ruff>=0.4",
            "mypy>=1.10",
        ],
    },
    entry_points={
        "console_scripts": [
            "alu-shims=alu_shims.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Software Development :: Interpreters",
        "Typing :: Typed",
    ],
    keywords=[
        "alu",
        "symbolic-execution",
        "abstract-interpretation",
        "constraint-solving",
        "advent-of-code",
    ],
    zip_safe=False,
)
