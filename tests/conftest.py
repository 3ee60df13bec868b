# SPDX-License-Identifier: Apache-2.0
# This file was created or modified with the assistance of an AI (Large Language Model).
from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from models import DEFAULT_CATALOG  # noqa: E402
from services.editor import RackEditor  # noqa: E402
from services.layout import LayoutStore  # noqa: E402


@pytest.fixture
def layout() -> LayoutStore:
    return LayoutStore()


@pytest.fixture
def editor() -> RackEditor:
    return RackEditor(DEFAULT_CATALOG)
