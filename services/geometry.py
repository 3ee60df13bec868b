# SPDX-License-Identifier: Apache-2.0
# This file was created or modified with the assistance of an AI (Large Language Model).
"""Rack-unit slot geometry shared by placement and move validation."""

from __future__ import annotations

U_MAX = 42


def intervals_overlap(start_a: int, height_a: int, start_b: int, height_b: int) -> bool:
    """Closed-interval overlap test for two unit ranges.

    ``[start_a, start_a + height_a - 1]`` and ``[start_b, start_b + height_b - 1]``
    overlap iff each one starts at or below the other's top unit.
    """
    end_a = start_a + height_a - 1
    end_b = start_b + height_b - 1
    return start_a <= end_b and start_b <= end_a


def max_start_unit(height: int, rack_units: int = U_MAX) -> int:
    """Highest legal bottom unit for a device of ``height``; below 1 if it never fits."""
    return rack_units - height + 1


def fits_in_rack(start: int, height: int, rack_units: int = U_MAX) -> bool:
    return 1 <= start <= max_start_unit(height, rack_units)


def unit_span(start: int, height: int) -> range:
    return range(start, start + height)
