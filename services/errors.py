# SPDX-License-Identifier: Apache-2.0
# This file was created or modified with the assistance of an AI (Large Language Model).
"""Error kinds raised by the layout and connection stores."""

from __future__ import annotations


class RackwireError(Exception):
    """Base class for every rejected editor command.

    A command that raises leaves store state exactly as it was before the call.
    """

    kind = "RackwireError"


class NoRoomAvailableError(RackwireError):
    """Raised when placement finds no free interval for the device height."""

    kind = "NoRoomAvailable"


class SlotOccupiedError(RackwireError):
    """Raised when a move would overlap another device."""

    kind = "SlotOccupied"


class OutOfBoundsError(RackwireError):
    """Raised for a start unit that is not an integer or is below unit 1."""

    kind = "OutOfBounds"


class UnknownDeviceError(RackwireError):
    kind = "UnknownDevice"


class UnknownConnectionError(RackwireError):
    kind = "UnknownConnection"


class UnknownPortError(RackwireError):
    kind = "UnknownPort"


class UnknownModelError(RackwireError):
    kind = "UnknownModel"


class InvalidSnapshotError(RackwireError):
    kind = "InvalidSnapshot"
