from __future__ import annotations

"""
Core type aliases, small value objects, and the error hierarchy.
"""

from dataclasses import dataclass
from typing import Callable, Mapping, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

# Basic aliases

RGBTuple = Tuple[int, int, int]
HexStr = str

Lab = NDArray[np.float64]  # (..., 3) CIE Lab
Combination = Tuple[str, ...]  # ordered pane names, position 0 first

# Errors


class BeaconMapError(Exception):
    """Base class for every error raised by beacon_map."""


class InvalidInputError(BeaconMapError, ValueError):
    """Bad caller input: empty palette, bad depth, bad colour."""


class MissingKeyError(BeaconMapError, KeyError):
    """A combination names a pane that is not in the palette."""


class WorkerFailureError(BeaconMapError, RuntimeError):
    """A parallel search task terminated abnormally."""


# Value objects


def _check_channel(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidInputError(f"{name} must be an int, got {value!r}")
    channel = int(value)
    if not 0 <= channel <= 255:
        raise InvalidInputError(f"{name} out of range 0..255: {channel}")
    return channel


@dataclass(frozen=True)
class Color8:
    """8-bit sRGB colour."""

    red: int
    green: int
    blue: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "red", _check_channel("red", self.red))
        object.__setattr__(self, "green", _check_channel("green", self.green))
        object.__setattr__(self, "blue", _check_channel("blue", self.blue))

    @classmethod
    def from_number(cls, number: int) -> "Color8":
        """Unpack 0xRRGGBB. Bits above 23 are ignored."""
        if isinstance(number, bool) or not isinstance(number, (int, np.integer)):
            raise InvalidInputError(f"packed colour must be an int, got {number!r}")
        if number < 0:
            raise InvalidInputError(f"packed colour must be >= 0, got {number}")
        number = int(number)
        return cls((number >> 16) & 0xFF, (number >> 8) & 0xFF, number & 0xFF)

    @classmethod
    def from_bytes(cls, values: Union[Sequence[int], bytes]) -> "Color8":
        """Build from a 3-element byte sequence."""
        if len(values) != 3:
            raise InvalidInputError(f"expected 3 channels, got {len(values)}")
        return cls(values[0], values[1], values[2])

    @classmethod
    def from_hex(cls, text: str) -> "Color8":
        """Parse '#rgb', '#rrggbb', 'rrggbb' or '0xrrggbb' (case-insensitive)."""
        s = text.strip().lower()
        if s.startswith("0x"):
            s = s[2:]
        elif s.startswith("#"):
            s = s[1:]
        if len(s) == 3:
            s = "".join(ch * 2 for ch in s)
        if len(s) != 6:
            raise InvalidInputError(f"hex colour must be 'rrggbb' or 'rgb': {text!r}")
        try:
            number = int(s, 16)
        except ValueError as exc:
            raise InvalidInputError(f"not a hex colour: {text!r}") from exc
        return cls.from_number(number)

    def to_tuple(self) -> RGBTuple:
        return (self.red, self.green, self.blue)

    def to_array(self) -> NDArray[np.float64]:
        return np.array(self.to_tuple(), dtype=np.float64)

    def to_number(self) -> int:
        return (self.red << 16) | (self.green << 8) | self.blue

    def to_hex(self) -> HexStr:
        return f"#{self.red:02x}{self.green:02x}{self.blue:02x}"


@dataclass(frozen=True)
class ColorF:
    """Real-valued sRGB colour on the 0..255 scale, produced by blending."""

    red: float
    green: float
    blue: float

    @classmethod
    def from_array(cls, row: NDArray[np.floating]) -> "ColorF":
        return cls(float(row[0]), float(row[1]), float(row[2]))

    def to_tuple(self) -> Tuple[float, float, float]:
        return (self.red, self.green, self.blue)

    def to_array(self) -> NDArray[np.float64]:
        return np.array(self.to_tuple(), dtype=np.float64)

    def to_color8(self) -> Color8:
        """Clamp to 0..255 and truncate each channel toward zero."""
        chans = [int(min(max(c, 0.0), 255.0)) for c in self.to_tuple()]
        return Color8(chans[0], chans[1], chans[2])


@dataclass(frozen=True)
class SearchResult:
    """Best combination found for one subtree, or for the whole search."""

    distance: float
    combination: Combination
    colour: ColorF
    leaves: int = 0


Palette = Mapping[str, Color8]

# Callable signatures

DistanceMetric = Callable[[Lab, Lab], Union[float, NDArray[np.float64]]]

__all__ = [
    # aliases / types
    "RGBTuple",
    "HexStr",
    "Lab",
    "Combination",
    "Palette",
    "DistanceMetric",
    # errors
    "BeaconMapError",
    "InvalidInputError",
    "MissingKeyError",
    "WorkerFailureError",
    # value objects
    "Color8",
    "ColorF",
    "SearchResult",
]
