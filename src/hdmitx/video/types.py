# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

from amaranth import *
from amaranth.lib import data
from amaranth.lib import enum as amaranth_enum


class Mode(amaranth_enum.Enum, shape=unsigned(3)):
    """
    Which kind of symbol a TMDS channel transmits on a given pixel.
    Preambles are sent as CONTROL with the appropriate CTL bits set.
    """
    CONTROL           = 0
    VIDEO_DATA        = 1
    VIDEO_GUARD       = 2
    DATA_ISLAND       = 3
    DATA_ISLAND_GUARD = 4


class RGB(data.Struct):
    """
    Pixel format accepted by the transmitter, 8 bits per component.
    """

    r: unsigned(8)
    g: unsigned(8)
    b: unsigned(8)


class Lane(data.Struct):
    """
    Everything a single TMDS channel may need to encode on one pixel.
    Only the field selected by the current :py:`Mode` is used.
    """

    video: unsigned(8)  # TMDS 8b/10b
    ctrl:  unsigned(2)  # CTL{1,0} or CTL{3,2}, or {VSYNC, HSYNC} on ch0
    aux:   unsigned(4)  # TERC4
