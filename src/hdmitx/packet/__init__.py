# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""Data island packet providers, arbitration and assembly."""

from amaranth import *
from amaranth.lib import data


class Packet(data.Struct):
    """
    Contents of one data island packet, before error correction.

    ``header`` holds HB0 (packet type) in its low byte, then HB1 and HB2.
    Each of the 4 subpackets holds SB0 in its low byte, up to SB6.
    BCH parity is appended by the assembler, not stored here.
    """

    header: unsigned(24)
    sub:    data.ArrayLayout(56, 4)
