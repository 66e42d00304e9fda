# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""Elaboration-time configuration of the HDMI transmitter."""

import logging

from dataclasses import dataclass
from typing import Optional

from .modeline import VideoTiming
from .types import AudioRate

AUDIO_BIT_WIDTHS = range(16, 25)
SERIAL_RATIOS    = (10, 5)
VENDOR_NAME_LEN  = 8
PRODUCT_DESC_LEN = 16

@dataclass(frozen=True)
class HDMIConfig:
    """
    Everything that is fixed once the transmitter is elaborated.

    All fields are validated on construction. Anything that would lead to
    an undefined or unsafe configuration raises :py:`ValueError` here
    rather than producing a design that misbehaves at runtime.
    """

    video_id_code:             int             = 1
    video_refresh_rate:        Optional[float] = None  # None: profile default
    dvi_output:                bool            = False # No guard bands, no data islands
    audio_rate:                AudioRate       = AudioRate.FS_44_1KHZ
    audio_bit_width:           int             = 16
    it_content:                bool            = True
    vendor_name:               Optional[str]   = None  # Also enables the SPD InfoFrame
    product_description:       str             = ""
    source_device_information: int             = 0x00
    serial_ratio:              int             = 10    # 'tmds' clock / 'pixel' clock
    audio_fifo_depth:          int             = 16

    def __post_init__(self):
        timing = VideoTiming.get(self.video_id_code)

        if self.video_refresh_rate is not None and self.video_refresh_rate not in timing.refresh_rates:
            raise ValueError(
                f"Refresh rate {self.video_refresh_rate} not supported by VIC {self.video_id_code}! "
                f"Must be one of {timing.refresh_rates}")

        try:
            object.__setattr__(self, "audio_rate", AudioRate(self.audio_rate))
        except ValueError:
            raise ValueError(
                f"Audio rate {self.audio_rate} not supported! "
                f"Must be one of {[int(r) for r in AudioRate.all()]}") from None

        if self.audio_bit_width not in AUDIO_BIT_WIDTHS:
            raise ValueError(
                f"Audio bit width {self.audio_bit_width} not supported! "
                f"Must be {AUDIO_BIT_WIDTHS.start}..{AUDIO_BIT_WIDTHS.stop - 1}")

        if self.serial_ratio not in SERIAL_RATIOS:
            raise ValueError(
                f"Serialization ratio {self.serial_ratio} not supported! Must be one of {SERIAL_RATIOS}")

        depth = self.audio_fifo_depth
        if depth < 4 or depth & (depth - 1):
            raise ValueError(f"Audio FIFO depth {depth} must be a power of 2, at least 4")

        if self.vendor_name is not None:
            _check_ascii("vendor_name", self.vendor_name, VENDOR_NAME_LEN)
        _check_ascii("product_description", self.product_description, PRODUCT_DESC_LEN)

        if not 0 <= self.source_device_information <= 0xff:
            raise ValueError(
                f"Source device information {self.source_device_information:#x} must fit in one byte")

        if not self.dvi_output:
            capacity = timing.packet_slot_capacity
            if capacity == 0:
                raise ValueError(
                    f"VIC {self.video_id_code} has no room for data island packets in its "
                    f"horizontal blanking, use `dvi_output=True` to disable auxiliary data")
            # Audio Sample packets carry one frame each. If more frames arrive per
            # line than there are packet slots per line, the audio FIFO must overflow.
            frames_per_line = int(self.audio_rate) * timing.frame_width / self.pixel_clk_hz
            if frames_per_line > capacity:
                raise ValueError(
                    f"Audio rate {int(self.audio_rate)} needs {frames_per_line:.2f} packets per line, "
                    f"but VIC {self.video_id_code} only has {capacity} packet slots per line")

    @property
    def timing(self):
        return VideoTiming.get(self.video_id_code)

    @property
    def refresh_rate(self):
        if self.video_refresh_rate is None:
            return self.timing.refresh_rates[0]
        return self.video_refresh_rate

    @property
    def pixel_clk_hz(self):
        return self.timing.pixel_clk_hz(self.refresh_rate)

    @property
    def packet_slot_capacity(self):
        return 0 if self.dvi_output else self.timing.packet_slot_capacity

    @property
    def acr_n(self):
        return self.audio_rate.acr_n()

    def log_summary(self):
        timing = self.timing
        logging.info(f"HDMI: VIC {self.video_id_code} "
                     f"{timing.screen_width}x{timing.screen_height}@{self.refresh_rate}Hz "
                     f"(frame {timing.frame_width}x{timing.frame_height}, "
                     f"pixel clock {self.pixel_clk_hz/1e6:.3f}MHz, serializer x{self.serial_ratio})")
        if self.dvi_output:
            logging.info("HDMI: DVI output, no data islands")
        else:
            logging.info(f"HDMI: {self.packet_slot_capacity} packet slots per line, "
                         f"audio {int(self.audio_rate)}Hz/{self.audio_bit_width}bit, N={self.acr_n}")


def _check_ascii(name, value, max_len):
    if len(value) > max_len or not value.isascii():
        raise ValueError(f"`{name}` must be at most {max_len} ASCII characters, got {value!r}")
