# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""Classes for representing HDMI video timings and data island geometry."""

from dataclasses import dataclass

# Fixed data island geometry, in pixels. See HDMI 1.4a Section 5.2.3.
PACKET_WIDTH         = 32
MAX_PACKETS          = 18
ISLAND_PREAMBLE      = 8
ISLAND_GUARD         = 2
ISLAND_START         = ISLAND_PREAMBLE + ISLAND_GUARD
VIDEO_PREAMBLE       = 8
VIDEO_GUARD          = 2
MIN_CONTROL_PERIOD   = 12
# Blanking that must remain around the packets themselves:
# video guard, video preamble, control period, trailing island guard,
# leading island guard, island preamble.
ISLAND_OVERHEAD = (VIDEO_GUARD + VIDEO_PREAMBLE + MIN_CONTROL_PERIOD +
                   ISLAND_GUARD + ISLAND_GUARD + ISLAND_PREAMBLE)


@dataclass(frozen=True)
class VideoTiming:
    """
    Video timing profile of a CEA-861 video format.

    Unlike xrandr-style modelines, the blanking interval is placed at the
    *start* of each line and frame, so the active area occupies the
    bottom-right of the raster:

    .. code-block:: text

        x: 0 ........ screen_start_x ........ frame_width-1
           |-- blanking --|------- active ---------|

    Sync pulses are half-open windows on the raster counter, e.g. for
    640x480p the horizontal pulse covers ``16 <= x < 112``. The level on
    the wire is the pulse XOR ``sync_invert``.
    """

    frame_width:   int
    frame_height:  int
    screen_width:  int
    screen_height: int
    h_sync_start:  int   # first x inside the hsync pulse
    h_sync_end:    int   # first x after the hsync pulse
    v_sync_start:  int   # first y inside the vsync pulse
    v_sync_end:    int   # first y after the vsync pulse
    sync_invert:   bool  # True for -HSync -VSync
    refresh_rates: tuple # Supported refresh rates (Hz), first is the default

    def __post_init__(self):
        if self.screen_width > self.frame_width or self.screen_height > self.frame_height:
            raise ValueError(
                f"screen {self.screen_width}x{self.screen_height} does not fit "
                f"in frame {self.frame_width}x{self.frame_height}")

    @property
    def screen_start_x(self):
        return self.frame_width - self.screen_width

    @property
    def screen_start_y(self):
        return self.frame_height - self.screen_height

    @property
    def packet_slot_capacity(self):
        """
        Number of 32-pixel packets that fit in the horizontal blanking
        interval of every line, leaving room for the guard bands, preambles
        and the minimum control period (HDMI 1.4a Section 5.2.3.1).
        """
        n = (self.screen_start_x - ISLAND_OVERHEAD) // PACKET_WIDTH
        return max(0, min(n, MAX_PACKETS))

    @property
    def island_end_x(self):
        return ISLAND_START + PACKET_WIDTH * self.packet_slot_capacity

    def hsync_pulse(self, x):
        return self.h_sync_start <= x < self.h_sync_end

    def vsync_pulse(self, y):
        return self.v_sync_start <= y < self.v_sync_end

    def pixel_clk_hz(self, refresh_rate=None):
        if refresh_rate is None:
            refresh_rate = self.refresh_rates[0]
        return self.frame_width * self.frame_height * refresh_rate

    @staticmethod
    def all_timings():
        """
        Supported timing profiles, keyed by CEA-861 Video ID Code.
        """
        vga = VideoTiming(
            frame_width   = 800,
            frame_height  = 525,
            screen_width  = 640,
            screen_height = 480,
            h_sync_start  = 16,
            h_sync_end    = 16 + 96,
            v_sync_start  = 0,
            v_sync_end    = 2,
            sync_invert   = True,
            refresh_rates = (59.94, 60),
        )
        edtv_480p = VideoTiming(
            frame_width   = 858,
            frame_height  = 525,
            screen_width  = 720,
            screen_height = 480,
            h_sync_start  = 16,
            h_sync_end    = 16 + 62,
            v_sync_start  = 6,
            v_sync_end    = 12,
            sync_invert   = True,
            refresh_rates = (59.94, 60),
        )
        hd_720p60 = VideoTiming(
            frame_width   = 1650,
            frame_height  = 750,
            screen_width  = 1280,
            screen_height = 720,
            h_sync_start  = 110,
            h_sync_end    = 110 + 40,
            v_sync_start  = 0,
            v_sync_end    = 5,
            sync_invert   = False,
            refresh_rates = (59.94, 60),
        )
        fhd_1080p60 = VideoTiming(
            frame_width   = 2200,
            frame_height  = 1125,
            screen_width  = 1920,
            screen_height = 1080,
            h_sync_start  = 88,
            h_sync_end    = 88 + 44,
            v_sync_start  = 0,
            v_sync_end    = 5,
            sync_invert   = False,
            refresh_rates = (59.94, 60),
        )
        edtv_576p = VideoTiming(
            frame_width   = 864,
            frame_height  = 625,
            screen_width  = 720,
            screen_height = 576,
            h_sync_start  = 12,
            h_sync_end    = 12 + 64,
            v_sync_start  = 0,
            v_sync_end    = 5,
            sync_invert   = True,
            refresh_rates = (50,),
        )
        hd_720p50 = VideoTiming(
            frame_width   = 1980,
            frame_height  = 750,
            screen_width  = 1280,
            screen_height = 720,
            h_sync_start  = 440,
            h_sync_end    = 440 + 40,
            v_sync_start  = 0,
            v_sync_end    = 5,
            sync_invert   = False,
            refresh_rates = (50,),
        )
        fhd_1080p30 = VideoTiming(
            frame_width   = 2200,
            frame_height  = 1125,
            screen_width  = 1920,
            screen_height = 1080,
            h_sync_start  = 88,
            h_sync_end    = 88 + 44,
            v_sync_start  = 0,
            v_sync_end    = 5,
            sync_invert   = False,
            refresh_rates = (29.97, 30),
        )
        uhd_2160p30 = VideoTiming(
            frame_width   = 4400,
            frame_height  = 2250,
            screen_width  = 3840,
            screen_height = 2160,
            h_sync_start  = 176,
            h_sync_end    = 176 + 88,
            v_sync_start  = 0,
            v_sync_end    = 10,
            sync_invert   = False,
            refresh_rates = (29.97, 30),
        )
        uhd_2160p60 = VideoTiming(
            frame_width   = 4400,
            frame_height  = 2250,
            screen_width  = 3840,
            screen_height = 2160,
            h_sync_start  = 176,
            h_sync_end    = 176 + 88,
            v_sync_start  = 0,
            v_sync_end    = 10,
            sync_invert   = False,
            refresh_rates = (59.94, 60),
        )
        return {
            # 640x480p, 4:3. Every HDMI sink must support this one.
            1:   vga,
            # 720x480p, 4:3 and 16:9
            2:   edtv_480p,
            3:   edtv_480p,
            4:   hd_720p60,
            16:  fhd_1080p60,
            # 720x576p, 4:3 and 16:9
            17:  edtv_576p,
            18:  edtv_576p,
            19:  hd_720p50,
            34:  fhd_1080p30,
            # 3840x2160, 16:9 and 64:27
            95:  uhd_2160p30,
            105: uhd_2160p30,
            97:  uhd_2160p60,
            107: uhd_2160p60,
        }

    @staticmethod
    def get(video_id_code):
        timings = VideoTiming.all_timings()
        if video_id_code not in timings:
            raise ValueError(
                f"Video ID Code {video_id_code} not supported! "
                f"Must be one of {sorted(timings)}")
        return timings[video_id_code]
