import unittest

from amaranth import *
from amaranth.sim import *

from hdmitx.modeline import VideoTiming
from hdmitx.test.rasters import TINY
from hdmitx.video.timing import TimingGenerator

PERIODS = [
    "video_data",
    "video_guard",
    "video_preamble",
    "data_island",
    "data_island_preamble",
    "data_island_guard",
]

class TimingGeneratorTests(unittest.TestCase):

    def run_frame(self, dut, ticks, on_tick):
        async def testbench(ctx):
            for _ in range(ticks):
                on_tick(ctx)
                await ctx.tick("pixel")
        sim = Simulator(dut)
        sim.add_clock(1e-6, domain="pixel")
        sim.add_testbench(testbench)
        sim.run()

    def test_raster_order(self):
        dut = TimingGenerator(TINY)
        w, h = TINY.frame_width, TINY.frame_height
        visited = []
        frame_starts = []
        def on_tick(ctx):
            visited.append((ctx.get(dut.x), ctx.get(dut.y)))
            frame_starts.append(ctx.get(dut.frame_start))
        self.run_frame(dut, w*h + 1, on_tick)
        expected = [(n % w, n // w) for n in range(w*h)]
        self.assertEqual(visited[:w*h], expected)
        # wraps to the origin
        self.assertEqual(visited[w*h], (0, 0))
        self.assertEqual(sum(frame_starts), 2)
        self.assertEqual(frame_starts[0], 1)

    def test_periods(self):
        dut = TimingGenerator(TINY)
        counts = {name: 0 for name in PERIODS + ["packet_slot_start", "data_island_first", "control"]}
        def on_tick(ctx):
            x, y = ctx.get(dut.x), ctx.get(dut.y)
            active = [name for name in PERIODS if ctx.get(getattr(dut.periods, name))]
            # At most one period at a time, nothing at all is a control period.
            assert len(active) <= 1, f"({x}, {y}) in {active}"
            if active:
                counts[active[0]] += 1
            else:
                counts["control"] += 1
            counts["packet_slot_start"] += ctx.get(dut.periods.packet_slot_start)
            counts["data_island_first"] += ctx.get(dut.periods.data_island_first)
            if ctx.get(dut.periods.packet_slot_start):
                assert (x - 10) % 32 == 0 and ctx.get(dut.periods.data_island), x
            # Spot checks on the first active line.
            if y == 4:
                expect = {
                    0:   "data_island_preamble",
                    7:   "data_island_preamble",
                    8:   "data_island_guard",
                    9:   "data_island_guard",
                    10:  "data_island",
                    73:  "data_island",
                    74:  "data_island_guard",
                    75:  "data_island_guard",
                    76:  None,
                    93:  None,
                    94:  "video_preamble",
                    101: "video_preamble",
                    102: "video_guard",
                    103: "video_guard",
                    104: "video_data",
                    199: "video_data",
                }
                if x in expect:
                    self.assertEqual(active, [] if expect[x] is None else [expect[x]], x)
        self.run_frame(dut, TINY.frame_width*TINY.frame_height, on_tick)

        h = TINY.frame_height
        capacity = TINY.packet_slot_capacity
        self.assertEqual(counts["data_island"], 32*capacity*h)
        self.assertEqual(counts["packet_slot_start"], capacity*h)
        self.assertEqual(counts["data_island_first"], h)
        self.assertEqual(counts["data_island_preamble"], 8*h)
        self.assertEqual(counts["data_island_guard"], 4*h)
        self.assertEqual(counts["video_preamble"], 8*h)
        self.assertEqual(counts["video_guard"], 2*TINY.screen_height)
        self.assertEqual(counts["video_data"], TINY.screen_width*TINY.screen_height)

    def test_dvi_has_control_and_video_only(self):
        dut = TimingGenerator(TINY, guard_enabled=False)
        video = 0
        def on_tick(ctx):
            nonlocal video
            for name in PERIODS[1:] + ["packet_slot_start", "data_island_first"]:
                assert not ctx.get(getattr(dut.periods, name)), name
            video += ctx.get(dut.periods.video_data)
        self.run_frame(dut, TINY.frame_width*TINY.frame_height, on_tick)
        self.assertEqual(video, TINY.screen_width*TINY.screen_height)

    def test_vga_sync(self):
        vga = VideoTiming.get(1)
        dut = TimingGenerator(vga)
        def on_tick(ctx):
            x, y = ctx.get(dut.x), ctx.get(dut.y)
            # Both syncs are active-low for this mode
            assert ctx.get(dut.hsync) == (0 if 16 <= x < 112 else 1), x
            assert ctx.get(dut.vsync) == (0 if y < 2 else 1), y
        # First 3 lines
        self.run_frame(dut, 3*vga.frame_width, on_tick)
