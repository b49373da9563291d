#!/usr/bin/env python3

"""
Unit tests for the timeline resolver.
"""

# Standard Library
import os
import sys
import unittest

# local repo modules
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

from reelwrightlib.core import utils
from reelwrightlib.core.errors import DerivationError
from reelwrightlib.core.errors import ProbeError
from reelwrightlib.core.errors import TimelineConfigError
from reelwrightlib.core.segments import AudioConfig
from reelwrightlib.core.segments import AudioTrack
from reelwrightlib.core.segments import Segment
from reelwrightlib.core.segments import SegmentKind
from reelwrightlib.core.segments import Timeline
from reelwrightlib.core.timeline import TimelineResolver

#============================================

class FakeProbe():
	def __init__(self, durations: dict):
		self.durations = durations
		self.calls = []

	def probe(self, path: str) -> float:
		self.calls.append(path)
		if path not in self.durations:
			raise ProbeError(path, "file not found")
		return self.durations[path]

#============================================

def _timeline(segments: list, voice: AudioTrack = None, music: AudioTrack = None) -> Timeline:
	audio = None
	if voice is not None or music is not None:
		audio = AudioConfig(voice=voice, music=music)
	return Timeline(segments=tuple(segments), audio=audio)

#============================================

class TimelineResolverTest(unittest.TestCase):
	#============================================
	def setUp(self) -> None:
		utils.set_quiet_mode(True)

	#============================================
	def tearDown(self) -> None:
		utils.set_quiet_mode(False)

	#============================================
	def test_intro_main_outro_derives_main(self) -> None:
		"""Ensure main fills the voice after the bumpers are subtracted."""
		timeline = _timeline([
			Segment(SegmentKind.INTRO, source_path='a.mp4', explicit_duration=4),
			Segment(SegmentKind.MAIN),
			Segment(SegmentKind.OUTRO, source_path='b.mp4', explicit_duration=6),
		], voice=AudioTrack(path='v.mp3'))
		resolved = TimelineResolver(FakeProbe({'v.mp3': 50.0})).resolve(timeline)
		spans = [(timing.start, timing.end) for timing in resolved.timings]
		self.assertEqual(spans, [(0.0, 4.0), (4.0, 44.0), (44.0, 50.0)])
		self.assertEqual(resolved.derived_main_index, 1)
		self.assertEqual(resolved.total_duration, 50.0)

	#============================================
	def test_anchor_excludes_earlier_segments(self) -> None:
		"""Ensure segments before the voice anchor are not subtracted."""
		timeline = _timeline([
			Segment(SegmentKind.INTRO, source_path='a.mp4', explicit_duration=4),
			Segment(SegmentKind.SCENE, source_path='hook.mp4', name='Hook', explicit_duration=3),
			Segment(SegmentKind.MAIN),
			Segment(SegmentKind.OUTRO, source_path='b.mp4', explicit_duration=6),
		], voice=AudioTrack(path='v.mp3', start_at='Hook'))
		resolved = TimelineResolver(FakeProbe({'v.mp3': 30.0})).resolve(timeline)
		self.assertEqual(resolved.timings[2].duration, 21.0)
		self.assertEqual(resolved.total_duration, 34.0)

	#============================================
	def test_short_voice_clamps_main(self) -> None:
		"""Ensure an overlong timeline clamps main to one second with a warning."""
		timeline = _timeline([
			Segment(SegmentKind.INTRO, source_path='a.mp4', explicit_duration=8),
			Segment(SegmentKind.MAIN),
			Segment(SegmentKind.OUTRO, source_path='b.mp4', explicit_duration=8),
		], voice=AudioTrack(path='v.mp3'))
		resolved = TimelineResolver(FakeProbe({'v.mp3': 10.0})).resolve(timeline)
		self.assertEqual(resolved.timings[1].duration, 1.0)
		self.assertEqual(len(resolved.warnings), 1)

	#============================================
	def test_music_drives_derivation_without_voice(self) -> None:
		"""Ensure the music track is the fallback duration source."""
		timeline = _timeline([
			Segment(SegmentKind.MAIN),
		], music=AudioTrack(path='m.mp3'))
		resolved = TimelineResolver(FakeProbe({'m.mp3': 12.5})).resolve(timeline)
		self.assertEqual(resolved.timings[0].duration, 12.5)

	#============================================
	def test_probed_and_default_durations(self) -> None:
		"""Ensure video scenes are probed and stills and placeholders use defaults."""
		timeline = _timeline([
			Segment(SegmentKind.SCENE, source_path='clip.mp4'),
			Segment(SegmentKind.SCENE, source_path='still.png'),
			Segment(SegmentKind.PLACEHOLDER),
			Segment(SegmentKind.MAIN, explicit_duration=5),
		])
		probe = FakeProbe({'clip.mp4': 7.25})
		resolved = TimelineResolver(probe).resolve(timeline)
		durations = [timing.duration for timing in resolved.timings]
		self.assertEqual(durations, [7.25, 4.0, 3.0, 5.0])
		self.assertEqual(probe.calls, ['clip.mp4'])

	#============================================
	def test_timing_conservation(self) -> None:
		"""Ensure timings are contiguous and sum to the final end."""
		segments = [
			Segment(SegmentKind.INTRO, source_path='a.mp4', explicit_duration=2.5),
			Segment(SegmentKind.SCENE, source_path='s.mp4', explicit_duration=1.75),
			Segment(SegmentKind.MAIN),
			Segment(SegmentKind.PLACEHOLDER),
			Segment(SegmentKind.OUTRO, source_path='b.mp4', explicit_duration=3),
		]
		for voice_duration in (5.0, 20.0, 61.3):
			timeline = _timeline(segments, voice=AudioTrack(path='v.mp3'))
			resolved = TimelineResolver(FakeProbe({'v.mp3': voice_duration})).resolve(timeline)
			timings = resolved.timings
			self.assertEqual(timings[0].start, 0.0)
			for left, right in zip(timings, timings[1:]):
				self.assertAlmostEqual(left.end, right.start)
			total = sum(timing.duration for timing in timings)
			self.assertAlmostEqual(total, timings[-1].end)
			expected_main = max(1.0, voice_duration - (2.5 + 1.75 + 3.0 + 3.0))
			self.assertAlmostEqual(timings[2].duration, expected_main)

	#============================================
	def test_scene_without_path_reports_index(self) -> None:
		"""Ensure a scene with no path is a configuration error for that index."""
		timeline = _timeline([
			Segment(SegmentKind.MAIN, explicit_duration=3),
			Segment(SegmentKind.SCENE),
		])
		with self.assertRaises(TimelineConfigError) as context:
			TimelineResolver(FakeProbe({})).resolve(timeline)
		self.assertEqual(context.exception.segment_index, 1)
		self.assertIn("segments[1]", str(context.exception))

	#============================================
	def test_ambiguous_marker_is_error(self) -> None:
		"""Ensure duplicate marker names referenced by audio are rejected."""
		timeline = _timeline([
			Segment(SegmentKind.SCENE, source_path='a.mp4', name='Hook', explicit_duration=2),
			Segment(SegmentKind.SCENE, source_path='b.mp4', name='Hook', explicit_duration=2),
			Segment(SegmentKind.MAIN),
		], voice=AudioTrack(path='v.mp3', start_at='Hook'))
		with self.assertRaises(TimelineConfigError):
			TimelineResolver(FakeProbe({'v.mp3': 10.0})).resolve(timeline)

	#============================================
	def test_unknown_marker_is_error(self) -> None:
		"""Ensure a marker that names no segment is rejected."""
		timeline = _timeline([
			Segment(SegmentKind.MAIN),
		], voice=AudioTrack(path='v.mp3', start_at='Missing'))
		with self.assertRaises(TimelineConfigError):
			TimelineResolver(FakeProbe({'v.mp3': 10.0})).resolve(timeline)

	#============================================
	def test_unnamed_segment_answers_to_kind(self) -> None:
		"""Ensure an unnamed intro can be referenced as 'intro'."""
		timeline = _timeline([
			Segment(SegmentKind.SCENE, source_path='a.mp4', explicit_duration=2),
			Segment(SegmentKind.INTRO, source_path='i.mp4', explicit_duration=3),
			Segment(SegmentKind.MAIN),
		], voice=AudioTrack(path='v.mp3', start_at='intro'))
		resolved = TimelineResolver(FakeProbe({'v.mp3': 10.0})).resolve(timeline)
		self.assertEqual(resolved.timings[2].duration, 7.0)

	#============================================
	def test_main_without_audio_is_derivation_error(self) -> None:
		"""Ensure deriving main with no audio fails loudly."""
		timeline = _timeline([
			Segment(SegmentKind.INTRO, source_path='a.mp4', explicit_duration=4),
			Segment(SegmentKind.MAIN),
		])
		with self.assertRaises(DerivationError):
			TimelineResolver(FakeProbe({})).resolve(timeline)

	#============================================
	def test_second_derived_main_is_error(self) -> None:
		"""Ensure only one main may omit its duration."""
		timeline = _timeline([
			Segment(SegmentKind.MAIN),
			Segment(SegmentKind.MAIN),
		], voice=AudioTrack(path='v.mp3'))
		with self.assertRaises(TimelineConfigError) as context:
			TimelineResolver(FakeProbe({'v.mp3': 10.0})).resolve(timeline)
		self.assertEqual(context.exception.segment_index, 1)

	#============================================
	def test_missing_main_warns(self) -> None:
		"""Ensure a timeline with no main segment still resolves."""
		timeline = _timeline([
			Segment(SegmentKind.SCENE, source_path='a.mp4', explicit_duration=4),
		])
		resolved = TimelineResolver(FakeProbe({})).resolve(timeline)
		self.assertEqual(resolved.total_duration, 4.0)
		self.assertEqual(len(resolved.warnings), 1)

	#============================================
	def test_probe_failure_aborts(self) -> None:
		"""Ensure an unreadable source aborts with the segment index."""
		timeline = _timeline([
			Segment(SegmentKind.SCENE, source_path='missing.mp4'),
		])
		with self.assertRaises(TimelineConfigError) as context:
			TimelineResolver(FakeProbe({})).resolve(timeline)
		self.assertEqual(context.exception.segment_index, 0)

	#============================================
	def test_voice_probe_failure_aborts(self) -> None:
		"""Ensure a failed voice probe is not replaced with a default."""
		timeline = _timeline([
			Segment(SegmentKind.MAIN),
		], voice=AudioTrack(path='gone.mp3'))
		with self.assertRaises(ProbeError):
			TimelineResolver(FakeProbe({})).resolve(timeline)

	#============================================
	def test_zero_probe_duration_rejected(self) -> None:
		"""Ensure a probe reporting zero seconds is an error."""
		timeline = _timeline([
			Segment(SegmentKind.MAIN),
		], voice=AudioTrack(path='v.mp3'))
		with self.assertRaises(ProbeError):
			TimelineResolver(FakeProbe({'v.mp3': 0.0})).resolve(timeline)

	#============================================
	def test_zero_explicit_duration_rejected(self) -> None:
		"""Ensure an explicit duration of zero is a configuration error."""
		timeline = _timeline([
			Segment(SegmentKind.SCENE, source_path='a.mp4', explicit_duration=2),
			Segment(SegmentKind.SCENE, source_path='b.mp4', explicit_duration=0),
		])
		with self.assertRaises(TimelineConfigError) as context:
			TimelineResolver(FakeProbe({})).resolve(timeline)
		self.assertEqual(context.exception.segment_index, 1)
		self.assertIn("positive", str(context.exception))

#============================================

def main() -> None:
	"""Run the unit tests."""
	unittest.main()

#============================================

if __name__ == "__main__":
	main()
