#!/usr/bin/env python3

from reelwrightlib.core import utils
from reelwrightlib.core.errors import DerivationError
from reelwrightlib.core.errors import PlanningError
from reelwrightlib.core.errors import ProbeError
from reelwrightlib.core.errors import TimelineConfigError
from reelwrightlib.core.segments import ResolvedTiming
from reelwrightlib.core.segments import SegmentKind
from reelwrightlib.core.segments import Timeline

#============================================

STILL_IMAGE_DURATION = 4.0
PLACEHOLDER_DURATION = 3.0
MIN_MAIN_DURATION = 1.0

#============================================

def probe_duration(probe, path: str) -> float:
	try:
		duration = probe.probe(path)
	except PlanningError:
		raise
	except (OSError, ValueError, KeyError, TypeError) as error:
		raise ProbeError(path, str(error)) from error
	if duration is None or duration <= 0:
		raise ProbeError(path, f"invalid duration {duration!r}")
	return float(duration)

#============================================

class MarkerTable():
	"""
	Read-only marker name to segment index association for one planning pass.
	"""
	def __init__(self, markers: list):
		self._indexes = {}
		for index, marker in markers:
			if marker is None:
				continue
			self._indexes.setdefault(marker, []).append(index)

	#============================
	@classmethod
	def from_segments(cls, segments) -> 'MarkerTable':
		return cls([(index, segment.marker) for index, segment in enumerate(segments)])

	#============================
	@classmethod
	def from_timings(cls, timings: list) -> 'MarkerTable':
		return cls([(timing.index, timing.name) for timing in timings])

	#============================
	def index_of(self, marker: str, directive: str) -> int:
		indexes = self._indexes.get(marker)
		if indexes is None:
			raise TimelineConfigError(f"{directive} marker '{marker}' does not match any segment")
		if len(indexes) > 1:
			positions = ', '.join(str(index) for index in indexes)
			raise TimelineConfigError(
				f"{directive} marker '{marker}' is ambiguous, matches segments {positions}"
			)
		return indexes[0]

#============================================

class ResolvedTimeline():
	def __init__(self, timings: list, warnings: list, derived_main_index: int = None):
		self.timings = timings
		self.warnings = warnings
		self.derived_main_index = derived_main_index

	#============================
	@property
	def total_duration(self) -> float:
		if len(self.timings) == 0:
			return 0.0
		return self.timings[-1].end

#============================================

class TimelineResolver():
	def __init__(self, probe):
		self.probe = probe

	#============================
	def resolve(self, timeline: Timeline) -> ResolvedTimeline:
		warnings = []
		self._validate(timeline, warnings)
		markers = MarkerTable.from_segments(timeline.segments)
		anchor_index = self._check_audio_markers(timeline, markers)
		derived_index = self._find_derived_main(timeline)
		durations = []
		for index, segment in enumerate(timeline.segments):
			if index == derived_index:
				durations.append(None)
				continue
			handler = _DURATION_HANDLERS[segment.kind]
			durations.append(handler(self, segment, index))
		if derived_index is not None:
			durations[derived_index] = self._derive_main_duration(timeline,
				durations, derived_index, anchor_index, warnings)
		timings = []
		current = 0.0
		for index, segment in enumerate(timeline.segments):
			duration = durations[index]
			timings.append(ResolvedTiming(
				index=index,
				kind=segment.kind,
				name=segment.marker,
				start=current,
				end=current + duration,
				duration=duration,
			))
			current += duration
		return ResolvedTimeline(timings, warnings, derived_index)

	#============================
	def _warn(self, warnings: list, message: str) -> None:
		warnings.append(message)
		utils.warn(message)

	#============================
	def _validate(self, timeline: Timeline, warnings: list) -> None:
		if timeline.segments is None or len(timeline.segments) == 0:
			raise TimelineConfigError("timeline must have at least one segment")
		has_main = False
		for index, segment in enumerate(timeline.segments):
			if not isinstance(segment.kind, SegmentKind):
				raise TimelineConfigError(f"invalid segment type {segment.kind!r}", index)
			if segment.kind in (SegmentKind.SCENE, SegmentKind.INTRO, SegmentKind.OUTRO):
				if not segment.source_path:
					raise TimelineConfigError(
						f"'{segment.kind.value}' segment requires a path", index)
			if segment.explicit_duration is not None and segment.explicit_duration <= 0:
				raise TimelineConfigError("duration must be a positive number", index)
			if segment.kind == SegmentKind.MAIN:
				has_main = True
		if not has_main:
			self._warn(warnings,
				"timeline should include at least one 'main' segment for generated content")

	#============================
	def _check_audio_markers(self, timeline: Timeline, markers: MarkerTable) -> int:
		"""
		Resolve every marker an audio directive names and return the voice anchor.
		"""
		if not timeline.has_audio():
			return 0
		audio = timeline.audio
		if audio.voice is not None and audio.voice.start_at:
			markers.index_of(audio.voice.start_at, 'voice.start_at')
		if audio.music is not None:
			if audio.music.start_at:
				markers.index_of(audio.music.start_at, 'music.start_at')
			if audio.music.stop_at:
				markers.index_of(audio.music.stop_at, 'music.stop_at')
		primary = audio.primary_track()
		if not primary.start_at:
			return 0
		return markers.index_of(primary.start_at, 'start_at')

	#============================
	def _find_derived_main(self, timeline: Timeline) -> int:
		derived_index = None
		for index, segment in enumerate(timeline.segments):
			if segment.kind != SegmentKind.MAIN:
				continue
			if segment.explicit_duration is not None or segment.source_path:
				continue
			if derived_index is not None:
				raise TimelineConfigError(
					"only one main segment may omit its duration; "
					f"segment {derived_index} already derives from the audio", index)
			derived_index = index
		return derived_index

	#============================
	def _derive_main_duration(self, timeline: Timeline, durations: list,
		main_index: int, anchor_index: int, warnings: list) -> float:
		if not timeline.has_audio():
			raise DerivationError(
				f"segments[{main_index}]: main segment has no duration and the "
				"timeline has no voice or music to derive one from")
		primary = timeline.audio.primary_track()
		voice_duration = self._probe_duration(primary.path)
		occupied = 0.0
		for index, duration in enumerate(durations):
			if index == main_index or index < anchor_index:
				continue
			occupied += duration
		main_duration = voice_duration - occupied
		if main_duration < MIN_MAIN_DURATION:
			self._warn(warnings,
				f"calculated main duration is {main_duration:.1f}s; audio "
				f"({voice_duration:.1f}s) is shorter than the segments playing "
				f"during it ({occupied:.1f}s), using {MIN_MAIN_DURATION:.0f}s and "
				"the video will run past the voice")
			main_duration = MIN_MAIN_DURATION
		return main_duration

	#============================
	def _source_duration(self, segment, index: int) -> float:
		if segment.explicit_duration is not None:
			return float(segment.explicit_duration)
		if utils.is_image_file(segment.source_path):
			return STILL_IMAGE_DURATION
		try:
			return self._probe_duration(segment.source_path)
		except ProbeError as error:
			raise TimelineConfigError(str(error), index) from error

	#============================
	def _probe_duration(self, path: str) -> float:
		return probe_duration(self.probe, path)

	#============================
	def _scene_duration(self, segment, index: int) -> float:
		return self._source_duration(segment, index)

	#============================
	def _main_duration(self, segment, index: int) -> float:
		if segment.explicit_duration is not None:
			return float(segment.explicit_duration)
		return self._source_duration(segment, index)

	#============================
	def _placeholder_duration(self, segment, index: int) -> float:
		if segment.explicit_duration is not None:
			return float(segment.explicit_duration)
		return PLACEHOLDER_DURATION

#============================================

_DURATION_HANDLERS = {
	SegmentKind.SCENE: TimelineResolver._scene_duration,
	SegmentKind.INTRO: TimelineResolver._scene_duration,
	SegmentKind.OUTRO: TimelineResolver._scene_duration,
	SegmentKind.MAIN: TimelineResolver._main_duration,
	SegmentKind.PLACEHOLDER: TimelineResolver._placeholder_duration,
}

_MISSING_KINDS = set(SegmentKind) - set(_DURATION_HANDLERS)
if len(_MISSING_KINDS) > 0:
	raise RuntimeError(f"no duration handler for segment kinds: {_MISSING_KINDS}")
