#!/usr/bin/env python3

"""
Value records for timelines, segments, and audio directives.
"""

import dataclasses
import enum

#============================================

class SegmentKind(enum.Enum):
	SCENE = 'scene'
	INTRO = 'intro'
	OUTRO = 'outro'
	MAIN = 'main'
	PLACEHOLDER = 'placeholder'

#============================================

class Transition(enum.Enum):
	NONE = 'none'
	FADE = 'fade'
	FADE_BLACK = 'fade-black'

DEFAULT_TRANSITION_DURATION = 0.5

#============================================

@dataclasses.dataclass(frozen=True)
class Segment:
	kind: SegmentKind
	source_path: str = None
	name: str = None
	explicit_duration: float = None
	mute: bool = False
	transition: Transition = Transition.NONE
	transition_duration: float = DEFAULT_TRANSITION_DURATION

	#============================
	@property
	def marker(self) -> str:
		"""Name used by audio directives; unnamed segments answer to their kind."""
		if self.name:
			return self.name
		return self.kind.value

#============================================

@dataclasses.dataclass(frozen=True)
class AudioTrack:
	path: str
	start_at: str = None
	stop_at: str = None
	volume: float = 1.0
	fade_in: float = None
	fade_out: float = None

#============================================

@dataclasses.dataclass(frozen=True)
class AudioConfig:
	voice: AudioTrack = None
	music: AudioTrack = None

	#============================
	def has_audio(self) -> bool:
		return self.voice is not None or self.music is not None

	#============================
	def primary_track(self) -> AudioTrack:
		if self.voice is not None:
			return self.voice
		return self.music

#============================================

@dataclasses.dataclass(frozen=True)
class Timeline:
	segments: tuple
	audio: AudioConfig = None

	#============================
	def has_audio(self) -> bool:
		return self.audio is not None and self.audio.has_audio()

#============================================

@dataclasses.dataclass(frozen=True)
class ResolvedTiming:
	index: int
	kind: SegmentKind
	name: str
	start: float
	end: float
	duration: float

	#============================
	def as_dict(self) -> dict:
		return {
			'index': self.index,
			'kind': self.kind.value,
			'name': self.name,
			'start': round(self.start, 3),
			'end': round(self.end, 3),
			'duration': round(self.duration, 3),
		}
