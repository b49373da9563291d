#!/usr/bin/env python3

import math
from reelwrightlib.core.errors import TimelineConfigError
from reelwrightlib.core.segments import AudioConfig
from reelwrightlib.core.segments import AudioTrack
from reelwrightlib.core.timeline import MarkerTable
from reelwrightlib.core.timeline import probe_duration

#============================================

DEFAULT_VOICE_VOLUME = 1.0
DEFAULT_MUSIC_VOLUME = 0.3

#============================================

def _fmt(value: float) -> str:
	return f"{value:.3f}"

#============================================

class AudioTrackPlan():
	def __init__(self, role: str, path: str, volume: float, start: float,
		trim: float, natural_duration: float):
		self.role = role
		self.path = path
		self.volume = volume
		self.start = start
		self.delay_ms = int(math.floor(start * 1000))
		self.trim = trim
		self.natural_duration = natural_duration
		self.fade_in = None
		self.fade_out = None
		self.loop = False

	#============================
	@property
	def end(self) -> float:
		return self.start + self.trim

	#============================
	@property
	def fade_out_start(self) -> float:
		if self.fade_out is None:
			return None
		return max(0.0, self.trim - self.fade_out)

	#============================
	def filter_chain(self, input_index: int) -> str:
		filters = []
		if abs(self.volume - 1.0) > 0.0001:
			filters.append(f"volume={self.volume:g}")
		if self.loop:
			filters.append("aloop=loop=-1:size=2e+09")
		filters.append(f"atrim=0:{_fmt(self.trim)}")
		if self.fade_in is not None:
			filters.append(f"afade=t=in:st=0:d={_fmt(self.fade_in)}")
		if self.fade_out is not None:
			filters.append(
				f"afade=t=out:st={_fmt(self.fade_out_start)}:d={_fmt(self.fade_out)}")
		filters.append(f"adelay={self.delay_ms}|{self.delay_ms}")
		return f"[{input_index}:a]" + ",".join(filters) + f"[{self.role}]"

	#============================
	def as_dict(self) -> dict:
		data = {
			'role': self.role,
			'path': self.path,
			'volume': self.volume,
			'start': round(self.start, 3),
			'end': round(self.end, 3),
			'delay_ms': self.delay_ms,
			'trim': round(self.trim, 3),
			'natural_duration': round(self.natural_duration, 3),
			'loop': self.loop,
		}
		if self.fade_in is not None:
			data['fade_in'] = self.fade_in
		if self.fade_out is not None:
			data['fade_out'] = self.fade_out
			data['fade_out_start'] = round(self.fade_out_start, 3)
		return data

#============================================

class AudioMixPlan():
	def __init__(self, tracks: list, total_duration: float):
		self.tracks = tracks
		self.total_duration = total_duration

	#============================
	def track(self, role: str) -> AudioTrackPlan:
		for track in self.tracks:
			if track.role == role:
				return track
		return None

	#============================
	@property
	def mix_mode(self) -> str:
		if len(self.tracks) > 1:
			return 'longest'
		return None

	#============================
	@property
	def subtitle_offset_ms(self) -> int:
		voice = self.track('voice')
		if voice is None:
			return 0
		return voice.delay_ms

	#============================
	def filter_graph(self, first_input: int = 1) -> str:
		"""
		Build the ffmpeg filter_complex text that mixes the planned tracks.

		Input 0 is the concatenated video; audio inputs follow in track order.
		"""
		if len(self.tracks) == 0:
			return ''
		parts = []
		labels = ''
		for offset, track in enumerate(self.tracks):
			parts.append(track.filter_chain(first_input + offset))
			labels += f"[{track.role}]"
		pad = f"apad=whole_dur={_fmt(self.total_duration)}"
		if len(self.tracks) > 1:
			parts.append(
				f"{labels}amix=inputs={len(self.tracks)}:duration=longest,{pad}[aout]")
		else:
			parts.append(f"{labels}{pad}[aout]")
		return ';'.join(parts)

	#============================
	def as_dict(self) -> dict:
		return {
			'tracks': [track.as_dict() for track in self.tracks],
			'mix': self.mix_mode,
			'pad_to': round(self.total_duration, 3),
			'subtitle_offset_ms': self.subtitle_offset_ms,
			'filter_graph': self.filter_graph(),
		}

#============================================

class AudioMixPlanner():
	def __init__(self, probe):
		self.probe = probe

	#============================
	def plan(self, timings: list, audio_config: AudioConfig) -> AudioMixPlan:
		if len(timings) == 0:
			raise TimelineConfigError("cannot plan audio for an empty timeline")
		total = timings[-1].end
		tracks = []
		if audio_config is None:
			return AudioMixPlan(tracks, total)
		markers = MarkerTable.from_timings(timings)
		if audio_config.voice is not None:
			tracks.append(self._plan_voice(audio_config.voice, timings, markers, total))
		if audio_config.music is not None:
			tracks.append(self._plan_music(audio_config.music, timings, markers, total))
		return AudioMixPlan(tracks, total)

	#============================
	def _marker_start(self, marker: str, directive: str, timings: list,
		markers: MarkerTable) -> float:
		if not marker:
			return 0.0
		return timings[markers.index_of(marker, directive)].start

	#============================
	def _plan_voice(self, voice: AudioTrack, timings: list, markers: MarkerTable,
		total: float) -> AudioTrackPlan:
		start = self._marker_start(voice.start_at, 'voice.start_at', timings, markers)
		natural = probe_duration(self.probe, voice.path)
		trim = min(natural, total - start)
		if trim <= 0:
			raise TimelineConfigError("voice starts at or after the end of the timeline")
		volume = voice.volume if voice.volume is not None else DEFAULT_VOICE_VOLUME
		track = AudioTrackPlan('voice', voice.path, volume, start, trim, natural)
		track.fade_in = self._clamp_fade(voice.fade_in, trim)
		track.fade_out = self._clamp_fade(voice.fade_out, trim)
		return track

	#============================
	def _plan_music(self, music: AudioTrack, timings: list, markers: MarkerTable,
		total: float) -> AudioTrackPlan:
		start = self._marker_start(music.start_at, 'music.start_at', timings, markers)
		stop = total
		if music.stop_at:
			# stop_at plays through the named segment
			stop = timings[markers.index_of(music.stop_at, 'music.stop_at')].end
		trim = stop - start
		if trim <= 0:
			raise TimelineConfigError(
				f"music.stop_at '{music.stop_at}' ends before music.start_at "
				f"'{music.start_at}' begins")
		natural = probe_duration(self.probe, music.path)
		volume = music.volume if music.volume is not None else DEFAULT_MUSIC_VOLUME
		track = AudioTrackPlan('music', music.path, volume, start, trim, natural)
		track.loop = natural < trim
		track.fade_in = self._clamp_fade(music.fade_in, trim)
		track.fade_out = self._clamp_fade(music.fade_out, trim)
		return track

	#============================
	def _clamp_fade(self, fade: float, trim: float) -> float:
		if fade is None or fade <= 0:
			return None
		return min(float(fade), trim)
