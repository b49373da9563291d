#!/usr/bin/env python3

import math
import os
import yaml
from reelwrightlib.core import utils
from reelwrightlib.core.errors import TimelineConfigError
from reelwrightlib.core.renderplan import CTA_POSITIONS
from reelwrightlib.core.renderplan import VIDEO_DIMENSIONS
from reelwrightlib.core.segments import AudioConfig
from reelwrightlib.core.segments import AudioTrack
from reelwrightlib.core.segments import DEFAULT_TRANSITION_DURATION
from reelwrightlib.core.segments import Segment
from reelwrightlib.core.segments import SegmentKind
from reelwrightlib.core.segments import Timeline
from reelwrightlib.core.segments import Transition
from reelwrightlib.subtitles.style import ALIGNMENT_BOTTOM
from reelwrightlib.subtitles.style import ALIGNMENT_MIDDLE
from reelwrightlib.subtitles.style import ALIGNMENT_TOP
from reelwrightlib.subtitles.style import SubtitleStyle

#============================================

MAX_TRANSITION_DURATION = 3.0
POSITION_ALIGNMENT = {
	'bottom': ALIGNMENT_BOTTOM,
	'middle': ALIGNMENT_MIDDLE,
	'center': ALIGNMENT_MIDDLE,
	'top': ALIGNMENT_TOP,
}
STYLE_FIELDS = ('font_family', 'font_size', 'font_color', 'outline_color',
	'outline_width', 'shadow_depth', 'shadow_color', 'background_color',
	'margin_v', 'alignment', 'bold', 'italic', 'line_spacing', 'animation')
# booleans force pool only or project only; None is auto
SHARED_POOL_MIXES = ('prefer', 'mix')
STYLE_NUMBER_FIELDS = ('font_size', 'outline_width', 'shadow_depth', 'line_spacing')
STYLE_INTEGER_FIELDS = ('margin_v', 'alignment')

#============================================

def _get(mapping: dict, key: str, *aliases):
	if key in mapping:
		return mapping[key]
	for alias in aliases:
		if alias in mapping:
			return mapping[alias]
	return None

#============================================

def _to_float(value, label: str) -> float:
	if isinstance(value, bool):
		raise RuntimeError(f"{label} must be a number, got {value!r}")
	try:
		result = float(value)
	except (TypeError, ValueError):
		raise RuntimeError(f"{label} must be a number, got {value!r}") from None
	if math.isnan(result) or math.isinf(result):
		raise RuntimeError(f"{label} must be a finite number, got {value!r}")
	return result

#============================================

def _to_int(value, label: str) -> int:
	if isinstance(value, bool):
		raise RuntimeError(f"{label} must be an integer, got {value!r}")
	try:
		return int(value)
	except (TypeError, ValueError):
		raise RuntimeError(f"{label} must be an integer, got {value!r}") from None

#============================================

def _to_seconds(value, label: str) -> float:
	try:
		return utils.parse_seconds(value)
	except RuntimeError as error:
		raise RuntimeError(f"{label}: {error}") from None

#============================================

class ProjectData():
	def __init__(self):
		self.yaml_file = None
		self.base_dir = None
		self.name = None
		self.dry_run = False
		self.data = {}
		self.formats = []
		self.defaults = {}
		self.timeline = None
		self.subtitles = None
		self.pool = {}
		self.images = []
		self.cta = None
		self.output_dir = None

#============================================

class ProjectLoader():
	def __init__(self, yaml_file: str, output_override: str = None,
		dry_run: bool = False):
		self.yaml_file = yaml_file
		self.output_override = output_override
		self.dry_run = dry_run

	#============================
	def load(self) -> ProjectData:
		project = ProjectData()
		project.yaml_file = self.yaml_file
		project.base_dir = os.path.dirname(os.path.abspath(self.yaml_file))
		project.dry_run = self.dry_run
		project.data = self._load_yaml()
		self._validate_required_keys(project.data)
		project.name = self._project_name(project.data)
		project.formats = self._parse_profile(project.data.get('profile', {}))
		project.defaults = self._parse_defaults(project.data.get('defaults', {}))
		project.timeline = self._parse_timeline(project, project.data.get('timeline'))
		project.subtitles = self._parse_subtitles(project, project.data.get('subtitles'))
		project.pool = self._parse_pool(project, project.data.get('pool'))
		project.images = self._parse_images(project, project.data.get('images'))
		project.cta = self._parse_cta(project, project.data.get('cta'))
		project.output_dir = self._parse_output(project, project.data.get('output', {}))
		return project

	#============================
	def _load_yaml(self) -> dict:
		file_size = os.path.getsize(self.yaml_file)
		if file_size > 10 ** 7:
			raise RuntimeError("yaml file is larger than 10MB")
		with open(self.yaml_file, 'r') as data_file:
			data = yaml.safe_load(data_file)
		if not isinstance(data, dict):
			raise RuntimeError("project yaml must be a mapping at the top level")
		return data

	#============================
	def _validate_required_keys(self, data: dict) -> None:
		if data.get('reelwright') != 1:
			raise RuntimeError("reelwright must be set to 1")
		if data.get('timeline') is None:
			raise RuntimeError("missing required key: timeline")

	#============================
	def _project_name(self, data: dict) -> str:
		name = data.get('name')
		if name is not None:
			return str(name)
		base = os.path.basename(self.yaml_file)
		for suffix in ('.yaml', '.yml'):
			if base.endswith(suffix):
				base = base[:-len(suffix)]
		return base

	#============================
	def _parse_profile(self, profile: dict) -> list:
		if not isinstance(profile, dict):
			raise RuntimeError("profile must be a mapping")
		formats = profile.get('formats', ['16:9'])
		if isinstance(formats, str):
			formats = [formats]
		if not isinstance(formats, list) or len(formats) == 0:
			raise RuntimeError("profile.formats must be a non-empty list")
		result = []
		for aspect in formats:
			aspect = str(aspect)
			if aspect not in VIDEO_DIMENSIONS:
				valid = ', '.join(VIDEO_DIMENSIONS.keys())
				raise RuntimeError(f"unsupported format {aspect}, must be one of: {valid}")
			if aspect not in result:
				result.append(aspect)
		return result

	#============================
	def _parse_defaults(self, defaults: dict) -> dict:
		if defaults is None:
			defaults = {}
		if not isinstance(defaults, dict):
			raise RuntimeError("defaults must be a mapping")
		audio = defaults.get('audio') or {}
		subtitles = defaults.get('subtitles') or {}
		return {
			'voice_volume': _get(audio, 'voice_volume', 'voiceVolume'),
			'music_volume': _get(audio, 'music_volume', 'musicVolume'),
			'music_fade_in': _get(audio, 'music_fade_in', 'musicFadeIn'),
			'music_fade_out': _get(audio, 'music_fade_out', 'musicFadeOut'),
			'subtitle_style': subtitles.get('style') or {},
		}

	#============================
	def _parse_timeline(self, project: ProjectData, timeline: dict) -> Timeline:
		if not isinstance(timeline, dict):
			raise RuntimeError("timeline must be a mapping")
		raw_segments = timeline.get('segments')
		if not isinstance(raw_segments, list) or len(raw_segments) == 0:
			raise TimelineConfigError("timeline.segments must be a non-empty list")
		segments = []
		for index, raw_segment in enumerate(raw_segments):
			segment = self._parse_segment(project, raw_segment, index)
			if segment is not None:
				segments.append(segment)
		if len(segments) == 0:
			raise TimelineConfigError("every timeline segment is disabled")
		audio = self._parse_audio(project, timeline.get('audio'))
		return Timeline(segments=tuple(segments), audio=audio)

	#============================
	def _parse_segment(self, project: ProjectData, raw_segment, index: int) -> Segment:
		if not isinstance(raw_segment, dict):
			raise TimelineConfigError("segment must be a mapping", index)
		if 'type' in raw_segment:
			kind_name = raw_segment.get('type')
			entry = raw_segment
		else:
			if len(raw_segment.keys()) != 1:
				raise TimelineConfigError("segment entries must have one key", index)
			kind_name = list(raw_segment.keys())[0]
			entry = raw_segment.get(kind_name)
			if entry is None:
				entry = {}
		if kind_name is None:
			raise TimelineConfigError("missing required segment type", index)
		if not isinstance(entry, dict):
			raise TimelineConfigError(f"{kind_name} segment must be a mapping", index)
		if entry.get('enabled') is False:
			return None
		try:
			kind = SegmentKind(str(kind_name))
		except ValueError:
			valid = ', '.join(kind.value for kind in SegmentKind)
			raise TimelineConfigError(
				f"invalid type '{kind_name}', must be one of: {valid}", index) from None
		duration = None
		if entry.get('duration') is not None:
			try:
				duration = utils.parse_seconds(entry.get('duration'))
			except (RuntimeError, ArithmeticError) as error:
				raise TimelineConfigError(f"bad duration: {error}", index) from error
			if duration <= 0:
				raise TimelineConfigError("duration must be a positive number", index)
		transition = self._parse_transition(entry.get('transition'), index)
		transition_duration = _get(entry, 'transition_duration', 'transitionDuration')
		if transition_duration is None:
			transition_duration = DEFAULT_TRANSITION_DURATION
		try:
			transition_duration = _to_float(transition_duration, "transition_duration")
		except RuntimeError as error:
			raise TimelineConfigError(str(error), index) from None
		if transition_duration < 0 or transition_duration > MAX_TRANSITION_DURATION:
			raise TimelineConfigError(
				f"transition_duration must be between 0 and {MAX_TRANSITION_DURATION:g}", index)
		name = entry.get('name')
		return Segment(
			kind=kind,
			source_path=utils.resolve_path(project.base_dir, entry.get('path')),
			name=str(name) if name is not None else None,
			explicit_duration=duration,
			mute=bool(entry.get('mute', False)),
			transition=transition,
			transition_duration=transition_duration,
		)

	#============================
	def _parse_transition(self, raw_transition, index: int) -> Transition:
		if raw_transition is None:
			return Transition.NONE
		try:
			return Transition(str(raw_transition))
		except ValueError:
			valid = ', '.join(item.value for item in Transition)
			raise TimelineConfigError(
				f"unknown transition '{raw_transition}', must be one of: {valid}", index) from None

	#============================
	def _parse_audio(self, project: ProjectData, audio: dict) -> AudioConfig:
		if audio is None:
			return None
		if not isinstance(audio, dict):
			raise RuntimeError("timeline.audio must be a mapping")
		voice = None
		music = None
		if audio.get('voice') is not None:
			voice = self._parse_track(project, audio.get('voice'), 'voice',
				project.defaults['voice_volume'], None, None)
		if audio.get('music') is not None:
			music = self._parse_track(project, audio.get('music'), 'music',
				project.defaults['music_volume'], project.defaults['music_fade_in'],
				project.defaults['music_fade_out'])
		if voice is None and music is None:
			return None
		return AudioConfig(voice=voice, music=music)

	#============================
	def _parse_track(self, project: ProjectData, entry, role: str,
		default_volume, default_fade_in, default_fade_out) -> AudioTrack:
		if isinstance(entry, str):
			entry = {'path': entry}
		if not isinstance(entry, dict):
			raise RuntimeError(f"timeline.audio.{role} must be a mapping or path")
		path = entry.get('path')
		if path is None:
			raise RuntimeError(f"timeline.audio.{role}.path is required")
		volume = entry.get('volume', default_volume)
		fade_in = _get(entry, 'fade_in', 'fadeIn')
		if fade_in is None:
			fade_in = default_fade_in
		fade_out = _get(entry, 'fade_out', 'fadeOut')
		if fade_out is None:
			fade_out = default_fade_out
		stop_at = _get(entry, 'stop_at', 'stopAt')
		if role == 'voice' and stop_at is not None:
			raise RuntimeError("timeline.audio.voice does not support stop_at")
		return AudioTrack(
			path=utils.resolve_path(project.base_dir, path),
			start_at=_get(entry, 'start_at', 'startAt'),
			stop_at=stop_at,
			volume=_to_float(volume, f"timeline.audio.{role}.volume") if volume is not None else None,
			fade_in=_to_float(fade_in, f"timeline.audio.{role}.fade_in") if fade_in is not None else None,
			fade_out=_to_float(fade_out, f"timeline.audio.{role}.fade_out") if fade_out is not None else None,
		)

	#============================
	def _parse_subtitles(self, project: ProjectData, subtitles: dict) -> dict:
		if subtitles is None:
			return None
		if not isinstance(subtitles, dict):
			raise RuntimeError("subtitles must be a mapping")
		srt_file = subtitles.get('file')
		if srt_file is None:
			raise RuntimeError("subtitles.file is required")
		max_lines = _to_int(_get(subtitles, 'max_lines', 'maxLines') or 2, "subtitles.max_lines")
		if max_lines < 1:
			raise RuntimeError("subtitles.max_lines must be at least 1")
		style = subtitles.get('style') or {}
		if not isinstance(style, dict) or not isinstance(project.defaults['subtitle_style'], dict):
			raise RuntimeError("subtitles.style must be a mapping")
		style_data = dict(project.defaults['subtitle_style'])
		style_data.update(style)
		return {
			'file': utils.resolve_path(project.base_dir, srt_file),
			'words': utils.resolve_path(project.base_dir, subtitles.get('words')),
			'max_lines': max_lines,
			'style': self._parse_style(style_data),
		}

	#============================
	def _parse_style(self, style_data: dict) -> SubtitleStyle:
		values = {}
		position = style_data.get('position')
		if position is not None:
			if position not in POSITION_ALIGNMENT:
				raise RuntimeError(f"unknown subtitle position {position}")
			values['alignment'] = POSITION_ALIGNMENT[position]
		for field in STYLE_FIELDS:
			value = style_data.get(field)
			if value is None:
				continue
			if field in STYLE_NUMBER_FIELDS:
				value = _to_float(value, f"subtitles.style.{field}")
			elif field in STYLE_INTEGER_FIELDS:
				value = _to_int(value, f"subtitles.style.{field}")
			values[field] = value
		animation = values.get('animation', 'none')
		if animation not in ('none', 'karaoke'):
			raise RuntimeError("subtitle animation must be none or karaoke")
		return SubtitleStyle(**values)

	#============================
	def _parse_pool(self, project: ProjectData, pool: dict) -> dict:
		if pool is None:
			pool = {}
		if not isinstance(pool, dict):
			raise RuntimeError("pool must be a mapping")
		image_count = pool.get('image_count')
		if image_count is not None:
			image_count = _to_int(image_count, "pool.image_count")
			if image_count <= 0:
				raise RuntimeError("pool.image_count must be positive")
		use_shared_pool = _get(pool, 'use_shared_pool', 'useSharedPool')
		if use_shared_pool == 'auto':
			use_shared_pool = None
		if not (use_shared_pool is None or isinstance(use_shared_pool, bool)
			or use_shared_pool in SHARED_POOL_MIXES):
			raise RuntimeError("pool.use_shared_pool must be true, false, prefer, mix, or auto")
		history_dir = pool.get('history_dir', '.')
		return {
			'use_shared_pool': use_shared_pool,
			'images': utils.resolve_path(project.base_dir, pool.get('images')),
			'image_count': image_count,
			'music': utils.resolve_path(project.base_dir, pool.get('music')),
			'channel': pool.get('channel'),
			'history_dir': utils.resolve_path(project.base_dir, history_dir),
		}

	#============================
	def _parse_images(self, project: ProjectData, images) -> list:
		if images is None:
			return []
		if not isinstance(images, list):
			raise RuntimeError("images must be a list of paths")
		return [utils.resolve_path(project.base_dir, image) for image in images]

	#============================
	def _parse_cta(self, project: ProjectData, cta: dict) -> dict:
		if cta is None:
			return None
		if not isinstance(cta, dict):
			raise RuntimeError("cta must be a mapping")
		if cta.get('enabled') is False:
			return None
		if cta.get('path') is None:
			raise RuntimeError("cta.path is required")
		position = cta.get('position', 'right-bottom')
		if position not in CTA_POSITIONS:
			raise RuntimeError(f"unknown cta position {position}")
		opacity = _to_float(cta.get('opacity', 0.9), "cta.opacity")
		scale = _to_float(cta.get('scale', 0.15), "cta.scale")
		if opacity < 0 or opacity > 1:
			raise RuntimeError("cta.opacity must be between 0 and 1")
		if scale <= 0 or scale > 1:
			raise RuntimeError("cta.scale must be between 0 and 1")
		return {
			'path': utils.resolve_path(project.base_dir, cta.get('path')),
			'position': position,
			'start': _to_seconds(cta.get('start', 5), "cta.start"),
			'duration': _to_seconds(cta.get('duration', 5), "cta.duration"),
			'opacity': opacity,
			'scale': scale,
		}

	#============================
	def _parse_output(self, project: ProjectData, output: dict) -> str:
		if self.output_override is not None:
			return os.path.abspath(self.output_override)
		if output is None:
			output = {}
		if not isinstance(output, dict):
			raise RuntimeError("output must be a mapping")
		return utils.resolve_path(project.base_dir, output.get('dir', 'output'))
