#!/usr/bin/env python3

import math
from reelwrightlib.core import utils
from reelwrightlib.core.segments import SegmentKind
from reelwrightlib.core.segments import Transition

#============================================

VIDEO_DIMENSIONS = {
	'16:9': (1920, 1080),
	'9:16': (1080, 1920),
	'4:5': (1080, 1350),
	'1:1': (1080, 1080),
}

CTA_POSITIONS = {
	'left-top': 'x=10:y=10',
	'middle-top': 'x=(W-w)/2:y=10',
	'right-top': 'x=W-w-10:y=10',
	'left-bottom': 'x=10:y=H-h-10',
	'middle-bottom': 'x=(W-w)/2:y=H-h-10',
	'right-bottom': 'x=W-w-10:y=H-h-10',
}
CTA_FRAME_RATE = 30

#============================================

def dimensions_for(aspect_ratio: str) -> tuple:
	dimensions = VIDEO_DIMENSIONS.get(aspect_ratio)
	if dimensions is None:
		raise RuntimeError(f"unsupported format {aspect_ratio}")
	return dimensions

#============================================

def frame_filters(width: int, height: int, segment) -> list:
	filters = [
		f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
		f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2,setsar=1"
	]
	# both fade kinds are baked in as a fade up from black
	if segment.transition in (Transition.FADE, Transition.FADE_BLACK):
		filters.append(f"fade=t=in:st=0:d={segment.transition_duration:g}:color=black")
	return filters

#============================================

def cta_overlay(cta: dict, total_duration: float, input_index: int) -> dict:
	"""
	Overlay parameters for a call-to-action image or clip.

	A negative start counts back from the end of the video.
	"""
	start = cta['start']
	if start < 0:
		start = max(0.0, total_duration + start)
	end = start + cta['duration']
	position = CTA_POSITIONS.get(cta['position'], CTA_POSITIONS['right-bottom'])
	look = f"scale=iw*{cta['scale']:g}:-1,format=yuva420p,colorchannelmixer=aa={cta['opacity']:g}"
	if utils.is_video_file(cta['path']):
		prep = (f"[{input_index}:v]loop=loop=-1:size=1000:start=0,"
			f"trim=duration={cta['duration']:g},setpts=PTS-STARTPTS,{look}[cta]")
	else:
		frame_count = int(math.ceil(cta['duration'] * CTA_FRAME_RATE))
		prep = f"[{input_index}:v]loop=loop={frame_count}:size=1:start=0,{look}[cta]"
	return {
		'path': cta['path'],
		'position': cta['position'],
		'start': round(start, 3),
		'end': round(end, 3),
		'opacity': cta['opacity'],
		'scale': cta['scale'],
		'prep_filter': prep,
		'overlay_filter': f"[cta]overlay={position}:enable='between(t,{start:g},{end:g})'",
	}

#============================================

class RenderPlanAssembler():
	"""
	Combine resolved timings, the audio mix, and composed subtitles into the
	parameter set handed to the renderer for one output format.
	"""
	def __init__(self, aspect_ratio: str):
		self.aspect_ratio = aspect_ratio
		(self.width, self.height) = dimensions_for(aspect_ratio)

	#============================
	def assemble(self, timeline, resolved, audio_plan, subtitles: dict = None,
		cta: dict = None, main_provider=None) -> dict:
		operations = []
		for timing in resolved.timings:
			segment = timeline.segments[timing.index]
			operations.append(self._operation(timeline, segment, timing, main_provider))
		plan = {
			'format': self.aspect_ratio,
			'width': self.width,
			'height': self.height,
			'duration': round(resolved.total_duration, 3),
			'operations': operations,
			'audio': audio_plan.as_dict(),
		}
		if len(resolved.warnings) > 0:
			plan['warnings'] = list(resolved.warnings)
		if subtitles is not None:
			plan['subtitles'] = subtitles
		if cta is not None:
			# video is input 0 and the audio tracks follow it
			input_index = 1 + len(audio_plan.tracks)
			plan['cta'] = cta_overlay(cta, resolved.total_duration, input_index)
		return plan

	#============================
	def _operation(self, timeline, segment, timing, main_provider) -> dict:
		operation = timing.as_dict()
		generated = segment.kind == SegmentKind.PLACEHOLDER or not segment.source_path
		if generated:
			operation['source'] = 'generated'
			operation['is_image'] = False
			if segment.kind == SegmentKind.PLACEHOLDER:
				operation['generator'] = 'black'
			else:
				operation['generator'] = 'slideshow'
				if main_provider is not None:
					operation['generated_file'] = main_provider.generate(timing.duration)
		else:
			operation['source'] = segment.source_path
			operation['is_image'] = utils.is_image_file(segment.source_path)
		operation['mute'] = self._effective_mute(timeline, segment, generated)
		operation['transition'] = segment.transition.value
		operation['filters'] = frame_filters(self.width, self.height, segment)
		return operation

	#============================
	def _effective_mute(self, timeline, segment, generated: bool) -> bool:
		if segment.mute or generated:
			return True
		if segment.kind in (SegmentKind.INTRO, SegmentKind.OUTRO) and timeline.has_audio():
			# the voice or music track carries the sound for bumpers
			return True
		return utils.is_image_file(segment.source_path)
