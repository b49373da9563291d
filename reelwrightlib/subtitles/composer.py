#!/usr/bin/env python3

import dataclasses
import math
from reelwrightlib.core import utils
from reelwrightlib.subtitles.srt import SubtitleCue

#============================================

REFERENCE_WIDTH = 1920
NARROW_RATIO = 0.7
NARROW_MULTIPLIER = 0.40
WIDE_MULTIPLIER = 0.48
MIN_CHARS_PER_LINE = 18
MAX_CHARS_PER_LINE = 42
WORD_TOLERANCE_MS = 50
LINE_BREAK = '\\N'

#============================================

def char_budget(frame_width: int, font_size: float,
	max_chars: int = MAX_CHARS_PER_LINE) -> int:
	"""
	Characters per subtitle line for a frame width and font size.

	Narrow frames use a smaller multiplier because the subtitle renderer
	needs more margin than the raw width suggests.
	"""
	if font_size <= 0:
		raise RuntimeError("subtitle font size must be positive")
	if frame_width / REFERENCE_WIDTH < NARROW_RATIO:
		multiplier = NARROW_MULTIPLIER
	else:
		multiplier = WIDE_MULTIPLIER
	width_chars = (frame_width / font_size) * multiplier
	return int(math.floor(max(MIN_CHARS_PER_LINE, min(width_chars, max_chars))))

#============================================

def wrap_words(words: list, budget: int, max_lines: int) -> tuple:
	"""
	Greedily pack words into at most max_lines lines of budget characters.

	Returns:
		tuple: (lines, truncated) where lines is a list of word lists.
	"""
	if max_lines < 1:
		raise RuntimeError("max_lines must be at least 1")
	lines = []
	current = []
	current_len = 0
	truncated = False
	for word in words:
		if len(current) == 0:
			current = [word]
			current_len = len(word)
			continue
		if current_len + 1 + len(word) <= budget:
			current.append(word)
			current_len += 1 + len(word)
			continue
		lines.append(current)
		if len(lines) >= max_lines:
			current = []
			truncated = True
			break
		current = [word]
		current_len = len(word)
	if len(current) > 0:
		lines.append(current)
	return (lines, truncated)

#============================================

def wrap_text(text: str, budget: int, max_lines: int) -> tuple:
	words = text.split()
	(lines, truncated) = wrap_words(words, budget, max_lines)
	return ([' '.join(line) for line in lines], truncated)

#============================================

def attach_words(cues: list, words: list,
	tolerance_ms: int = WORD_TOLERANCE_MS) -> list:
	"""
	Give each cue the words whose span overlaps its window.
	"""
	attached = []
	for cue in cues:
		matched = tuple(
			word for word in words
			if word.start_ms < cue.end_ms + tolerance_ms
			and word.end_ms > cue.start_ms - tolerance_ms
		)
		attached.append(dataclasses.replace(cue, words=matched))
	return attached

#============================================

def shift_cues(cues: list, offset_ms: int) -> list:
	if offset_ms == 0:
		return list(cues)
	return [cue.shifted(offset_ms) for cue in cues]

#============================================

def karaoke_durations(words: tuple) -> list:
	"""
	Display duration of each word in centiseconds.
	"""
	durations = []
	for index, word in enumerate(words):
		if index + 1 < len(words):
			span_ms = words[index + 1].start_ms - word.start_ms
		else:
			span_ms = word.end_ms - word.start_ms
		durations.append(max(0, int(round(span_ms / 10.0))))
	return durations

#============================================

@dataclasses.dataclass(frozen=True)
class ComposedCue:
	start_ms: int
	end_ms: int
	lines: tuple
	truncated: bool = False
	karaoke: bool = False

	#============================
	@property
	def text(self) -> str:
		return LINE_BREAK.join(self.lines)

#============================================

class RenderableCueSet():
	def __init__(self, cues: list, char_budget: int, max_lines: int):
		self.cues = cues
		self.char_budget = char_budget
		self.max_lines = max_lines
		self.karaoke = False
		self.degraded = False
		self.warnings = []

	#============================
	@property
	def truncated_count(self) -> int:
		return sum(1 for cue in self.cues if cue.truncated)

	#============================
	def as_dict(self) -> dict:
		return {
			'cue_count': len(self.cues),
			'truncated_count': self.truncated_count,
			'char_budget': self.char_budget,
			'max_lines': self.max_lines,
			'karaoke': self.karaoke,
			'degraded': self.degraded,
		}

#============================================

class SubtitleComposer():
	def __init__(self, max_chars_per_line: int = MAX_CHARS_PER_LINE):
		self.max_chars_per_line = max_chars_per_line

	#============================
	def compose(self, cues: list, style, frame_width: int, font_size: float,
		max_lines: int = 2, offset_ms: int = 0) -> RenderableCueSet:
		budget = char_budget(frame_width, font_size, self.max_chars_per_line)
		cues = shift_cues(cues, offset_ms)
		cue_set = RenderableCueSet([], budget, max_lines)
		use_karaoke = False
		if style is not None and style.karaoke:
			if any(len(cue.words) > 0 for cue in cues):
				use_karaoke = True
			else:
				cue_set.degraded = True
				message = "karaoke subtitles requested but no word timings found, using plain subtitles"
				cue_set.warnings.append(message)
				utils.warn(message)
		cue_set.karaoke = use_karaoke
		for cue in cues:
			if use_karaoke and len(cue.words) > 0:
				composed = self._compose_karaoke(cue, budget, max_lines)
			else:
				composed = self._compose_plain(cue, budget, max_lines)
			cue_set.cues.append(composed)
		if cue_set.truncated_count > 0:
			utils.log(f"subtitles: {cue_set.truncated_count} of {len(cue_set.cues)} "
				f"cues truncated to {max_lines} line(s) at {budget} chars/line")
		return cue_set

	#============================
	def _compose_plain(self, cue: SubtitleCue, budget: int,
		max_lines: int) -> ComposedCue:
		(lines, truncated) = wrap_text(cue.text, budget, max_lines)
		return ComposedCue(cue.start_ms, cue.end_ms, tuple(lines), truncated, False)

	#============================
	def _compose_karaoke(self, cue: SubtitleCue, budget: int,
		max_lines: int) -> ComposedCue:
		texts = [word.text for word in cue.words]
		(lines, truncated) = wrap_words(texts, budget, max_lines)
		durations = karaoke_durations(cue.words)
		tagged_lines = []
		position = 0
		for line in lines:
			tagged = []
			for text in line:
				tagged.append(f"{{\\kf{durations[position]}}}{text}")
				position += 1
			tagged_lines.append(' '.join(tagged))
		return ComposedCue(cue.start_ms, cue.end_ms, tuple(tagged_lines), truncated, True)
