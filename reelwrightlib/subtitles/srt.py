#!/usr/bin/env python3

"""
SRT caption codec and word-level timing loader.
"""

# Standard Library
import dataclasses
import json
import re

#============================================

TIMECODE_RE = re.compile(r'^\s*(\d+):(\d{1,2}):(\d{1,2})[,.](\d{1,3})\s*$')

#============================================

@dataclasses.dataclass(frozen=True)
class WordTiming:
	text: str
	start_ms: int
	end_ms: int

#============================================

@dataclasses.dataclass(frozen=True)
class SubtitleCue:
	start_ms: int
	end_ms: int
	text: str
	words: tuple = ()

	#============================
	def shifted(self, offset_ms: int) -> 'SubtitleCue':
		words = tuple(
			WordTiming(word.text, max(0, word.start_ms + offset_ms),
				max(0, word.end_ms + offset_ms))
			for word in self.words
		)
		return SubtitleCue(
			start_ms=max(0, self.start_ms + offset_ms),
			end_ms=max(0, self.end_ms + offset_ms),
			text=self.text,
			words=words,
		)

#============================================

def parse_timestamp(raw: str) -> int:
	"""
	Convert an SRT timestamp (HH:MM:SS,mmm) to milliseconds.
	"""
	match = TIMECODE_RE.match(raw)
	if match is None:
		raise RuntimeError(f"invalid caption timecode: {raw!r}")
	hours = int(match.group(1))
	minutes = int(match.group(2))
	seconds = int(match.group(3))
	millis = int(match.group(4).ljust(3, '0'))
	return ((hours * 3600 + minutes * 60 + seconds) * 1000) + millis

#============================================

def format_timestamp(total_ms: int) -> str:
	total_ms = max(0, int(total_ms))
	hours = total_ms // 3600000
	minutes = (total_ms // 60000) % 60
	seconds = (total_ms // 1000) % 60
	millis = total_ms % 1000
	return f"{hours:02d}:{minutes:02d}:{seconds:02d},{millis:03d}"

#============================================

def collapse_text(text: str) -> str:
	text = text.replace('\\N', ' ')
	text = re.sub(r'[\r\n]+', ' ', text)
	text = re.sub(r'\s+', ' ', text)
	return text.strip()

#============================================

def parse_srt(content: str) -> list:
	"""
	Parse SRT text into cues, collapsing multi-line cue text to one line.

	Args:
		content: Full caption file text.

	Returns:
		list: SubtitleCue entries in file order.
	"""
	content = content.lstrip('\ufeff').replace('\r\n', '\n').replace('\r', '\n')
	cues = []
	for block in re.split(r'\n\s*\n', content):
		lines = [line for line in block.split('\n') if line.strip() != '']
		if len(lines) < 2:
			continue
		if '-->' in lines[0]:
			time_line = lines[0]
			text_lines = lines[1:]
		else:
			time_line = lines[1]
			text_lines = lines[2:]
		if '-->' not in time_line:
			raise RuntimeError(f"caption block is missing a time range: {block.strip()!r}")
		start_raw, end_raw = time_line.split('-->', 1)
		# some writers append positioning after the end time
		end_raw = end_raw.strip().split(' ')[0]
		text = collapse_text(' '.join(text_lines))
		if text == '':
			continue
		cues.append(SubtitleCue(
			start_ms=parse_timestamp(start_raw),
			end_ms=parse_timestamp(end_raw),
			text=text,
		))
	return cues

#============================================

def read_srt(srt_file: str) -> list:
	try:
		with open(srt_file, 'r', encoding='utf-8') as handle:
			text = handle.read()
	except UnicodeDecodeError:
		raise RuntimeError(f"caption file {srt_file} is not valid UTF-8") from None
	return parse_srt(text)

#============================================

def format_srt(cues: list) -> str:
	blocks = []
	for number, cue in enumerate(cues, start=1):
		blocks.append(
			f"{number}\n"
			f"{format_timestamp(cue.start_ms)} --> {format_timestamp(cue.end_ms)}\n"
			f"{cue.text}\n"
		)
	return "\n".join(blocks)

#============================================

def _word_from_entry(entry: dict) -> WordTiming:
	if not isinstance(entry, dict):
		raise RuntimeError(f"word timing entry must be a mapping: {entry!r}")
	text = entry.get('text', entry.get('word'))
	if text is None:
		raise RuntimeError(f"word timing entry has no text: {entry!r}")
	try:
		if 'start_ms' in entry:
			start_ms = int(entry['start_ms'])
			end_ms = int(entry['end_ms'])
		else:
			start_ms = int(round(float(entry['start']) * 1000))
			end_ms = int(round(float(entry['end']) * 1000))
	except KeyError as error:
		raise RuntimeError(f"word timing entry is missing {error}: {entry!r}") from None
	except (TypeError, ValueError, OverflowError):
		raise RuntimeError(f"word timing entry has a bad time: {entry!r}") from None
	return WordTiming(str(text).strip(), start_ms, end_ms)

#============================================

def parse_word_timings(data) -> list:
	"""
	Read speech-to-text word timings.

	Accepts a flat list of words, a mapping with a 'words' list, or a
	transcript mapping with 'segments' that each carry 'words'. Times are
	seconds under 'start'/'end' or milliseconds under 'start_ms'/'end_ms'.
	"""
	entries = []
	if isinstance(data, list):
		entries = data
	elif isinstance(data, dict) and isinstance(data.get('words'), list):
		entries = data['words']
	elif isinstance(data, dict) and isinstance(data.get('segments'), list):
		for segment in data['segments']:
			if not isinstance(segment, dict) or not isinstance(segment.get('words', []), list):
				raise RuntimeError("transcript segments must be mappings with a 'words' list")
			entries.extend(segment.get('words', []))
	else:
		raise RuntimeError("word timings must be a list or contain 'words' or 'segments'")
	words = []
	for entry in entries:
		word = _word_from_entry(entry)
		if word.text == '':
			continue
		words.append(word)
	words.sort(key=lambda word: word.start_ms)
	return words

#============================================

def load_word_timings(json_file: str) -> list:
	try:
		with open(json_file, 'r', encoding='utf-8') as handle:
			data = json.load(handle)
	except ValueError as error:
		# covers both bad json and bad utf-8
		raise RuntimeError(f"word timing file {json_file} is not valid json: {error}") from None
	return parse_word_timings(data)
