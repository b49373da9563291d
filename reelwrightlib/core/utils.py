#!/usr/bin/env python3

import os
from decimal import Decimal
from decimal import InvalidOperation

#============================================

IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.webp', '.gif')
VIDEO_EXTENSIONS = ('.mp4', '.mov', '.avi', '.webm', '.mkv', '.flv')
AUDIO_EXTENSIONS = ('.mp3', '.wav', '.m4a', '.aac')

_QUIET_MODE = False

#============================================

def set_quiet_mode(quiet: bool) -> None:
	global _QUIET_MODE
	_QUIET_MODE = bool(quiet)

#============================================

def is_quiet_mode() -> bool:
	return _QUIET_MODE

#============================================

def log(message: str) -> None:
	if _QUIET_MODE:
		return
	print(message)

#============================================

def warn(message: str) -> None:
	if _QUIET_MODE:
		return
	print(f"WARNING: {message}")

#============================================

def _parse_timecode_text(value: str) -> Decimal:
	if ':' not in value:
		return Decimal(value)
	parts = value.split(':')
	if len(parts) > 3:
		raise RuntimeError(f"invalid timecode: {value!r}")
	seconds = Decimal(parts.pop())
	minutes = Decimal(parts.pop())
	hours = Decimal(0)
	if len(parts) > 0:
		hours = Decimal(parts.pop())
	return hours * Decimal(3600) + minutes * Decimal(60) + seconds

#============================================

def parse_timecode(raw_time) -> Decimal:
	if raw_time is None:
		raise RuntimeError("time value is required")
	if isinstance(raw_time, bool):
		raise RuntimeError("time values must be int, float, or timecode string")
	if isinstance(raw_time, int):
		return Decimal(raw_time)
	if isinstance(raw_time, float):
		return Decimal(str(raw_time))
	if isinstance(raw_time, str):
		value = raw_time.strip()
		try:
			result = _parse_timecode_text(value)
		except InvalidOperation:
			raise RuntimeError(f"invalid time value: {value!r}") from None
		if not result.is_finite():
			raise RuntimeError(f"invalid time value: {value!r}")
		return result
	raise RuntimeError("time values must be int, float, or timecode string")

#============================================

def parse_seconds(raw_time) -> float:
	return float(parse_timecode(raw_time))

#============================================

def file_extension(filepath: str) -> str:
	return os.path.splitext(filepath)[1].lower()

#============================================

def is_image_file(filepath: str) -> bool:
	return file_extension(filepath) in IMAGE_EXTENSIONS

#============================================

def is_video_file(filepath: str) -> bool:
	return file_extension(filepath) in VIDEO_EXTENSIONS

#============================================

def list_media_files(folder: str, extensions: tuple) -> list:
	if folder is None or not os.path.isdir(folder):
		return []
	files = []
	for name in sorted(os.listdir(folder)):
		if name.startswith('.'):
			continue
		path = os.path.join(folder, name)
		if not os.path.isfile(path):
			continue
		if file_extension(name) in extensions:
			files.append(path)
	return files

#============================================

def resolve_path(base_dir: str, filepath: str) -> str:
	if filepath is None:
		return None
	filepath = os.path.expanduser(str(filepath))
	if os.path.isabs(filepath):
		return filepath
	return os.path.normpath(os.path.join(base_dir, filepath))
