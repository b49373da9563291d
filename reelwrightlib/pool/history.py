#!/usr/bin/env python3

import datetime
import json
import os
import tempfile
from reelwrightlib.core import utils

#============================================

MAX_IMAGE_HISTORY = 20
MAX_MUSIC_HISTORY = 10

#============================================

class PoolHistory():
	"""
	Recently used pool filenames per bucket, oldest first.
	"""
	def __init__(self, buckets: dict = None):
		self._buckets = {}
		if buckets is not None:
			for key, names in buckets.items():
				self._buckets[str(key)] = [str(name) for name in names]

	#============================
	def recent(self, bucket_key: str) -> list:
		return list(self._buckets.get(bucket_key, []))

	#============================
	def record(self, bucket_key: str, names: list, max_history: int) -> None:
		bucket = self._buckets.get(bucket_key, []) + [str(name) for name in names]
		if max_history <= 0:
			bucket = []
		elif len(bucket) > max_history:
			bucket = bucket[-max_history:]
		self._buckets[bucket_key] = bucket

	#============================
	def bucket_keys(self) -> list:
		return sorted(self._buckets.keys())

	#============================
	def copy(self) -> 'PoolHistory':
		return PoolHistory(self._buckets)

	#============================
	def as_dict(self) -> dict:
		return {key: list(names) for key, names in self._buckets.items()}

#============================================

def history_from_data(data) -> PoolHistory:
	if not isinstance(data, dict):
		raise ValueError("pool history must be a mapping")
	buckets = data.get('buckets')
	if buckets is None:
		buckets = data.get('channels')
	if buckets is None:
		# flat layout, one list per bucket
		buckets = {key: value for key, value in data.items() if isinstance(value, list)}
	if not isinstance(buckets, dict):
		raise ValueError("pool history buckets must be a mapping")
	for key, names in buckets.items():
		if not isinstance(names, list):
			raise ValueError(f"pool history bucket {key} must be a list")
	return PoolHistory(buckets)

#============================================

class MemoryHistoryStore():
	def __init__(self, history: PoolHistory = None):
		self.history = history if history is not None else PoolHistory()
		self.save_count = 0

	#============================
	def load(self) -> PoolHistory:
		return self.history.copy()

	#============================
	def save(self, history: PoolHistory) -> None:
		self.history = history.copy()
		self.save_count += 1

#============================================

class JsonHistoryStore():
	def __init__(self, json_file: str):
		self.json_file = json_file

	#============================
	def load(self) -> PoolHistory:
		if not os.path.isfile(self.json_file):
			return PoolHistory()
		try:
			with open(self.json_file, 'r', encoding='utf-8') as handle:
				data = json.load(handle)
			return history_from_data(data)
		except (OSError, ValueError) as error:
			utils.warn(f"could not load pool history {self.json_file} ({error}), starting fresh")
			return PoolHistory()

	#============================
	def save(self, history: PoolHistory) -> None:
		payload = {
			'buckets': history.as_dict(),
			'last_update': datetime.datetime.now().isoformat(timespec='seconds'),
		}
		folder = os.path.dirname(os.path.abspath(self.json_file))
		temp_file = None
		try:
			os.makedirs(folder, exist_ok=True)
			(handle_fd, temp_file) = tempfile.mkstemp(prefix='.pool-history-',
				suffix='.json', dir=folder)
			with os.fdopen(handle_fd, 'w', encoding='utf-8') as handle:
				json.dump(payload, handle, indent=2)
			os.replace(temp_file, self.json_file)
		except OSError as error:
			if temp_file is not None and os.path.exists(temp_file):
				os.remove(temp_file)
			raise RuntimeError(f"could not save pool history {self.json_file}: {error}") from error
