#!/usr/bin/env python3

import contextlib
import os
import threading
from reelwrightlib.pool import selector
from reelwrightlib.pool.history import PoolHistory

#============================================

class LedgerTransaction():
	def __init__(self, history: PoolHistory, max_history: int, rng=None):
		self.history = history
		self.max_history = max_history
		self.rng = rng
		self.selection_count = 0

	#============================
	def select(self, pool: list, count: int, bucket_key: str) -> list:
		(chosen, self.history) = selector.select(pool, self.history, count,
			bucket_key, max_history=self.max_history, rng=self.rng)
		if len(chosen) > 0:
			self.selection_count += 1
		return chosen

	#============================
	def candidates(self, pool: list, bucket_key: str) -> list:
		return selector.fresh_candidates(pool, self.history, bucket_key)

	#============================
	def record(self, bucket_key: str, paths: list) -> None:
		"""
		Record pool entries picked outside select().
		"""
		if len(paths) == 0:
			return
		self.history = self.history.copy()
		self.history.record(bucket_key, [os.path.basename(path) for path in paths],
			self.max_history)
		self.selection_count += 1

#============================================

class PoolLedger():
	"""
	Owns one pool history for a run: load once, mutate per plan, save on success.
	"""
	def __init__(self, store, max_history: int, rng=None):
		self.store = store
		self.max_history = max_history
		self.rng = rng
		self._lock = threading.Lock()
		self._history = store.load()

	#============================
	@property
	def history(self) -> PoolHistory:
		return self._history.copy()

	#============================
	@contextlib.contextmanager
	def transaction(self, persist: bool = True):
		"""
		Serialize a read-modify-write of the ledger.

		Selections only reach the store when the block exits without error.
		"""
		with self._lock:
			txn = LedgerTransaction(self._history.copy(), self.max_history, self.rng)
			yield txn
			if txn.selection_count == 0:
				return
			self._history = txn.history
			if persist:
				self.store.save(self._history)
