#!/usr/bin/env python3

import os
import random
from reelwrightlib.core import utils
from reelwrightlib.pool.history import MAX_IMAGE_HISTORY
from reelwrightlib.pool.history import PoolHistory

#============================================

ASPECT_FOLDERS = {
	'16:9': 'landscape',
	'9:16': 'portrait',
	'4:5': 'instagram',
	'1:1': 'square',
}

#============================================

def image_bucket_key(aspect_ratio: str, channel: str = None) -> str:
	folder = ASPECT_FOLDERS.get(aspect_ratio, 'landscape')
	if channel:
		return f"channel_{channel}_{folder}"
	return folder

#============================================

def music_bucket_key(channel: str = None) -> str:
	if channel:
		return channel
	return 'default'

#============================================

def image_pool_folder(pool_dir: str, aspect_ratio: str) -> str:
	"""
	Prefer the aspect-specific subfolder, then 'universal', then the pool root.
	"""
	if pool_dir is None:
		return None
	aspect_dir = os.path.join(pool_dir, ASPECT_FOLDERS.get(aspect_ratio, 'landscape'))
	if os.path.isdir(aspect_dir):
		return aspect_dir
	universal_dir = os.path.join(pool_dir, 'universal')
	if os.path.isdir(universal_dir):
		return universal_dir
	return pool_dir

#============================================

def fresh_candidates(pool: list, history: PoolHistory, bucket_key: str) -> list:
	"""
	Pool entries not recently used in the bucket, or the whole pool when every one was.
	"""
	recent = set(history.recent(bucket_key))
	candidates = [path for path in pool if os.path.basename(path) not in recent]
	if len(candidates) == 0 and len(pool) > 0:
		utils.warn(f"every item in pool '{bucket_key}' was used recently, reusing the full pool")
		candidates = list(pool)
	elif len(candidates) < len(pool):
		utils.log(f"pool '{bucket_key}': filtered out {len(pool) - len(candidates)} recently used items")
	return candidates

#============================================

def select(pool: list, history: PoolHistory, count: int, bucket_key: str,
	max_history: int = MAX_IMAGE_HISTORY, rng=None) -> tuple:
	"""
	Pick up to count pool entries, avoiding names recently used in the bucket.

	Args:
		pool: Candidate file paths.
		history: Recent-use ledger, left unmodified.
		count: Number to pick, or None for every candidate.
		bucket_key: History bucket for this pool.
		max_history: Bucket size cap after recording the picks.
		rng: Random source with a sample() method.

	Returns:
		tuple: (chosen paths, updated PoolHistory)
	"""
	if rng is None:
		rng = random
	updated = history.copy()
	if len(pool) == 0:
		return ([], updated)
	candidates = fresh_candidates(pool, history, bucket_key)
	take = len(candidates)
	if count is not None:
		take = min(int(count), len(candidates))
	if take <= 0:
		return ([], updated)
	chosen = rng.sample(candidates, take)
	updated.record(bucket_key, [os.path.basename(path) for path in chosen], max_history)
	return (chosen, updated)
