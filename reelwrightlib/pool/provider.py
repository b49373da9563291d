#!/usr/bin/env python3

import os
import random
from reelwrightlib.core import utils

#============================================

class MainContentProvider():
	"""
	Produces the media for a main segment that has no source path.
	"""
	def generate(self, duration: float) -> str:
		raise NotImplementedError

#============================================

def _quote_concat_path(path: str) -> str:
	return "'" + path.replace("'", "'\\''") + "'"

#============================================

def build_ffconcat(images: list, duration: float) -> str:
	"""
	Slideshow list for the ffmpeg concat demuxer with equal image durations.
	"""
	if len(images) == 0:
		raise RuntimeError("slideshow needs at least one image")
	per_image = duration / len(images)
	lines = ["ffconcat version 1.0"]
	for image in images:
		lines.append(f"file {_quote_concat_path(os.path.abspath(image))}")
		lines.append(f"duration {per_image:.3f}")
	# the demuxer ignores the duration of the final entry unless it repeats
	lines.append(f"file {_quote_concat_path(os.path.abspath(images[-1]))}")
	return "\n".join(lines) + "\n"

#============================================

class SlideshowProvider(MainContentProvider):
	def __init__(self, images: list, output_file: str, dry_run: bool = False):
		self.images = list(images)
		self.output_file = output_file
		self.dry_run = dry_run
		self.last_images = []

	#============================
	def pick_images(self) -> list:
		return list(self.images)

	#============================
	def generate(self, duration: float) -> str:
		images = self.pick_images()
		if len(images) == 0:
			raise RuntimeError("no images available for main content")
		self.last_images = images
		utils.log(f"main content: {len(images)} images over {duration:.1f}s")
		if not self.dry_run:
			folder = os.path.dirname(os.path.abspath(self.output_file))
			os.makedirs(folder, exist_ok=True)
			with open(self.output_file, 'w', encoding='utf-8') as handle:
				handle.write(build_ffconcat(images, duration))
		return self.output_file

#============================================

class PoolSlideshowProvider(SlideshowProvider):
	def __init__(self, transaction, pool: list, bucket_key: str, output_file: str,
		image_count: int = None, dry_run: bool = False):
		super().__init__(pool, output_file, dry_run=dry_run)
		self.transaction = transaction
		self.bucket_key = bucket_key
		self.image_count = image_count

	#============================
	def pick_images(self) -> list:
		return self.transaction.select(self.images, self.image_count, self.bucket_key)

#============================================

class MixedSlideshowProvider(SlideshowProvider):
	"""
	Slideshow drawn from project images and a shared pool together.

	In 'prefer' mode the project images come first and pool picks fill the
	remaining count. In 'mix' mode one random sample is taken across both.
	Only pool picks are recorded in the ledger.
	"""
	def __init__(self, transaction, project_images: list, pool: list, bucket_key: str,
		output_file: str, image_count: int = None, mode: str = 'prefer',
		rng=None, dry_run: bool = False):
		super().__init__(project_images, output_file, dry_run=dry_run)
		if mode not in ('prefer', 'mix'):
			raise RuntimeError(f"unknown shared pool mode {mode!r}")
		self.transaction = transaction
		self.pool = list(pool)
		self.bucket_key = bucket_key
		self.image_count = image_count
		self.mode = mode
		self.rng = rng if rng is not None else random

	#============================
	def pick_images(self) -> list:
		if self.mode == 'prefer':
			return self._pick_preferred()
		return self._pick_mixed()

	#============================
	def _pick_preferred(self) -> list:
		images = list(self.images)
		if self.image_count is None:
			return images + self.transaction.select(self.pool, None, self.bucket_key)
		images = images[:self.image_count]
		remaining = self.image_count - len(images)
		if remaining > 0:
			images += self.transaction.select(self.pool, remaining, self.bucket_key)
		return images

	#============================
	def _pick_mixed(self) -> list:
		pool_candidates = self.transaction.candidates(self.pool, self.bucket_key)
		candidates = list(self.images) + pool_candidates
		take = len(candidates)
		if self.image_count is not None:
			take = min(self.image_count, take)
		if take <= 0:
			return []
		chosen = self.rng.sample(candidates, take)
		pool_set = set(pool_candidates)
		self.transaction.record(self.bucket_key, [path for path in chosen if path in pool_set])
		return chosen
