#!/usr/bin/env python3

import contextlib
import dataclasses
import os
import yaml
from reelwrightlib import medialib
from reelwrightlib.core import utils
from reelwrightlib.core.audiomix import AudioMixPlanner
from reelwrightlib.core.loader import ProjectLoader
from reelwrightlib.core.renderplan import RenderPlanAssembler
from reelwrightlib.core.segments import AudioConfig
from reelwrightlib.core.segments import AudioTrack
from reelwrightlib.core.segments import SegmentKind
from reelwrightlib.core.timeline import TimelineResolver
from reelwrightlib.pool import selector
from reelwrightlib.pool.history import JsonHistoryStore
from reelwrightlib.pool.history import MAX_IMAGE_HISTORY
from reelwrightlib.pool.history import MAX_MUSIC_HISTORY
from reelwrightlib.pool.ledger import PoolLedger
from reelwrightlib.pool.provider import MixedSlideshowProvider
from reelwrightlib.pool.provider import PoolSlideshowProvider
from reelwrightlib.pool.provider import SlideshowProvider
from reelwrightlib.subtitles import srt
from reelwrightlib.subtitles import style as substyle
from reelwrightlib.subtitles.composer import SubtitleComposer
from reelwrightlib.subtitles.composer import attach_words
from reelwrightlib.subtitles.composer import shift_cues

#============================================

IMAGE_HISTORY_FILE = '.image-pool-history.json'
MUSIC_HISTORY_FILE = '.music-pool-history.json'

#============================================

def format_slug(aspect_ratio: str) -> str:
	return aspect_ratio.replace(':', 'x')

#============================================

def open_ledger(ledgers: dict, json_file: str, max_history: int, rng=None) -> PoolLedger:
	"""
	Share one ledger per history file across every project in a batch.
	"""
	key = os.path.abspath(json_file)
	if key not in ledgers:
		ledgers[key] = PoolLedger(JsonHistoryStore(key), max_history, rng=rng)
	return ledgers[key]

#============================================

class ReelProject():
	def __init__(self, yaml_file: str, output_override: str = None,
		dry_run: bool = False, probe=None, ledgers: dict = None, rng=None):
		loader = ProjectLoader(yaml_file, output_override=output_override,
			dry_run=dry_run)
		self._project = loader.load()
		if probe is None:
			probe = medialib.CachedProbe(medialib.MediaInfoProbe())
		self.probe = probe
		self.rng = rng
		if ledgers is None:
			ledgers = {}
		self._ledgers = ledgers
		self.plans = []
		self.written_files = []
		self._sync_public_fields()

	#============================
	def _sync_public_fields(self) -> None:
		self.yaml_file = self._project.yaml_file
		self.name = self._project.name
		self.dry_run = self._project.dry_run
		self.formats = self._project.formats
		self.timeline = self._project.timeline
		self.subtitles = self._project.subtitles
		self.pool = self._project.pool
		self.output_dir = self._project.output_dir

	#============================
	def _ledger(self, history_file: str, max_history: int) -> PoolLedger:
		json_file = os.path.join(self.pool['history_dir'], history_file)
		return open_ledger(self._ledgers, json_file, max_history, rng=self.rng)

	#============================
	def _transaction(self, ledger: PoolLedger):
		if ledger is None:
			return contextlib.nullcontext()
		return ledger.transaction(persist=not self.dry_run)

	#============================
	def run(self) -> list:
		"""
		Plan every output format and write the plan files.

		Pool history is only committed when every format plans cleanly.
		"""
		music_ledger = None
		if self._needs_pool_music():
			music_ledger = self._ledger(MUSIC_HISTORY_FILE, MAX_MUSIC_HISTORY)
		image_ledger = None
		if self._needs_pool_images():
			image_ledger = self._ledger(IMAGE_HISTORY_FILE, MAX_IMAGE_HISTORY)
		with self._transaction(music_ledger) as music_txn:
			with self._transaction(image_ledger) as image_txn:
				timeline = self._with_pool_music(music_txn)
				resolved = TimelineResolver(self.probe).resolve(timeline)
				audio_plan = AudioMixPlanner(self.probe).plan(resolved.timings, timeline.audio)
				cues = self._load_cues()
				plans = []
				for aspect_ratio in self.formats:
					plan = self._plan_format(aspect_ratio, timeline, resolved,
						audio_plan, cues, image_txn)
					plans.append(plan)
		self.plans = plans
		if self.dry_run:
			utils.log("dry run: planning complete")
		return plans

	#============================
	def _needs_pool_music(self) -> bool:
		if self.pool.get('music') is None:
			return False
		audio = self.timeline.audio
		return audio is None or audio.music is None

	#============================
	def _image_source(self) -> str:
		"""
		Where main content images come from: 'project', 'pool', 'prefer', or 'mix'.
		"""
		mode = self.pool.get('use_shared_pool')
		if mode is True:
			return 'pool'
		if mode is False:
			return 'project'
		if mode is None:
			if len(self._project.images) > 0:
				return 'project'
			return 'pool'
		return mode

	#============================
	def _needs_pool_images(self) -> bool:
		if self.pool.get('images') is None or self._image_source() == 'project':
			return False
		for segment in self.timeline.segments:
			if segment.kind == SegmentKind.MAIN and not segment.source_path:
				return True
		return False

	#============================
	def _with_pool_music(self, music_txn):
		if music_txn is None:
			return self.timeline
		tracks = utils.list_media_files(self.pool['music'], utils.AUDIO_EXTENSIONS)
		if len(tracks) == 0:
			utils.warn(f"music pool {self.pool['music']} has no audio files")
			return self.timeline
		bucket_key = selector.music_bucket_key(self.pool.get('channel'))
		chosen = music_txn.select(tracks, 1, bucket_key)
		utils.log(f"music from pool: {os.path.basename(chosen[0])}")
		defaults = self._project.defaults
		music = AudioTrack(
			path=chosen[0],
			volume=defaults['music_volume'],
			fade_in=defaults['music_fade_in'],
			fade_out=defaults['music_fade_out'],
		)
		voice = None
		if self.timeline.audio is not None:
			voice = self.timeline.audio.voice
		return dataclasses.replace(self.timeline, audio=AudioConfig(voice=voice, music=music))

	#============================
	def _load_cues(self) -> list:
		if self.subtitles is None:
			return None
		cues = srt.read_srt(self.subtitles['file'])
		words_file = self.subtitles.get('words')
		if words_file is not None:
			if os.path.isfile(words_file):
				cues = attach_words(cues, srt.load_word_timings(words_file))
			else:
				utils.warn(f"word timing file not found: {words_file}")
		return cues

	#============================
	def _output_prefix(self, aspect_ratio: str) -> str:
		return os.path.join(self.output_dir, f"{self.name}-{format_slug(aspect_ratio)}")

	#============================
	def _main_provider(self, aspect_ratio: str, image_txn):
		ffconcat_file = self._output_prefix(aspect_ratio) + '.ffconcat'
		source = self._image_source()
		if image_txn is None or source == 'project':
			if len(self._project.images) == 0:
				return None
			return SlideshowProvider(self._project.images, ffconcat_file, dry_run=self.dry_run)
		folder = selector.image_pool_folder(self.pool['images'], aspect_ratio)
		images = utils.list_media_files(folder, utils.IMAGE_EXTENSIONS)
		bucket_key = selector.image_bucket_key(aspect_ratio, self.pool.get('channel'))
		if source == 'pool':
			return PoolSlideshowProvider(image_txn, images, bucket_key, ffconcat_file,
				image_count=self.pool.get('image_count'), dry_run=self.dry_run)
		return MixedSlideshowProvider(image_txn, self._project.images, images, bucket_key,
			ffconcat_file, image_count=self.pool.get('image_count'), mode=source,
			rng=self.rng, dry_run=self.dry_run)

	#============================
	def _plan_format(self, aspect_ratio: str, timeline, resolved, audio_plan,
		cues: list, image_txn) -> dict:
		assembler = RenderPlanAssembler(aspect_ratio)
		prefix = self._output_prefix(aspect_ratio)
		subtitles = None
		if cues is not None:
			subtitles = self._plan_subtitles(aspect_ratio, assembler, cues,
				audio_plan.subtitle_offset_ms, prefix)
		plan = assembler.assemble(timeline, resolved, audio_plan,
			subtitles=subtitles, cta=self._project.cta,
			main_provider=self._main_provider(aspect_ratio, image_txn))
		plan['name'] = self.name
		self._write_file(prefix + '.plan.yaml', yaml.safe_dump(plan, sort_keys=False))
		return plan

	#============================
	def _plan_subtitles(self, aspect_ratio: str, assembler: RenderPlanAssembler,
		cues: list, offset_ms: int, prefix: str) -> dict:
		style = self.subtitles['style']
		font_size = style.scaled_font_size(aspect_ratio)
		margin_v = style.scaled_margin(aspect_ratio)
		composer = SubtitleComposer()
		cue_set = composer.compose(cues, style, assembler.width, font_size,
			max_lines=self.subtitles['max_lines'], offset_ms=offset_ms)
		ass_file = prefix + '.ass'
		srt_file = prefix + '.srt'
		self._write_file(ass_file, substyle.build_ass_document(cue_set, style,
			assembler.width, assembler.height, font_size, margin_v))
		self._write_file(srt_file, srt.format_srt(shift_cues(cues, offset_ms)))
		subtitles = {
			'ass_file': ass_file,
			'srt_file': srt_file,
			'offset_ms': offset_ms,
			'font_size': font_size,
			'margin_v': margin_v,
			'force_style': substyle.build_force_style(style, font_size, margin_v),
		}
		subtitles.update(cue_set.as_dict())
		if len(cue_set.warnings) > 0:
			subtitles['warnings'] = list(cue_set.warnings)
		return subtitles

	#============================
	def _write_file(self, filepath: str, content: str) -> None:
		if self.dry_run:
			return
		os.makedirs(os.path.dirname(filepath), exist_ok=True)
		with open(filepath, 'w', encoding='utf-8') as handle:
			handle.write(content)
		self.written_files.append(filepath)
