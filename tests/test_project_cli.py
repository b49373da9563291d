#!/usr/bin/env python3

"""
Pytest coverage for project planning and the batch CLI.
"""

# Standard Library
import json
import os
import random
import sys

# PIP3 modules
import pytest
import yaml

# local repo modules
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

import reelwright_cli
from reelwrightlib.core import utils
from reelwrightlib.core.project import ReelProject

#============================================

class FakeProbe():
	def __init__(self, durations: dict):
		self.durations = durations

	def probe(self, path: str) -> float:
		return self.durations[os.path.basename(path)]

PROBE = FakeProbe({'voice.mp3': 20.0, 'song.mp3': 90.0, 'tune.mp3': 30.0})

#============================================

@pytest.fixture(autouse=True)
def quiet():
	utils.set_quiet_mode(True)
	yield
	utils.set_quiet_mode(False)

#============================================

def _write_project(folder, name: str = "demo", formats: str = "['16:9', '9:16']") -> str:
	"""Write a project with a pool-backed main and captions.

	Args:
		folder: pathlib directory for the project.
		name: Project name.
		formats: Inline yaml list of aspect ratios.

	Returns:
		str: Path of the written yaml file.
	"""
	images_dir = folder / "pool" / "images"
	images_dir.mkdir(parents=True, exist_ok=True)
	for index in range(6):
		(images_dir / f"img{index}.jpg").write_text("")
	music_dir = folder / "pool" / "music"
	music_dir.mkdir(parents=True, exist_ok=True)
	(music_dir / "song.mp3").write_text("")
	(music_dir / "tune.mp3").write_text("")
	(folder / "captions.srt").write_text(
		"1\n00:00:00,500 --> 00:00:02,000\none two three four five six seven\n\n"
		"2\n00:00:02,500 --> 00:00:04,000\neight nine ten\n"
	)
	lines = []
	lines.append("reelwright: 1")
	lines.append(f"name: {name}")
	lines.append("profile:")
	lines.append(f"  formats: {formats}")
	lines.append("timeline:")
	lines.append("  segments:")
	lines.append("    - intro: {path: intro.mp4, duration: 2, name: Intro}")
	lines.append("    - main: {}")
	lines.append("    - outro: {path: outro.mp4, duration: 3}")
	lines.append("  audio:")
	lines.append("    voice: {path: voice.mp3, start_at: main}")
	lines.append("subtitles:")
	lines.append("  file: captions.srt")
	lines.append("pool:")
	lines.append("  images: pool/images")
	lines.append("  image_count: 3")
	lines.append("  music: pool/music")
	yaml_file = folder / f"{name}.yaml"
	yaml_file.write_text("\n".join(lines) + "\n")
	return str(yaml_file)

#============================================

def test_project_writes_plans(tmp_path):
	yaml_file = _write_project(tmp_path)
	project = ReelProject(yaml_file, probe=PROBE)
	plans = project.run()
	assert [plan['format'] for plan in plans] == ['16:9', '9:16']
	main = plans[0]['operations'][1]
	# voice starts at main, so only the outro plays during it
	assert main['duration'] == 17.0
	assert main['source'] == 'generated'
	assert plans[0]['audio']['subtitle_offset_ms'] == 2000
	assert plans[0]['subtitles']['cue_count'] == 2
	assert len(plans[0]['audio']['tracks']) == 2
	output_dir = tmp_path / "output"
	for slug in ('16x9', '9x16'):
		assert (output_dir / f"demo-{slug}.plan.yaml").is_file()
		assert (output_dir / f"demo-{slug}.ass").is_file()
		assert (output_dir / f"demo-{slug}.ffconcat").is_file()
	srt_text = (output_dir / "demo-16x9.srt").read_text()
	assert srt_text.startswith("1\n00:00:02,500 --> 00:00:04,000\n")
	saved = yaml.safe_load((output_dir / "demo-16x9.plan.yaml").read_text())
	assert saved['name'] == 'demo'
	history = json.loads((tmp_path / ".image-pool-history.json").read_text())
	assert len(history['buckets']['landscape']) == 3
	assert len(history['buckets']['portrait']) == 3
	music_history = json.loads((tmp_path / ".music-pool-history.json").read_text())
	assert len(music_history['buckets']['default']) == 1

#============================================

def test_dry_run_writes_nothing(tmp_path):
	yaml_file = _write_project(tmp_path)
	project = ReelProject(yaml_file, dry_run=True, probe=PROBE)
	plans = project.run()
	assert len(plans) == 2
	assert not (tmp_path / "output").exists()
	assert not (tmp_path / ".image-pool-history.json").exists()

#============================================

def test_failed_plan_leaves_history(tmp_path):
	"""A project that fails planning does not record pool picks."""
	yaml_file = _write_project(tmp_path)
	probe = FakeProbe({'song.mp3': 90.0, 'tune.mp3': 30.0})
	with pytest.raises(RuntimeError):
		ReelProject(yaml_file, probe=probe).run()
	assert not (tmp_path / ".music-pool-history.json").exists()
	assert not (tmp_path / ".image-pool-history.json").exists()

#============================================

def test_batch_continues_after_failure(tmp_path):
	good_dir = tmp_path / "good"
	good_dir.mkdir()
	good = _write_project(good_dir, name="good", formats="['1:1']")
	bad = str(tmp_path / "bad.yaml")
	with open(bad, "w") as yaml_file:
		yaml_file.write("reelwright: 1\ntimeline:\n  segments:\n    - scene: {}\n")
	results = reelwright_cli.run_batch([bad, good], probe=PROBE)
	assert results[good] is None
	assert "segments[0]" in results[bad]
	assert (good_dir / "output" / "good-1x1.plan.yaml").is_file()

#============================================

def test_main_exit_code(tmp_path):
	bad = str(tmp_path / "bad.yaml")
	with open(bad, "w") as yaml_file:
		yaml_file.write("just a string\n")
	assert reelwright_cli.main(['-q', '-n', '-y', bad]) == 1

#============================================

def _replace_text(path, old: str, new: str) -> None:
	text = path.read_text()
	assert old in text
	path.write_text(text.replace(old, new))

#============================================

def _bad_caption_encoding(folder, yaml_file) -> None:
	(folder / "captions.srt").write_bytes(b"1\n00:00:00,500 --> 00:00:02,000\n\xff\xfe bad\n")

def _bad_word_json(folder, yaml_file) -> None:
	(folder / "words.json").write_text("{\"words\": [")
	_replace_text(yaml_file, "  file: captions.srt\n", "  file: captions.srt\n  words: words.json\n")

def _word_missing_end(folder, yaml_file) -> None:
	(folder / "words.json").write_text(json.dumps([{'text': 'one', 'start': 0.5}]))
	_replace_text(yaml_file, "  file: captions.srt\n", "  file: captions.srt\n  words: words.json\n")

def _text_volume(folder, yaml_file) -> None:
	_replace_text(yaml_file, "start_at: main}", "start_at: main, volume: loud}")

def _text_cta_start(folder, yaml_file) -> None:
	with open(yaml_file, "a") as handle:
		handle.write("cta: {path: cta.png, start: soon}\n")

#============================================

@pytest.mark.parametrize("breaker", [
	_bad_caption_encoding,
	_bad_word_json,
	_word_missing_end,
	_text_volume,
	_text_cta_start,
])
def test_batch_continues_after_bad_input(tmp_path, breaker):
	"""A malformed input in one project is reported and the next still plans."""
	bad_dir = tmp_path / "bad"
	bad_dir.mkdir()
	bad = _write_project(bad_dir, name="bad", formats="['1:1']")
	breaker(bad_dir, bad_dir / "bad.yaml")
	good_dir = tmp_path / "good"
	good_dir.mkdir()
	good = _write_project(good_dir, name="good", formats="['1:1']")
	results = reelwright_cli.run_batch([bad, good], dry_run=True, probe=PROBE)
	assert results[good] is None
	assert isinstance(results[bad], str)
	assert results[bad] != ""

#============================================

def _concat_images(ffconcat_file) -> list:
	lines = ffconcat_file.read_text().splitlines()
	files = [line[len("file '"):-1] for line in lines if line.startswith("file ")]
	# the final entry repeats the last image
	return files[:-1]

#============================================

def _write_mode_project(folder, mode: str, own_images: int) -> str:
	yaml_file = _write_project(folder, formats="['16:9']")
	own_dir = folder / "own"
	own_dir.mkdir()
	names = []
	for index in range(own_images):
		(own_dir / f"own{index}.jpg").write_text("")
		names.append(f"own/own{index}.jpg")
	with open(yaml_file, "a") as handle:
		if mode is not None:
			handle.write(f"  use_shared_pool: {mode}\n")
		if len(names) > 0:
			handle.write(f"images: [{', '.join(names)}]\n")
	return yaml_file

#============================================

def _image_history(folder) -> list:
	history_file = folder / ".image-pool-history.json"
	if not history_file.exists():
		return []
	return json.loads(history_file.read_text())['buckets'].get('landscape', [])

#============================================

POOL_NAMES = {f"img{index}.jpg" for index in range(6)}

def test_shared_pool_only(tmp_path):
	yaml_file = _write_mode_project(tmp_path, "true", own_images=2)
	ReelProject(yaml_file, probe=PROBE).run()
	images = _concat_images(tmp_path / "output" / "demo-16x9.ffconcat")
	assert len(images) == 3
	assert {os.path.basename(path) for path in images} <= POOL_NAMES
	assert len(_image_history(tmp_path)) == 3

#============================================

def test_project_images_only(tmp_path):
	yaml_file = _write_mode_project(tmp_path, "false", own_images=2)
	ReelProject(yaml_file, probe=PROBE).run()
	images = _concat_images(tmp_path / "output" / "demo-16x9.ffconcat")
	assert [os.path.basename(path) for path in images] == ['own0.jpg', 'own1.jpg']
	assert _image_history(tmp_path) == []

#============================================

def test_auto_uses_project_images_first(tmp_path):
	yaml_file = _write_mode_project(tmp_path, None, own_images=1)
	ReelProject(yaml_file, probe=PROBE).run()
	images = _concat_images(tmp_path / "output" / "demo-16x9.ffconcat")
	assert [os.path.basename(path) for path in images] == ['own0.jpg']
	assert _image_history(tmp_path) == []

#============================================

def test_prefer_fills_from_pool(tmp_path):
	"""Project images lead and pool picks fill up to the image count."""
	yaml_file = _write_mode_project(tmp_path, "prefer", own_images=1)
	ReelProject(yaml_file, probe=PROBE).run()
	images = _concat_images(tmp_path / "output" / "demo-16x9.ffconcat")
	names = [os.path.basename(path) for path in images]
	assert len(names) == 3
	assert names[0] == 'own0.jpg'
	assert set(names[1:]) <= POOL_NAMES
	assert sorted(_image_history(tmp_path)) == sorted(names[1:])

#============================================

@pytest.mark.parametrize("seed", range(5))
def test_mix_records_only_pool_picks(tmp_path, seed):
	yaml_file = _write_mode_project(tmp_path, "mix", own_images=2)
	ReelProject(yaml_file, probe=PROBE, rng=random.Random(seed)).run()
	images = _concat_images(tmp_path / "output" / "demo-16x9.ffconcat")
	names = [os.path.basename(path) for path in images]
	assert len(names) == 3
	assert len(set(names)) == 3
	assert set(names) <= POOL_NAMES | {'own0.jpg', 'own1.jpg'}
	pool_picks = [name for name in names if name in POOL_NAMES]
	assert sorted(_image_history(tmp_path)) == sorted(pool_picks)
