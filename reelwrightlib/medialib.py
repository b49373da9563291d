#python wrapper for mediainfo

import json
import os
import subprocess
from reelwrightlib.core.errors import ProbeError

#===============================
def getMediaInfo(mediafile):
	cmd = ['mediainfo', '--Output=JSON', mediafile]
	try:
		proc = subprocess.Popen(cmd, stderr=subprocess.PIPE, stdout=subprocess.PIPE)
	except OSError as exc:
		raise ProbeError(mediafile, f"could not run mediainfo: {exc}") from exc
	stdout, stderr = proc.communicate()
	if proc.returncode != 0:
		raise ProbeError(mediafile, stderr.decode('utf-8', errors='replace').strip())
	try:
		rawdata = json.loads(stdout)
	except ValueError as exc:
		raise ProbeError(mediafile, f"unreadable mediainfo output: {exc}") from exc
	data = rawdata.get('media')
	if data is None:
		raise ProbeError(mediafile, "mediainfo returned no media section")
	return data

#===============================
def getDuration(mediafile):
	data = getMediaInfo(mediafile)
	tracks = data.get('track', [])
	for track in tracks:
		if track.get('@type') == 'General' and track.get('Duration') is not None:
			return float(track['Duration'])
	for track in tracks:
		if track.get('Duration') is not None:
			return float(track['Duration'])
	raise ProbeError(mediafile, "no duration reported")

#===============================
class MediaInfoProbe():
	def probe(self, path: str) -> float:
		if not os.path.isfile(path):
			raise ProbeError(path, "file not found")
		return getDuration(path)

#===============================
class CachedProbe():
	"""
	Memoize durations so a source is only inspected once per run.
	"""
	def __init__(self, probe):
		self.inner = probe
		self._durations = {}

	def probe(self, path: str) -> float:
		if path not in self._durations:
			self._durations[path] = self.inner.probe(path)
		return self._durations[path]
