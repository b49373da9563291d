#!/usr/bin/env python3

#============================================

class PlanningError(RuntimeError):
	"""Base error for a timeline that cannot be planned."""

#============================================

class TimelineConfigError(PlanningError):
	def __init__(self, message: str, segment_index: int = None):
		self.segment_index = segment_index
		if segment_index is not None:
			message = f"segments[{segment_index}]: {message}"
		super().__init__(message)

#============================================

class DerivationError(PlanningError):
	pass

#============================================

class ProbeError(PlanningError):
	def __init__(self, path: str, reason: str):
		self.path = path
		super().__init__(f"failed to probe duration for {path}: {reason}")
