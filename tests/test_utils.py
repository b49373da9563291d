#!/usr/bin/env python3

"""
Pytest coverage for time value parsing.
"""

# Standard Library
import os
import sys
from decimal import Decimal

# local repo modules
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

import pytest

from reelwrightlib.core import utils

#============================================

def test_timecode_forms():
	assert utils.parse_timecode("01:05.5") == Decimal("65.5")
	assert utils.parse_timecode("1:00:02") == Decimal("3602")
	assert utils.parse_timecode(4) == Decimal(4)
	assert utils.parse_seconds(2.25) == 2.25

#============================================

@pytest.mark.parametrize("raw", ["soon", "", "1:xx", "1:2:3:4", "nan", "inf", True, None, [1]])
def test_bad_time_values_raise_runtime_error(raw):
	with pytest.raises(RuntimeError):
		utils.parse_timecode(raw)
