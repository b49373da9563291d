#!/usr/bin/env python3

import argparse
import sys
import yaml
from tqdm import tqdm
from reelwrightlib.core import utils
from reelwrightlib.core.project import ReelProject

#============================================

def parse_args(argv: list = None):
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(description="Reel composition planner")
	parser.add_argument('-y', '--yaml', dest='yamlfiles', required=True,
		action='append', help='project yaml file, repeat for a batch')
	parser.add_argument('-o', '--output-dir', dest='output_dir',
		help='override output directory from yaml')
	parser.add_argument('-n', '--dry-run', dest='dry_run', action='store_true',
		help='plan and validate only, write nothing')
	parser.add_argument('-p', '--dump-plan', dest='dump_plan', action='store_true',
		help='print render plans after planning')
	parser.add_argument('-q', '--quiet', dest='quiet', action='store_true',
		help='suppress progress and informational output')
	args = parser.parse_args(argv)
	return args

#============================================

def run_batch(yamlfiles: list, output_dir: str = None, dry_run: bool = False,
	dump_plan: bool = False, probe=None) -> dict:
	"""
	Plan each project in turn; a failing project does not stop the batch.

	Returns:
		dict: yaml file to None on success or the error message on failure.
	"""
	results = {}
	# ledgers are shared so repeated pool picks see earlier projects
	ledgers = {}
	if utils.is_quiet_mode() or len(yamlfiles) < 2:
		iter_files = yamlfiles
	else:
		iter_files = tqdm(yamlfiles)
	for yamlfile in iter_files:
		try:
			project = ReelProject(yamlfile, output_override=output_dir,
				dry_run=dry_run, probe=probe, ledgers=ledgers)
			plans = project.run()
		except (RuntimeError, OSError, yaml.YAMLError) as error:
			utils.warn(f"{yamlfile}: {error}")
			results[yamlfile] = str(error)
			continue
		results[yamlfile] = None
		if dump_plan:
			print(yaml.safe_dump(plans, sort_keys=False))
	return results

#============================================

def main(argv: list = None) -> int:
	args = parse_args(argv)
	utils.set_quiet_mode(args.quiet)
	results = run_batch(args.yamlfiles, output_dir=args.output_dir,
		dry_run=args.dry_run, dump_plan=args.dump_plan)
	failed = [yamlfile for yamlfile, error in results.items() if error is not None]
	if len(results) > 1 or len(failed) > 0:
		print(f"planned {len(results) - len(failed)} of {len(results)} projects")
		for yamlfile in failed:
			print(f"  FAILED {yamlfile}: {results[yamlfile]}")
	if len(failed) > 0:
		return 1
	return 0


if __name__ == '__main__':
	sys.exit(main())
