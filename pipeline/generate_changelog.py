#!/usr/bin/env python3
"""Generate changelog entries from a GitHub repository's commit history.

Recent mode writes one entry from the latest commits. Comprehensive mode
sweeps paged history and writes one entry per batch.
"""

# Standard Library
import argparse
import json
import sys
from datetime import datetime

# PIP3 modules
import rich.console

# local repo modules
from changelib import entry_store
from changelib import github_client
from changelib import llm_transport
from changelib import orchestrator
from changelib import pipeline_settings
from changelib.errors import EmptyHistory
from changelib.errors import GenerationFailed
from changelib.errors import PersistenceFailed
from changelib.errors import PipelineError
from changelib.errors import SourceUnavailable
from changelib.models import MODE_RECENT

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_SOURCE = 2
EXIT_EMPTY_HISTORY = 3
EXIT_GENERATION = 4
EXIT_PERSISTENCE = 5
EXIT_INTERRUPTED = 130

RICH_CONSOLE = rich.console.Console()


#============================================
def log_step(message: str) -> None:
	"""
	Print one timestamped progress line.
	"""
	now_text = datetime.now().strftime("%H:%M:%S")
	line = f"[generate_changelog {now_text}] {message}"
	lower = message.lower()
	style = "cyan"
	if ("failed" in lower) or ("error" in lower):
		style = "bold red"
	elif ("rate limit" in lower) or ("dry run" in lower) or ("stopped" in lower):
		style = "yellow"
	elif ("saved" in lower) or ("succeeded" in lower) or ("generated" in lower):
		style = "green"
	RICH_CONSOLE.print(line, style=style, markup=False, highlight=False)


#============================================
def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(
		description="Generate categorized changelog entries from GitHub commit history."
	)
	parser.add_argument(
		"--mode",
		choices=list(orchestrator.MODES),
		default=MODE_RECENT,
		help="recent: one entry from the latest commits (default); "
		+ "comprehensive: one entry per batch of paged history.",
	)
	parser.add_argument("--owner", default="", help="Repository owner (falls back to settings.yaml).")
	parser.add_argument("--repo", default="", help="Repository name (falls back to settings.yaml).")
	parser.add_argument(
		"--count", dest="commit_count", type=int, default=None,
		help="Recent mode: number of commits to summarize (default: 10).",
	)
	parser.add_argument(
		"--batch-size", dest="batch_size", type=int, default=None,
		help="Comprehensive mode: commits per batch, clamped 5-100 (default: 10).",
	)
	parser.add_argument(
		"--max-entries", dest="max_entries", type=int, default=None,
		help="Comprehensive mode: maximum batches to process, clamped 1-50 (default: 10).",
	)
	parser.add_argument(
		"--version", dest="version", default=None,
		help="Version label (recent) or version prefix (comprehensive, gives PREFIX-batch-N).",
	)
	parser.add_argument(
		"--dry-run", dest="dry_run", action="store_true",
		help="Validate and preview entries without writing them.",
	)
	parser.add_argument(
		"--settings", default="settings.yaml",
		help="YAML settings path for defaults.",
	)
	parser.add_argument(
		"--store", dest="store_path", default=None,
		help=f"JSONL entry store path (default: {entry_store.DEFAULT_STORE_PATH}).",
	)
	parser.add_argument(
		"--llm-model", dest="llm_model", default=None,
		help="Ollama model override (defaults from settings.yaml).",
	)
	parser.add_argument(
		"--pacing-seconds", dest="pacing_seconds", type=float, default=None,
		help="Delay between comprehensive-mode batches (default: 1).",
	)
	parser.add_argument(
		"--json", dest="json_output", action="store_true",
		help="Print the final report as JSON.",
	)
	args = parser.parse_args(argv)
	return args


#============================================
def build_config(args: argparse.Namespace, settings: dict) -> orchestrator.PipelineConfig:
	"""
	Merge CLI flags over settings.yaml values.
	"""
	owner = args.owner.strip() or pipeline_settings.get_setting_str(settings, ["github", "owner"], "")
	repo = args.repo.strip() or pipeline_settings.get_setting_str(settings, ["github", "repo"], "")

	def pick_int(value, keys, default_value):
		if value is not None:
			return value
		return pipeline_settings.get_setting_int(settings, keys, default_value)

	pacing = args.pacing_seconds
	if pacing is None:
		pacing = pipeline_settings.get_setting_float(
			settings,
			["pipeline", "pacing_seconds"],
			orchestrator.DEFAULT_PACING_SECONDS,
		)
	config = orchestrator.PipelineConfig(
		mode=args.mode,
		owner=owner,
		repo=repo,
		commit_count=pick_int(args.commit_count, ["pipeline", "commit_count"], 10),
		batch_size=pick_int(args.batch_size, ["pipeline", "batch_size"], 10),
		max_entries=pick_int(args.max_entries, ["pipeline", "max_entries"], 10),
		version=args.version,
		dry_run=args.dry_run or pipeline_settings.get_setting_bool(settings, ["pipeline", "dry_run"], False),
		pacing_seconds=pacing,
		max_tokens=pipeline_settings.get_setting_int(settings, ["llm", "max_tokens"], 600),
	)
	return orchestrator.normalize_config(config)


#============================================
def exit_code_for(error: PipelineError) -> int:
	if isinstance(error, EmptyHistory):
		return EXIT_EMPTY_HISTORY
	if isinstance(error, SourceUnavailable):
		return EXIT_SOURCE
	if isinstance(error, GenerationFailed):
		return EXIT_GENERATION
	if isinstance(error, PersistenceFailed):
		return EXIT_PERSISTENCE
	return EXIT_CONFIG


#============================================
def report_to_dict(report) -> dict:
	"""
	Build a JSON-friendly summary of a pipeline report.
	"""
	return {
		"mode": report.mode,
		"repo": report.repo_info.full_name if report.repo_info else None,
		"commits_analyzed": report.commits_analyzed,
		"batches_attempted": report.batches_attempted,
		"batches_succeeded": report.batches_succeeded,
		"failed_batches": [
			{
				"sequence_number": outcome.sequence_number,
				"stage": outcome.failure_stage,
				"reason": outcome.failure_reason,
			}
			for outcome in report.outcomes
			if not outcome.succeeded
		],
		"stopped_reason": report.stopped_reason or None,
		"entries": [entry_store.entry_to_dict(entry) for entry in report.entries],
	}


#============================================
def print_report(report) -> None:
	"""
	Log a human-readable summary of the run.
	"""
	for entry in report.entries:
		log_step(f"Entry {entry.id}: [{entry.category}] {entry.title} (version={entry.version or 'n/a'})")
	if report.mode == MODE_RECENT:
		return
	log_step(
		f"Batches succeeded: {report.batches_succeeded}/{report.batches_attempted}"
	)
	for outcome in report.outcomes:
		if outcome.succeeded:
			continue
		log_step(
			f"Batch {outcome.sequence_number} failed at {outcome.failure_stage}: {outcome.failure_reason}"
		)
	if report.failed_sequence_numbers:
		numbers = ", ".join(str(number) for number in report.failed_sequence_numbers)
		log_step(f"Failed batch sequence numbers: {numbers}")


#============================================
def main(argv: list[str] | None = None) -> int:
	"""
	Run changelog generation and return a process exit code.
	"""
	args = parse_args(argv)
	try:
		settings, settings_path = pipeline_settings.load_settings(args.settings)
		config = build_config(args, settings)
		model = args.llm_model or pipeline_settings.get_ollama_model(settings)
		if not model:
			raise RuntimeError("No Ollama model configured; pass --llm-model or set llm.providers.ollama.model.")
	except (RuntimeError, ValueError) as error:
		log_step(f"Configuration error: {error}")
		return EXIT_CONFIG
	log_step(f"Using settings file: {settings_path}")
	token = pipeline_settings.get_github_token(settings)
	if token:
		log_step("Using authenticated GitHub API mode.")
	else:
		log_step("Using unauthenticated GitHub API mode (lower rate limit).")
	if config.dry_run:
		log_step("Dry run enabled: entries are validated but not saved.")

	store_path = args.store_path or pipeline_settings.get_setting_str(
		settings, ["store", "path"], entry_store.DEFAULT_STORE_PATH,
	)
	source = github_client.GitHubCommitSource(config.owner, config.repo, token=token, log_fn=log_step)
	client = llm_transport.OllamaTransport(
		model=model,
		base_url=pipeline_settings.get_ollama_base_url(settings),
		temperature=pipeline_settings.get_setting_float(settings, ["llm", "temperature"], 0.7),
		timeout=pipeline_settings.get_setting_int(
			settings, ["llm", "providers", "ollama", "timeout_seconds"], 120,
		),
	)
	store = entry_store.EntryStore(store_path, log_fn=log_step)

	try:
		report = orchestrator.run_pipeline(config, source, client, store, logger=log_step)
	except PipelineError as error:
		log_step(f"Changelog generation failed at {error.stage or 'setup'} stage: {error}")
		return exit_code_for(error)
	except KeyboardInterrupt:
		log_step("Interrupted; entries saved so far are kept.")
		return EXIT_INTERRUPTED

	print_report(report)
	usage = source.api_usage_snapshot()
	log_step(f"GitHub API usage: calls={usage.get('api_call_count', 0)}")
	if args.json_output:
		print(json.dumps(report_to_dict(report), indent=2, sort_keys=True))
	if report.stopped_reason:
		log_step(f"Commit sweep stopped early at fetch stage: {report.stopped_reason}")
		return EXIT_SOURCE
	return EXIT_OK


if __name__ == "__main__":
	sys.exit(main())
