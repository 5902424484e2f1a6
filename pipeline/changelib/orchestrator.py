"""Sequential scheduler for changelog generation runs.

Batches are processed one at a time, never in parallel: the generation
service is rate limited per caller, and processing in page order keeps the
report ordered by sequence number without a merge step. A fixed pacing
sleep separates consecutive batches.
"""

# Standard Library
import time
from dataclasses import dataclass
from dataclasses import replace

# local repo modules
from changelib import batch_partitioner
from changelib import changelog_synthesizer
from changelib.errors import EmptyHistory
from changelib.errors import GenerationFailed
from changelib.errors import PersistenceFailed
from changelib.errors import SourceUnavailable
from changelib.models import MODE_COMPREHENSIVE
from changelib.models import MODE_RECENT
from changelib.models import Batch
from changelib.models import BatchOutcome
from changelib.models import PersistOptions
from changelib.models import PipelineReport
from changelib.models import Provenance

MODES = (MODE_RECENT, MODE_COMPREHENSIVE)
MIN_BATCH_SIZE = 5
MAX_BATCH_SIZE = 100
MIN_MAX_ENTRIES = 1
MAX_MAX_ENTRIES = 50
DEFAULT_PACING_SECONDS = 1.0


#============================================
@dataclass(frozen=True)
class PipelineConfig:
	mode: str
	owner: str
	repo: str
	commit_count: int = 10
	batch_size: int = 10
	max_entries: int = 10
	version: str | None = None
	dry_run: bool = False
	pacing_seconds: float = DEFAULT_PACING_SECONDS
	max_tokens: int = changelog_synthesizer.DEFAULT_MAX_TOKENS

	@property
	def provenance(self) -> Provenance:
		return Provenance(owner=self.owner, name=self.repo)


#============================================
def clamp(value: int, low: int, high: int) -> int:
	return max(low, min(int(value), high))


#============================================
def normalize_config(config: PipelineConfig) -> PipelineConfig:
	"""
	Validate the invocation and clamp batch limits to their allowed ranges.

	Raises:
		ValueError: unknown mode, missing repository, or commit_count < 1.
	"""
	if config.mode not in MODES:
		raise ValueError(f"mode must be one of {', '.join(MODES)}; got {config.mode!r}")
	if not config.owner or not config.repo:
		raise ValueError("repository owner and name are required")
	if config.commit_count < 1:
		raise ValueError(f"commit_count must be >= 1; got {config.commit_count}")
	if config.pacing_seconds < 0:
		raise ValueError(f"pacing_seconds must be >= 0; got {config.pacing_seconds}")
	return replace(
		config,
		batch_size=clamp(config.batch_size, MIN_BATCH_SIZE, MAX_BATCH_SIZE),
		max_entries=clamp(config.max_entries, MIN_MAX_ENTRIES, MAX_MAX_ENTRIES),
		version=(config.version or "").strip() or None,
	)


#============================================
def batch_version_label(version_prefix: str | None, sequence_number: int) -> str:
	"""
	Return '{prefix}-batch-{n}', or 'batch-{n}' without a prefix.
	"""
	if version_prefix:
		return f"{version_prefix}-batch-{sequence_number}"
	return f"batch-{sequence_number}"


#============================================
def _log(logger, msg: str) -> None:
	if logger is not None:
		logger(msg)


#============================================
def process_batch(client, store, batch: Batch, options: PersistOptions, single_shot: bool, max_tokens: int):
	"""
	Run generate then persist for one batch and return the stored entry.
	"""
	draft = changelog_synthesizer.synthesize(
		client,
		batch,
		single_shot=single_shot,
		max_tokens=max_tokens,
	)
	return store.persist(draft, options)


#============================================
def run_recent(config: PipelineConfig, source, client, store, logger=None) -> PipelineReport:
	"""
	Summarize the most recent commits as a single entry.

	Any failure is the whole run's failure and propagates to the caller.
	"""
	commits = source.fetch_recent(config.commit_count)
	if not commits:
		raise EmptyHistory(f"No commits found in GitHub repo {config.owner}/{config.repo}")
	batch = batch_partitioner.build_single_batch(commits)
	_log(logger, f"Generating changelog from {len(commits)} commit(s)")
	options = PersistOptions(
		dry_run=config.dry_run,
		version=config.version,
		provenance=config.provenance,
	)
	entry = process_batch(client, store, batch, options, True, config.max_tokens)
	_log(logger, f"Generated entry '{entry.title}' ({entry.category})")
	report = PipelineReport(mode=MODE_RECENT, commits_analyzed=len(commits))
	report.outcomes.append(BatchOutcome(sequence_number=batch.sequence_number, entry=entry))
	return report


#============================================
def run_comprehensive(
	config: PipelineConfig,
	source,
	client,
	store,
	logger=None,
	sleep_fn=time.sleep,
) -> PipelineReport:
	"""
	Sweep paged history and write one entry per batch.

	A failed batch is recorded and the sweep moves on. A source failure
	before the first batch propagates; later it ends the sweep early and
	the report keeps everything completed so far.
	"""
	report = PipelineReport(mode=MODE_COMPREHENSIVE)
	pages = source.fetch_all_paged(config.batch_size, config.max_entries)
	batches = batch_partitioner.partition_pages(pages)
	while True:
		try:
			batch = next(batches)
		except StopIteration:
			break
		except SourceUnavailable as error:
			if not report.outcomes:
				raise
			report.stopped_reason = str(error)
			_log(logger, f"Commit sweep stopped early after batch {report.batches_attempted}: {error}")
			break
		if report.outcomes and config.pacing_seconds > 0:
			_log(logger, f"Waiting {config.pacing_seconds:g}s before processing next batch")
			sleep_fn(config.pacing_seconds)
		report.commits_analyzed += len(batch.commits)
		report.outcomes.append(_run_batch(config, client, store, batch, logger))
	if not report.outcomes:
		raise EmptyHistory(f"No commits found in GitHub repo {config.owner}/{config.repo}")
	_log(
		logger,
		f"Processed {report.batches_attempted} batch(es): {report.batches_succeeded} succeeded",
	)
	return report


#============================================
def _run_batch(config: PipelineConfig, client, store, batch: Batch, logger) -> BatchOutcome:
	"""
	Process one comprehensive-mode batch and capture its outcome.
	"""
	_log(
		logger,
		f"Processing batch {batch.sequence_number} with {len(batch.commits)} commit(s)",
	)
	options = PersistOptions(
		dry_run=config.dry_run,
		version=batch_version_label(config.version, batch.sequence_number),
		date_range=batch.date_range,
		provenance=config.provenance,
	)
	try:
		entry = process_batch(client, store, batch, options, False, config.max_tokens)
	except (GenerationFailed, PersistenceFailed) as error:
		_log(logger, f"Batch {batch.sequence_number} failed at {error.stage}: {error}")
		return BatchOutcome(
			sequence_number=batch.sequence_number,
			failure_stage=error.stage,
			failure_reason=str(error),
		)
	_log(logger, f"Batch {batch.sequence_number} saved as {entry.id} ({entry.version})")
	return BatchOutcome(sequence_number=batch.sequence_number, entry=entry)


#============================================
def run_pipeline(
	config: PipelineConfig,
	source,
	client,
	store,
	logger=None,
	sleep_fn=time.sleep,
) -> PipelineReport:
	"""
	Check repository access, then run the configured mode.

	Args:
		config: invocation options, validated and clamped here.
		source: commit source (GitHubCommitSource or compatible).
		client: generation transport exposing generate_json().
		store: EntryStore.
		logger: optional callable(str) for progress lines.
		sleep_fn: pacing sleep, replaceable in tests.

	Returns:
		PipelineReport for the run.
	"""
	config = normalize_config(config)
	repo_info = source.get_repo_info()
	_log(logger, f"Starting changelog generation in {config.mode} mode for {repo_info.full_name}")
	if config.mode == MODE_RECENT:
		report = run_recent(config, source, client, store, logger=logger)
	else:
		report = run_comprehensive(config, source, client, store, logger=logger, sleep_fn=sleep_fn)
	report.repo_info = repo_info
	return report
