"""
Data records passed between pipeline stages.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from datetime import datetime

MODE_RECENT = "recent"
MODE_COMPREHENSIVE = "comprehensive"


#============================================
@dataclass(frozen=True)
class Commit:
	"""
	One commit as read from the remote history provider.
	"""

	sha: str
	timestamp: datetime | None
	headline: str
	body: str = ""
	author_name: str | None = None
	author_email: str | None = None


#============================================
@dataclass(frozen=True)
class Batch:
	"""
	Ordered, non-empty group of commits processed as one generation unit.
	"""

	sequence_number: int
	commits: tuple[Commit, ...]
	range_start: datetime | None = None
	range_end: datetime | None = None

	@property
	def date_range(self) -> DateRange:
		return DateRange(start=self.range_start, end=self.range_end)


#============================================
@dataclass(frozen=True)
class DateRange:
	start: datetime | None = None
	end: datetime | None = None

	def to_dict(self) -> dict:
		"""
		Serialize as {"from": iso, "to": iso} with None for missing ends.
		"""
		return {
			"from": self.start.isoformat() if self.start else None,
			"to": self.end.isoformat() if self.end else None,
		}


#============================================
@dataclass(frozen=True)
class Provenance:
	owner: str
	name: str


#============================================
@dataclass(frozen=True)
class RepoInfo:
	"""
	Repository metadata read during the up-front access check.
	"""

	name: str
	full_name: str
	description: str | None = None
	default_branch: str = ""
	created_at: str = ""
	pushed_at: str = ""


#============================================
@dataclass(frozen=True)
class ChangelogDraft:
	title: str
	description: str
	category: str


#============================================
@dataclass(frozen=True)
class PersistOptions:
	"""
	Every option the entry store recognizes, with its default.
	"""

	dry_run: bool = False
	version: str | None = None
	date_range: DateRange | None = None
	provenance: Provenance | None = None


#============================================
@dataclass(frozen=True)
class ChangelogEntry:
	"""
	Persisted changelog entry. Identity and timestamps come from the store.
	"""

	id: str
	title: str
	description: str
	category: str
	published_at: str
	created_at: str
	updated_at: str
	version: str | None = None
	repo_owner: str | None = None
	repo_name: str | None = None
	date_range: dict | None = None
	dry_run: bool = False


#============================================
@dataclass(frozen=True)
class BatchOutcome:
	"""
	Result of one batch: an entry on success, a stage and reason on failure.
	"""

	sequence_number: int
	entry: ChangelogEntry | None = None
	failure_stage: str | None = None
	failure_reason: str | None = None

	@property
	def succeeded(self) -> bool:
		return self.entry is not None


#============================================
@dataclass
class PipelineReport:
	"""
	Aggregate of all batch outcomes for one pipeline run.
	"""

	mode: str
	outcomes: list[BatchOutcome] = field(default_factory=list)
	commits_analyzed: int = 0
	repo_info: RepoInfo | None = None
	stopped_reason: str = ""

	@property
	def batches_attempted(self) -> int:
		return len(self.outcomes)

	@property
	def batches_succeeded(self) -> int:
		return sum(1 for outcome in self.outcomes if outcome.succeeded)

	@property
	def entries(self) -> list[ChangelogEntry]:
		return [outcome.entry for outcome in self.outcomes if outcome.entry is not None]

	@property
	def failed_sequence_numbers(self) -> list[int]:
		return [outcome.sequence_number for outcome in self.outcomes if not outcome.succeeded]
