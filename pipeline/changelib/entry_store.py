"""
Append-only JSONL store for changelog entries.

The store assigns entry identity and timestamps. Entries are only ever
appended; there is no update or delete path.
"""

# Standard Library
import dataclasses
import json
import os
import uuid
from datetime import datetime
from datetime import timezone

# local repo modules
from changelib.changelog_synthesizer import CATEGORIES
from changelib.errors import InvalidDraft
from changelib.errors import PersistenceFailed
from changelib.models import ChangelogDraft
from changelib.models import ChangelogEntry
from changelib.models import PersistOptions

DEFAULT_STORE_PATH = "out/changelog_entries.jsonl"
DRY_RUN_ID_PREFIX = "dry-run-"


#============================================
def utc_now() -> datetime:
	"""
	Return UTC now as a timezone-aware datetime.
	"""
	return datetime.now(timezone.utc)


#============================================
def validate_draft(draft: ChangelogDraft) -> None:
	"""
	Raise InvalidDraft when a required field is empty or unrecognized.
	"""
	for name in ("title", "description", "category"):
		value = getattr(draft, name, None)
		if not isinstance(value, str) or not value.strip():
			raise InvalidDraft(f"draft field '{name}' is required")
	if draft.category not in CATEGORIES:
		raise InvalidDraft(f"draft category is not recognized: {draft.category!r}")


#============================================
def entry_to_dict(entry: ChangelogEntry) -> dict:
	return dataclasses.asdict(entry)


#============================================
def entry_from_dict(record: dict) -> ChangelogEntry:
	"""
	Rebuild an entry from one stored record, ignoring unknown keys.
	"""
	names = {item.name for item in dataclasses.fields(ChangelogEntry)}
	return ChangelogEntry(**{key: value for key, value in record.items() if key in names})


#============================================
class EntryStore:
	"""
	Persist changelog entries as one JSON object per line.
	"""

	def __init__(self, path: str = DEFAULT_STORE_PATH, clock_fn=utc_now, log_fn=None):
		self.path = os.path.abspath(path)
		self.clock_fn = clock_fn
		self.log_fn = log_fn

	#============================================
	def log(self, message: str) -> None:
		if self.log_fn is not None:
			self.log_fn(message)

	#============================================
	def build_entry(self, draft: ChangelogDraft, options: PersistOptions, entry_id: str) -> ChangelogEntry:
		now_text = self.clock_fn().isoformat()
		provenance = options.provenance
		date_range = options.date_range.to_dict() if options.date_range else None
		return ChangelogEntry(
			id=entry_id,
			title=draft.title.strip(),
			description=draft.description.strip(),
			category=draft.category,
			published_at=now_text,
			created_at=now_text,
			updated_at=now_text,
			version=options.version or None,
			repo_owner=provenance.owner if provenance else None,
			repo_name=provenance.name if provenance else None,
			date_range=date_range,
			dry_run=options.dry_run,
		)

	#============================================
	def persist(self, draft: ChangelogDraft, options: PersistOptions | None = None) -> ChangelogEntry:
		"""
		Validate and append one entry; dry runs validate and write nothing.

		Args:
			draft: generated title/description/category.
			options: version, date range, provenance and dry-run flag.

		Returns:
			The stored entry, or a sentinel-id preview entry for dry runs.
		"""
		if options is None:
			options = PersistOptions()
		validate_draft(draft)
		if options.dry_run:
			entry = self.build_entry(draft, options, DRY_RUN_ID_PREFIX + uuid.uuid4().hex)
			self.log(f"DRY RUN: would save entry '{entry.title}' ({entry.category})")
			return entry
		entry = self.build_entry(draft, options, str(uuid.uuid4()))
		try:
			directory = os.path.dirname(self.path)
			if directory:
				os.makedirs(directory, exist_ok=True)
			with open(self.path, "a", encoding="utf-8") as handle:
				handle.write(json.dumps(entry_to_dict(entry), sort_keys=True))
				handle.write("\n")
		except OSError as error:
			raise PersistenceFailed(f"could not write entry to {self.path}: {error}") from error
		self.log(f"Saved entry {entry.id} to {self.path}")
		return entry

	#============================================
	def read_entries(self) -> list[ChangelogEntry]:
		"""
		Read every stored entry in write order.
		"""
		if not os.path.isfile(self.path):
			return []
		entries = []
		try:
			with open(self.path, "r", encoding="utf-8") as handle:
				for line_number, line in enumerate(handle, start=1):
					if not line.strip():
						continue
					try:
						record = json.loads(line)
					except json.JSONDecodeError as error:
						raise PersistenceFailed(
							f"corrupt record at {self.path}:{line_number}: {error}"
						) from error
					entries.append(entry_from_dict(record))
		except OSError as error:
			raise PersistenceFailed(f"could not read {self.path}: {error}") from error
		return entries

	#============================================
	def list_entries(
		self,
		category: str | None = None,
		owner: str | None = None,
		repo: str | None = None,
		search: str | None = None,
	) -> list[ChangelogEntry]:
		"""
		Return entries newest first, filtered by the given fields.

		search matches title or description case-insensitively.
		"""
		needle = (search or "").strip().lower()
		matches = []
		for entry in self.read_entries():
			if category and entry.category != category:
				continue
			if owner and entry.repo_owner != owner:
				continue
			if repo and entry.repo_name != repo:
				continue
			if needle and needle not in entry.title.lower() and needle not in entry.description.lower():
				continue
			matches.append(entry)
		# reversed first so entries sharing a timestamp list the later write first
		matches.reverse()
		matches.sort(key=lambda entry: entry.published_at, reverse=True)
		return matches

	#============================================
	def count_entries(self) -> int:
		return len(self.read_entries())
