"""
Shape raw commit pages into numbered batches.

Each page from the paged sweep becomes exactly one Batch. Sequence numbers
follow page order and nothing is carried from one batch to the next, so a
failed batch can be skipped without touching its neighbours.
"""

# Standard Library
from datetime import datetime
from datetime import timezone
from typing import Iterable
from typing import Iterator

# local repo modules
from changelib.models import Batch
from changelib.models import Commit


#============================================
def parse_iso(ts) -> datetime | None:
	"""
	Parse an ISO timestamp string into a timezone-aware UTC datetime.
	"""
	if not ts:
		return None
	if isinstance(ts, datetime):
		parsed = ts
	else:
		parsed = datetime.fromisoformat(str(ts).replace("Z", "+00:00"))
	if parsed.tzinfo is None:
		return parsed.replace(tzinfo=timezone.utc)
	return parsed.astimezone(timezone.utc)


#============================================
def split_message(message: str) -> tuple[str, str]:
	"""
	Split a commit message into headline and body.
	"""
	text = message or ""
	if "\n" not in text:
		return text.strip(), ""
	headline, body = text.split("\n", 1)
	return headline.strip(), body.strip("\n")


#============================================
def parse_commit(record: dict) -> Commit:
	"""
	Convert one REST-shaped commit record into a Commit.

	The author date is preferred; the committer date is the fallback and a
	commit with neither keeps a None timestamp.
	"""
	commit_data = record.get("commit") or {}
	author_data = commit_data.get("author") or {}
	committer_data = commit_data.get("committer") or {}
	account_data = record.get("author") or {}
	headline, body = split_message(commit_data.get("message") or "")
	timestamp = parse_iso(author_data.get("date") or committer_data.get("date"))
	author_name = author_data.get("name") or account_data.get("login") or None
	return Commit(
		sha=str(record.get("sha") or ""),
		timestamp=timestamp,
		headline=headline,
		body=body,
		author_name=author_name,
		author_email=author_data.get("email") or None,
	)


#============================================
def compute_date_range(commits: Iterable[Commit]) -> tuple[datetime | None, datetime | None]:
	"""
	Return (oldest, newest) timestamps, skipping commits without one.
	"""
	stamps = [commit.timestamp for commit in commits if commit.timestamp is not None]
	if not stamps:
		return None, None
	return min(stamps), max(stamps)


#============================================
def make_batch(commits: list[Commit], sequence_number: int) -> Batch:
	"""
	Build one Batch from already parsed commits.
	"""
	if sequence_number < 1:
		raise ValueError(f"sequence_number must be >= 1; got {sequence_number}")
	if not commits:
		raise ValueError("cannot build a batch without commits")
	range_start, range_end = compute_date_range(commits)
	return Batch(
		sequence_number=sequence_number,
		commits=tuple(commits),
		range_start=range_start,
		range_end=range_end,
	)


#============================================
def build_batch(records: list[dict], sequence_number: int) -> Batch:
	"""
	Convert one raw page into a Batch with the given sequence number.
	"""
	commits = [parse_commit(record) for record in records]
	return make_batch(commits, sequence_number)


#============================================
def build_single_batch(commits: list[Commit]) -> Batch:
	"""
	Wrap the recent-mode commit list as batch number 1.
	"""
	return make_batch(list(commits), 1)


#============================================
def partition_pages(pages: Iterable[list[dict]]) -> Iterator[Batch]:
	"""
	Yield one Batch per page, numbered from 1 in page order.

	Pages are consumed lazily so a source failure surfaces only after all
	earlier batches have been handed to the caller.
	"""
	sequence_number = 0
	for records in pages:
		if not records:
			# the sweep stops before an empty page; never emit an empty batch
			return
		sequence_number += 1
		yield build_batch(records, sequence_number)
