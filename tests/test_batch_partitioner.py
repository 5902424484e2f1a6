"""Tests for pipeline/changelib/batch_partitioner.py."""

# Standard Library
import math
import os
import sys
from datetime import datetime
from datetime import timezone

import pytest

# add pipeline directory to path for changelib imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "pipeline"))

from changelib import batch_partitioner


#============================================
def make_record(index: int, date_text: str | None = "auto", message: str | None = None) -> dict:
	"""
	Build one REST-shaped commit record.
	"""
	if date_text == "auto":
		date_text = f"2026-01-{(index % 28) + 1:02d}T10:00:00Z"
	return {
		"sha": f"{index:040x}",
		"commit": {
			"message": message or f"Commit {index}\n\nBody for commit {index}",
			"author": {"name": f"Dev {index}", "email": f"dev{index}@example.com", "date": date_text},
			"committer": {"date": None},
		},
		"author": {"login": f"dev{index}"},
	}


#============================================
def test_parse_commit_splits_headline_and_body():
	"""Headline is the first message line, body the rest."""
	record = make_record(1, message="Add login page\n\nUses the new form widget.\nCloses #4")
	commit = batch_partitioner.parse_commit(record)
	assert commit.headline == "Add login page"
	assert commit.body == "Uses the new form widget.\nCloses #4"
	assert commit.author_name == "Dev 1"
	assert commit.author_email == "dev1@example.com"
	assert commit.timestamp == datetime(2026, 1, 2, 10, 0, tzinfo=timezone.utc)


#============================================
def test_parse_commit_falls_back_to_committer_date_and_login():
	"""Missing author date and name fall back to committer date and login."""
	record = {
		"sha": "abc123",
		"commit": {
			"message": "Single line",
			"author": {"name": None, "email": None, "date": None},
			"committer": {"date": "2026-02-01T00:00:00+00:00"},
		},
		"author": {"login": "octocat"},
	}
	commit = batch_partitioner.parse_commit(record)
	assert commit.body == ""
	assert commit.author_name == "octocat"
	assert commit.author_email is None
	assert commit.timestamp.isoformat() == "2026-02-01T00:00:00+00:00"


#============================================
def test_parse_commit_without_any_date_keeps_none():
	"""A commit with no author or committer date has no timestamp."""
	record = {"sha": "abc", "commit": {"message": "x"}, "author": None}
	commit = batch_partitioner.parse_commit(record)
	assert commit.timestamp is None
	assert commit.author_name is None


#============================================
def test_build_batch_range_uses_oldest_and_newest():
	"""Range covers the oldest and newest timestamps in the page."""
	records = [make_record(5), make_record(3), make_record(9)]
	batch = batch_partitioner.build_batch(records, 2)
	assert batch.sequence_number == 2
	assert len(batch.commits) == 3
	assert batch.range_start == datetime(2026, 1, 4, 10, 0, tzinfo=timezone.utc)
	assert batch.range_end == datetime(2026, 1, 10, 10, 0, tzinfo=timezone.utc)
	assert batch.range_start <= batch.range_end


#============================================
def test_build_batch_keeps_provider_order():
	"""Commits are not re-sorted by timestamp."""
	records = [make_record(5), make_record(3), make_record(9)]
	batch = batch_partitioner.build_batch(records, 1)
	assert [commit.sha for commit in batch.commits] == [record["sha"] for record in records]


#============================================
def test_build_batch_skips_null_timestamps_in_range():
	"""Null timestamps do not affect the range."""
	records = [make_record(1, date_text=None), make_record(7), make_record(4, date_text=None)]
	batch = batch_partitioner.build_batch(records, 1)
	assert batch.range_start == batch.range_end
	assert batch.range_start.day == 8


#============================================
def test_build_batch_all_null_timestamps_leaves_range_unset():
	"""All-null timestamps leave both range fields unset."""
	records = [make_record(1, date_text=None), make_record(2, date_text=None)]
	batch = batch_partitioner.build_batch(records, 1)
	assert batch.range_start is None
	assert batch.range_end is None
	assert batch.date_range.to_dict() == {"from": None, "to": None}


#============================================
def test_build_batch_rejects_empty_page_and_bad_sequence():
	"""Empty pages and sequence numbers below 1 are rejected."""
	with pytest.raises(ValueError):
		batch_partitioner.build_batch([], 1)
	with pytest.raises(ValueError):
		batch_partitioner.build_batch([make_record(1)], 0)


#============================================
def test_partition_pages_numbers_contiguously():
	"""Sequence numbers run 1..N in page order."""
	pages = [[make_record(i) for i in range(start, start + 3)] for start in (0, 3, 6, 9)]
	batches = list(batch_partitioner.partition_pages(pages))
	assert [batch.sequence_number for batch in batches] == [1, 2, 3, 4]
	assert batches[1].commits[0].sha == pages[1][0]["sha"]


#============================================
@pytest.mark.parametrize("total, page_size", [(25, 10), (20, 10), (1, 5), (7, 1), (100, 100), (101, 100)])
def test_partition_pages_covers_all_commits(total, page_size):
	"""ceil(N / page_size) batches carry exactly N commits."""
	history = [make_record(i) for i in range(total)]
	pages = [history[i:i + page_size] for i in range(0, total, page_size)]
	batches = list(batch_partitioner.partition_pages(pages))
	assert len(batches) == math.ceil(total / page_size)
	assert sum(len(batch.commits) for batch in batches) == total


#============================================
def test_partition_pages_stops_at_empty_page():
	"""An empty page ends the stream without producing a batch."""
	pages = [[make_record(1)], [], [make_record(2)]]
	batches = list(batch_partitioner.partition_pages(pages))
	assert len(batches) == 1


#============================================
def test_build_single_batch_is_sequence_one():
	"""Recent mode wraps its commits as batch 1."""
	commits = [batch_partitioner.parse_commit(make_record(i)) for i in range(3)]
	batch = batch_partitioner.build_single_batch(commits)
	assert batch.sequence_number == 1
	assert len(batch.commits) == 3
