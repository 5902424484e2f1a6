"""Tests for pipeline/changelib/changelog_synthesizer.py."""

# Standard Library
import json
import os
import sys
from datetime import datetime
from datetime import timezone

import pytest

# add pipeline directory to path for changelib imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "pipeline"))

from changelib import changelog_synthesizer
from changelib.errors import EmptyInput
from changelib.errors import GenerationFailed
from changelib.errors import TransportUnavailableError
from changelib.models import Batch
from changelib.models import Commit

GOOD_DESCRIPTION = (
	"Users can now sign in with a single click. "
	"The settings page loads noticeably faster. "
	"Several rare crashes during export were resolved."
)


#============================================
def make_batch(sequence_number: int = 1, with_dates: bool = True) -> Batch:
	first = datetime(2026, 1, 1, 9, 30, tzinfo=timezone.utc) if with_dates else None
	second = datetime(2026, 1, 3, 12, 0, tzinfo=timezone.utc) if with_dates else None
	commits = (
		Commit(sha="a1b2c3d4e5f6", timestamp=second, headline="Add SSO login", body="Adds OAuth flow.",
			author_name="Ann", author_email="ann@example.com"),
		Commit(sha="0f0e0d0c0b0a", timestamp=first, headline="Fix export crash", body="",
			author_name=None, author_email=None),
	)
	return Batch(
		sequence_number=sequence_number,
		commits=commits,
		range_start=first,
		range_end=second,
	)


#============================================
def good_payload(**overrides) -> str:
	payload = {
		"title": "Faster settings and one-click sign in",
		"description": GOOD_DESCRIPTION,
		"category": "Enhancement",
	}
	payload.update(overrides)
	return json.dumps(payload)


#============================================
class FakeClient:
	def __init__(self, reply=None, error=None):
		self.reply = reply if reply is not None else good_payload()
		self.error = error
		self.calls = []

	def generate_json(self, prompt, *, schema, purpose, max_tokens):
		self.calls.append({"prompt": prompt, "schema": schema, "purpose": purpose, "max_tokens": max_tokens})
		if self.error is not None:
			raise self.error
		return self.reply


#============================================
def test_serialize_commits_is_deterministic_and_ordered():
	"""Each commit renders as abbrev - timestamp - author: headline, then body."""
	text = changelog_synthesizer.serialize_commits(make_batch().commits)
	assert text == (
		"a1b2c3d - 2026-01-03T12:00:00Z - Ann: Add SSO login\nAdds OAuth flow.\n\n"
		"0f0e0d0 - 2026-01-01T09:30:00Z - Unknown Author: Fix export crash\n"
	)


#============================================
def test_serialize_commits_unknown_date():
	text = changelog_synthesizer.serialize_commits(make_batch(with_dates=False).commits)
	assert "Unknown Date" in text


#============================================
def test_build_prompt_includes_batch_context_outside_single_shot():
	"""Batch context appears in batch mode and is omitted in single-shot mode."""
	batch = make_batch(sequence_number=4)
	prompt = changelog_synthesizer.build_prompt(batch)
	assert "This is batch #4 covering commits from 2026-01-01 to 2026-01-03." in prompt
	assert "a1b2c3d" in prompt
	assert '"Breaking Change"' in prompt
	single = changelog_synthesizer.build_prompt(batch, single_shot=True)
	assert "This is batch #" not in single
	assert "{{" not in single


#============================================
def test_build_batch_context_unknown_dates():
	context = changelog_synthesizer.build_batch_context(make_batch(with_dates=False))
	assert "from unknown date to unknown date" in context


#============================================
def test_parse_draft_accepts_exact_shape():
	draft = changelog_synthesizer.parse_draft(good_payload())
	assert draft.category == "Enhancement"
	assert draft.description == GOOD_DESCRIPTION


#============================================
def test_parse_draft_rejects_missing_category():
	"""A missing category is rejected, never defaulted to Other."""
	payload = json.dumps({"title": "T", "description": GOOD_DESCRIPTION})
	with pytest.raises(GenerationFailed, match="category"):
		changelog_synthesizer.parse_draft(payload)


#============================================
def test_parse_draft_rejects_unknown_category():
	with pytest.raises(GenerationFailed):
		changelog_synthesizer.parse_draft(good_payload(category="Feature"))


#============================================
@pytest.mark.parametrize("field", ["title", "description", "category"])
def test_parse_draft_rejects_empty_fields(field):
	with pytest.raises(GenerationFailed):
		changelog_synthesizer.parse_draft(good_payload(**{field: "   "}))


#============================================
def test_parse_draft_rejects_extra_keys():
	with pytest.raises(GenerationFailed, match="unexpected"):
		changelog_synthesizer.parse_draft(good_payload(version="1.0"))


#============================================
@pytest.mark.parametrize(
	"raw_text",
	[
		"not json at all",
		'Here is your changelog: {"title": "T", "description": "D.", "category": "Other"}',
		"[]",
		"",
	],
)
def test_parse_draft_rejects_non_object_output(raw_text):
	"""Prose-wrapped JSON is not extracted; it fails closed."""
	with pytest.raises(GenerationFailed):
		changelog_synthesizer.parse_draft(raw_text)


#============================================
@pytest.mark.parametrize(
	"description",
	[
		"- Added login\n- Fixed export",
		"1. Added login\n2. Fixed export",
		"## Highlights\nAdded login.",
		"New Feature: added login. It is fast.",
		"**Bug Fix:** export no longer crashes.",
		"First paragraph here.\n\nSecond paragraph here.",
	],
)
def test_parse_draft_rejects_non_prose_descriptions(description):
	with pytest.raises(GenerationFailed):
		changelog_synthesizer.parse_draft(good_payload(description=description))


#============================================
def test_find_description_issue_accepts_prose():
	assert changelog_synthesizer.find_description_issue(GOOD_DESCRIPTION) == ""


#============================================
def test_synthesize_sends_schema_and_returns_draft():
	client = FakeClient()
	draft = changelog_synthesizer.synthesize(client, make_batch(sequence_number=2), max_tokens=300)
	assert draft.title == "Faster settings and one-click sign in"
	call = client.calls[0]
	assert call["schema"] is changelog_synthesizer.DRAFT_SCHEMA
	assert call["max_tokens"] == 300
	assert "batch 2" in call["purpose"]


#============================================
def test_synthesize_empty_batch_raises_empty_input():
	batch = Batch(sequence_number=1, commits=())
	client = FakeClient()
	with pytest.raises(EmptyInput):
		changelog_synthesizer.synthesize(client, batch)
	assert client.calls == []


#============================================
def test_synthesize_propagates_transport_failure():
	client = FakeClient(error=TransportUnavailableError("Ollama is unreachable."))
	with pytest.raises(GenerationFailed):
		changelog_synthesizer.synthesize(client, make_batch())
	assert len(client.calls) == 1
