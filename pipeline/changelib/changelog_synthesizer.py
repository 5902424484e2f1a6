"""Turn one commit batch into a validated changelog draft.

The generation service is asked for a structured three-field object. The
reply is parsed strictly: anything other than exactly one title, one
single-paragraph prose description and one category from the closed set is
a GenerationFailed, never a partially accepted draft.
"""

# Standard Library
import json
import re

# local repo modules
from changelib import prompt_loader
from changelib.errors import EmptyInput
from changelib.errors import GenerationFailed
from changelib.models import Batch
from changelib.models import ChangelogDraft
from changelib.models import Commit

CATEGORIES = (
	"New Feature",
	"Enhancement",
	"Bug Fix",
	"Breaking Change",
	"Performance",
	"Documentation",
	"Other",
)
DRAFT_FIELDS = ("title", "description", "category")
DRAFT_SCHEMA = {
	"type": "object",
	"properties": {
		"title": {"type": "string"},
		"description": {"type": "string"},
		"category": {"type": "string", "enum": list(CATEGORIES)},
	},
	"required": list(DRAFT_FIELDS),
	"additionalProperties": False,
}
PROMPT_NAME = "changelog_entry.txt"
DEFAULT_MAX_TOKENS = 600

LIST_ITEM_RE = re.compile(r"^\s*(?:[-*+•]|\d+[.)])\s+")
HEADING_RE = re.compile(r"^\s*#{1,6}\s")
CATEGORY_LABEL_RE = re.compile(
	r"^\s*[*_]*\s*(?:" + "|".join(re.escape(name) for name in CATEGORIES) + r")\s*[*_]*\s*:",
	re.IGNORECASE,
)


#============================================
def format_timestamp(commit: Commit) -> str:
	if commit.timestamp is None:
		return "Unknown Date"
	return commit.timestamp.strftime("%Y-%m-%dT%H:%M:%SZ")


#============================================
def serialize_commits(commits) -> str:
	"""
	Render commits as a deterministic text block, keeping batch order.

	Each commit becomes 'abbrev - timestamp - author: headline' followed by
	its body on the next line.
	"""
	blocks = []
	for commit in commits:
		author = commit.author_name or "Unknown Author"
		header = f"{commit.sha[:7]} - {format_timestamp(commit)} - {author}: {commit.headline}"
		blocks.append(f"{header}\n{commit.body or ''}")
	return "\n\n".join(blocks)


#============================================
def build_batch_context(batch: Batch) -> str:
	"""
	Describe a batch's position and date span for the prompt.
	"""
	from_text = batch.range_start.date().isoformat() if batch.range_start else "unknown date"
	to_text = batch.range_end.date().isoformat() if batch.range_end else "unknown date"
	return f"This is batch #{batch.sequence_number} covering commits from {from_text} to {to_text}."


#============================================
def build_prompt(batch: Batch, single_shot: bool = False) -> str:
	"""
	Render the generation request for one batch.
	"""
	batch_context = "" if single_shot else "\n" + build_batch_context(batch)
	categories = ", ".join(f'"{name}"' for name in CATEGORIES)
	template = prompt_loader.load_prompt(PROMPT_NAME)
	return prompt_loader.render_prompt(
		template,
		{
			"batch_context": batch_context,
			"commit_text": serialize_commits(batch.commits),
			"categories": categories,
		},
	)


#============================================
def find_description_issue(description: str) -> str:
	"""
	Return an issue description if the text is not single-paragraph prose.

	Returns an empty string when the description is acceptable.
	"""
	text = description.strip()
	if re.search(r"\n\s*\n", text):
		return "description has more than one paragraph"
	for line in text.splitlines():
		if LIST_ITEM_RE.match(line):
			return "description contains a list item"
		if HEADING_RE.match(line):
			return "description contains a heading"
		if CATEGORY_LABEL_RE.match(line):
			return "description contains a category label prefix"
	return ""


#============================================
def parse_draft(raw_text: str) -> ChangelogDraft:
	"""
	Parse the service reply as exactly one title/description/category object.
	"""
	try:
		payload = json.loads(raw_text)
	except (TypeError, json.JSONDecodeError) as error:
		raise GenerationFailed(f"generation output is not valid JSON: {error}") from error
	if not isinstance(payload, dict):
		raise GenerationFailed("generation output is not a JSON object")
	missing = [name for name in DRAFT_FIELDS if name not in payload]
	if missing:
		raise GenerationFailed(f"generation output is missing field(s): {', '.join(missing)}")
	extra = sorted(set(payload) - set(DRAFT_FIELDS))
	if extra:
		raise GenerationFailed(f"generation output has unexpected field(s): {', '.join(extra)}")
	values = {}
	for name in DRAFT_FIELDS:
		value = payload[name]
		if not isinstance(value, str) or not value.strip():
			raise GenerationFailed(f"generation output field '{name}' is empty or not a string")
		values[name] = value.strip()
	if values["category"] not in CATEGORIES:
		raise GenerationFailed(f"generation output category is not recognized: {values['category']!r}")
	issue = find_description_issue(values["description"])
	if issue:
		raise GenerationFailed(f"generation output rejected: {issue}")
	return ChangelogDraft(**values)


#============================================
def synthesize(
	client,
	batch: Batch,
	single_shot: bool = False,
	max_tokens: int = DEFAULT_MAX_TOKENS,
) -> ChangelogDraft:
	"""
	Generate and validate one changelog draft for a batch.

	Args:
		client: generation transport exposing generate_json().
		batch: the commits to summarize.
		single_shot: omit the batch-context line (recent mode).
		max_tokens: generation token cap.

	Returns:
		The validated ChangelogDraft.
	"""
	if not batch.commits:
		raise EmptyInput(f"batch {batch.sequence_number} has no commits")
	prompt = build_prompt(batch, single_shot=single_shot)
	raw_text = client.generate_json(
		prompt,
		schema=DRAFT_SCHEMA,
		purpose=f"changelog batch {batch.sequence_number}",
		max_tokens=max_tokens,
	)
	return parse_draft(raw_text)
