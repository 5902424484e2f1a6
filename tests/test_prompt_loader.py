import os
import sys

import pytest

# add pipeline directory to path for changelib imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "pipeline"))

from changelib import prompt_loader


#============================================
def test_load_prompt_returns_string() -> None:
	"""
	load_prompt should return a non-empty string for an existing prompt file.
	"""
	text = prompt_loader.load_prompt("changelog_entry.txt")
	assert isinstance(text, str)
	assert len(text) > 50


#============================================
def test_load_prompt_missing_file_raises() -> None:
	with pytest.raises(FileNotFoundError):
		prompt_loader.load_prompt("nonexistent_prompt_file.txt")


#============================================
def test_render_prompt_replaces_tokens() -> None:
	"""
	render_prompt should replace {{token}} placeholders with values.
	"""
	template = "Hello {{name}}, you have {{count}} items."
	result = prompt_loader.render_prompt(template, {
		"name": "Alice",
		"count": "42",
	})
	assert result == "Hello Alice, you have 42 items."


#============================================
def test_render_prompt_preserves_unreplaced_tokens() -> None:
	template = "Value: {{known}} and {{unknown}}"
	result = prompt_loader.render_prompt(template, {"known": "yes"})
	assert result == "Value: yes and {{unknown}}"


#============================================
def test_changelog_prompt_has_all_placeholders() -> None:
	"""
	The changelog template should expose every token the synthesizer fills.
	"""
	template = prompt_loader.load_prompt("changelog_entry.txt")
	for token in ("{{batch_context}}", "{{commit_text}}", "{{categories}}"):
		assert token in template
	rendered = prompt_loader.render_prompt(template, {
		"batch_context": "",
		"commit_text": "abc1234 - fix",
		"categories": "Bug Fix",
	})
	assert "{{" not in rendered
	assert "abc1234 - fix" in rendered
