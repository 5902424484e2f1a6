import os
import sys

# add pipeline directory to path for changelib imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "pipeline"))

import list_changelog
from changelib import entry_store
from changelib.models import ChangelogDraft
from changelib.models import PersistOptions
from changelib.models import Provenance


#============================================
def seed_store(path: str) -> None:
	store = entry_store.EntryStore(path)
	store.persist(
		ChangelogDraft("Dark mode", "Themes can now follow the system.", "New Feature"),
		PersistOptions(version="v1", provenance=Provenance("octo", "demo")),
	)
	store.persist(
		ChangelogDraft("Crash fix", "Opening empty files no longer crashes.", "Bug Fix"),
		PersistOptions(provenance=Provenance("octo", "other")),
	)


#============================================
def test_list_shows_matching_entries(tmp_path, capsys) -> None:
	store_path = str(tmp_path / "entries.jsonl")
	seed_store(store_path)
	argv = ["--store", store_path, "--settings", str(tmp_path / "missing.yaml"), "--category", "Bug Fix"]
	assert list_changelog.main(argv) == 0
	output = capsys.readouterr().out
	assert "Crash fix" in output
	assert "Dark mode" not in output


#============================================
def test_list_empty_store(tmp_path, capsys) -> None:
	argv = ["--store", str(tmp_path / "none.jsonl"), "--settings", str(tmp_path / "missing.yaml")]
	assert list_changelog.main(argv) == 0
	assert "No changelog entries match." in capsys.readouterr().out


#============================================
def test_list_corrupt_store_exit_code(tmp_path) -> None:
	store_path = tmp_path / "entries.jsonl"
	store_path.write_text("{not json\n", encoding="utf-8")
	argv = ["--store", str(store_path), "--settings", str(tmp_path / "missing.yaml")]
	assert list_changelog.main(argv) == 5
