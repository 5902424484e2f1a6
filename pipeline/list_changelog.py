#!/usr/bin/env python3
"""List stored changelog entries with optional filters."""

# Standard Library
import argparse
import sys

# PIP3 modules
import rich.console
import rich.table

# local repo modules
from changelib import entry_store
from changelib import pipeline_settings
from changelib.changelog_synthesizer import CATEGORIES
from changelib.errors import PersistenceFailed


#============================================
def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(description="List stored changelog entries.")
	parser.add_argument("--category", choices=list(CATEGORIES), default=None, help="Only this category.")
	parser.add_argument("--owner", default=None, help="Only entries from this repository owner.")
	parser.add_argument("--repo", default=None, help="Only entries from this repository name.")
	parser.add_argument("--search", default=None, help="Case-insensitive text to find in title or description.")
	parser.add_argument("--limit", type=int, default=20, help="Maximum entries to show (0 means all).")
	parser.add_argument("--settings", default="settings.yaml", help="YAML settings path for defaults.")
	parser.add_argument("--store", dest="store_path", default=None, help="JSONL entry store path.")
	return parser.parse_args(argv)


#============================================
def build_table(entries: list) -> rich.table.Table:
	table = rich.table.Table(title="Changelog entries")
	table.add_column("Published")
	table.add_column("Category")
	table.add_column("Version")
	table.add_column("Repository")
	table.add_column("Title")
	for entry in entries:
		repo_text = "/".join(part for part in (entry.repo_owner, entry.repo_name) if part)
		table.add_row(
			entry.published_at[:19],
			entry.category,
			entry.version or "",
			repo_text,
			entry.title,
		)
	return table


#============================================
def main(argv: list[str] | None = None) -> int:
	args = parse_args(argv)
	console = rich.console.Console()
	settings, _ = pipeline_settings.load_settings(args.settings)
	store_path = args.store_path or pipeline_settings.get_setting_str(
		settings, ["store", "path"], entry_store.DEFAULT_STORE_PATH,
	)
	store = entry_store.EntryStore(store_path)
	try:
		entries = store.list_entries(
			category=args.category,
			owner=args.owner,
			repo=args.repo,
			search=args.search,
		)
	except PersistenceFailed as error:
		console.print(f"Could not read entries: {error}", style="bold red", markup=False)
		return 5
	if args.limit > 0:
		entries = entries[: args.limit]
	if not entries:
		console.print("No changelog entries match.", style="yellow")
		return 0
	console.print(build_table(entries))
	return 0


if __name__ == "__main__":
	sys.exit(main())
