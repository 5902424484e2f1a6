"""
Commit source backed by the GitHub REST API through PyGithub.
"""

# Standard Library
import random
import time
from datetime import datetime
from datetime import timezone

# PIP3 modules
import requests
from github import Auth
from github import Github
from github.GithubException import GithubException
from github.GithubException import RateLimitExceededException

# local repo modules
from changelib import batch_partitioner
from changelib.errors import RateLimitError
from changelib.errors import SourceUnavailable
from changelib.models import Commit
from changelib.models import RepoInfo

# GitHub rejects per_page values above this
MAX_PAGE_SIZE = 100
EMPTY_REPOSITORY_STATUS = 409


#============================================
def clamp_page_size(page_size: int) -> int:
	"""
	Clamp a requested page size to the provider range 1-100.
	"""
	return max(1, min(int(page_size), MAX_PAGE_SIZE))


#============================================
def to_utc_iso(value) -> str | None:
	"""
	Convert datetime-like values to ISO-8601 UTC strings.
	"""
	if value is None:
		return None
	if isinstance(value, str):
		return value
	if isinstance(value, datetime):
		if value.tzinfo is None:
			value = value.replace(tzinfo=timezone.utc)
		return value.astimezone(timezone.utc).isoformat()
	return str(value)


#============================================
def commit_to_dict(commit_obj) -> dict:
	"""
	Normalize a PyGithub commit object to REST-like dict shape.

	Reads attributes from the listing payload instead of raw_data, which
	would trigger one extra request per commit.
	"""
	if isinstance(commit_obj, dict):
		return dict(commit_obj)
	git_commit = commit_obj.commit
	git_author = getattr(git_commit, "author", None)
	git_committer = getattr(git_commit, "committer", None)
	account = getattr(commit_obj, "author", None)
	record = {
		"sha": commit_obj.sha,
		"commit": {
			"message": getattr(git_commit, "message", "") or "",
			"author": {
				"name": getattr(git_author, "name", None),
				"email": getattr(git_author, "email", None),
				"date": to_utc_iso(getattr(git_author, "date", None)),
			},
			"committer": {
				"date": to_utc_iso(getattr(git_committer, "date", None)),
			},
		},
		"author": None,
	}
	if account is not None:
		record["author"] = {"login": getattr(account, "login", None)}
	return record


#============================================
def build_github_client(token: str, timeout: int):
	"""
	Create a PyGithub client with library retries disabled.
	"""
	if token:
		return Github(auth=Auth.Token(token), timeout=timeout, retry=None)
	return Github(timeout=timeout, retry=None)


#============================================
class GitHubCommitSource:
	"""
	Read commit history for one repository, single page or paged sweep.
	"""

	def __init__(
		self,
		owner: str,
		repo: str,
		token: str = "",
		log_fn=None,
		timeout: int = 30,
		client=None,
		sleep_fn=time.sleep,
		jitter: bool = True,
	):
		if not owner or not repo:
			raise ValueError("repository owner and name are required")
		self.owner = owner
		self.repo = repo
		self.log_fn = log_fn
		self.sleep_fn = sleep_fn
		self.jitter = jitter
		self._repo_obj = None
		self._rate_check_count = 0
		self._low_remaining_threshold = 5
		self._max_proactive_sleep_seconds = 10
		self._api_call_count = 0
		self._api_calls_by_context: dict[str, int] = {}
		if client is None:
			client = build_github_client(token, timeout)
		self.client = client

	#============================================
	@property
	def full_name(self) -> str:
		return f"{self.owner}/{self.repo}"

	#============================================
	def log(self, message: str) -> None:
		"""
		Emit one log line when logger is configured.
		"""
		if self.log_fn is not None:
			self.log_fn(message)

	#============================================
	def record_api_call(self, context: str) -> None:
		"""
		Track one outbound GitHub API call.
		"""
		self._api_call_count += 1
		self._api_calls_by_context[context] = self._api_calls_by_context.get(context, 0) + 1

	#============================================
	def api_usage_snapshot(self) -> dict:
		"""
		Return API call counters for reporting.
		"""
		return {
			"api_call_count": self._api_call_count,
			"api_calls_by_context": dict(self._api_calls_by_context),
		}

	#============================================
	def parse_rate_limit_reset(self, reset_value) -> datetime:
		"""
		Normalize a PyGithub reset value (epoch seconds, datetime or ISO text) to UTC.
		"""
		if isinstance(reset_value, (int, float)) and not isinstance(reset_value, bool):
			return datetime.fromtimestamp(float(reset_value), tz=timezone.utc)
		try:
			parsed = batch_partitioner.parse_iso(reset_value)
		except ValueError:
			parsed = None
		if parsed is None:
			raise RuntimeError(f"Unsupported rate-limit reset value: {reset_value!r}")
		return parsed

	#============================================
	def get_core_rate_limit_snapshot(self) -> tuple[int, datetime]:
		"""
		Read core rate-limit remaining/reset across PyGithub versions.
		"""
		self.record_api_call("GET /rate_limit")
		overview = self.client.get_rate_limit()
		rate_limit = getattr(overview, "core", None)
		if rate_limit is None:
			resources = getattr(overview, "resources", None)
			if isinstance(resources, dict):
				rate_limit = resources.get("core")
			elif resources is not None:
				rate_limit = getattr(resources, "core", None)
		if rate_limit is None:
			raise RuntimeError("Rate limit data does not expose core resource fields.")
		remaining = int(getattr(rate_limit, "remaining"))
		reset_time = self.parse_rate_limit_reset(getattr(rate_limit, "reset"))
		return remaining, reset_time

	#============================================
	def maybe_wait_for_rate_limit(self, context: str, force: bool = False) -> None:
		"""
		Sleep until reset when the remaining quota is very low.
		"""
		self._rate_check_count += 1
		if (not force) and (self._rate_check_count % 15 != 0):
			return
		try:
			remaining, reset_time = self.get_core_rate_limit_snapshot()
		except (GithubException, requests.RequestException, RuntimeError) as error:
			self.log(f"Rate limit check ({context}) unavailable: {error}")
			return
		self.log(
			f"Rate limit check ({context}): remaining={remaining}, "
			+ f"reset_at={reset_time.isoformat()}"
		)
		if remaining > self._low_remaining_threshold:
			return
		sleep_seconds = int((reset_time - datetime.now(timezone.utc)).total_seconds()) + 1
		if sleep_seconds <= 0:
			return
		if sleep_seconds > self._max_proactive_sleep_seconds:
			self.log(
				"Rate limit is low, but proactive wait exceeds cap "
				+ f"({sleep_seconds}s > {self._max_proactive_sleep_seconds}s); "
				+ "skipping proactive sleep and continuing."
			)
			return
		self.log(f"Rate limit is low ({remaining}); sleeping {sleep_seconds}s until reset.")
		self.sleep_fn(sleep_seconds)

	#============================================
	def sleep_request_jitter(self) -> None:
		"""
		Add small random jitter before API calls.
		"""
		if not self.jitter:
			return
		self.sleep_fn(random.random())

	#============================================
	def raise_from_github_error(self, error: Exception, context: str) -> None:
		"""
		Translate PyGithub and transport errors into SourceUnavailable.
		"""
		if isinstance(error, requests.RequestException):
			raise SourceUnavailable(
				f"GitHub is unreachable while {context}: {error}"
			) from error
		status = getattr(error, "status", None)
		message = str(getattr(error, "data", "") or error)
		if isinstance(error, RateLimitExceededException) or (
			status in (403, 429) and "rate limit" in message.lower()
		):
			raise RateLimitError(
				f"GitHub API rate limit exceeded while {context}. "
				+ "Provide a github.token for higher limits."
			) from error
		if status == 401:
			reason = "the GitHub token was rejected"
		elif status == 404:
			reason = f"repository {self.full_name} was not found or is not accessible"
		elif status == 403:
			reason = f"access to {self.full_name} was denied"
		else:
			reason = f"GitHub returned status {status}"
		raise SourceUnavailable(f"Failed while {context}: {reason}") from error

	#============================================
	def call_github(self, context: str, call_fn):
		"""
		Run one API call with jitter and error translation.
		"""
		self.sleep_request_jitter()
		self.record_api_call(context)
		try:
			return call_fn()
		except (GithubException, requests.RequestException) as error:
			self.raise_from_github_error(error, context)

	#============================================
	def get_repo(self):
		"""
		Get the PyGithub repository object, fetched once per source.
		"""
		if self._repo_obj is None:
			self.maybe_wait_for_rate_limit(f"get_repo {self.full_name}", force=True)
			self._repo_obj = self.call_github(
				f"fetching repository {self.full_name}",
				lambda: self.client.get_repo(self.full_name),
			)
		return self._repo_obj

	#============================================
	def get_repo_info(self) -> RepoInfo:
		"""
		Read repository metadata; doubles as the credential/access check.
		"""
		repo_obj = self.get_repo()
		info = RepoInfo(
			name=getattr(repo_obj, "name", "") or self.repo,
			full_name=getattr(repo_obj, "full_name", "") or self.full_name,
			description=getattr(repo_obj, "description", None),
			default_branch=getattr(repo_obj, "default_branch", "") or "",
			created_at=to_utc_iso(getattr(repo_obj, "created_at", None)) or "",
			pushed_at=to_utc_iso(getattr(repo_obj, "pushed_at", None)) or "",
		)
		self.log(f"Repository {info.full_name} is accessible.")
		return info

	#============================================
	def _fetch_page(self, page_size: int, page_index: int) -> list[dict] | None:
		"""
		Fetch one raw commit page. Returns None for an empty repository.
		"""
		repo_obj = self.get_repo()
		self.maybe_wait_for_rate_limit(f"list_commits {self.full_name}")
		context = f"listing commits page {page_index + 1} of {self.full_name}"

		def list_page():
			self.client.per_page = page_size
			return [commit_to_dict(item) for item in repo_obj.get_commits().get_page(page_index)]

		try:
			return self.call_github(context, list_page)
		except SourceUnavailable as error:
			cause = error.__cause__
			if getattr(cause, "status", None) == EMPTY_REPOSITORY_STATUS:
				return None
			raise

	#============================================
	def fetch_all_paged(self, page_size: int, max_pages: int | None = None):
		"""
		Yield raw commit pages in provider order.

		Stops after a short or empty page, or once max_pages pages were
		emitted. A failure mid-sweep raises SourceUnavailable; pages already
		yielded remain with the caller.
		"""
		per_page = clamp_page_size(page_size)
		if max_pages is not None and max_pages < 1:
			return
		page_index = 0
		while True:
			self.log(f"Fetching commit page {page_index + 1} ({per_page} per page) from {self.full_name}")
			records = self._fetch_page(per_page, page_index)
			if not records:
				return
			yield records
			page_index += 1
			if len(records) < per_page:
				return
			if max_pages is not None and page_index >= max_pages:
				self.log(f"Reached maximum number of pages ({max_pages})")
				return

	#============================================
	def fetch_recent(self, count: int) -> list[Commit]:
		"""
		Return up to count most recent commits in provider order.

		An empty repository yields an empty list, not an error.
		"""
		if count < 1:
			raise ValueError(f"count must be >= 1; got {count}")
		self.log(f"Fetching last {count} commits from {self.full_name}")
		per_page = clamp_page_size(count)
		max_pages = -(-count // per_page)
		records: list[dict] = []
		for page in self.fetch_all_paged(per_page, max_pages):
			records.extend(page)
		commits = [batch_partitioner.parse_commit(record) for record in records[:count]]
		self.log(f"Fetched {len(commits)} commit(s) from {self.full_name}")
		return commits
