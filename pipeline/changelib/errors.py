"""
Error taxonomy for the changelog pipeline.

Every error carries the pipeline stage it belongs to so callers can report
which of fetch, generate or persist failed.
"""

STAGE_FETCH = "fetch"
STAGE_GENERATE = "generate"
STAGE_PERSIST = "persist"


#============================================
class PipelineError(RuntimeError):
	"""
	Base class for all changelog pipeline failures.
	"""

	stage = ""


#============================================
class SourceUnavailable(PipelineError):
	"""
	Raised when the commit source cannot be reached or denies access.
	"""

	stage = STAGE_FETCH


#============================================
class RateLimitError(SourceUnavailable):
	"""
	Raised when GitHub API rate limits block further requests.
	"""


#============================================
class EmptyHistory(PipelineError):
	"""
	Raised when the repository has no commits to summarize.
	"""

	stage = STAGE_FETCH


#============================================
class GenerationFailed(PipelineError):
	"""
	Raised for transport failures and output that breaks the draft contract.
	"""

	stage = STAGE_GENERATE


#============================================
class TransportUnavailableError(GenerationFailed):
	"""
	Raised when the generation service cannot be reached.
	"""


#============================================
class TransportError(GenerationFailed):
	"""
	Raised when the generation service answers with an error or no content.
	"""


#============================================
class EmptyInput(GenerationFailed):
	"""
	Raised when a batch without commits reaches the synthesizer.
	"""


#============================================
class PersistenceFailed(PipelineError):
	"""
	Raised when the entry store rejects a write.
	"""

	stage = STAGE_PERSIST


#============================================
class InvalidDraft(PersistenceFailed):
	"""
	Raised when a draft is missing a required field at write time.
	"""
