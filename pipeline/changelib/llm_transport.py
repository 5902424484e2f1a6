"""
Ollama chat transport with structured JSON output.
"""

from __future__ import annotations

# Standard Library
import http.client
import json
import urllib.error
import urllib.parse
import urllib.request

# local repo modules
from changelib.errors import TransportError
from changelib.errors import TransportUnavailableError

DEFAULT_SYSTEM_MESSAGE = (
	"You are a helpful assistant that creates professional software changelogs "
	"from GitHub commits."
)


class OllamaTransport:
	name = "Ollama"

	def __init__(
		self,
		model: str,
		base_url: str = "http://localhost:11434",
		system_message: str = DEFAULT_SYSTEM_MESSAGE,
		temperature: float = 0.7,
		timeout: int = 120,
	) -> None:
		if not model:
			raise ValueError("an Ollama model name is required")
		self.model = model
		self.base_url = base_url.rstrip("/")
		self.system_message = system_message
		self.temperature = float(temperature)
		self.timeout = int(timeout)

	def _build_messages(self, prompt: str) -> list[dict[str, str]]:
		messages: list[dict[str, str]] = []
		if self.system_message:
			messages.append({"role": "system", "content": self.system_message})
		messages.append({"role": "user", "content": prompt})
		return messages

	def _validated_chat_endpoint(self) -> str:
		"""
		Build and validate the Ollama chat endpoint URL.
		"""
		parsed = urllib.parse.urlparse(self.base_url)
		if parsed.scheme not in {"http", "https"}:
			raise TransportUnavailableError("Ollama base_url must use http or https.")
		if not parsed.netloc:
			raise TransportUnavailableError("Ollama base_url must include a host.")
		return urllib.parse.urljoin(self.base_url + "/", "api/chat")

	def build_payload(self, prompt: str, schema: dict, max_tokens: int) -> dict[str, object]:
		return {
			"model": self.model,
			"messages": self._build_messages(prompt),
			"stream": False,
			"format": schema,
			"options": {
				"num_predict": max_tokens,
				"temperature": self.temperature,
			},
		}

	def _post(self, payload: dict[str, object], purpose: str) -> bytes:
		request = urllib.request.Request(
			self._validated_chat_endpoint(),
			data=json.dumps(payload).encode("utf-8"),
			headers={"Content-Type": "application/json"},
			method="POST",
		)
		try:
			with urllib.request.urlopen(request, timeout=self.timeout) as response:  # nosec B310
				return response.read()
		except urllib.error.HTTPError as exc:
			raise TransportError(f"Ollama chat error during {purpose}: status {exc.code}") from exc
		except (OSError, http.client.HTTPException) as exc:
			# URLError, timeouts and connections dropped mid-response
			raise TransportUnavailableError("Ollama is unreachable.") from exc

	def generate_json(self, prompt: str, *, schema: dict, purpose: str, max_tokens: int) -> str:
		"""
		Request output constrained to the given JSON schema and return its raw text.
		"""
		response_body = self._post(self.build_payload(prompt, schema, max_tokens), purpose)
		try:
			parsed = json.loads(response_body.decode("utf-8"))
		except (UnicodeDecodeError, json.JSONDecodeError) as exc:
			raise TransportError(f"Ollama returned a malformed envelope during {purpose}") from exc
		message = parsed.get("message") if isinstance(parsed, dict) else None
		content = message.get("content", "") if isinstance(message, dict) else ""
		if not isinstance(content, str) or not content.strip():
			raise TransportError(f"Ollama chat returned empty content during {purpose}")
		return content.strip()
