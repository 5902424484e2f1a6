# Standard Library
import os

# PIP3 modules
import yaml

DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"


#============================================
def get_repo_root() -> str:
	"""
	Return repository root based on this module location.
	"""
	module_dir = os.path.dirname(os.path.abspath(__file__))
	repo_root = os.path.dirname(os.path.dirname(module_dir))
	return repo_root


#============================================
def resolve_settings_path(path_text: str) -> str:
	"""
	Resolve settings path against cwd first, then repo root.
	"""
	if os.path.isabs(path_text):
		return path_text
	cwd_candidate = os.path.abspath(path_text)
	if os.path.isfile(cwd_candidate):
		return cwd_candidate
	repo_root = get_repo_root()
	repo_candidate = os.path.join(repo_root, path_text)
	return os.path.abspath(repo_candidate)


#============================================
def load_settings(path_text: str) -> tuple[dict, str]:
	"""
	Load YAML settings dict and return it with resolved path.
	"""
	resolved_path = resolve_settings_path(path_text)
	if not os.path.isfile(resolved_path):
		return {}, resolved_path
	with open(resolved_path, "r", encoding="utf-8") as handle:
		data = yaml.safe_load(handle.read())
	if data is None:
		return {}, resolved_path
	if not isinstance(data, dict):
		raise RuntimeError(f"Settings file must contain a mapping: {resolved_path}")
	return data, resolved_path


#============================================
def get_nested_value(settings: dict, keys: list[str], default_value):
	"""
	Read nested mapping value by key path.
	"""
	current = settings
	for key in keys:
		if not isinstance(current, dict):
			return default_value
		if key not in current:
			return default_value
		current = current[key]
	return current


#============================================
def get_setting_str(settings: dict, keys: list[str], default_value: str) -> str:
	"""
	Read a string setting from nested path with fallback.
	"""
	value = get_nested_value(settings, keys, default_value)
	if value is None:
		return default_value
	return str(value).strip()


#============================================
def _get_setting_number(settings: dict, keys: list[str], default_value, cast, kind: str):
	value = get_nested_value(settings, keys, default_value)
	if value is None:
		return default_value
	try:
		return cast(value)
	except (TypeError, ValueError) as error:
		raise RuntimeError(f"Invalid {kind} for setting path {'.'.join(keys)}: {value}") from error


#============================================
def get_setting_int(settings: dict, keys: list[str], default_value: int) -> int:
	return _get_setting_number(settings, keys, default_value, int, "integer")


#============================================
def get_setting_float(settings: dict, keys: list[str], default_value: float) -> float:
	return _get_setting_number(settings, keys, default_value, float, "number")


#============================================
def get_setting_bool(settings: dict, keys: list[str], default_value: bool) -> bool:
	"""
	Read a boolean setting from nested path with fallback.
	"""
	value = get_nested_value(settings, keys, default_value)
	if isinstance(value, bool):
		return value
	if isinstance(value, str):
		text = value.strip().lower()
		if text in {"1", "true", "yes", "on"}:
			return True
		if text in {"0", "false", "no", "off"}:
			return False
		raise RuntimeError(f"Invalid boolean for setting path {'.'.join(keys)}: {value}")
	if isinstance(value, int):
		return value != 0
	if value is None:
		return default_value
	raise RuntimeError(f"Invalid boolean for setting path {'.'.join(keys)}: {value}")


#============================================
def get_github_token(settings: dict) -> str:
	"""
	Resolve GitHub token from settings, then the GITHUB_TOKEN env var.
	"""
	value = get_setting_str(settings, ["github", "token"], "")
	if value:
		return value
	return (os.environ.get("GITHUB_TOKEN", "") or "").strip()


#============================================
def get_ollama_model(settings: dict) -> str:
	"""
	Resolve the Ollama model name from settings.

	Accepts either llm.providers.ollama.model or a models list in which
	exactly one entry is enabled.
	"""
	model_entries = get_nested_value(
		settings,
		["llm", "providers", "ollama", "models"],
		[],
	)
	if not model_entries:
		model_value = get_setting_str(
			settings,
			["llm", "providers", "ollama", "model"],
			"",
		)
		if model_value:
			return model_value
		return get_setting_str(settings, ["llm", "model"], "")
	if not isinstance(model_entries, list):
		raise RuntimeError("Invalid settings: llm.providers.ollama.models must be a list.")

	enabled_models = []
	for model_entry in model_entries:
		if not isinstance(model_entry, dict):
			continue
		model_name = str(model_entry.get("name", "")).strip()
		if not model_name:
			continue
		enabled_flag = get_setting_bool(
			{"model": {"enabled": model_entry.get("enabled", False)}},
			["model", "enabled"],
			False,
		)
		if enabled_flag:
			enabled_models.append(model_name)

	if len(enabled_models) > 1:
		raise RuntimeError(
			"Only one Ollama model may be enabled in settings.yaml. "
			+ f"Enabled models: {', '.join(enabled_models)}"
		)
	if len(enabled_models) == 1:
		return enabled_models[0]
	raise RuntimeError(
		"No enabled Ollama model found in settings.yaml. "
		+ "Set exactly one llm.providers.ollama.models[].enabled to true."
	)


#============================================
def get_ollama_base_url(settings: dict) -> str:
	return get_setting_str(
		settings,
		["llm", "providers", "ollama", "base_url"],
		DEFAULT_OLLAMA_BASE_URL,
	)
