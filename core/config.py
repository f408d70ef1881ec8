from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv


@dataclass(frozen=True)
class Settings:
	"""Environment-driven configuration for the workflow tooling."""

	# n8n
	n8n_api_url: str = "http://localhost:5678"
	n8n_api_key: Optional[str] = None
	n8n_version: Optional[str] = None

	# repository
	workflows_dir: str = "workflows"

	# ops
	log_level: str = "warning"
	audit_log_path: Optional[str] = None
	http_timeout: int = 30

	@staticmethod
	def load_from_env() -> "Settings":
		load_dotenv(find_dotenv(usecwd=True))

		n8n_api_url = os.getenv("N8N_API_URL", "http://localhost:5678").rstrip("/")
		n8n_api_key = os.getenv("N8N_API_KEY") or None
		n8n_version = os.getenv("N8N_VERSION")

		workflows_dir = os.getenv("WORKFLOWS_DIR", "workflows")
		log_level = os.getenv("LOG_LEVEL", "warning")
		audit_log_path = os.getenv("AUDIT_LOG_PATH")

		raw_timeout = os.getenv("HTTP_TIMEOUT", "30")
		try:
			http_timeout = int(raw_timeout)
		except ValueError as exc:
			raise RuntimeError(f"HTTP_TIMEOUT must be an integer, got {raw_timeout!r}") from exc

		return Settings(
			n8n_api_url=n8n_api_url or "http://localhost:5678",
			n8n_api_key=n8n_api_key,
			n8n_version=n8n_version,
			workflows_dir=workflows_dir,
			log_level=log_level,
			audit_log_path=audit_log_path,
			http_timeout=http_timeout,
		)
