from __future__ import annotations

import copy
import json
import re
import sys
import time
from typing import Any, Dict, Optional

from loguru import logger


# Key names redacted from audit events, compared after is_sensitive() normalisation
SENSITIVE_FIELDS = {
	"password",
	"apikey",
	"secret",
	"token",
	"accesstoken",
	"refreshtoken",
	"privatekey",
	"clientsecret",
	"authorization",
	"xn8napikey",
	"parameters",  # node parameters may hold pasted credentials
	"staticdata",
}

_KEY_NOISE = re.compile(r"[\s_\-.]")

MAX_DEPTH = 10


def is_sensitive(key: Any) -> bool:
	"""True when a mapping key names a secret: ``api_key``, ``apiKey`` and ``X-N8N-API-KEY`` all do."""
	if not isinstance(key, str):
		return False
	return _KEY_NOISE.sub("", key).lower() in SENSITIVE_FIELDS


def _sanitize_dict(obj: Any, depth: int = 0) -> Any:
	"""
	Recursively sanitize a structure by redacting sensitive fields.

	Args:
		obj: The object to sanitize (dict, list, tuple or primitive)
		depth: Current recursion depth

	Returns:
		A sanitized copy of the object
	"""
	if depth > MAX_DEPTH:
		return "[MAX_DEPTH_EXCEEDED]"

	if isinstance(obj, dict):
		return {
			key: "[REDACTED]" if is_sensitive(key) else _sanitize_dict(value, depth + 1)
			for key, value in obj.items()
		}
	if isinstance(obj, (list, tuple)):
		return [_sanitize_dict(item, depth + 1) for item in obj]
	return obj


def configure_logging(level: str = "warning", audit_log_path: Optional[str] = None) -> None:
	"""
	Route diagnostics to stderr and, optionally, audit events to a JSON lines file.

	stdout is left to the command output (reports, JSON dumps).
	"""
	logger.remove()
	logger.add(
		sys.stderr,
		level=level.upper(),
		format="<level>[{level}]</level> {message}",
	)
	if audit_log_path:
		logger.add(
			audit_log_path,
			level="INFO",
			serialize=True,
			enqueue=True,
			filter=lambda record: record["extra"].get("audit", False),
		)


def audit_log(event: str, actor: str, details: Dict[str, Any], status: str = "ok") -> None:
	"""
	Log an audit event with sensitive data redacted.

	Args:
		event: The event name (e.g., "import_workflow")
		actor: Who triggered it (e.g., "cli")
		details: Event details, sanitized before logging
		status: Outcome of the operation
	"""
	entry = {
		"event": event,
		"actor": actor,
		"status": status,
		"details": _sanitize_dict(copy.deepcopy(details)),
		"timestamp": int(time.time() * 1000),
	}
	logger.bind(audit=True).info(json.dumps(entry, default=str))
