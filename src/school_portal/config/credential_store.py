from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

TOKEN_KEYS = ("token_teacher", "token_student", "token_admin", "token")


@dataclass
class LocalStorage:
	"""Persistent key/value token storage backed by a JSON file."""

	path: Path
	_data: Dict[str, Any] = field(init=False, default_factory=dict)

	def __post_init__(self) -> None:
		self.path = Path(self.path).expanduser()
		self.reload()

	# ------------------------------------------------------------------
	# Public API
	# ------------------------------------------------------------------
	@property
	def data(self) -> Dict[str, Any]:
		return dict(self._data)

	def get_item(self, key: str) -> Optional[str]:
		value = self._data.get(key)
		return str(value) if value else None

	def set_item(self, key: str, value: str) -> None:
		self._data[key] = value
		self._persist()

	def remove_item(self, key: str) -> None:
		if self._data.pop(key, None) is not None:
			self._persist()

	def clear(self) -> None:
		self._data = {}
		self._persist()

	def reload(self) -> None:
		self._data = self._load_json(self.path)

	# ------------------------------------------------------------------
	# Internal helpers
	# ------------------------------------------------------------------
	def _persist(self) -> None:
		self.path.parent.mkdir(parents=True, exist_ok=True)
		with self.path.open("w", encoding="utf-8") as handle:
			json.dump(self._data, handle, indent=2)

	@staticmethod
	def _load_json(path: Path) -> Dict[str, Any]:
		try:
			if path.exists():
				with path.open("r", encoding="utf-8") as handle:
					loaded = json.load(handle)
				if isinstance(loaded, dict):
					return loaded
		except (OSError, ValueError) as exc:
			logger.warning("Ignoring unreadable credential file %s: %s", path, exc)
		return {}


@dataclass
class SessionStorage:
	"""Key/value token storage that lives only as long as the process."""

	_data: Dict[str, str] = field(default_factory=dict)

	def get_item(self, key: str) -> Optional[str]:
		return self._data.get(key) or None

	def set_item(self, key: str, value: str) -> None:
		self._data[key] = value

	def remove_item(self, key: str) -> None:
		self._data.pop(key, None)

	def clear(self) -> None:
		self._data.clear()


@dataclass
class CredentialProvider:
	"""Resolve bearer tokens from local storage first, then session storage."""

	local: Optional[LocalStorage] = None
	session: SessionStorage = field(default_factory=SessionStorage)

	def token(self, key: str) -> Optional[str]:
		if self.local is not None:
			value = self.local.get_item(key)
			if value:
				return value
		return self.session.get_item(key)

	def remember(self, key: str, value: str, *, persist: bool = True) -> None:
		if persist and self.local is not None:
			self.local.set_item(key, value)
		else:
			self.session.set_item(key, value)

	def forget(self, key: str) -> None:
		if self.local is not None:
			self.local.remove_item(key)
		self.session.remove_item(key)

	@classmethod
	def static(cls, key: str, value: str) -> "CredentialProvider":
		provider = cls()
		provider.session.set_item(key, value)
		return provider
