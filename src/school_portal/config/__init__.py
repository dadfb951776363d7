from .credential_store import TOKEN_KEYS, CredentialProvider, LocalStorage, SessionStorage
from .settings import Settings, refresh_settings

__all__ = [
	"TOKEN_KEYS",
	"CredentialProvider",
	"LocalStorage",
	"SessionStorage",
	"Settings",
	"refresh_settings",
]
