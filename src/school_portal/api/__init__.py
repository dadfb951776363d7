from .attendance import AttendanceApi
from .errors import ApiError, EndpointNotFound, FieldError
from .http import ApiClient
from .socket import SessionSocket

__all__ = [
	"ApiClient",
	"ApiError",
	"AttendanceApi",
	"EndpointNotFound",
	"FieldError",
	"SessionSocket",
]
