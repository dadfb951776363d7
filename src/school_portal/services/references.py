from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from school_portal.api.errors import ApiError
from school_portal.api.http import ApiClient

logger = logging.getLogger(__name__)

UPLOAD_PATH = "/reference/upload"
ALLOWED_EXTENSIONS = (".pdf", ".doc", ".docx", ".txt")


@dataclass
class ReferenceUploader:
    client: ApiClient
    message: Optional[str] = None
    error: Optional[str] = None
    uploading: bool = False

    def upload(self, file_path: Path) -> bool:
        path = Path(file_path)
        self.message = None
        self.error = None

        if path.suffix.lower() not in ALLOWED_EXTENSIONS:
            self.error = f"Unsupported file type. Allowed: {', '.join(ALLOWED_EXTENSIONS)}"
            return False
        if not path.is_file():
            self.error = f"File not found: {path}"
            return False

        self.uploading = True
        try:
            response = self.client.post_multipart(UPLOAD_PATH, path)
        except ApiError as exc:
            self.error = exc.message or "Upload failed"
            return False
        finally:
            self.uploading = False

        self.message = response.get("message") or "Reference uploaded successfully"
        logger.info("Uploaded reference %s", path.name)
        return True
