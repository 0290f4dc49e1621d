"""Forward uploaded receipt files to the extraction webhook.

Fire-and-forget: one POST per file, no retry, the response body is ignored.
Extracted data shows up later through the record store.
"""
from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Optional

import httpx

import config
from schemas import UnsupportedFileError, UploadResult

logger = logging.getLogger(__name__)

ACCEPTED_TYPES = {
    "image/png": [".png"],
    "image/jpeg": [".jpg", ".jpeg"],
    "image/gif": [".gif"],
    "application/pdf": [".pdf"],
}
ACCEPTED_EXTENSIONS = {ext: ctype for ctype, exts in ACCEPTED_TYPES.items() for ext in exts}


def resolve_content_type(file_name: str, content_type: Optional[str] = None) -> str:
    if content_type in ACCEPTED_TYPES:
        return content_type
    ext = os.path.splitext(file_name)[1].lower()
    if ext in ACCEPTED_EXTENSIONS:
        return ACCEPTED_EXTENSIONS[ext]
    raise UnsupportedFileError(f"{file_name}: only PNG, JPG, JPEG, GIF and PDF are supported")


def build_webhook_payload(file_name, file_size, content_type, now=None):
    now = now or datetime.now(timezone.utc)
    return {
        "fileName": file_name,
        "fileSize": file_size,
        "fileType": content_type,
        "timestamp": now.isoformat(),
        "status": "processed",
    }


class WebhookUploader:
    def __init__(self, webhook_url: str = None, client: Optional[httpx.Client] = None):
        self.webhook_url = webhook_url or config.WEBHOOK_URL
        self.client = client or httpx.Client(timeout=15.0)

    def send(self, file_name: str, file_size: int, content_type: Optional[str] = None, now=None) -> UploadResult:
        content_type = resolve_content_type(file_name, content_type)
        if not self.webhook_url:
            logger.error("WEBHOOK_URL is not configured, %s not sent", file_name)
            return UploadResult(file_name=file_name, status="error", detail="webhook not configured")

        payload = build_webhook_payload(file_name, file_size, content_type, now)
        try:
            resp = self.client.post(self.webhook_url, json=payload)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("webhook POST failed for %s: %s", file_name, e)
            return UploadResult(file_name=file_name, status="error", detail=str(e))

        logger.info("sent %s (%d bytes) to webhook", file_name, file_size)
        return UploadResult(file_name=file_name, status="success")

    def close(self):
        self.client.close()
