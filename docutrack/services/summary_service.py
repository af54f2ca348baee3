"""AI summary generation via the Gemini generateContent REST API.

Produces a one-sentence summary from a document's text content, or, when
there is no text, from an image attachment. Calls are plain HTTPS requests
with connect/read timeouts and a bounded retry on network errors.

A generated summary is only written to a document after the call succeeds
(see SummaryGenerator.summarize_document); a failed call leaves the document
untouched.
"""

from __future__ import annotations

import base64
import io
import logging
import time
from typing import Optional

import requests
from PIL import Image
from requests import exceptions as requests_exceptions

from docutrack.config import Settings
from docutrack.errors import ExternalServiceFailure, ValidationFailed
from docutrack.models.document import Attachment, Document
from docutrack.models.user import User

logger = logging.getLogger(__name__)

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

TEXT_PROMPT = """Summarize the following document content into a concise, one-sentence summary. The summary should capture the main essence of the text.

Document Content:
---
{content}
---

One-sentence Summary:"""

IMAGE_PROMPT = "Describe this image in one concise sentence, as if it were a document summary."

GENERIC_FAILURE = "Failed to generate summary. Please try again."


class SummaryGenerator:
    """Gemini-backed one-sentence summarizer."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-2.5-flash",
        retry_attempts: int = 3,
        connect_timeout: int = 5,
        read_timeout: int = 30,
        max_image_dim: int = 1600,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.retry_attempts = max(1, retry_attempts)
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.max_image_dim = max_image_dim
        self.session = session or requests.Session()

        if not api_key:
            logger.warning("Gemini API key not found; summary generation is disabled")

    @classmethod
    def from_settings(cls, settings: Settings) -> SummaryGenerator:
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            retry_attempts=settings.gemini_retry_attempts,
            connect_timeout=settings.gemini_connect_timeout,
            read_timeout=settings.gemini_read_timeout,
        )

    def is_available(self) -> bool:
        return bool(self.api_key)

    def generate_summary(self, content: Optional[str] = None, attachment: Optional[Attachment] = None) -> str:
        """Return a one-sentence summary of content or of an image attachment.

        Text content takes precedence over the attachment.

        Raises:
            ValidationFailed: If neither content nor attachment is given
            ExternalServiceFailure: If the service is disabled, the attachment
                                    is not an image, or the call fails
        """
        if not (content and content.strip()) and attachment is None:
            raise ValidationFailed(
                "Please provide document content or upload a file to summarize.", field="content"
            )
        if not self.is_available():
            raise ExternalServiceFailure("AI features are disabled. API key is missing.", service="summary")

        if content and content.strip():
            parts = [{"text": TEXT_PROMPT.format(content=content)}]
        elif attachment is not None and attachment.is_image:
            parts = [
                {"text": IMAGE_PROMPT},
                {"inline_data": {"mime_type": "image/jpeg", "data": self._prepare_image_payload(attachment)}},
            ]
        else:
            raise ExternalServiceFailure(
                "No valid content or attachment provided for summary generation.", service="summary"
            )

        payload = {
            "contents": [{"parts": parts}],
            "generationConfig": {"temperature": 0.5},
        }
        summary = self._post(payload).strip()
        if not summary:
            logger.error("Gemini returned an empty summary")
            raise ExternalServiceFailure(GENERIC_FAILURE, service="summary")
        return summary

    def summarize_document(self, engine, document: Document, acting_user: Optional[User]) -> Document:
        """Generate a summary for document and store it via engine.edit().

        The document is only modified after the summary has been produced.
        """
        summary = self.generate_summary(document.content, document.attachment)
        fields = document.fields()
        fields.summary = summary
        return engine.edit(document, fields, acting_user)

    def _post(self, payload: dict) -> str:
        url = GEMINI_ENDPOINT.format(model=self.model)
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.api_key}

        last_error: Optional[Exception] = None
        for attempt in range(1, self.retry_attempts + 1):
            try:
                response = self.session.post(
                    url,
                    headers=headers,
                    json=payload,
                    timeout=(self.connect_timeout, self.read_timeout),
                )
                if response.status_code != 200:
                    logger.error("Gemini API error: %s - %s", response.status_code, response.text[:500])
                    raise ExternalServiceFailure(GENERIC_FAILURE, service="summary")
                return self._extract_text(response.json())
            except (requests_exceptions.Timeout, requests_exceptions.ConnectionError) as net_err:
                last_error = net_err
                logger.warning(
                    "Gemini request failed (attempt %d/%d): %s", attempt, self.retry_attempts, net_err
                )
                if attempt < self.retry_attempts:
                    time.sleep(attempt)
            except (requests_exceptions.RequestException, ValueError) as exc:
                logger.error("Gemini request failed: %s", exc)
                raise ExternalServiceFailure(GENERIC_FAILURE, service="summary") from exc

        raise ExternalServiceFailure(GENERIC_FAILURE, service="summary") from last_error

    @staticmethod
    def _extract_text(body: dict) -> str:
        try:
            parts = body["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            logger.error("Unexpected Gemini response shape: %s", str(body)[:500])
            return ""
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))

    def _prepare_image_payload(self, attachment: Attachment) -> str:
        """Downscale and recompress an image attachment; returns base64 JPEG."""
        raw = base64.b64decode(attachment.data)
        try:
            image = Image.open(io.BytesIO(raw))
            image = image.convert("RGB")
            width, height = image.size
            max_dim = max(width, height)

            if max_dim > self.max_image_dim:
                resize_ratio = self.max_image_dim / float(max_dim)
                image = image.resize((int(width * resize_ratio), int(height * resize_ratio)), Image.LANCZOS)

            buffer = io.BytesIO()
            image.save(buffer, format="JPEG", quality=85, optimize=True)
            return base64.b64encode(buffer.getvalue()).decode("utf-8")
        except (OSError, ValueError) as exc:
            raise ExternalServiceFailure(
                f"Attachment {attachment.file_name!r} is not a readable image: {exc}", service="summary"
            ) from exc
