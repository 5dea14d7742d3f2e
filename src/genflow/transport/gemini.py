"""Gemini REST transport implementation."""

from typing import Any, Dict, List, Optional

import httpx
import structlog

from genflow.core.config import BackendConfig
from genflow.core.exceptions import TransportError
from genflow.transport.base import (
    CompletedJob,
    ContentRequest,
    ContentResponse,
    FailedJob,
    InlineData,
    JobHandle,
    Part,
    PendingJob,
    VideoRequest,
)

log = structlog.get_logger()


def parse_operation(data: Dict[str, Any]) -> JobHandle:
    """Convert a long-running operation payload into a job handle."""
    name = data.get("name")
    if not data.get("done"):
        return PendingJob(name=name)

    error = data.get("error")
    if error and not isinstance(error, dict):
        return FailedJob(name=name, message=str(error))
    if error:
        return FailedJob(
            name=name,
            message=error.get("message") or "Job failed",
            code=error.get("code"),
            status=error.get("status"),
        )

    response = data.get("response")
    video_response = response.get("generateVideoResponse") if isinstance(response, dict) else None
    samples = video_response.get("generatedSamples") if isinstance(video_response, dict) else None
    results = [
        sample["video"]["uri"]
        for sample in samples or []
        if isinstance(sample, dict) and (sample.get("video") or {}).get("uri")
    ]
    return CompletedJob(name=name, results=results)


class GeminiTransport:
    """Generation transport for the Gemini REST API.

    Every call opens its own httpx.AsyncClient bounded by ``timeout``.
    All failures surface as TransportError carrying the backend's error
    code and status string so the classifier can read them.
    """

    DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
    DEFAULT_TIMEOUT = 120.0

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the transport.

        Raises:
            ValueError: If api_key is empty.
        """
        if not api_key:
            raise ValueError("api_key cannot be empty")

        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @classmethod
    def from_config(cls, config: BackendConfig) -> "GeminiTransport":
        """Build a transport from the backend section of Settings."""
        api_key = config.api_key.get_secret_value() if config.api_key else ""
        return cls(api_key=api_key, base_url=config.base_url, timeout=config.timeout)

    async def generate_content(self, request: ContentRequest) -> ContentResponse:
        data = await self._request(
            "POST",
            f"{self._base_url}/models/{request.model}:generateContent",
            json=self._build_content_payload(request),
        )
        return self._parse_content_response(data, request.model)

    async def start_video_job(self, request: VideoRequest) -> JobHandle:
        data = await self._request(
            "POST",
            f"{self._base_url}/models/{request.model}:predictLongRunning",
            json=self._build_video_payload(request),
        )
        handle = parse_operation(data)
        log.info("gemini_job_submitted", job=handle.name, model=request.model)
        return handle

    async def poll_video_job(self, handle: PendingJob) -> Optional[JobHandle]:
        try:
            data = await self._request("GET", f"{self._base_url}/{handle.name}")
        except TransportError as e:
            if e.status_code == 404:
                return None
            raise
        return parse_operation(data)

    def download_url(self, uri: str) -> str:
        separator = "&" if "?" in uri else "?"
        return f"{uri}{separator}key={self._api_key}"

    # Private helpers

    def _get_headers(self) -> Dict[str, str]:
        return {
            "x-goog-api-key": self._api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _request(self, method: str, url: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(method, url, json=json, headers=self._get_headers())
        except httpx.TimeoutException:
            log.error("gemini_timeout", url=url, timeout=self._timeout)
            raise TransportError(f"Request to generation backend timed out after {self._timeout}s")
        except httpx.HTTPError as e:
            log.error("gemini_connection_error", url=url, error=str(e))
            raise TransportError(f"Backend unavailable: connection failed ({e})")

        self._handle_response_error(response)

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Malformed response from generation backend: {e}")

    def _handle_response_error(self, response: httpx.Response) -> None:
        """Raise TransportError for HTTP error responses."""
        if response.is_success:
            return

        status: Optional[str] = None
        body: Any = None
        try:
            body = response.json()
            error = body.get("error") if isinstance(body, dict) else None
            if isinstance(error, dict):
                message = error.get("message") or response.text
                status = error.get("status")
            else:
                message = str(error) if error else response.text
        except ValueError:
            message = response.text

        if status:
            message = f"{status}: {message}"

        log.warning("gemini_error_response", status_code=response.status_code, status=status)
        raise TransportError(
            message or f"HTTP {response.status_code}",
            status_code=response.status_code,
            status=status,
            details=body,
        )

    def _build_content_payload(self, request: ContentRequest) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [self._encode_part(p) for p in request.parts]}],
        }
        if request.system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": request.system_instruction}]}

        generation_config: Dict[str, Any] = {}
        if request.response_mime_type:
            generation_config["responseMimeType"] = request.response_mime_type
        if request.response_schema:
            generation_config["responseSchema"] = request.response_schema
        if request.response_modalities:
            generation_config["responseModalities"] = request.response_modalities
        if request.image_config:
            generation_config["imageConfig"] = request.image_config
        if request.speech_config:
            generation_config["speechConfig"] = request.speech_config
        if generation_config:
            payload["generationConfig"] = generation_config

        if request.safety_settings:
            payload["safetySettings"] = request.safety_settings

        return payload

    def _build_video_payload(self, request: VideoRequest) -> Dict[str, Any]:
        instance: Dict[str, Any] = {"prompt": request.prompt}
        if request.image is not None:
            instance["image"] = {
                "bytesBase64Encoded": request.image.data,
                "mimeType": request.image.mime_type,
            }
        return {
            "instances": [instance],
            "parameters": {
                "aspectRatio": request.aspect_ratio,
                "resolution": request.resolution,
                "sampleCount": request.number_of_videos,
            },
        }

    @staticmethod
    def _encode_part(part: Part) -> Dict[str, Any]:
        if part.inline_data is not None:
            return {
                "inlineData": {
                    "mimeType": part.inline_data.mime_type,
                    "data": part.inline_data.data,
                }
            }
        return {"text": part.text}

    @staticmethod
    def _parse_content_response(data: Dict[str, Any], model: str) -> ContentResponse:
        candidates = data.get("candidates") or []
        if not candidates:
            block_reason = (data.get("promptFeedback") or {}).get("blockReason")
            return ContentResponse(parts=[], finish_reason=block_reason, model=data.get("modelVersion", model))

        candidate = candidates[0]
        parts: List[Part] = []
        for raw in (candidate.get("content") or {}).get("parts") or []:
            inline = raw.get("inlineData")
            if inline and inline.get("data"):
                parts.append(Part(inline_data=InlineData(
                    mime_type=inline.get("mimeType", "application/octet-stream"),
                    data=inline["data"],
                )))
            elif raw.get("text") is not None:
                parts.append(Part(text=raw["text"]))

        return ContentResponse(
            parts=parts,
            finish_reason=candidate.get("finishReason"),
            model=data.get("modelVersion", model),
        )
