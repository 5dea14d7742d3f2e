"""Generation studio: the façade UI collaborators call.

Each capability method validates its input, submits one unit of work to
the right TaskQueue (standard for text/image/speech, heavy for video),
runs the backend call under the retry policy, decodes the payload, and
on failure raises exactly one GenerationError kind.
"""

import asyncio
import base64
import binascii
import json
import threading
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar

import structlog

from genflow.core.config import Settings, get_settings
from genflow.core.exceptions import (
    ContentFilteredError,
    GenerationError,
    InputRejectedError,
    StudioNotInitializedError,
)
from genflow.core.guards import InputGuard
from genflow.media.audio import SAMPLE_RATE, pcm_to_wav
from genflow.media.data_uri import DataUriError, build_data_uri, split_data_uri
from genflow.orchestration.job_poller import run_job
from genflow.orchestration.retry import RetryPolicy
from genflow.orchestration.strategy import Strategy, StrategyChain
from genflow.orchestration.task_queue import TaskQueue
from genflow.orchestration.translate import translate_error
from genflow.protocols.progress import ProgressCallback
from genflow.protocols.transport import GenerationTransport
from genflow.transport.base import ContentRequest, ContentResponse, InlineData, Part, VideoRequest

log = structlog.get_logger()

T = TypeVar("T")

SAFETY_SETTINGS: List[Dict[str, str]] = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_ONLY_HIGH"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_ONLY_HIGH"},
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_ONLY_HIGH"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_ONLY_HIGH"},
]


@dataclass(frozen=True)
class SpeakerVoice:
    """Voice assignment for one speaker in multi-speaker speech."""

    speaker: str
    voice: str


def decode_image(response: ContentResponse) -> str:
    """Return the first inline image as a data URI.

    A response with text but no image is a refusal.

    Raises:
        ContentFilteredError: If the response carries no image.
    """
    inline = response.first_inline_data()
    if inline is not None:
        return build_data_uri(inline.mime_type or "image/png", inline.data)

    refusal = response.text
    if refusal:
        lowered = refusal.lower()
        if "here is" in lowered or "image" in lowered:
            raise ContentFilteredError(
                "Image Filtered: The model generated a response but the image "
                "was blocked by safety filters."
            )
        raise ContentFilteredError(f"Model Refusal: {refusal}")

    raise ContentFilteredError("No image generated. The model may have refused the prompt.")


def decode_speech(response: ContentResponse, sample_rate: int = SAMPLE_RATE) -> str:
    """Wrap the first inline PCM payload in WAV and return it as a data URI.

    Raises:
        ContentFilteredError: If the response carries no audio.
        GenerationError: If the audio payload is not valid base64.
    """
    inline = response.first_inline_data()
    if inline is None:
        raise ContentFilteredError("Audio generation failed: the backend returned no audio.")

    try:
        pcm = base64.b64decode(inline.data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise GenerationError(f"Audio payload could not be decoded: {e}") from e

    wav = pcm_to_wav(pcm, sample_rate=sample_rate)
    return build_data_uri("audio/wav", base64.b64encode(wav).decode("ascii"))


def decode_structured(response: ContentResponse) -> Any:
    """Parse a JSON response body. Schemas are the caller's business."""
    try:
        return json.loads(response.text)
    except ValueError as e:
        raise GenerationError(f"Malformed structured response: {e}") from e


class GenerationStudio:
    """Façade over the generation backend.

    Owns one standard TaskQueue (several concurrent calls) and one heavy
    TaskQueue (video jobs, strictly serialized). Construct one per
    application; tests construct fresh ones per case.
    """

    def __init__(
        self,
        transport: GenerationTransport,
        settings: Optional[Settings] = None,
        standard_queue: Optional[TaskQueue] = None,
        heavy_queue: Optional[TaskQueue] = None,
        guard: Optional[InputGuard] = None,
    ) -> None:
        self._transport = transport
        self._settings = settings or Settings()

        queues = self._settings.queues
        self._standard = standard_queue or TaskQueue(queues.standard_concurrency, name="standard")
        self._heavy = heavy_queue or TaskQueue(queues.heavy_concurrency, name="heavy")
        self._guard = guard or InputGuard(self._settings.guards)

        retry = self._settings.retry
        self._retry_policy = RetryPolicy(
            max_attempts=retry.max_attempts,
            base_delay=retry.base_delay,
            max_jitter=retry.max_jitter,
        )
        poller = self._settings.poller
        self._job_start_policy = RetryPolicy(
            max_attempts=poller.start_attempts,
            base_delay=poller.start_base_delay,
            max_jitter=retry.max_jitter,
        )
        self._models = self._settings.backend.models

        log.info(
            "studio_initialized",
            standard_concurrency=self._standard.max_concurrency,
            heavy_concurrency=self._heavy.max_concurrency,
        )

    @property
    def standard_queue(self) -> TaskQueue:
        return self._standard

    @property
    def heavy_queue(self) -> TaskQueue:
        return self._heavy

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    async def generate_text(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Generate free text for a prompt."""
        clean = self._check(prompt, "Text Prompt")
        request = ContentRequest(
            model=self._models.text,
            parts=[Part.from_text(clean)],
            system_instruction=system_instruction,
        )

        async def call() -> str:
            response = await self._transport.generate_content(request)
            return response.text

        return await self._submit("text", call, on_progress)

    async def generate_structured(
        self,
        prompt: str,
        schema: Optional[Dict[str, Any]] = None,
        system_instruction: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Any:
        """Generate a JSON payload, optionally constrained by a schema."""
        clean = self._check(prompt, "Prompt")
        request = ContentRequest(
            model=self._models.text,
            parts=[Part.from_text(clean)],
            system_instruction=system_instruction,
            response_mime_type="application/json",
            response_schema=schema,
        )

        async def call() -> Any:
            return decode_structured(await self._transport.generate_content(request))

        return await self._submit("structured", call, on_progress)

    async def analyze_image(
        self,
        image: str,
        question: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Answer a question about an image given as a data URI."""
        clean = self._check(question, "Question")
        inline = self._media(image)
        request = ContentRequest(
            model=self._models.text,
            parts=[Part(inline_data=inline), Part.from_text(clean)],
        )

        async def call() -> str:
            return (await self._transport.generate_content(request)).text

        return await self._submit("analyze_image", call, on_progress)

    async def transcribe_media(
        self,
        media: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Transcribe the audio track of a media data URI."""
        inline = self._media(media, default_mime_type=None)
        request = ContentRequest(
            model=self._models.text,
            parts=[
                Part(inline_data=inline),
                Part.from_text("Transcribe the audio from this media file accurately."),
            ],
        )

        async def call() -> str:
            text = (await self._transport.generate_content(request)).text
            return text or "No transcription generated."

        return await self._submit("transcribe", call, on_progress)

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    async def generate_image(
        self,
        prompt: str,
        aspect_ratio: str = "1:1",
        reference_image: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Generate an image, returned as a data URI.

        With a reference image the model is first asked to keep the
        reference's character; if that attempt fails for any reason other
        than quota, the prompt is retried without the reference.
        """
        clean = self._check(prompt, "Image Prompt")
        image_config = {"aspectRatio": aspect_ratio}

        def image_call(parts: List[Part]) -> Callable[[], Awaitable[str]]:
            request = ContentRequest(
                model=self._models.image,
                parts=parts,
                image_config=image_config,
                safety_settings=SAFETY_SETTINGS,
            )

            async def call() -> str:
                return decode_image(await self._transport.generate_content(request))

            return lambda: self._retry_policy.execute(call, on_progress)

        strategies: List[Strategy[str]] = []
        if reference_image:
            reference = self._media(reference_image)
            strategies.append(Strategy("with_reference", image_call([
                Part(inline_data=reference),
                Part.from_text(
                    f"Using the provided image as a strict character reference, generate: {clean}. "
                    "Maintain exact character details, colors, and style."
                ),
            ])))
        strategies.append(Strategy("prompt_only", image_call([Part.from_text(clean)])))

        chain = StrategyChain(strategies)
        return await self._enqueue(self._standard, "image", chain.run)

    async def generate_pro_image(
        self,
        prompt: str,
        size: str = "1K",
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Generate a high-resolution image with the pro model."""
        clean = self._check(prompt, "Pro Image Prompt")
        request = ContentRequest(
            model=self._models.pro_image,
            parts=[Part.from_text(clean)],
            image_config={"imageSize": size},
            safety_settings=SAFETY_SETTINGS,
        )

        async def call() -> str:
            return decode_image(await self._transport.generate_content(request))

        return await self._submit("pro_image", call, on_progress)

    async def edit_image(
        self,
        image: str,
        prompt: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Edit an image according to prompt."""
        clean = self._check(prompt, "Edit Prompt")
        inline = self._media(image)
        request = ContentRequest(
            model=self._models.image,
            parts=[Part(inline_data=inline), Part.from_text(clean)],
            safety_settings=SAFETY_SETTINGS,
        )

        async def call() -> str:
            return decode_image(await self._transport.generate_content(request))

        return await self._submit("edit_image", call, on_progress)

    async def generate_batch_images(
        self,
        prompt: str,
        quantity: int,
        aspect_ratio: str = "1:1",
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[str]:
        """Generate ``quantity`` images one after another.

        Each image goes through the full queue/retry stack on its own;
        a fixed delay separates consecutive calls.
        """
        if quantity < 0:
            raise ValueError("quantity must be >= 0")

        delay = self._settings.batch.inter_call_delay
        images: List[str] = []
        for index in range(quantity):
            if index > 0 and delay > 0:
                await asyncio.sleep(delay)
            images.append(await self.generate_image(prompt, aspect_ratio, on_progress=on_progress))
        return images

    async def generate_viral_thumbnails(
        self,
        prompt: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[str]:
        return await self.generate_batch_images(
            prompt,
            self._settings.batch.thumbnail_count,
            aspect_ratio="16:9",
            on_progress=on_progress,
        )

    # ------------------------------------------------------------------
    # Speech
    # ------------------------------------------------------------------

    async def generate_speech(
        self,
        text: str,
        voice_name: str = "Kore",
        speakers: Optional[Sequence[SpeakerVoice]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Synthesize speech, returned as a WAV data URI."""
        clean = self._check(text, "Speech Text")
        if speakers:
            speech_config: Dict[str, Any] = {
                "multiSpeakerVoiceConfig": {
                    "speakerVoiceConfigs": [
                        {
                            "speaker": s.speaker,
                            "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": s.voice}},
                        }
                        for s in speakers
                    ]
                }
            }
        else:
            speech_config = {"voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice_name}}}

        request = ContentRequest(
            model=self._models.speech,
            parts=[Part.from_text(clean)],
            response_modalities=["AUDIO"],
            speech_config=speech_config,
        )

        async def call() -> str:
            return decode_speech(await self._transport.generate_content(request))

        return await self._submit("speech", call, on_progress)

    # ------------------------------------------------------------------
    # Video
    # ------------------------------------------------------------------

    async def generate_video(
        self,
        prompt: str,
        aspect_ratio: str = "16:9",
        image: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Generate a video and return a URI the caller can download.

        Runs on the heavy queue, so only one video job is ever in flight.
        """
        clean = self._check(prompt, "Video Prompt")
        request = VideoRequest(
            model=self._models.video,
            prompt=clean,
            image=self._media(image) if image else None,
            aspect_ratio=aspect_ratio,
        )

        async def task() -> str:
            uri = await run_job(
                lambda: self._transport.start_video_job(request),
                self._transport.poll_video_job,
                interval=self._settings.poller.interval,
                on_retry=on_progress,
                start_policy=self._job_start_policy,
            )
            return self._transport.download_url(uri)

        return await self._enqueue(self._heavy, "video", task)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check(self, text: str, context: str) -> str:
        return self._guard.check(text, context)

    def _media(self, value: str, default_mime_type: Optional[str] = "image/png") -> InlineData:
        try:
            return split_data_uri(value, default_mime_type=default_mime_type)
        except DataUriError as e:
            raise InputRejectedError(f"Invalid media: {e}", check="media") from e

    async def _submit(
        self,
        capability: str,
        call: Callable[[], Awaitable[T]],
        on_progress: Optional[ProgressCallback],
    ) -> T:
        """Run call under the retry policy on the standard queue."""
        return await self._enqueue(
            self._standard,
            capability,
            lambda: self._retry_policy.execute(call, on_progress),
        )

    async def _enqueue(self, queue: TaskQueue, capability: str, task: Callable[[], Awaitable[T]]) -> T:
        try:
            return await queue.run(task)
        except Exception as e:
            translated = translate_error(e)
            log.error("capability_failed", capability=capability, kind=translated.kind.value)
            if translated is e:
                raise
            raise translated from e


# Process-wide instance
_studio_instance: Optional[GenerationStudio] = None
_studio_lock = threading.Lock()


def initialize_studio(
    transport: Optional[GenerationTransport] = None,
    settings: Optional[Settings] = None,
) -> GenerationStudio:
    """Create the process-wide studio.

    Without a transport, a GeminiTransport is built from settings.

    Raises:
        RuntimeError: If the studio is already initialized.
    """
    global _studio_instance
    with _studio_lock:
        if _studio_instance is not None:
            raise RuntimeError("Studio already initialized")
        settings = settings or get_settings()
        if transport is None:
            from genflow.transport.gemini import GeminiTransport

            transport = GeminiTransport.from_config(settings.backend)
        _studio_instance = GenerationStudio(transport, settings)
        return _studio_instance


def get_studio() -> GenerationStudio:
    """Return the process-wide studio.

    Raises:
        StudioNotInitializedError: If initialize_studio() was not called.
    """
    if _studio_instance is None:
        raise StudioNotInitializedError("Studio not initialized - call initialize_studio() first")
    return _studio_instance


def shutdown_studio() -> None:
    """Drop the process-wide studio."""
    global _studio_instance
    with _studio_lock:
        _studio_instance = None
