"""
Base Video Provider
===================

Abstract base class for generative video services that work as
long-running jobs: submit a request, poll the job until it reaches a
terminal state, then download the clip.
"""

import asyncio
import base64
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, List, Dict, Any, Union

import aiofiles
import httpx

from ..core.exceptions import (
    ConfigurationError,
    ProviderError,
    ValidationError,
    TimeoutError,
    RateLimitError,
)
from ..core.security import sanitize_prompt, redact_api_key

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================


DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 2.0
DEFAULT_RETRY_MULTIPLIER = 2.0
DEFAULT_TIMEOUT = 300
DEFAULT_POLL_INTERVAL = 10.0
DEFAULT_MAX_WAIT = 600.0

MAX_REFERENCE_IMAGES = 3


# =============================================================================
# Data Classes
# =============================================================================


class GenerationStatus(Enum):
    """Where a generation job is in its lifecycle."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (GenerationStatus.COMPLETED, GenerationStatus.FAILED)


@dataclass
class ReferenceImage:
    """An image sent along with a prompt to keep characters consistent."""

    data: bytes
    mime_type: str
    description: str
    source: Optional[str] = None

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")


@dataclass
class VideoGenerationResult:
    """Outcome of one generation job; FAILED results carry ``error_message``."""

    video_url: Optional[str] = None
    video_path: Optional[str] = None
    status: GenerationStatus = GenerationStatus.PENDING

    job_id: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None

    created_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    prompt: Optional[str] = None
    reference_count: int = 0

    error_message: Optional[str] = None

    def is_complete(self) -> bool:
        return self.status == GenerationStatus.COMPLETED and self.video_url is not None

    def is_failed(self) -> bool:
        return self.status == GenerationStatus.FAILED

    def validate_state(self) -> None:
        """A COMPLETED job must have produced something to download."""
        if self.status == GenerationStatus.COMPLETED and not self.video_url:
            raise ValidationError(
                "Job reported completion without a video URL",
                field="video_url",
                constraint="set when status is COMPLETED",
            )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "status": self.status.value,
            "job_id": self.job_id,
            "provider": self.provider,
            "model": self.model,
            "video_url": self.video_url,
            "video_path": self.video_path,
            "reference_count": self.reference_count,
            "error_message": self.error_message,
            "prompt": self.prompt,
        }
        for key in ("created_at", "completed_at"):
            value = getattr(self, key)
            data[key] = value.isoformat() if value else None
        return data


@dataclass
class GenerationRequest:
    """What to generate for one clip."""

    prompt: str

    aspect_ratio: str = "16:9"
    resolution: str = "720p"
    duration: int = 8  # seconds
    with_audio: bool = True
    sample_count: int = 1

    negative_prompt: Optional[str] = None
    model: Optional[str] = None

    def __post_init__(self):
        self.prompt = sanitize_prompt(self.prompt)
        if self.negative_prompt:
            self.negative_prompt = sanitize_prompt(self.negative_prompt)


# =============================================================================
# Base Provider Class
# =============================================================================


class BaseVideoProvider(ABC):
    """
    Abstract base class for long-running-job video services.

    Subclasses describe one service's wire format: how to submit a job, how
    to read a job's status document, and where the clip URL lives in it.
    This class supplies the lifecycle around that:

    - a lazily created, lock-guarded HTTP client
    - submission retried with exponential backoff on recoverable errors
    - polling at a fixed interval, bounded by ``max_wait``
    - streaming download of the finished clip

    ``generate_video`` and ``generate_video_with_references`` never raise
    for a failed generation; the returned result carries FAILED status and
    an error message instead.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_wait: float = DEFAULT_MAX_WAIT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the provider.

        Args:
            api_key: Service credential
            base_url: API root; the service default when omitted
            timeout: Per-request HTTP timeout in seconds
            max_retries: Extra submission attempts on recoverable failures
            poll_interval: Seconds between job status checks
            max_wait: Seconds after which a running job is abandoned
            transport: httpx transport override (tests use MockTransport)
        """
        if not api_key:
            raise ConfigurationError(
                f"No API key configured for {self.provider_name}",
                config_key="generation.api_key",
            )

        self.api_key = api_key
        self.base_url = (base_url or self._get_default_base_url()).rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.poll_interval = poll_interval
        self.max_wait = max_wait

        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Service description (implemented by subclasses)
    # -------------------------------------------------------------------------

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @property
    @abstractmethod
    def supported_models(self) -> List[str]:
        pass

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Model used for plain text-to-video requests."""
        pass

    @property
    @abstractmethod
    def reference_model(self) -> str:
        """Model used when reference images are attached."""
        pass

    @property
    def supported_aspect_ratios(self) -> List[str]:
        return ["16:9", "9:16"]

    @property
    def max_reference_images(self) -> int:
        return MAX_REFERENCE_IMAGES

    @abstractmethod
    def _get_default_base_url(self) -> str:
        pass

    @abstractmethod
    async def _submit(
        self,
        request: GenerationRequest,
        model: str,
        references: List[ReferenceImage],
    ) -> Dict[str, Any]:
        """Submit a job and return the service's raw response."""
        pass

    @abstractmethod
    async def _fetch_job(self, job_id: str) -> Dict[str, Any]:
        """Fetch the raw status document of a job."""
        pass

    @abstractmethod
    def _job_id(self, data: Dict[str, Any]) -> Optional[str]:
        """Job handle from a submission response, None if it finished inline."""
        pass

    @abstractmethod
    def _job_status(self, data: Dict[str, Any]) -> GenerationStatus:
        pass

    @abstractmethod
    def _job_error(self, data: Dict[str, Any]) -> str:
        pass

    @abstractmethod
    def _parse_response(
        self,
        data: Dict[str, Any],
        result: VideoGenerationResult,
    ) -> VideoGenerationResult:
        """Fill in a result from a finished job's document."""
        pass

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    async def generate_video(self, request: GenerationRequest) -> VideoGenerationResult:
        """
        Generate a video from a text prompt.

        Args:
            request: What to generate

        Returns:
            VideoGenerationResult with COMPLETED or FAILED status
        """
        return await self._generate(request, request.model or self.default_model, [])

    async def generate_video_with_references(
        self,
        request: GenerationRequest,
        references: List[ReferenceImage],
    ) -> VideoGenerationResult:
        """
        Generate a video guided by 1-3 reference images.

        Args:
            request: What to generate
            references: Images of the character or setting to keep consistent

        Returns:
            VideoGenerationResult with COMPLETED or FAILED status
        """
        if not 1 <= len(references) <= self.max_reference_images:
            raise ValidationError(
                f"Reference images must be between 1 and {self.max_reference_images}",
                field="reference_images",
                value=len(references),
            )
        return await self._generate(request, request.model or self.reference_model, references)

    async def _generate(
        self,
        request: GenerationRequest,
        model: str,
        references: List[ReferenceImage],
    ) -> VideoGenerationResult:
        if model not in self.supported_models:
            logger.warning(f"Model {model} is not a known {self.provider_name} model")
        if request.aspect_ratio not in self.supported_aspect_ratios:
            logger.warning(
                f"{self.provider_name} may reject aspect ratio {request.aspect_ratio}; "
                f"supported: {', '.join(self.supported_aspect_ratios)}"
            )

        template = VideoGenerationResult(
            provider=self.provider_name,
            prompt=request.prompt,
            model=model,
            reference_count=len(references),
        )

        def failed(message: str) -> VideoGenerationResult:
            template.status = GenerationStatus.FAILED
            template.error_message = redact_api_key(message)
            return template

        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            if attempt > 0:
                delay = DEFAULT_RETRY_DELAY * (DEFAULT_RETRY_MULTIPLIER ** (attempt - 1))
                logger.info(f"Retrying submission ({attempt}/{self.max_retries}) in {delay:.1f}s")
                await asyncio.sleep(delay)

            try:
                logger.info(f"Submitting to {self.provider_name} {model} (attempt {attempt + 1})")
                data = await self._submit(request, model, references)

                job_id = self._job_id(data)
                if job_id is None:
                    result = self._parse_response(data, template)
                else:
                    result = await self.wait_for_completion(job_id)
                    result.provider = template.provider
                    result.prompt = template.prompt
                    result.model = template.model
                    result.reference_count = template.reference_count
                    result.created_at = template.created_at

                result.validate_state()
                return result

            except ProviderError as e:
                last_error = e
                if not e.recoverable:
                    return failed(str(e))
                level = "Rate limited" if isinstance(e, RateLimitError) else "Recoverable provider error"
                logger.warning(f"{level}: {redact_api_key(str(e))}")

            except Exception as e:
                logger.error(f"Generation failed: {redact_api_key(str(e))}")
                return failed(str(e))

        return failed(f"All retries exhausted. Last error: {last_error}")

    # -------------------------------------------------------------------------
    # Job Polling
    # -------------------------------------------------------------------------

    async def check_status(self, job_id: str) -> VideoGenerationResult:
        """Fetch a job's current state once."""
        data = await self._fetch_job(job_id)
        result = VideoGenerationResult(
            job_id=job_id,
            provider=self.provider_name,
            status=self._job_status(data),
        )

        if result.status == GenerationStatus.COMPLETED:
            result = self._parse_response(data, result)
        elif result.is_failed():
            result.error_message = self._job_error(data)

        return result

    async def wait_for_completion(self, job_id: str) -> VideoGenerationResult:
        """
        Poll a job at a fixed interval until it finishes.

        A poll that fails transiently is skipped; the job keeps running on
        the service side.

        Raises:
            TimeoutError: If the job is still running after ``max_wait`` seconds
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        polls = 0

        while True:
            polls += 1
            result = None
            try:
                result = await self.check_status(job_id)
            except ProviderError as e:
                if not e.recoverable:
                    raise
                logger.warning(f"Poll {polls} for {job_id} failed: {redact_api_key(str(e))}")
            except httpx.TransportError as e:
                logger.warning(f"Poll {polls} for {job_id} failed: {redact_api_key(str(e))}")

            if result is not None and result.status.is_terminal:
                if result.is_complete():
                    result.completed_at = datetime.now()
                return result

            if loop.time() - started + self.poll_interval > self.max_wait:
                raise TimeoutError(
                    f"Job {job_id} did not finish after {polls} polls ({self.max_wait:.0f}s limit)",
                    operation="wait_for_completion",
                    timeout_seconds=self.max_wait,
                )

            logger.debug(f"Job {job_id} still running after poll {polls}")
            await asyncio.sleep(self.poll_interval)

    # -------------------------------------------------------------------------
    # Download
    # -------------------------------------------------------------------------

    async def download_video(
        self,
        result: VideoGenerationResult,
        output_path: Union[str, Path],
    ) -> str:
        """
        Stream a finished clip to disk.

        Args:
            result: A COMPLETED result
            output_path: File to write

        Returns:
            The path written
        """
        if not result.video_url:
            raise ValidationError(
                "Result has no video URL to download",
                field="video_url",
            )

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        client = await self._get_client()
        try:
            async with client.stream("GET", result.video_url, headers=self._get_download_headers()) as response:
                if response.status_code != 200:
                    raise ProviderError(
                        f"Download failed with status {response.status_code}",
                        provider=self.provider_name,
                        status_code=response.status_code,
                    )
                async with aiofiles.open(output_path, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        await f.write(chunk)
        except httpx.TimeoutException:
            raise TimeoutError(
                f"Download of {output_path.name} timed out",
                operation="download_video",
                timeout_seconds=self.timeout,
            )
        except httpx.HTTPError as e:
            raise ProviderError(
                f"Download failed: {redact_api_key(str(e))}",
                provider=self.provider_name,
            )

        result.video_path = str(output_path)
        logger.info(f"Clip saved to {output_path}")
        return str(output_path)

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    async def _get_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    headers=self._get_headers(),
                    timeout=httpx.Timeout(self.timeout),
                    follow_redirects=True,
                    transport=self._transport,
                )
            return self._client

    def _get_headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def _get_download_headers(self) -> Dict[str, str]:
        return {}

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Turn HTTP error responses into provider errors."""
        if response.status_code == 429:
            retry_after = response.headers.get("retry-after")
            raise RateLimitError(
                "Rate limit exceeded",
                provider=self.provider_name,
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        if response.status_code >= 400:
            raise ProviderError(
                f"API error: {response.status_code}",
                provider=self.provider_name,
                status_code=response.status_code,
                response_body=response.text,
            )

    async def close(self) -> None:
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
